from __future__ import annotations

from decimal import Decimal

import pytest

from exchange.agents.order_signer import (
    MAX_DIGITS_IN_SALT,
    create_order,
    generate_pseudo_random_salt,
    is_valid_order_hash,
    parse_rpc_signature,
    private_key_to_address,
    sign_order,
    to_base_unit_amount,
    to_unit_amount,
)
from exchange.core.order_hash import get_order_hash
from exchange.core.signatures import is_valid_signature
from exchange.state.canonical import NULL_ADDRESS

VENUE = "0x" + "e0" * 20
KEY = b"\x07" * 32
MAKER_ASSET = "0x" + "a1" * 20
TAKER_ASSET = "0x" + "b2" * 20


def test_salt_range() -> None:
    for _ in range(20):
        salt = generate_pseudo_random_salt()
        assert 0 <= salt < 10 ** MAX_DIGITS_IN_SALT


@pytest.mark.parametrize(
    "value,ok",
    [
        ("0x" + "ab" * 32, True),
        ("0x" + "AB" * 32, True),
        ("ab" * 32, False),
        ("0x" + "ab" * 31, False),
        ("0x" + "zz" * 32, False),
        (None, False),
    ],
)
def test_is_valid_order_hash(value, ok: bool) -> None:
    assert is_valid_order_hash(value) is ok


def test_unit_conversions() -> None:
    assert to_unit_amount(10**18, 18) == Decimal(1)
    assert to_unit_amount(15, 1) == Decimal("1.5")
    assert to_base_unit_amount("1.5", 18) == 15 * 10**17
    assert to_base_unit_amount(Decimal("0.001"), 3) == 1
    with pytest.raises(ValueError):
        to_base_unit_amount("0.0001", 3)
    with pytest.raises(ValueError):
        to_unit_amount(1, -1)


def test_create_order_defaults() -> None:
    maker = private_key_to_address(KEY)
    order = create_order(maker, MAKER_ASSET, TAKER_ASSET, 200, 100, 1_800_000_000)
    assert order.taker_address == NULL_ADDRESS
    assert order.fee_recipient_address == NULL_ADDRESS
    assert 0 <= order.salt < 10 ** MAX_DIGITS_IN_SALT
    assert create_order(maker, MAKER_ASSET, TAKER_ASSET, 200, 100, 1_800_000_000, salt=5).salt == 5


def test_create_order_rejects_zero_amounts() -> None:
    with pytest.raises(ValueError):
        create_order(private_key_to_address(KEY), MAKER_ASSET, TAKER_ASSET, 0, 100, 1_800_000_000)


def test_sign_order_accepts_hex_key() -> None:
    maker = private_key_to_address(KEY)
    order = create_order(maker, MAKER_ASSET, TAKER_ASSET, 200, 100, 1_800_000_000, salt=1)

    order_hash, sig = sign_order(order, VENUE, "0x" + KEY.hex())

    assert order_hash == get_order_hash(order, VENUE)
    assert is_valid_signature(order_hash, sig, maker)


def test_private_key_must_be_32_bytes() -> None:
    with pytest.raises(ValueError):
        private_key_to_address(b"\x01" * 31)


def test_parse_rpc_signature_layouts() -> None:
    r, s = "11" * 32, "22" * 32

    rsv = parse_rpc_signature("0x" + r + s + "1c")
    assert (rsv.v, rsv.r, rsv.s) == (28, bytes.fromhex(r), bytes.fromhex(s))

    vrs = parse_rpc_signature("0x01" + r + s, vrs=True)
    assert (vrs.v, vrs.r, vrs.s) == (28, bytes.fromhex(r), bytes.fromhex(s))

    with pytest.raises(ValueError):
        parse_rpc_signature("0x" + r + s)
