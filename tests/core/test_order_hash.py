from __future__ import annotations

from dataclasses import replace

import pytest
from eth_utils import keccak

from exchange.core.order_hash import OrderHasher, get_order_hash, order_hash_preimage
from exchange.state.orders import ADDRESS_FIELDS, UINT_FIELDS, make_order

VENUE = "0x" + "e0" * 20


def _order():
    return make_order(
        sender_address="0x" + "01" * 20,
        maker_address="0x" + "02" * 20,
        taker_address="0x" + "03" * 20,
        maker_asset_address="0x" + "04" * 20,
        taker_asset_address="0x" + "05" * 20,
        fee_recipient_address="0x" + "06" * 20,
        maker_asset_amount=200,
        taker_asset_amount=100,
        maker_fee_amount=7,
        taker_fee_amount=8,
        expiration_time_seconds=1_700_000_000,
        salt=42,
    )


def test_preimage_layout_is_tightly_packed() -> None:
    order = _order()
    preimage = order_hash_preimage(order, VENUE)
    # venue + 6 addresses (20 bytes) + 6 uint256 words
    assert len(preimage) == 7 * 20 + 6 * 32
    assert preimage[:20] == bytes.fromhex("e0" * 20)
    assert preimage[20:40] == bytes.fromhex("01" * 20)
    assert preimage[140:172] == (200).to_bytes(32, "big")
    assert preimage[-32:] == (42).to_bytes(32, "big")


def test_hash_is_keccak_of_preimage() -> None:
    order = _order()
    expected = "0x" + keccak(order_hash_preimage(order, VENUE)).hex()
    assert get_order_hash(order, VENUE) == expected
    assert OrderHasher(VENUE).hash(order) == expected


def test_hash_is_deterministic_and_case_insensitive_on_addresses() -> None:
    order = _order()
    upper = replace(order, maker_address=order.maker_address.upper().replace("0X", "0x"))
    assert get_order_hash(order, VENUE) == get_order_hash(upper, VENUE)
    assert get_order_hash(order, VENUE) == get_order_hash(_order(), VENUE)


def test_venue_is_bound_into_hash() -> None:
    order = _order()
    assert get_order_hash(order, VENUE) != get_order_hash(order, "0x" + "e1" * 20)


@pytest.mark.parametrize("field", ADDRESS_FIELDS)
def test_changing_any_address_field_changes_hash(field: str) -> None:
    order = _order()
    changed = replace(order, **{field: "0x" + "ff" * 20})
    assert get_order_hash(changed, VENUE) != get_order_hash(order, VENUE)


@pytest.mark.parametrize("field", UINT_FIELDS)
def test_changing_any_uint_field_changes_hash(field: str) -> None:
    order = _order()
    changed = replace(order, **{field: getattr(order, field) + 1})
    assert get_order_hash(changed, VENUE) != get_order_hash(order, VENUE)


def test_hash_format() -> None:
    h = get_order_hash(_order(), VENUE)
    assert h.startswith("0x") and len(h) == 66
