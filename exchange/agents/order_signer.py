"""
Order creation and signing for makers and relayers.
"""

import re
import secrets
from decimal import Decimal
from typing import Tuple, Union

from py_ecc.secp256k1 import secp256k1

from ..core.order_hash import get_order_hash
from ..core.signatures import hash_personal_message, public_key_to_address, recover_signer
from ..errors import InvalidSignatureError
from ..state.canonical import NULL_ADDRESS, WORD_NBYTES, hash_to_bytes, hex_to_bytes_fixed
from ..state.orders import Address, Amount, ECSignature, Order, OrderHash

PrivateKey = Union[bytes, str]

# Salts stay below 10**77 so they print in at most 77 decimal digits.
MAX_DIGITS_IN_SALT = 77

_ORDER_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def _private_key_bytes(private_key: PrivateKey) -> bytes:
    if isinstance(private_key, str):
        return hex_to_bytes_fixed(private_key, nbytes=32, name="private_key")
    if not isinstance(private_key, (bytes, bytearray)) or len(private_key) != 32:
        raise ValueError("private_key must be 32 bytes")
    return bytes(private_key)


def private_key_to_address(private_key: PrivateKey) -> Address:
    x, y = secp256k1.privtopub(_private_key_bytes(private_key))
    return public_key_to_address(x, y)


def generate_pseudo_random_salt() -> int:
    """
    Random salt giving an order a unique hash.

    Also serves as the order's position in the maker's cancellation epoch.
    """
    return secrets.randbelow(10 ** MAX_DIGITS_IN_SALT)


def is_valid_order_hash(order_hash: str) -> bool:
    return isinstance(order_hash, str) and _ORDER_HASH_RE.fullmatch(order_hash) is not None


def to_unit_amount(amount: int, decimals: int) -> Decimal:
    """
    Convert a base-unit amount to whole units.

    E.g. with 18 decimals, 10**18 base units is 1 unit.
    """
    if decimals < 0:
        raise ValueError("decimals must be non-negative")
    return Decimal(amount) / (Decimal(10) ** decimals)


def to_base_unit_amount(amount: Union[Decimal, int, str], decimals: int) -> int:
    """
    Convert whole units to the smallest denomination.

    Raises:
        ValueError: If the result is not a whole number of base units
    """
    if decimals < 0:
        raise ValueError("decimals must be non-negative")
    base = Decimal(amount) * (Decimal(10) ** decimals)
    if base != base.to_integral_value():
        raise ValueError(f"{amount} has more than {decimals} decimal places")
    return int(base)


def create_order(
    maker_address: Address,
    maker_asset_address: Address,
    taker_asset_address: Address,
    maker_asset_amount: Amount,
    taker_asset_amount: Amount,
    expiration_time_seconds: int,
    taker_address: Address = NULL_ADDRESS,
    sender_address: Address = NULL_ADDRESS,
    fee_recipient_address: Address = NULL_ADDRESS,
    maker_fee_amount: Amount = 0,
    taker_fee_amount: Amount = 0,
    salt: Union[int, None] = None,
) -> Order:
    """
    Create an order with a fresh salt unless one is given.

    Returns:
        Order object
    """
    if maker_asset_amount <= 0 or taker_asset_amount <= 0:
        raise ValueError("maker_asset_amount and taker_asset_amount must be positive")
    return Order(
        sender_address=sender_address,
        maker_address=maker_address,
        taker_address=taker_address,
        maker_asset_address=maker_asset_address,
        taker_asset_address=taker_asset_address,
        fee_recipient_address=fee_recipient_address,
        maker_asset_amount=maker_asset_amount,
        taker_asset_amount=taker_asset_amount,
        maker_fee_amount=maker_fee_amount,
        taker_fee_amount=taker_fee_amount,
        expiration_time_seconds=expiration_time_seconds,
        salt=generate_pseudo_random_salt() if salt is None else salt,
    )


def sign_digest(digest: bytes, private_key: PrivateKey) -> ECSignature:
    """Raw signature over a 32-byte digest (no prefixing)."""
    if len(digest) != WORD_NBYTES:
        raise ValueError(f"digest must be {WORD_NBYTES} bytes")
    v, r, s = secp256k1.ecdsa_raw_sign(bytes(digest), _private_key_bytes(private_key))
    return ECSignature(v=v, r=r.to_bytes(32, "big"), s=s.to_bytes(32, "big"))


def sign_order_hash(order_hash: OrderHash, private_key: PrivateKey, *, prefix: bool = True) -> ECSignature:
    """
    Sign the personal-message digest of `order_hash`.

    With `prefix=False` the raw hash is signed, for signing hosts that add the
    personal-message prefix themselves.

    Raises:
        InvalidSignatureError: If the produced signature does not recover to
            the key's address
    """
    raw = hash_to_bytes(order_hash, name="order_hash")
    digest = hash_personal_message(raw) if prefix else raw
    signature = sign_digest(digest, private_key)
    if recover_signer(digest, signature) != private_key_to_address(private_key):
        raise InvalidSignatureError("signature does not recover to the signing key")
    return signature


def sign_order(order: Order, venue_address: Address, private_key: PrivateKey) -> Tuple[OrderHash, ECSignature]:
    order_hash = get_order_hash(order, venue_address)
    return order_hash, sign_order_hash(order_hash, private_key)


def parse_rpc_signature(signature_hex: str, *, vrs: bool = False) -> ECSignature:
    """
    Parse a 65-byte hex signature returned by a signing host.

    Most hosts return r || s || v; some older ones return v || r || s
    (`vrs=True`). `v` values below 27 are normalized by adding 27.
    """
    data = hex_to_bytes_fixed(signature_hex, nbytes=65, name="signature")
    if vrs:
        v, r, s = data[0], data[1:33], data[33:65]
    else:
        r, s, v = data[0:32], data[32:64], data[64]
    if v < 27:
        v += 27
    return ECSignature(v=v, r=r, s=s)
