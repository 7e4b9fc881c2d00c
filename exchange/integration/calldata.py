"""
Fixed-layout calldata codec for relayed fill-order calls.

Layout (all words are 32 bytes, integers big-endian):

    offset  size  field
    0       4     selector = keccak(FILL_ORDER_SIGNATURE)[:4]
    4       32    sender_address           (address, left-padded)
    36      32    maker_address
    68      32    taker_address
    100     32    maker_asset_address
    132     32    taker_asset_address
    164     32    fee_recipient_address
    196     32    maker_asset_amount
    228     32    taker_asset_amount
    260     32    maker_fee_amount
    292     32    taker_fee_amount
    324     32    expiration_time_seconds
    356     32    salt
    388     32    taker_asset_fill_amount
    420     32    signature length (n)
    452     65    signature bytes (r || s || v)

Field order and widths are part of the wire format; existing signed payloads
depend on them.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Dict, Union

from eth_utils import keccak

from ..errors import MalformedCalldataError
from ..state.canonical import (
    ADDRESS_NBYTES,
    WORD_NBYTES,
    address_to_word,
    bytes_to_address,
    uint256_to_bytes,
)
from ..state.orders import ADDRESS_FIELDS, UINT_FIELDS, Amount, ECSignature, Order


FILL_ORDER_SIGNATURE = (
    "fillOrder(address,address,address,address,address,address,"
    "uint256,uint256,uint256,uint256,uint256,uint256,uint256,bytes)"
)
FILL_ORDER_SELECTOR = keccak(text=FILL_ORDER_SIGNATURE)[:4]

SELECTOR_NBYTES = 4
_HEAD_WORDS = len(ADDRESS_FIELDS) + len(UINT_FIELDS) + 2  # + fill amount + signature length
_HEAD = struct.Struct(">4s" + f"{WORD_NBYTES}s" * _HEAD_WORDS)
MIN_FILL_ORDER_CALLDATA_NBYTES = _HEAD.size
SIGNATURE_NBYTES = 2 * WORD_NBYTES + 1  # r || s || v

_ADDRESS_PADDING = b"\x00" * (WORD_NBYTES - ADDRESS_NBYTES)


@dataclass(frozen=True)
class FillOrderCall:
    order: Order
    taker_asset_fill_amount: Amount
    signature: ECSignature


@dataclass(frozen=True)
class UnsupportedCall:
    selector: bytes


DecodedCall = Union[FillOrderCall, UnsupportedCall]


def _word_to_address(word: bytes, *, name: str) -> str:
    if word[:len(_ADDRESS_PADDING)] != _ADDRESS_PADDING:
        raise MalformedCalldataError(f"{name} has non-zero address padding")
    return bytes_to_address(word[len(_ADDRESS_PADDING):])


def encode_fill_order_args(order: Order, taker_asset_fill_amount: Amount, signature: ECSignature) -> bytes:
    sig = signature.to_bytes()
    words = [address_to_word(getattr(order, name), name=name) for name in ADDRESS_FIELDS]
    words += [uint256_to_bytes(getattr(order, name), name=name) for name in UINT_FIELDS]
    words.append(uint256_to_bytes(taker_asset_fill_amount, name="taker_asset_fill_amount"))
    words.append(uint256_to_bytes(len(sig), name="signature length"))
    return _HEAD.pack(FILL_ORDER_SELECTOR, *words) + sig


def decode_fill_order_args(payload: bytes) -> FillOrderCall:
    """
    Parse a fill-order payload.

    Raises:
        MalformedCalldataError: If the payload does not match the layout
    """
    if not isinstance(payload, (bytes, bytearray)):
        raise MalformedCalldataError("payload must be bytes")
    payload = bytes(payload)
    if len(payload) < MIN_FILL_ORDER_CALLDATA_NBYTES:
        raise MalformedCalldataError(
            f"payload too short: {len(payload)} < {MIN_FILL_ORDER_CALLDATA_NBYTES} bytes"
        )

    selector, *words = _HEAD.unpack_from(payload, 0)
    if selector != FILL_ORDER_SELECTOR:
        raise MalformedCalldataError(f"unexpected selector 0x{selector.hex()}")

    address_words = words[:len(ADDRESS_FIELDS)]
    uint_words = words[len(ADDRESS_FIELDS):len(ADDRESS_FIELDS) + len(UINT_FIELDS)]
    fill_word, sig_len_word = words[-2:]

    sig_len = int.from_bytes(sig_len_word, "big")
    if sig_len != SIGNATURE_NBYTES:
        raise MalformedCalldataError(f"signature must be {SIGNATURE_NBYTES} bytes, got length {sig_len}")
    if len(payload) != MIN_FILL_ORDER_CALLDATA_NBYTES + sig_len:
        raise MalformedCalldataError(
            f"payload length {len(payload)} does not match signature length {sig_len}"
        )

    fields: Dict[str, Union[str, int]] = {}
    for name, word in zip(ADDRESS_FIELDS, address_words):
        fields[name] = _word_to_address(word, name=name)
    for name, word in zip(UINT_FIELDS, uint_words):
        fields[name] = int.from_bytes(word, "big")

    try:
        signature = ECSignature.from_bytes(payload[MIN_FILL_ORDER_CALLDATA_NBYTES:])
        order = Order.from_dict(fields)
    except (TypeError, ValueError) as exc:
        raise MalformedCalldataError(str(exc)) from exc

    return FillOrderCall(
        order=order,
        taker_asset_fill_amount=int.from_bytes(fill_word, "big"),
        signature=signature,
    )


def decode_call(payload: bytes) -> DecodedCall:
    """Dispatch on the selector; unknown selectors are reported, not rejected."""
    if not isinstance(payload, (bytes, bytearray)) or len(payload) < SELECTOR_NBYTES:
        raise MalformedCalldataError("payload shorter than a selector")
    selector = bytes(payload[:SELECTOR_NBYTES])
    if selector == FILL_ORDER_SELECTOR:
        return decode_fill_order_args(payload)
    return UnsupportedCall(selector=selector)

