"""
Order identity hashing.

Formula: keccak256(venue || sender || maker || taker || maker_asset ||
taker_asset || fee_recipient || maker_asset_amount || taker_asset_amount ||
maker_fee_amount || taker_fee_amount || expiration_time_seconds || salt)

Addresses are packed as 20 bytes and integers as 32-byte big-endian words
(tight packing, no padding between fields). The venue address comes first so
that a signed order is only valid on one exchange instance.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..state.canonical import address_to_bytes, canonical_address, keccak_hex, uint256_to_bytes
from ..state.orders import ADDRESS_FIELDS, UINT_FIELDS, Address, Order, OrderHash


def order_hash_preimage(order: Order, venue_address: Address) -> bytes:
    """Canonical byte serialization of `order` bound to `venue_address`."""
    parts = [address_to_bytes(venue_address, name="venue_address")]
    for name in ADDRESS_FIELDS:
        parts.append(address_to_bytes(getattr(order, name), name=name))
    for name in UINT_FIELDS:
        parts.append(uint256_to_bytes(getattr(order, name), name=name))
    return b"".join(parts)


def get_order_hash(order: Order, venue_address: Address) -> OrderHash:
    return keccak_hex(order_hash_preimage(order, venue_address))


@dataclass(frozen=True)
class OrderHasher:
    """Order hasher bound to one venue address."""

    venue_address: Address

    def __post_init__(self) -> None:
        object.__setattr__(self, "venue_address", canonical_address(self.venue_address, name="venue_address"))

    def hash(self, order: Order) -> OrderHash:
        return get_order_hash(order, self.venue_address)
