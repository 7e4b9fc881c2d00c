"""
Order and signature data models.

Orders are constructed and signed off-chain by makers and arrive pre-matched.
The field order declared on `Order` is the canonical serialization order used
for hashing and for calldata.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Dict, Tuple, Union

from .canonical import (
    NULL_ADDRESS,
    WORD_NBYTES,
    canonical_address,
    hex_to_bytes_fixed,
    is_null_address,
    require_uint256,
)


Address = str  # 0x-prefixed lowercase 20-byte hex
OrderHash = str  # 0x-prefixed 32-byte hex
Amount = int  # uint256

ADDRESS_FIELDS: Tuple[str, ...] = (
    "sender_address",
    "maker_address",
    "taker_address",
    "maker_asset_address",
    "taker_asset_address",
    "fee_recipient_address",
)

UINT_FIELDS: Tuple[str, ...] = (
    "maker_asset_amount",
    "taker_asset_amount",
    "maker_fee_amount",
    "taker_fee_amount",
    "expiration_time_seconds",
    "salt",
)


@dataclass(frozen=True)
class Order:
    """
    Immutable trade order.

    Attributes:
        sender_address: Relayer allowed to submit the order (null = anyone)
        maker_address: Order creator and signer
        taker_address: Only counterparty allowed to fill (null = anyone)
        maker_asset_address: Asset the maker sells
        taker_asset_address: Asset the maker buys
        fee_recipient_address: Receives maker and taker fees (null = no fees moved)
        maker_asset_amount: Total maker asset offered
        taker_asset_amount: Total taker asset requested
        maker_fee_amount: Fee paid by the maker on a full fill
        taker_fee_amount: Fee paid by the taker on a full fill
        expiration_time_seconds: Unix timestamp after which fills are no-ops
        salt: Uniqueness nonce, compared against the maker's cancel epoch
    """

    sender_address: Address
    maker_address: Address
    taker_address: Address
    maker_asset_address: Address
    taker_asset_address: Address
    fee_recipient_address: Address
    maker_asset_amount: Amount
    taker_asset_amount: Amount
    maker_fee_amount: Amount
    taker_fee_amount: Amount
    expiration_time_seconds: int
    salt: int

    def __post_init__(self) -> None:
        # Frozen dataclass: canonicalize through object.__setattr__.
        for name in ADDRESS_FIELDS:
            object.__setattr__(self, name, canonical_address(getattr(self, name), name=name))
        for name in UINT_FIELDS:
            require_uint256(getattr(self, name), name=name)

    @property
    def has_sender(self) -> bool:
        return not is_null_address(self.sender_address)

    @property
    def has_taker(self) -> bool:
        return not is_null_address(self.taker_address)

    @property
    def has_fee_recipient(self) -> bool:
        return not is_null_address(self.fee_recipient_address)

    def to_dict(self) -> Dict[str, Union[str, int]]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Union[str, int]]) -> "Order":
        missing = [f.name for f in fields(cls) if f.name not in data]
        if missing:
            raise ValueError(f"Missing required order fields: {', '.join(missing)}")
        return cls(**{f.name: data[f.name] for f in fields(cls)})


def make_order(**overrides: Union[str, int]) -> Order:
    """Build an order where unspecified addresses default to the null address."""
    data: Dict[str, Union[str, int]] = {name: NULL_ADDRESS for name in ADDRESS_FIELDS}
    data.update({name: 0 for name in UINT_FIELDS})
    data.update(overrides)
    return Order.from_dict(data)


@dataclass(frozen=True)
class ECSignature:
    """
    secp256k1 signature triple.

    `v` is kept as supplied; verification normalizes values below 27 by
    adding 27. `r` and `s` are 32-byte values.
    """

    v: int
    r: bytes
    s: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.v, int) or isinstance(self.v, bool):
            raise TypeError("v must be an int")
        for name in ("r", "s"):
            value = getattr(self, name)
            if isinstance(value, str):
                value = hex_to_bytes_fixed(value, nbytes=WORD_NBYTES, name=name)
            if not isinstance(value, (bytes, bytearray)):
                raise TypeError(f"{name} must be bytes or a hex string")
            if len(value) != WORD_NBYTES:
                raise ValueError(f"{name} must be {WORD_NBYTES} bytes")
            object.__setattr__(self, name, bytes(value))

    @property
    def normalized_v(self) -> int:
        return self.v + 27 if self.v < 27 else self.v

    def to_bytes(self) -> bytes:
        """Wire form: r || s || v (65 bytes)."""
        if not 0 <= self.v <= 0xFF:
            raise ValueError(f"v does not fit in one byte: {self.v}")
        return self.r + self.s + bytes([self.v])

    @classmethod
    def from_bytes(cls, data: bytes) -> "ECSignature":
        if len(data) != 2 * WORD_NBYTES + 1:
            raise ValueError(f"signature must be {2 * WORD_NBYTES + 1} bytes, got {len(data)}")
        return cls(v=data[64], r=data[0:32], s=data[32:64])

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()
