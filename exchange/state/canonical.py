"""
Deterministic canonical encoding primitives.

These helpers are used for identity-critical hashing (order hashes, meta
transaction hashes) and for the fixed-width calldata layout. Every encoder is
byte-exact: the same logical value always produces the same bytes.
"""

from __future__ import annotations

import re
from typing import Any

from eth_utils import keccak


ADDRESS_NBYTES = 20
WORD_NBYTES = 32

UINT256_MAX = 2**256 - 1

NULL_ADDRESS = "0x" + "00" * ADDRESS_NBYTES

_HEX_CHARS_RE = re.compile(r"^[0-9a-fA-F]+$")


def require_uint256(value: Any, *, name: str) -> int:
    """Return `value` if it is a non-negative int that fits in 256 bits."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")
    if value > UINT256_MAX:
        raise ValueError(f"{name} does not fit in uint256")
    return int(value)


def hex_to_bytes_fixed(hex_str: str, *, nbytes: int, name: str) -> bytes:
    if not isinstance(hex_str, str):
        raise TypeError(f"{name} must be a str")
    if not isinstance(nbytes, int) or isinstance(nbytes, bool) or nbytes <= 0:
        raise ValueError("nbytes must be a positive int")
    s = hex_str[2:] if hex_str[:2].lower() == "0x" else hex_str
    if len(s) != 2 * nbytes:
        raise ValueError(f"{name} must be a {nbytes}-byte hex string")
    if not _HEX_CHARS_RE.fullmatch(s):
        raise ValueError(f"{name} must be valid hex")
    return bytes.fromhex(s)


def canonical_hex_fixed_allow_0x(hex_str: str, *, nbytes: int, name: str) -> str:
    """
    Canonicalize a fixed-size hex string (lowercase, 0x-prefixed).

    Accepts either 0x-prefixed or raw hex input.
    """
    if not isinstance(hex_str, str):
        raise TypeError(f"{name} must be a str")
    if not isinstance(nbytes, int) or isinstance(nbytes, bool) or nbytes <= 0:
        raise ValueError("nbytes must be a positive int")

    s = hex_str.strip()
    if s.lower().startswith("0x"):
        s = s[2:]
    expected_len = 2 * nbytes
    if len(s) != expected_len:
        raise ValueError(f"{name} must be {nbytes} bytes (hex length {expected_len})")
    if not _HEX_CHARS_RE.fullmatch(s):
        raise ValueError(f"{name} must be valid hex")
    return "0x" + s.lower()


def canonical_address(value: str, *, name: str = "address") -> str:
    """Lowercase 0x-prefixed 20-byte address. Checksummed input is accepted."""
    return canonical_hex_fixed_allow_0x(value, nbytes=ADDRESS_NBYTES, name=name)


def is_null_address(value: str) -> bool:
    return canonical_address(value) == NULL_ADDRESS


def address_to_bytes(value: str, *, name: str = "address") -> bytes:
    return hex_to_bytes_fixed(canonical_address(value, name=name), nbytes=ADDRESS_NBYTES, name=name)


def bytes_to_address(value: bytes) -> str:
    if len(value) != ADDRESS_NBYTES:
        raise ValueError(f"address must be {ADDRESS_NBYTES} bytes")
    return "0x" + value.hex()


def uint256_to_bytes(value: int, *, name: str = "value") -> bytes:
    """32-byte big-endian encoding."""
    return require_uint256(value, name=name).to_bytes(WORD_NBYTES, "big")


def address_to_word(value: str, *, name: str = "address") -> bytes:
    """ABI word: 12 zero bytes followed by the 20-byte address."""
    return b"\x00" * (WORD_NBYTES - ADDRESS_NBYTES) + address_to_bytes(value, name=name)


def keccak_hex(data: bytes) -> str:
    return "0x" + keccak(data).hex()


def hash_to_bytes(hash_hex: str, *, name: str = "hash") -> bytes:
    return hex_to_bytes_fixed(hash_hex, nbytes=WORD_NBYTES, name=name)
