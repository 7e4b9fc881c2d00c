"""
secp256k1 signature verification.

Signers sign the personal-message digest of a 32-byte hash:

    digest = keccak256("\\x19Ethereum Signed Message:\\n32" || message_hash)

`is_valid_signature` applies that prefix and then performs raw public-key
recovery over the digest. Hosts that already prefix internally can call
`recover_signer` on their digest directly.

Verification never raises: malformed material, failed recovery and signer
mismatch all return False.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Union

from eth_utils import keccak
from py_ecc.secp256k1 import secp256k1

from ..state.canonical import WORD_NBYTES, bytes_to_address, canonical_address, hash_to_bytes
from ..state.orders import Address, ECSignature

logger = logging.getLogger(__name__)

PERSONAL_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n32"

SECP256K1_N = secp256k1.N


def hash_personal_message(message_hash: Union[bytes, str]) -> bytes:
    """Digest actually signed for a 32-byte `message_hash`."""
    if isinstance(message_hash, str):
        message_hash = hash_to_bytes(message_hash, name="message_hash")
    if len(message_hash) != WORD_NBYTES:
        raise ValueError(f"message_hash must be {WORD_NBYTES} bytes")
    return keccak(PERSONAL_MESSAGE_PREFIX + bytes(message_hash))


def public_key_to_address(x: int, y: int) -> Address:
    return bytes_to_address(keccak(x.to_bytes(32, "big") + y.to_bytes(32, "big"))[-20:])


def recover_signer(digest: bytes, signature: ECSignature) -> Optional[Address]:
    """Raw ECDSA public-key recovery over `digest`. Returns None on any failure."""
    if not isinstance(signature, ECSignature):
        return None
    if not isinstance(digest, (bytes, bytearray)) or len(digest) != WORD_NBYTES:
        return None
    v = signature.normalized_v
    if v not in (27, 28):
        return None
    r = int.from_bytes(signature.r, "big")
    s = int.from_bytes(signature.s, "big")
    if not (0 < r < SECP256K1_N and 0 < s < SECP256K1_N):
        return None
    try:
        point = secp256k1.ecdsa_raw_recover(bytes(digest), (v, r, s))
    except (ValueError, ZeroDivisionError) as exc:
        logger.debug("signature recovery failed: %s", exc)
        return None
    if not point:
        return None
    x, y = point
    if x == 0 and y == 0:
        return None
    return public_key_to_address(x, y)


class SignatureVerifier(Protocol):
    """Capability used by the exchange to check maker and meta-transaction signatures."""

    def is_valid_signature(self, message_hash: str, signature: ECSignature, expected_signer: Address) -> bool:
        ...


class Secp256k1SignatureVerifier:
    """Personal-message secp256k1 verifier backed by py_ecc."""

    def is_valid_signature(self, message_hash: str, signature: ECSignature, expected_signer: Address) -> bool:
        try:
            digest = hash_personal_message(message_hash)
            expected = canonical_address(expected_signer, name="expected_signer")
        except (TypeError, ValueError) as exc:
            logger.debug("rejecting malformed signature input: %s", exc)
            return False
        recovered = recover_signer(digest, signature)
        return recovered is not None and recovered == expected


def is_valid_signature(message_hash: str, signature: ECSignature, expected_signer: Address) -> bool:
    return Secp256k1SignatureVerifier().is_valid_signature(message_hash, signature, expected_signer)
