"""
Meta-transaction gate.

A relayer submits a call on behalf of a signer:

    execute(nonce, signer, payload, signature, sender=relayer)

The transaction hash binds the venue, the signer, the nonce and the raw
payload:

    tx_hash = keccak256(venue(20) || signer(20) || nonce(32) || payload)

Replay protection is an append-only set of executed hashes kept in the fill
ledger. Everything (hash marking, decoding, the fill itself) runs in one
ledger transaction, so a rejected or failing call leaves no trace.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.exchange import Exchange
from ..errors import InvalidSignatureError, ReplayError
from ..state.canonical import address_to_bytes, canonical_address, keccak_hex, uint256_to_bytes
from ..state.orders import Address, Amount, ECSignature
from .calldata import FillOrderCall, decode_call

logger = logging.getLogger(__name__)


def get_transaction_hash(venue_address: Address, signer: Address, nonce: int, payload: bytes) -> str:
    if not isinstance(payload, (bytes, bytearray)):
        raise TypeError("payload must be bytes")
    return keccak_hex(
        address_to_bytes(venue_address, name="venue_address")
        + address_to_bytes(signer, name="signer")
        + uint256_to_bytes(nonce, name="nonce")
        + bytes(payload)
    )


class MetaTransactionGate:
    """Replay-protected relay entry point in front of an `Exchange`."""

    def __init__(self, exchange: Exchange):
        self.exchange = exchange

    @property
    def ledger(self):
        return self.exchange.ledger

    def get_transaction_hash(self, nonce: int, signer: Address, payload: bytes) -> str:
        return get_transaction_hash(self.exchange.venue_address, signer, nonce, payload)

    def execute(
        self,
        nonce: int,
        signer: Address,
        payload: bytes,
        signature: ECSignature,
        *,
        sender: Optional[Address] = None,
    ) -> Optional[Amount]:
        """
        Execute a signed payload as `signer`.

        Args:
            nonce: Signer-chosen uniqueness value
            signer: Address the call is executed on behalf of (the taker)
            payload: Raw calldata
            signature: Signer's signature over the transaction hash
            sender: Relayer submitting the call (defaults to the signer)

        Returns:
            Filled amount for a fill-order payload, None for unsupported payloads

        Raises:
            ReplayError: If the transaction hash was already executed
            InvalidSignatureError: If the signature does not recover to `signer`
            MalformedCalldataError: If the payload cannot be decoded
        """
        signer = canonical_address(signer, name="signer")
        relayer = canonical_address(sender, name="sender") if sender is not None else signer
        tx_hash = self.get_transaction_hash(nonce, signer, payload)

        with self.ledger.transaction():
            if self.ledger.is_transaction_executed(tx_hash):
                logger.warning("rejecting replayed transaction %s", tx_hash)
                raise ReplayError(tx_hash)
            if not self.exchange.verifier.is_valid_signature(tx_hash, signature, signer):
                logger.warning("rejecting transaction %s: invalid signature for %s", tx_hash, signer)
                raise InvalidSignatureError(f"invalid transaction signature for {signer}")

            self.ledger.mark_transaction_executed(tx_hash)
            call = decode_call(payload)
            if not isinstance(call, FillOrderCall):
                logger.info("transaction %s has unsupported selector 0x%s; no action", tx_hash, call.selector.hex())
                return None

            return self.exchange.fill_order(
                call.order,
                call.taker_asset_fill_amount,
                call.signature,
                signer,
                sender_address=relayer,
            )
