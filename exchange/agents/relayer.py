"""
Meta-transaction construction and relay for takers and relayers.
"""

from dataclasses import dataclass
from typing import List, Optional

from ..core.signatures import hash_personal_message
from ..integration.calldata import encode_fill_order_args
from ..integration.meta_transactions import MetaTransactionGate, get_transaction_hash
from ..state.orders import Address, Amount, ECSignature, Order
from .order_signer import PrivateKey, private_key_to_address, sign_digest


@dataclass(frozen=True)
class MetaTransaction:
    """
    Signed instruction a relayer can submit on behalf of `signer`.

    Attributes:
        nonce: Signer-chosen uniqueness value
        signer: Address the call executes as
        payload: Encoded calldata
        signature: Signer's signature over `tx_hash`
        tx_hash: Venue-bound transaction hash
    """
    nonce: int
    signer: Address
    payload: bytes
    signature: ECSignature
    tx_hash: str


def sign_meta_transaction(
    venue_address: Address,
    nonce: int,
    payload: bytes,
    signer_private_key: PrivateKey,
) -> MetaTransaction:
    signer = private_key_to_address(signer_private_key)
    tx_hash = get_transaction_hash(venue_address, signer, nonce, payload)
    signature = sign_digest(hash_personal_message(tx_hash), signer_private_key)
    return MetaTransaction(nonce=nonce, signer=signer, payload=bytes(payload), signature=signature, tx_hash=tx_hash)


def build_fill_meta_transaction(
    venue_address: Address,
    nonce: int,
    order: Order,
    taker_asset_fill_amount: Amount,
    order_signature: ECSignature,
    taker_private_key: PrivateKey,
) -> MetaTransaction:
    """
    Encode a fill-order call and sign it as the taker.

    Args:
        venue_address: Exchange the transaction is bound to
        nonce: Taker-chosen nonce
        order: Maker-signed order to fill
        taker_asset_fill_amount: Requested taker-asset amount
        order_signature: Maker's signature over the order hash
        taker_private_key: Key of the taker the fill executes for

    Returns:
        MetaTransaction ready to hand to a relayer
    """
    payload = encode_fill_order_args(order, taker_asset_fill_amount, order_signature)
    return sign_meta_transaction(venue_address, nonce, payload, taker_private_key)


def relay(
    gate: MetaTransactionGate,
    transactions: List[MetaTransaction],
    sender: Optional[Address] = None,
) -> List[Optional[Amount]]:
    """Submit transactions in order; a hard failure stops the relay at that transaction."""
    results: List[Optional[Amount]] = []
    for tx in transactions:
        results.append(gate.execute(tx.nonce, tx.signer, tx.payload, tx.signature, sender=sender))
    return results
