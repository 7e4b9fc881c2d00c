"""
Peer-to-peer exchange settlement engine.

Signed, pre-matched orders are filled or cancelled against an append-only
fill ledger with replay protection, expiry, authorization and rounding
checks. Value transfer is delegated to an injected settlement collaborator.
"""

from .errors import (
    ArithmeticOverflowError,
    EpochOrderingError,
    ExchangeError,
    FillOrKillError,
    InvalidOrderError,
    InvalidSignatureError,
    MalformedCalldataError,
    ReplayError,
    SettlementError,
    UnauthorizedError,
)
from .state import NULL_ADDRESS, BalanceTable, ECSignature, FillLedger, Order, make_order
from .core.exchange import Exchange
from .core.math import get_partial_amount, has_rounding_error
from .core.order_hash import OrderHasher, get_order_hash
from .core.settlement import BalanceSettlement, SettlementCollaborator
from .core.signatures import Secp256k1SignatureVerifier, SignatureVerifier, is_valid_signature
from .core.types import Event, ExchangeEvent, OrderInfo, OrderStatus, SettlementAmounts
from .integration import MetaTransactionGate, decode_fill_order_args, encode_fill_order_args

__all__ = [
    "ArithmeticOverflowError",
    "EpochOrderingError",
    "ExchangeError",
    "FillOrKillError",
    "InvalidOrderError",
    "InvalidSignatureError",
    "MalformedCalldataError",
    "ReplayError",
    "SettlementError",
    "UnauthorizedError",
    "NULL_ADDRESS",
    "BalanceTable",
    "ECSignature",
    "FillLedger",
    "Order",
    "make_order",
    "Exchange",
    "get_partial_amount",
    "has_rounding_error",
    "OrderHasher",
    "get_order_hash",
    "BalanceSettlement",
    "SettlementCollaborator",
    "Secp256k1SignatureVerifier",
    "SignatureVerifier",
    "is_valid_signature",
    "Event",
    "ExchangeEvent",
    "OrderInfo",
    "OrderStatus",
    "SettlementAmounts",
    "MetaTransactionGate",
    "decode_fill_order_args",
    "encode_fill_order_args",
]
