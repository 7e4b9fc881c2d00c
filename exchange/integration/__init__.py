"""
Integration layer: configuration, calldata codec and the meta-transaction gate
"""

from .calldata import (
    FillOrderCall,
    UnsupportedCall,
    decode_call,
    decode_fill_order_args,
    encode_fill_order_args,
)
from .config import ExchangeConfig, build_exchange, configure_logging, load_config
from .meta_transactions import MetaTransactionGate, get_transaction_hash

__all__ = [
    "FillOrderCall",
    "UnsupportedCall",
    "decode_call",
    "decode_fill_order_args",
    "encode_fill_order_args",
    "ExchangeConfig",
    "build_exchange",
    "configure_logging",
    "load_config",
    "MetaTransactionGate",
    "get_transaction_hash",
]
