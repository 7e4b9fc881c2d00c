"""
Client-side helpers for makers, takers and relayers
"""

from .order_signer import (
    create_order,
    generate_pseudo_random_salt,
    is_valid_order_hash,
    parse_rpc_signature,
    private_key_to_address,
    sign_order,
    sign_order_hash,
    to_base_unit_amount,
    to_unit_amount,
)
from .relayer import (
    MetaTransaction,
    build_fill_meta_transaction,
    relay,
    sign_meta_transaction,
)

__all__ = [
    "create_order",
    "generate_pseudo_random_salt",
    "is_valid_order_hash",
    "parse_rpc_signature",
    "private_key_to_address",
    "sign_order",
    "sign_order_hash",
    "to_base_unit_amount",
    "to_unit_amount",
    "MetaTransaction",
    "build_fill_meta_transaction",
    "relay",
    "sign_meta_transaction",
]
