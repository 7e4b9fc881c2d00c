"""
State management for the exchange: value types and the fill ledger
"""

from .balances import BalanceTable
from .canonical import NULL_ADDRESS
from .fill_ledger import FillLedger
from .orders import ECSignature, Order, make_order

__all__ = [
    "BalanceTable",
    "NULL_ADDRESS",
    "FillLedger",
    "ECSignature",
    "Order",
    "make_order",
]
