"""Data types emitted and returned by the exchange.

All types are frozen dataclasses or enums. Event names match the record names
external indexers subscribe to.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, Dict, Optional

from ..state.orders import Amount, OrderHash


@unique
class Event(Enum):
    """One member per emitted record type."""
    FILL = "Fill"
    CANCEL = "Cancel"
    CANCEL_UP_TO = "CancelUpTo"
    # Soft outcomes: the invocation succeeds and returns 0.
    ORDER_EXPIRED = "OrderExpired"
    ORDER_UNFILLABLE = "OrderUnfillable"
    ROUNDING_ERROR_TOO_LARGE = "RoundingErrorTooLarge"


SOFT_OUTCOMES = frozenset({Event.ORDER_EXPIRED, Event.ORDER_UNFILLABLE, Event.ROUNDING_ERROR_TOO_LARGE})


@dataclass(frozen=True)
class ExchangeEvent:
    """
    Emitted record.

    `order_hash` is None only for `CancelUpTo`, which is keyed by maker.
    `data` carries the amounts relevant to the event.
    """

    event: Event
    order_hash: Optional[OrderHash]
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_soft_outcome(self) -> bool:
        return self.event in SOFT_OUTCOMES


@unique
class OrderStatus(Enum):
    """Derived order state. Nothing here is stored; it is computed from the ledger."""
    INVALID = "INVALID"
    FRESH = "FRESH"
    PARTIALLY_FILLED = "PARTIALLY_FILLED"
    FULLY_FILLED = "FULLY_FILLED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    BULK_CANCELLED = "BULK_CANCELLED"


@dataclass(frozen=True)
class OrderInfo:
    order_hash: OrderHash
    status: OrderStatus
    filled_amount: Amount
    cancelled_amount: Amount
    remaining_amount: Amount


@dataclass(frozen=True)
class SettlementAmounts:
    """Amounts moved by the settlement collaborator for one fill."""

    maker_asset_filled_amount: Amount
    maker_fee_paid: Amount
    taker_fee_paid: Amount
