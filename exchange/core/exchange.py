"""Fill/cancel state machine.

``Exchange`` is the single entry point for order execution. Each public call
is one invocation:

1. Reads the clock once.
2. Opens a ledger transaction (serialized, all-or-nothing).
3. Validates, updates the ledger and calls the settlement collaborator.
4. Publishes its buffered events only if the whole invocation succeeded.

Order state is derived from ledger values, never stored: an order is
terminal once ``filled + cancelled == taker_asset_amount``. Filled and
cancelled amounts accumulate independently.

Hard failures raise an ``ExchangeError`` subclass and leave no trace. Soft
outcomes (expired, exhausted, rounding, bulk cancelled) return 0 and emit an
informational event.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager, nullcontext
from typing import Callable, Iterator, List, Optional, Sequence

from ..errors import (
    FillOrKillError,
    InvalidOrderError,
    InvalidSignatureError,
    SettlementError,
    UnauthorizedError,
)
from ..state.canonical import canonical_address, require_uint256
from ..state.fill_ledger import FillLedger
from ..state.orders import Address, Amount, ECSignature, Order, OrderHash
from .math import has_rounding_error, safe_add, safe_sub
from .order_hash import OrderHasher
from .settlement import SettlementCollaborator, compute_settlement_amounts
from .signatures import Secp256k1SignatureVerifier, SignatureVerifier
from .types import Event, ExchangeEvent, OrderInfo, OrderStatus, SettlementAmounts

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def _wall_clock() -> int:
    return int(time.time())


class Exchange:
    """
    Settlement core for one venue.

    Collaborators are injected: the ledger holds all shared mutable state, the
    verifier checks maker signatures, and the settlement collaborator moves
    value.

    Published events accumulate in `events` until an observer takes them with
    `drain_events()`.
    """

    def __init__(
        self,
        venue_address: Address,
        *,
        settlement: SettlementCollaborator,
        ledger: Optional[FillLedger] = None,
        verifier: Optional[SignatureVerifier] = None,
        clock: Optional[Clock] = None,
        hasher: Optional[OrderHasher] = None,
    ):
        self.venue_address = canonical_address(venue_address, name="venue_address")
        self.settlement = settlement
        self.ledger = ledger if ledger is not None else FillLedger()
        self.verifier = verifier if verifier is not None else Secp256k1SignatureVerifier()
        self.clock = clock if clock is not None else _wall_clock
        self.hasher = hasher if hasher is not None else OrderHasher(self.venue_address)
        if self.hasher.venue_address != self.venue_address:
            raise ValueError("hasher is bound to a different venue address")

        self.events: List[ExchangeEvent] = []
        self._pending: Optional[List[ExchangeEvent]] = None
        self._now: int = 0

    # -- invocation plumbing ---------------------------------------------------

    @contextmanager
    def _invocation(self) -> Iterator[int]:
        """Ledger transaction + event buffer + one clock read (shared by nested calls)."""
        settlement_transaction = getattr(self.settlement, "transaction", None)
        with self.ledger.transaction(), (settlement_transaction() if settlement_transaction else nullcontext()):
            if self._pending is not None:
                yield self._now
                return
            now = int(self.clock())
            self._pending = []
            self._now = now
            try:
                yield now
            except BaseException:
                self._pending = None
                raise
            pending, self._pending = self._pending, None
            self.events.extend(pending)

    def _emit(self, event: Event, order_hash: Optional[OrderHash], **data) -> None:
        record = ExchangeEvent(event=event, order_hash=order_hash, data=data)
        if self._pending is None:
            raise RuntimeError("events can only be emitted inside an invocation")
        self._pending.append(record)
        if record.is_soft_outcome:
            logger.info("%s order=%s %s", event.value, order_hash, data)
        else:
            logger.debug("%s order=%s %s", event.value, order_hash, data)

    def drain_events(self) -> List[ExchangeEvent]:
        """Return the published events and clear the buffer."""
        with self.ledger.transaction():
            drained, self.events = self.events, []
        return drained

    # -- queries ---------------------------------------------------------------

    def get_order_hash(self, order: Order) -> OrderHash:
        return self.hasher.hash(order)

    def get_order_info(self, order: Order) -> OrderInfo:
        order_hash = self.hasher.hash(order)
        filled = self.ledger.get_filled(order_hash)
        cancelled = self.ledger.get_cancelled(order_hash)
        if order.maker_asset_amount == 0 or order.taker_asset_amount == 0:
            return OrderInfo(order_hash, OrderStatus.INVALID, filled, cancelled, 0)

        remaining = safe_sub(order.taker_asset_amount, safe_add(filled, cancelled))
        if remaining == 0:
            status = OrderStatus.CANCELLED if cancelled > 0 else OrderStatus.FULLY_FILLED
        elif int(self.clock()) >= order.expiration_time_seconds:
            status = OrderStatus.EXPIRED
        elif order.salt < self.ledger.get_maker_epoch(order.maker_address):
            status = OrderStatus.BULK_CANCELLED
        elif filled == 0 and cancelled == 0:
            status = OrderStatus.FRESH
        else:
            status = OrderStatus.PARTIALLY_FILLED
        return OrderInfo(order_hash, status, filled, cancelled, remaining)

    # -- validation helpers ----------------------------------------------------

    def _validate_first_reference(self, order: Order, order_hash: OrderHash, signature: ECSignature) -> None:
        if order.maker_asset_amount == 0 or order.taker_asset_amount == 0:
            raise InvalidOrderError(f"order {order_hash} has a zero asset amount")
        if not self.verifier.is_valid_signature(order_hash, signature, order.maker_address):
            logger.warning("invalid maker signature for order %s", order_hash)
            raise InvalidSignatureError(f"invalid maker signature for order {order_hash}")

    @staticmethod
    def _assert_sender(order: Order, sender: Address) -> None:
        if order.has_sender and sender != order.sender_address:
            raise UnauthorizedError(f"order may only be submitted by {order.sender_address}")

    @staticmethod
    def _require_positive(amount: Amount, *, name: str) -> None:
        require_uint256(amount, name=name)
        if amount == 0:
            raise InvalidOrderError(f"{name} must be positive")

    # -- fill ------------------------------------------------------------------

    def fill_order(
        self,
        order: Order,
        taker_asset_fill_amount: Amount,
        signature: ECSignature,
        taker_address: Address,
        *,
        sender_address: Optional[Address] = None,
    ) -> Amount:
        """
        Fill up to `taker_asset_fill_amount` of `order` for `taker_address`.

        `sender_address` is the party submitting the call (a relayer); it
        defaults to the taker for direct calls.

        Returns:
            Taker-asset amount actually filled (0 on a soft outcome)
        """
        taker = canonical_address(taker_address, name="taker_address")
        sender = canonical_address(sender_address, name="sender_address") if sender_address is not None else taker
        with self._invocation() as now:
            return self._fill(order, taker_asset_fill_amount, signature, taker, sender, now)

    def _fill(
        self,
        order: Order,
        taker_asset_fill_amount: Amount,
        signature: ECSignature,
        taker: Address,
        sender: Address,
        now: int,
    ) -> Amount:
        order_hash = self.hasher.hash(order)

        # A ledger entry proves a prior successful verification.
        if not self.ledger.is_referenced(order_hash):
            self._validate_first_reference(order, order_hash, signature)

        self._assert_sender(order, sender)
        if order.has_taker and taker != order.taker_address:
            raise UnauthorizedError(f"order may only be filled by {order.taker_address}")
        self._require_positive(taker_asset_fill_amount, name="taker_asset_fill_amount")

        if now >= order.expiration_time_seconds:
            self._emit(Event.ORDER_EXPIRED, order_hash,
                       expiration_time_seconds=order.expiration_time_seconds, now=now)
            return 0

        remaining = safe_sub(order.taker_asset_amount, self.ledger.get_unavailable_amount(order_hash))
        filled_amount = min(taker_asset_fill_amount, remaining)
        if filled_amount == 0:
            self._emit(Event.ORDER_UNFILLABLE, order_hash, reason="fully_filled_or_cancelled", remaining=0)
            return 0

        if has_rounding_error(filled_amount, order.taker_asset_amount, order.maker_asset_amount):
            self._emit(Event.ROUNDING_ERROR_TOO_LARGE, order_hash, taker_asset_fill_amount=filled_amount)
            return 0

        if order.salt < self.ledger.get_maker_epoch(order.maker_address):
            self._emit(Event.ORDER_UNFILLABLE, order_hash, reason="bulk_cancelled", remaining=remaining)
            return 0

        self.ledger.record_fill(order_hash, filled_amount)

        expected = compute_settlement_amounts(order, filled_amount)
        try:
            amounts = self.settlement.settle(order, taker, filled_amount)
        except SettlementError:
            logger.warning("settlement failed for order %s, rolling back fill of %d", order_hash, filled_amount)
            raise
        if not isinstance(amounts, SettlementAmounts):
            amounts = SettlementAmounts(*amounts)
        if amounts != expected:
            raise SettlementError(f"settlement reported {amounts}, expected {expected}")

        self._emit(
            Event.FILL,
            order_hash,
            maker_address=order.maker_address,
            taker_address=taker,
            fee_recipient_address=order.fee_recipient_address,
            maker_asset_filled_amount=amounts.maker_asset_filled_amount,
            taker_asset_filled_amount=filled_amount,
            maker_fee_paid=amounts.maker_fee_paid,
            taker_fee_paid=amounts.taker_fee_paid,
        )
        return filled_amount

    def fill_or_kill_order(
        self,
        order: Order,
        taker_asset_fill_amount: Amount,
        signature: ECSignature,
        taker_address: Address,
        *,
        sender_address: Optional[Address] = None,
    ) -> Amount:
        """Fill exactly `taker_asset_fill_amount` or fail the whole invocation."""
        with self._invocation():
            filled = self.fill_order(
                order, taker_asset_fill_amount, signature, taker_address, sender_address=sender_address,
            )
            if filled != taker_asset_fill_amount:
                raise FillOrKillError(f"filled {filled} of {taker_asset_fill_amount}")
            return filled

    def batch_fill_orders(
        self,
        orders: Sequence[Order],
        taker_asset_fill_amounts: Sequence[Amount],
        signatures: Sequence[ECSignature],
        taker_address: Address,
        *,
        sender_address: Optional[Address] = None,
    ) -> List[Amount]:
        """Fill several orders in one invocation; any hard failure aborts all of them."""
        if not (len(orders) == len(taker_asset_fill_amounts) == len(signatures)):
            raise ValueError("orders, amounts and signatures must have the same length")
        with self._invocation():
            return [
                self.fill_order(order, amount, signature, taker_address, sender_address=sender_address)
                for order, amount, signature in zip(orders, taker_asset_fill_amounts, signatures)
            ]

    # -- cancel ----------------------------------------------------------------

    def cancel_order(
        self,
        order: Order,
        taker_asset_cancel_amount: Amount,
        *,
        caller: Address,
        sender_address: Optional[Address] = None,
    ) -> Amount:
        """
        Cancel up to `taker_asset_cancel_amount` of the order's remaining amount.

        Only the maker may cancel.

        Returns:
            Taker-asset amount actually cancelled (0 on a soft outcome)
        """
        maker = canonical_address(caller, name="caller")
        sender = canonical_address(sender_address, name="sender_address") if sender_address is not None else maker
        with self._invocation() as now:
            order_hash = self.hasher.hash(order)

            self._assert_sender(order, sender)
            if maker != order.maker_address:
                raise UnauthorizedError(f"only the maker {order.maker_address} may cancel")
            if order.maker_asset_amount == 0 or order.taker_asset_amount == 0:
                raise InvalidOrderError(f"order {order_hash} has a zero asset amount")
            self._require_positive(taker_asset_cancel_amount, name="taker_asset_cancel_amount")

            if now >= order.expiration_time_seconds:
                self._emit(Event.ORDER_EXPIRED, order_hash,
                           expiration_time_seconds=order.expiration_time_seconds, now=now)
                return 0

            remaining = safe_sub(order.taker_asset_amount, self.ledger.get_unavailable_amount(order_hash))
            cancelled_amount = min(taker_asset_cancel_amount, remaining)
            if cancelled_amount == 0:
                self._emit(Event.ORDER_UNFILLABLE, order_hash, reason="fully_filled_or_cancelled", remaining=0)
                return 0

            self.ledger.record_cancel(order_hash, cancelled_amount)
            self._emit(
                Event.CANCEL,
                order_hash,
                maker_address=order.maker_address,
                fee_recipient_address=order.fee_recipient_address,
                taker_asset_cancelled_amount=cancelled_amount,
            )
            return cancelled_amount

    def batch_cancel_orders(
        self,
        orders: Sequence[Order],
        taker_asset_cancel_amounts: Sequence[Amount],
        *,
        caller: Address,
    ) -> List[Amount]:
        if len(orders) != len(taker_asset_cancel_amounts):
            raise ValueError("orders and amounts must have the same length")
        with self._invocation():
            return [
                self.cancel_order(order, amount, caller=caller)
                for order, amount in zip(orders, taker_asset_cancel_amounts)
            ]

    def cancel_orders_up_to(self, salt: int, *, caller: Address) -> int:
        """
        Bulk-cancel every order of `caller` with a salt <= `salt`.

        Returns:
            The new maker epoch (`salt + 1`)

        Raises:
            EpochOrderingError: If the epoch would not strictly increase
        """
        maker = canonical_address(caller, name="caller")
        require_uint256(salt, name="salt")
        with self._invocation():
            new_epoch = safe_add(salt, 1)
            self.ledger.bump_maker_epoch(maker, new_epoch)
            self._emit(Event.CANCEL_UP_TO, None, maker_address=maker, epoch=new_epoch)
            return new_epoch
