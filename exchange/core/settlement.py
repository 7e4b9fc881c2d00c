"""
Settlement collaborators.

The exchange never moves value itself. After a fill has been validated and
recorded it hands `(order, taker_address, taker_asset_filled_amount)` to a
collaborator, which performs every transfer or none of them. A collaborator
signals failure by raising `SettlementError`; the exchange then rolls back the
ledger update.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Protocol, Tuple

from ..errors import ExchangeError, SettlementError
from ..state.balances import BalanceTable
from ..state.canonical import canonical_address
from ..state.orders import Address, Amount, Order
from .math import get_partial_amount
from .types import SettlementAmounts

logger = logging.getLogger(__name__)

# (asset, sender, recipient, amount)
Transfer = Tuple[Address, Address, Address, Amount]


class SettlementCollaborator(Protocol):
    # Collaborators may also expose `transaction()`, a context manager that
    # reverts their transfers when the enclosing invocation fails.
    def settle(self, order: Order, taker_address: Address, taker_asset_filled_amount: Amount) -> SettlementAmounts:
        ...


def compute_settlement_amounts(order: Order, taker_asset_filled_amount: Amount) -> SettlementAmounts:
    """Maker-side amount and fees owed for a partial fill, all floor-rounded."""
    maker_asset_filled = get_partial_amount(
        taker_asset_filled_amount, order.taker_asset_amount, order.maker_asset_amount,
    )
    maker_fee = 0
    taker_fee = 0
    if order.has_fee_recipient:
        maker_fee = get_partial_amount(taker_asset_filled_amount, order.taker_asset_amount, order.maker_fee_amount)
        taker_fee = get_partial_amount(taker_asset_filled_amount, order.taker_asset_amount, order.taker_fee_amount)
    return SettlementAmounts(
        maker_asset_filled_amount=maker_asset_filled,
        maker_fee_paid=maker_fee,
        taker_fee_paid=taker_fee,
    )


class BalanceSettlement:
    """
    In-memory settlement over a `BalanceTable`.

    Fees are denominated in `fee_asset_address` and only move when the order
    names a fee recipient.
    """

    def __init__(self, balances: BalanceTable, fee_asset_address: Optional[Address] = None):
        self.balances = balances
        self.fee_asset_address = (
            canonical_address(fee_asset_address, name="fee_asset_address") if fee_asset_address is not None else None
        )

    def plan_transfers(self, order: Order, taker_address: Address, amounts: SettlementAmounts,
                       taker_asset_filled_amount: Amount) -> List[Transfer]:
        taker = canonical_address(taker_address, name="taker_address")
        transfers: List[Transfer] = [
            (order.maker_asset_address, order.maker_address, taker, amounts.maker_asset_filled_amount),
            (order.taker_asset_address, taker, order.maker_address, taker_asset_filled_amount),
        ]
        if amounts.maker_fee_paid or amounts.taker_fee_paid:
            if self.fee_asset_address is None:
                raise SettlementError("order carries fees but no fee asset is configured")
            transfers.append((self.fee_asset_address, order.maker_address, order.fee_recipient_address,
                              amounts.maker_fee_paid))
            transfers.append((self.fee_asset_address, taker, order.fee_recipient_address,
                              amounts.taker_fee_paid))
        return [t for t in transfers if t[3] > 0]

    def settle(self, order: Order, taker_address: Address, taker_asset_filled_amount: Amount) -> SettlementAmounts:
        try:
            amounts = compute_settlement_amounts(order, taker_asset_filled_amount)
        except ExchangeError as exc:
            raise SettlementError(f"settlement amounts out of range: {exc}") from exc
        transfers = self.plan_transfers(order, taker_address, amounts, taker_asset_filled_amount)

        try:
            with self.balances.transaction():
                for asset, sender, recipient, amount in transfers:
                    self.balances.transfer(asset, sender, recipient, amount)
        except ValueError as exc:
            logger.warning("settlement failed for maker %s: %s", order.maker_address, exc)
            raise SettlementError(str(exc)) from exc

        logger.debug("settled %d transfers for maker %s", len(transfers), order.maker_address)
        return amounts

    @contextmanager
    def transaction(self) -> Iterator["BalanceSettlement"]:
        """Undo every transfer made inside the body if it raises."""
        with self.balances.transaction():
            yield self
