"""
Authoritative fill ledger.

Tracks, per order hash, the cumulative filled and cancelled taker-asset
amounts; per maker, the bulk-cancellation epoch; and the set of executed meta
transaction hashes. Entries are created lazily (default zero) and are never
deleted. All counters only move upward.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Mapping, Set, Tuple

from ..core.math import safe_add
from ..errors import EpochOrderingError, ReplayError
from .canonical import canonical_address, canonical_hex_fixed_allow_0x
from .orders import Address, Amount, OrderHash

logger = logging.getLogger(__name__)


def _key(order_hash: OrderHash) -> OrderHash:
    return canonical_hex_fixed_allow_0x(order_hash, nbytes=32, name="order_hash")


class FillLedger:
    """
    Mutable tables keyed by order hash / maker address / transaction hash.

    Invocations are serialized by a re-entrant lock held for the duration of
    `transaction()`. Writes inside a transaction are journaled per key, so a
    failing body restores only the entries it touched.
    """

    def __init__(self):
        self._filled: Dict[OrderHash, Amount] = {}
        self._cancelled: Dict[OrderHash, Amount] = {}
        self._maker_epochs: Dict[Address, int] = {}
        self._executed: Set[str] = set()
        self._lock = threading.RLock()
        # One journal per open transaction: (table, key) -> value before the first
        # write, None if the key was absent.
        self._journals: List[Dict[Tuple[str, str], object]] = []

    # -- journaling ------------------------------------------------------------

    def _table(self, name: str) -> Dict[str, int]:
        return {"filled": self._filled, "cancelled": self._cancelled, "maker_epochs": self._maker_epochs}[name]

    def _remember(self, table: str, key: str) -> None:
        if not self._journals:
            return
        journal = self._journals[-1]
        if (table, key) in journal:
            return
        if table == "executed":
            journal[(table, key)] = key in self._executed
        else:
            journal[(table, key)] = self._table(table).get(key)

    def _undo(self, journal: Dict[Tuple[str, str], object]) -> None:
        for (table, key), previous in journal.items():
            if table == "executed":
                if not previous:
                    self._executed.discard(key)
                continue
            values = self._table(table)
            if previous is None:
                values.pop(key, None)
            else:
                values[key] = previous

    # -- order entries ---------------------------------------------------------

    def get_filled(self, order_hash: OrderHash) -> Amount:
        return self._filled.get(_key(order_hash), 0)

    def get_cancelled(self, order_hash: OrderHash) -> Amount:
        return self._cancelled.get(_key(order_hash), 0)

    def get_unavailable_amount(self, order_hash: OrderHash) -> Amount:
        """Filled plus cancelled taker-asset amount."""
        return safe_add(self.get_filled(order_hash), self.get_cancelled(order_hash))

    def is_referenced(self, order_hash: OrderHash) -> bool:
        return self.get_filled(order_hash) != 0 or self.get_cancelled(order_hash) != 0

    def record_fill(self, order_hash: OrderHash, amount: Amount) -> None:
        # Callers have already capped `amount` to the order's remaining amount.
        key = _key(order_hash)
        new_value = safe_add(self._filled.get(key, 0), amount)
        self._remember("filled", key)
        self._filled[key] = new_value

    def record_cancel(self, order_hash: OrderHash, amount: Amount) -> None:
        key = _key(order_hash)
        new_value = safe_add(self._cancelled.get(key, 0), amount)
        self._remember("cancelled", key)
        self._cancelled[key] = new_value

    # -- maker epochs ----------------------------------------------------------

    def get_maker_epoch(self, maker: Address) -> int:
        return self._maker_epochs.get(canonical_address(maker, name="maker"), 0)

    def bump_maker_epoch(self, maker: Address, new_epoch: int) -> None:
        maker = canonical_address(maker, name="maker")
        current = self._maker_epochs.get(maker, 0)
        if new_epoch <= current:
            raise EpochOrderingError(maker, current, new_epoch)
        self._remember("maker_epochs", maker)
        self._maker_epochs[maker] = new_epoch

    # -- executed meta transactions -------------------------------------------

    def is_transaction_executed(self, tx_hash: str) -> bool:
        return _key(tx_hash) in self._executed

    def mark_transaction_executed(self, tx_hash: str) -> None:
        key = _key(tx_hash)
        if key in self._executed:
            raise ReplayError(key)
        self._remember("executed", key)
        self._executed.add(key)

    # -- atomicity -------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["FillLedger"]:
        """Run the body atomically: all ledger writes commit, or none do."""
        with self._lock:
            journal: Dict[Tuple[str, str], object] = {}
            self._journals.append(journal)
            try:
                yield self
            except BaseException:
                self._journals.pop()
                self._undo(journal)
                logger.debug("ledger transaction rolled back (%d entries)", len(journal))
                raise
            self._journals.pop()
            if self._journals:
                # Committed into the enclosing transaction, which may still fail.
                parent = self._journals[-1]
                for entry, previous in journal.items():
                    parent.setdefault(entry, previous)

    # -- inspection ------------------------------------------------------------

    def get_all_filled(self) -> Mapping[OrderHash, Amount]:
        # Return a shallow copy to avoid accidental mutation during iteration.
        return dict(self._filled)

    def get_all_cancelled(self) -> Mapping[OrderHash, Amount]:
        return dict(self._cancelled)

    def __repr__(self) -> str:
        return (
            f"FillLedger({len(self._filled)} filled, {len(self._cancelled)} cancelled, "
            f"{len(self._maker_epochs)} epochs, {len(self._executed)} executed)"
        )
