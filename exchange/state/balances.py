"""
Multi-asset balance tracking for the in-memory settlement collaborator.

Implements BalanceTable[Address, AssetAddress] -> Amount
"""

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from .canonical import canonical_address


AssetAddress = str  # 0x-prefixed 20-byte hex, same encoding as account addresses


class BalanceTable:
    """
    Balance table mapping (owner, asset) -> amount.

    Addresses are canonicalized on every access so checksummed and lowercase
    spellings refer to the same entry.
    """

    def __init__(self):
        """Initialize empty balance table."""
        self._balances: Dict[Tuple[str, AssetAddress], int] = {}
        # (owner, asset) -> balance before the first write in each open transaction
        self._journals: List[Dict[Tuple[str, AssetAddress], Optional[int]]] = []

    @staticmethod
    def _key(owner: str, asset: AssetAddress) -> Tuple[str, AssetAddress]:
        return canonical_address(owner, name="owner"), canonical_address(asset, name="asset")

    def get(self, owner: str, asset: AssetAddress) -> int:
        """Get balance for (owner, asset). Returns 0 if not found."""
        return self._balances.get(self._key(owner, asset), 0)

    def set(self, owner: str, asset: AssetAddress, amount: int) -> None:
        """
        Set balance for (owner, asset).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        key = self._key(owner, asset)
        if self._journals and key not in self._journals[-1]:
            self._journals[-1][key] = self._balances.get(key)
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop(key, None)
        else:
            self._balances[key] = amount

    def add(self, owner: str, asset: AssetAddress, delta: int) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(owner, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(owner, asset, new_balance)

    def transfer(self, asset: AssetAddress, sender: str, recipient: str, amount: int) -> None:
        """Move `amount` of `asset` from sender to recipient."""
        if amount < 0:
            raise ValueError(f"Transfer amount must be non-negative: {amount}")
        self.add(sender, asset, -amount)
        self.add(recipient, asset, amount)

    def get_all_balances(self) -> Dict[Tuple[str, AssetAddress], int]:
        return dict(self._balances)

    @contextmanager
    def transaction(self) -> Iterator["BalanceTable"]:
        """
        Undo every write made inside the body if it raises.

        Only the entries written inside the body are journaled. Nested
        transactions fold into the enclosing one on success.
        """
        journal: Dict[Tuple[str, AssetAddress], Optional[int]] = {}
        self._journals.append(journal)
        try:
            yield self
        except BaseException:
            self._journals.pop()
            for key, previous in journal.items():
                if previous is None:
                    self._balances.pop(key, None)
                else:
                    self._balances[key] = previous
            raise
        self._journals.pop()
        if self._journals:
            for key, previous in journal.items():
                self._journals[-1].setdefault(key, previous)

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
