"""Exception types for the exchange.

Every exception here is a hard failure: the invocation that raised it is
rolled back in full. Soft outcomes (expired, exhausted, rounding, bulk
cancelled) never raise; they return 0 and emit an informational event.
"""

from __future__ import annotations


class ExchangeError(Exception):
    """Base class for all hard failures."""


class InvalidOrderError(ExchangeError):
    """Raised when an order or requested amount is structurally invalid (zero amounts)."""


class InvalidSignatureError(ExchangeError):
    """Raised when a signature does not recover to the expected signer."""


class UnauthorizedError(ExchangeError):
    """Raised when the caller is not the order's sender, taker or maker as required."""


class ArithmeticOverflowError(ExchangeError):
    """Raised when checked uint256 arithmetic leaves the representable range."""


class EpochOrderingError(ExchangeError):
    """Raised when a maker epoch update would not strictly increase the epoch."""

    def __init__(self, maker: str, current: int, requested: int) -> None:
        self.maker = maker
        self.current = current
        self.requested = requested
        super().__init__(f"epoch for {maker} must increase: current={current} requested={requested}")


class MalformedCalldataError(ExchangeError):
    """Raised when a relayed payload does not match the fixed calldata layout."""


class SettlementError(ExchangeError):
    """Raised by settlement collaborators when an asset transfer cannot complete."""


class ReplayError(ExchangeError):
    """Raised when a meta transaction hash has already been executed."""

    def __init__(self, tx_hash: str) -> None:
        self.tx_hash = tx_hash
        super().__init__(f"transaction already executed: {tx_hash}")


class FillOrKillError(ExchangeError):
    """Raised when a fill-or-kill order could not be filled for the full requested amount."""
