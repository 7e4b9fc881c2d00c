"""Checked uint256 arithmetic and the rounding guard.

Every function is stateless and operates on plain Python ints. Results are
range-checked against uint256 so that amounts behave exactly as they would on
a 256-bit ledger host: leaving the range aborts the invocation instead of
wrapping or saturating.

Proportional fills truncate (`//`, floor). `has_rounding_error` rejects fills
whose truncation loses more than 0.1% of the target amount.
"""

from __future__ import annotations

from ..errors import ArithmeticOverflowError
from ..state.canonical import UINT256_MAX

# Rounding guard constants
ROUNDING_ERROR_SCALE: int = 1_000_000
MAX_ROUNDING_ERROR: int = 1_000  # 0.1% of ROUNDING_ERROR_SCALE


def _check(value: int, op: str) -> int:
    if value < 0 or value > UINT256_MAX:
        raise ArithmeticOverflowError(f"uint256 {op} out of range")
    return value


def _require_operand(x: int, name: str) -> None:
    if not isinstance(x, int) or isinstance(x, bool):
        raise TypeError(f"{name} must be an int")
    if x < 0 or x > UINT256_MAX:
        raise ArithmeticOverflowError(f"{name} is not a uint256: {x}")


# -- Checked arithmetic --------------------------------------------------------

def safe_add(a: int, b: int) -> int:
    _require_operand(a, "a")
    _require_operand(b, "b")
    return _check(a + b, "addition")


def safe_sub(a: int, b: int) -> int:
    _require_operand(a, "a")
    _require_operand(b, "b")
    return _check(a - b, "subtraction")


def safe_mul(a: int, b: int) -> int:
    _require_operand(a, "a")
    _require_operand(b, "b")
    return _check(a * b, "multiplication")


def safe_div(a: int, b: int) -> int:
    _require_operand(a, "a")
    _require_operand(b, "b")
    if b == 0:
        raise ArithmeticOverflowError("division by zero")
    return a // b


# -- Proportional amounts ------------------------------------------------------

def get_partial_amount(numerator: int, denominator: int, target: int) -> int:
    """``target * numerator // denominator`` with checked intermediates."""
    return safe_div(safe_mul(numerator, target), denominator)


def has_rounding_error(numerator: int, denominator: int, target: int) -> bool:
    """True when ``target * numerator / denominator`` truncates by more than 0.1%.

    The product is computed with unbounded ints, so it cannot overflow here.
    A zero denominator is a hard failure.
    """
    for name, value in (("numerator", numerator), ("denominator", denominator), ("target", target)):
        _require_operand(value, name)
    if denominator == 0:
        raise ArithmeticOverflowError("rounding check with zero denominator")

    remainder = (target * numerator) % denominator
    if remainder == 0:
        return False
    error_times_scale = (remainder * ROUNDING_ERROR_SCALE) // (numerator * target)
    return error_times_scale > MAX_ROUNDING_ERROR
