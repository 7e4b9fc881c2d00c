"""
Core exchange kernels: checked math, rounding guard, hashing, signatures and
the fill/cancel state machine.

Submodules are imported directly (`exchange.core.exchange`, ...); the public
API is re-exported from the top-level `exchange` package.
"""
