# finrates/errors.py
"""
Error taxonomy shared by the finance primitives and the layers above them.

 - InvalidArgument: malformed or out-of-domain input
 - NonConvergent : the iterative solver ran out of budget or hit a flat NPV
"""
from __future__ import annotations

from typing import Optional

ZERO_DERIVATIVE = "zero derivative"
MAX_ITERATIONS = "exceeded max iterations"


class FinratesError(Exception):
    """Base class for every error raised by finrates."""


class InvalidArgument(FinratesError, ValueError):
    pass


class NonConvergent(FinratesError, ArithmeticError):
    """
    IRR iteration stopped without a result. `cause` is one of
    ZERO_DERIVATIVE / MAX_ITERATIONS so callers can decide whether a
    different guess is worth a retry.
    """

    def __init__(
        self,
        message: str,
        *,
        cause: str,
        iterations: int = 0,
        rate: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.iterations = iterations
        self.rate = rate


__all__ = [
    "FinratesError",
    "InvalidArgument",
    "NonConvergent",
    "ZERO_DERIVATIVE",
    "MAX_ITERATIONS",
]
