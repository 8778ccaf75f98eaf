# finrates/finance/irr.py
from __future__ import annotations

import logging
import math
import numbers
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from ..errors import MAX_ITERATIONS, ZERO_DERIVATIVE, InvalidArgument, NonConvergent

logger = logging.getLogger(__name__)

DEFAULT_GUESS = 0.10
DEFAULT_MAX_ITERATIONS = 1000
DEFAULT_TOLERANCE = 1e-7


@dataclass(frozen=True)
class ConvergenceConfig:
    """Newton-Raphson budget for one IRR call. Built per call, never cached."""

    guess: float = DEFAULT_GUESS
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tolerance: float = DEFAULT_TOLERANCE

    def __post_init__(self) -> None:
        if isinstance(self.guess, bool) or not isinstance(self.guess, numbers.Real):
            raise InvalidArgument(f"guess must be a real number, got {self.guess!r}")
        if not math.isfinite(self.guess):
            raise InvalidArgument(f"guess must be finite, got {self.guess!r}")
        if (
            isinstance(self.max_iterations, bool)
            or not isinstance(self.max_iterations, numbers.Integral)
            or self.max_iterations <= 0
        ):
            raise InvalidArgument(
                f"max_iterations must be a positive integer, got {self.max_iterations!r}"
            )
        if isinstance(self.tolerance, bool) or not isinstance(self.tolerance, numbers.Real):
            raise InvalidArgument(f"tolerance must be a real number, got {self.tolerance!r}")
        if not (math.isfinite(self.tolerance) and self.tolerance > 0):
            raise InvalidArgument(f"tolerance must be positive and finite, got {self.tolerance!r}")


# ---------- input checks ----------
def _as_series(cashflows: Iterable[float]) -> np.ndarray:
    """
    Copy the series into a float64 array. Only ordered containers are
    accepted (a 1-D ndarray or a Sequence); sets, mappings, strings,
    booleans, non-numbers, NaN/inf and anything shorter than two periods
    are rejected.
    """
    if isinstance(cashflows, np.ndarray):
        if cashflows.ndim != 1:
            raise InvalidArgument(f"cashflows must be one-dimensional, got shape {cashflows.shape}")
        items = cashflows.tolist()
    elif isinstance(cashflows, Sequence) and not isinstance(cashflows, (str, bytes)):
        items = list(cashflows)
    else:
        raise InvalidArgument(
            f"cashflows must be an ordered sequence of numbers, got {type(cashflows).__name__}"
        )

    if len(items) < 2:
        raise InvalidArgument(
            "cashflows must hold at least two values (initial and one future cash flow)"
        )
    for t, cf in enumerate(items):
        if isinstance(cf, (bool, np.bool_)) or not isinstance(cf, numbers.Real):
            raise InvalidArgument(f"cash flow at t={t} is not a number: {cf!r}")

    arr = np.array(items, dtype=np.float64)
    bad = np.flatnonzero(~np.isfinite(arr))
    if bad.size:
        raise InvalidArgument(f"cash flow at t={int(bad[0])} is not finite: {items[bad[0]]!r}")
    return arr


# ---------- NPV ----------
def _npv_and_derivative(rate: np.float64, cfs: np.ndarray, t: np.ndarray) -> tuple[np.float64, np.float64]:
    """
    NPV(r) = sum CF[t] / (1+r)^t and its analytic derivative
    dNPV/dr = sum -t * CF[t] / (1+r)^(t+1).
    (1+r)^t is evaluated once per term and shared by both sums.
    """
    base = 1.0 + rate
    denom = base ** t
    value = np.sum(cfs / denom)
    derivative = -np.sum(t * cfs / (denom * base))
    return value, derivative


def npv(rate: float, cashflows: Iterable[float]) -> float:
    """
    Classic discounted cash flow:
        NPV(r) = sum_{t=0..N} CF[t] / (1+r)^t
    """
    if isinstance(rate, bool) or not isinstance(rate, numbers.Real) or not math.isfinite(rate):
        raise InvalidArgument(f"rate must be a finite real number, got {rate!r}")
    if rate <= -1.0:
        raise InvalidArgument(f"rate must be greater than -1 (-100%), got {rate!r}")
    cfs = _as_series(cashflows)
    t = np.arange(cfs.size)
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        value, _ = _npv_and_derivative(np.float64(rate), cfs, t)
    return float(value)


# ---------- IRR (periodic, Newton-Raphson) ----------
def solve(cashflows: Iterable[float], config: Optional[ConvergenceConfig] = None) -> float:
    """
    Newton-Raphson on NPV(r) = 0 starting from config.guess.

    Single shot: no bracketing, no perturbation, no retries. Arithmetic is
    IEEE float64, so a diverging iterate overflows to inf/NaN instead of
    raising and ends in one of the two NonConvergent outcomes.
    """
    cfs = _as_series(cashflows)
    cfg = config if config is not None else ConvergenceConfig()
    t = np.arange(cfs.size)
    rate = np.float64(cfg.guess)

    with np.errstate(over="ignore", divide="ignore", invalid="ignore", under="ignore"):
        for i in range(cfg.max_iterations):
            value, derivative = _npv_and_derivative(rate, cfs, t)

            if derivative == 0:
                logger.debug("irr: zero derivative at iteration %d (rate=%r)", i + 1, float(rate))
                raise NonConvergent(
                    "Derivative was zero. Cannot continue IRR calculation.",
                    cause=ZERO_DERIVATIVE,
                    iterations=i + 1,
                    rate=float(rate),
                )

            new_rate = rate - value / derivative
            if abs(new_rate - rate) < cfg.tolerance:
                logger.debug("irr: converged after %d iterations -> %r", i + 1, float(new_rate))
                return float(new_rate)
            rate = new_rate

    logger.debug("irr: no convergence after %d iterations (last rate=%r)", cfg.max_iterations, float(rate))
    raise NonConvergent(
        f"IRR calculation did not converge after {cfg.max_iterations} iterations. "
        "Try a different initial guess or check your cash flows.",
        cause=MAX_ITERATIONS,
        iterations=cfg.max_iterations,
        rate=float(rate),
    )


def calculate_irr(
    cashflows: Iterable[float],
    guess: float = DEFAULT_GUESS,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
) -> float:
    """
    Periodic IRR of `cashflows` (index 0 = time zero, usually the outlay).
    Returns a decimal rate per cash-flow period (0.18 = 18%).

    >>> round(calculate_irr([-100, 110]), 6)
    0.1

    Raises InvalidArgument for bad input and NonConvergent when Newton-Raphson
    hits a flat NPV or runs out of iterations.
    """
    return solve(cashflows, ConvergenceConfig(guess, max_iterations, tolerance))


irr = calculate_irr


# ---------- reference solver ----------
def irr_bisection(
    cashflows: Iterable[float],
    lo: float = -0.9999,
    hi: float = 5.0,
    *,
    tolerance: float = 1e-12,
    max_iterations: int = 200,
) -> Optional[float]:
    """
    Bracketed bisection on NPV(r)=0. Returns None if sign never changes.
    Search domain defaults to [-0.9999, 5.0] (i.e., -99.99% to 500%).
    Reconciliation only; calculate_irr never falls back to it.
    """
    cfs = _as_series(cashflows)
    if lo >= hi:
        raise InvalidArgument(f"bisection bracket must satisfy lo < hi, got [{lo}, {hi}]")

    f_lo = npv(lo, cfs)
    f_hi = npv(hi, cfs)
    if f_lo == 0.0:
        return lo
    if f_hi == 0.0:
        return hi
    # not bracketed (no root, or an even number of roots inside)
    if (f_lo > 0) == (f_hi > 0):
        return None

    for _ in range(max_iterations):
        mid = (lo + hi) / 2.0
        f_mid = npv(mid, cfs)
        if f_mid == 0.0 or (hi - lo) / 2.0 < tolerance:
            return mid
        if (f_lo > 0) == (f_mid > 0):
            lo, f_lo = mid, f_mid
        else:
            hi, f_hi = mid, f_mid
    return (lo + hi) / 2.0


__all__ = [
    "ConvergenceConfig",
    "DEFAULT_GUESS",
    "DEFAULT_MAX_ITERATIONS",
    "DEFAULT_TOLERANCE",
    "npv",
    "solve",
    "calculate_irr",
    "irr",
    "irr_bisection",
]
