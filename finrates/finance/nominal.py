# finrates/finance/nominal.py
"""
Nominal Annual Rate (NAR) conversions:
 - nominal_from_effective(ear, periods_per_year)
 - nominal_from_observation(start_date, initial_value, current_value)
 - calculate_nominal_annual_rate(...)  two-form dispatcher over the above

Rates are decimals (0.10 = 10%). Day count is elapsed days / 365, no leap-year
handling; this is a simple annualisation, not an actuarial one.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Optional, Union

import pandas as pd

from ..errors import InvalidArgument

DAYS_PER_YEAR = 365.0
SECONDS_PER_DAY = 86_400.0
NAR_DECIMALS = Decimal("0.0001")

DateLike = Union[str, date, datetime, pd.Timestamp]


def _real(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgument(f"{name} must be a real number, got {value!r}")
    v = float(value)
    if not math.isfinite(v):
        raise InvalidArgument(f"{name} must be finite, got {value!r}")
    return v


def _utc_timestamp(name: str, value: Any) -> pd.Timestamp:
    """Naive values are read as UTC; aware values are converted to UTC."""
    if value is None:
        raise InvalidArgument(f"{name} is required")
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"{name} is not a valid date: {value!r}") from e
    if pd.isna(ts):
        raise InvalidArgument(f"{name} is not a valid date: {value!r}")
    return ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")


def round_rate(value: float) -> float:
    """4 decimals, half away from zero, on the shortest repr of the float."""
    if not math.isfinite(value):
        raise InvalidArgument(f"rate is not finite: {value!r}")
    # a float has at most 309 integer digits; leave room for the 4 decimals
    with localcontext() as ctx:
        ctx.prec = 320
        return float(Decimal(repr(value)).quantize(NAR_DECIMALS, rounding=ROUND_HALF_UP))


# ---------- EAR -> NAR ----------
def nominal_from_effective(ear: float, periods_per_year: float) -> float:
    """
    NAR = m * ((1 + EAR)^(1/m) - 1)

    >>> round(nominal_from_effective(0.21, 2), 6)
    0.2
    """
    e = _real("ear", ear)
    m = _real("periods_per_year", periods_per_year)
    if m <= 0:
        raise InvalidArgument("Periods per year must be > 0")
    if e <= -1.0:
        raise InvalidArgument(f"ear must be greater than -1 (-100%), got {ear!r}")
    if m == 1:
        # nothing to invert; (1+e)-1 would not round-trip exactly
        return e
    try:
        nar = m * ((1.0 + e) ** (1.0 / m) - 1.0)
    except OverflowError:
        raise InvalidArgument(
            f"nominal rate for ear={ear!r} over {periods_per_year!r} periods is out of float range"
        ) from None
    if not math.isfinite(nar):
        raise InvalidArgument(
            f"nominal rate for ear={ear!r} over {periods_per_year!r} periods is out of float range"
        )
    return nar


# ---------- observed investment -> NAR ----------
@dataclass(frozen=True)
class InvestmentObservation:
    start_date: DateLike
    initial_value: float
    current_value: float

    def __post_init__(self) -> None:
        if _real("initial_value", self.initial_value) <= 0:
            raise InvalidArgument("initial_value must be > 0")
        if _real("current_value", self.current_value) <= 0:
            raise InvalidArgument("current_value must be > 0")
        _utc_timestamp("start_date", self.start_date)

    def years(self, now: Optional[DateLike] = None) -> float:
        start = _utc_timestamp("start_date", self.start_date)
        end = pd.Timestamp.now(tz="UTC") if now is None else _utc_timestamp("now", now)
        seconds = (end - start).total_seconds()
        if seconds <= 0:
            raise InvalidArgument(
                f"start_date must be strictly before the evaluation date ({start} >= {end})"
            )
        return seconds / SECONDS_PER_DAY / DAYS_PER_YEAR

    @property
    def total_return(self) -> float:
        return float(self.current_value) / float(self.initial_value) - 1.0

    def nominal_annual_rate(self, now: Optional[DateLike] = None) -> float:
        return round_rate(self.total_return / self.years(now))


def nominal_from_observation(
    start_date: DateLike,
    initial_value: float,
    current_value: float,
    *,
    now: Optional[DateLike] = None,
) -> float:
    """
    Simple (not compounded) annualised return since `start_date`, rounded to
    4 decimals. `now` defaults to the current UTC instant.
    """
    return InvestmentObservation(start_date, initial_value, current_value).nominal_annual_rate(now)


def calculate_nominal_annual_rate(*args: Any, now: Optional[DateLike] = None) -> float:
    """
    calculate_nominal_annual_rate(ear, periods_per_year)
    calculate_nominal_annual_rate(start_date, initial_value, current_value)
    calculate_nominal_annual_rate(InvestmentObservation(...))
    """
    if len(args) == 1 and isinstance(args[0], InvestmentObservation):
        return args[0].nominal_annual_rate(now)
    if len(args) == 2:
        return nominal_from_effective(*args)
    if len(args) == 3:
        return nominal_from_observation(*args, now=now)
    raise InvalidArgument(
        "expected (ear, periods_per_year) or (start_date, initial_value, current_value), "
        f"got {len(args)} argument(s)"
    )


__all__ = [
    "InvestmentObservation",
    "nominal_from_effective",
    "nominal_from_observation",
    "calculate_nominal_annual_rate",
    "round_rate",
]
