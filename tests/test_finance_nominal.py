from datetime import date, datetime, timedelta, timezone

import pandas as pd
import pytest

from finrates.errors import InvalidArgument
from finrates.finance.nominal import (
    InvestmentObservation,
    calculate_nominal_annual_rate,
    nominal_from_effective,
    nominal_from_observation,
    round_rate,
)

NOW = pd.Timestamp("2025-01-01T00:00:00", tz="UTC")


# ---------- EAR -> NAR ----------
@pytest.mark.parametrize("ear", [0.1, 0.8, -0.25, 0.0, 3.7, 0.07])
def test_single_period_returns_ear_exactly(ear):
    assert nominal_from_effective(ear, 1) == ear


@pytest.mark.parametrize("m", [2, 4, 12, 52, 365])
def test_compounding_round_trip(m):
    nar = nominal_from_effective(0.80, m)
    assert (1.0 + nar / m) ** m == pytest.approx(1.80, rel=1e-10)
    assert nar < 0.80


def test_negative_ear_gives_negative_nar():
    nar = nominal_from_effective(-0.5, 12)
    assert -0.75 < nar < 0.0


@pytest.mark.parametrize("m", [0, -1, -12, 0.0])
def test_non_positive_periods_rejected(m):
    with pytest.raises(InvalidArgument):
        nominal_from_effective(0.1, m)


@pytest.mark.parametrize("ear", [-1.0, -1.5, float("nan"), float("inf")])
def test_ear_outside_real_domain_rejected(ear):
    with pytest.raises(InvalidArgument):
        nominal_from_effective(ear, 12)


def test_fractional_periods_overflow_rejected():
    # m < 1 raises (1 + ear) to a power above one
    with pytest.raises(InvalidArgument):
        nominal_from_effective(1e200, 0.5)
    assert nominal_from_effective(0.21, 0.5) == pytest.approx(0.5 * (1.21 ** 2 - 1.0))


def test_non_numeric_inputs_rejected():
    with pytest.raises(InvalidArgument):
        nominal_from_effective("0.1", 12)
    with pytest.raises(InvalidArgument):
        nominal_from_effective(0.1, True)


# ---------- observed investment -> NAR ----------
def test_one_year_ten_percent():
    start = NOW - pd.Timedelta(days=365)
    assert nominal_from_observation(start, 100, 110, now=NOW) == 0.1


def test_one_year_ago_with_real_clock():
    start = datetime.now(timezone.utc) - timedelta(days=365)
    assert nominal_from_observation(start, 100, 110) == pytest.approx(0.10, abs=1e-4)


def test_leap_year_uses_365_day_count():
    # 2024 has 366 days: 0.1 * 365 / 366 = 0.09973
    assert nominal_from_observation("2024-01-01", 100, 110, now=NOW) == 0.0997


def test_loss_is_negative():
    start = NOW - pd.Timedelta(days=365)
    assert nominal_from_observation(start, 100, 90, now=NOW) == -0.1


def test_simple_not_compounded():
    start = NOW - pd.Timedelta(days=730)
    # 21% over two years -> 10.5% simple, not 10% compounded
    assert nominal_from_observation(start, 100, 121, now=NOW) == 0.105


def test_accepts_date_and_aware_strings():
    assert nominal_from_observation(date(2024, 1, 1), 100, 110, now=NOW) == 0.0997
    r = nominal_from_observation("2024-01-01T00:00:00+02:00", 100, 110, now=NOW)
    assert r == 0.0997


@pytest.mark.parametrize(
    "start",
    [NOW + pd.Timedelta(days=1), NOW, "2030-06-01"],
)
def test_start_not_before_now_rejected(start):
    with pytest.raises(InvalidArgument):
        nominal_from_observation(start, 100, 110, now=NOW)


@pytest.mark.parametrize("initial,current", [(0, 110), (-1, 110), (100, 0), (100, -5)])
def test_non_positive_values_rejected(initial, current):
    with pytest.raises(InvalidArgument):
        nominal_from_observation("2024-01-01", initial, current, now=NOW)


def test_unparseable_date_rejected():
    with pytest.raises(InvalidArgument):
        nominal_from_observation("not a date", 100, 110, now=NOW)
    with pytest.raises(InvalidArgument):
        nominal_from_observation(None, 100, 110, now=NOW)


def test_huge_rate_over_one_second_is_rounded_not_crashed():
    start = NOW - pd.Timedelta(seconds=1)
    got = nominal_from_observation(start, 1e-10, 1e10, now=NOW)
    assert got == pytest.approx(1e20 * 365 * 86400, rel=1e-12)


def test_rate_beyond_float_range_rejected():
    start = NOW - pd.Timedelta(seconds=1)
    with pytest.raises(InvalidArgument):
        nominal_from_observation(start, 1e-300, 1e300, now=NOW)


def test_observation_object():
    obs = InvestmentObservation(NOW - pd.Timedelta(days=365), 100, 110)
    assert obs.years(NOW) == pytest.approx(1.0)
    assert obs.total_return == pytest.approx(0.10)
    assert obs.nominal_annual_rate(NOW) == 0.1


# ---------- rounding contract ----------
@pytest.mark.parametrize(
    "value,want",
    [
        (0.12345, 0.1235),
        (-0.12345, -0.1235),
        (0.00005, 0.0001),
        (-0.00005, -0.0001),
        (0.10000000000000009, 0.1),
        (1.23444999, 1.2344),
    ],
)
def test_round_half_away_from_zero(value, want):
    assert round_rate(value) == want


def test_round_keeps_large_magnitudes():
    assert round_rate(3.1536e27) == 3.1536e27
    assert round_rate(-1.5e300) == -1.5e300


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
def test_round_rejects_non_finite(value):
    with pytest.raises(InvalidArgument):
        round_rate(value)


# ---------- dispatcher ----------
def test_dispatch_by_arity():
    assert calculate_nominal_annual_rate(0.1, 1) == 0.1
    assert calculate_nominal_annual_rate(0.8, 12) == nominal_from_effective(0.8, 12)
    assert calculate_nominal_annual_rate("2024-01-01", 100, 110, now=NOW) == 0.0997
    obs = InvestmentObservation("2024-01-01", 100, 110)
    assert calculate_nominal_annual_rate(obs, now=NOW) == 0.0997


@pytest.mark.parametrize("args", [(), (0.1,), (1, 2, 3, 4)])
def test_dispatch_rejects_other_arities(args):
    with pytest.raises(InvalidArgument):
        calculate_nominal_annual_rate(*args)


def test_dispatch_rejects_zero_periods():
    with pytest.raises(InvalidArgument):
        calculate_nominal_annual_rate(0.1, 0)


def test_future_date_via_dispatcher():
    future = datetime.now(timezone.utc) + timedelta(days=30)
    with pytest.raises(InvalidArgument):
        calculate_nominal_annual_rate(future, 100, 110)
