"""
Finance metrics façade.

Design:
- IRR/NPV implementations live only in finrates.finance.irr (singleton).
- NAR conversions live only in finrates.finance.nominal.
- This module must not *define* irr/npv (no 'def irr' / 'def npv' here).
"""
from .irr import (  # re-exports only
    ConvergenceConfig as ConvergenceConfig,
    calculate_irr as calculate_irr,
    irr_bisection as irr_bisection,
    npv as npv,
)
from .nominal import (  # re-exports only
    calculate_nominal_annual_rate as calculate_nominal_annual_rate,
    nominal_from_effective as nominal_from_effective,
    nominal_from_observation as nominal_from_observation,
)

__all__ = [
    "ConvergenceConfig",
    "calculate_irr",
    "irr_bisection",
    "npv",
    "calculate_nominal_annual_rate",
    "nominal_from_effective",
    "nominal_from_observation",
]
