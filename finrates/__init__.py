"""finrates: nominal annual rate conversions and Newton-Raphson IRR."""
from .errors import FinratesError, InvalidArgument, NonConvergent
from .finance.irr import ConvergenceConfig, calculate_irr, npv
from .finance.nominal import (
    InvestmentObservation,
    calculate_nominal_annual_rate,
    nominal_from_effective,
    nominal_from_observation,
)

__version__ = "0.1.0"

__all__ = [
    "FinratesError",
    "InvalidArgument",
    "NonConvergent",
    "ConvergenceConfig",
    "calculate_irr",
    "npv",
    "InvestmentObservation",
    "calculate_nominal_annual_rate",
    "nominal_from_effective",
    "nominal_from_observation",
]
