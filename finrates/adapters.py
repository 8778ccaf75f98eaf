# finrates/adapters.py
from __future__ import annotations

import dataclasses
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy_financial as npf

from .config import solver_config_from_mapping
from .errors import InvalidArgument, NonConvergent
from .finance.irr import ConvergenceConfig, solve
from .finance.nominal import nominal_from_effective, nominal_from_observation

logger = logging.getLogger(__name__)


# ------------------------------
# Caller-side retry policy (the solver itself is single-shot)
# ------------------------------
def solve_irr_with_guesses(
    cashflows: Sequence[float],
    guesses: Iterable[float],
    config: Optional[ConvergenceConfig] = None,
) -> float:
    """
    Try each starting guess in order; first convergence wins.
    InvalidArgument propagates at once (another guess cannot fix bad input).
    If every guess fails, the last NonConvergent is re-raised.
    """
    base = config or ConvergenceConfig()
    last: Optional[NonConvergent] = None
    tried = 0
    for g in guesses:
        tried += 1
        try:
            return solve(cashflows, dataclasses.replace(base, guess=g))
        except NonConvergent as e:
            logger.warning("IRR guess %r failed (%s); trying next guess", g, e.cause)
            last = e
    if last is None:
        raise InvalidArgument("at least one guess is required")
    logger.warning("IRR did not converge for any of %d guesses", tried)
    raise last


def reference_irr(cashflows: Sequence[float]) -> Optional[float]:
    """
    numpy-financial's polynomial-root IRR, for reconciliation against the
    Newton-Raphson result. None when numpy-financial finds no real root.
    """
    val = float(npf.irr([float(x) for x in cashflows]))
    return None if math.isnan(val) else val


# ------------------------------
# Scenario evaluation
# ------------------------------
def _row(name: str, kind: str) -> Dict[str, Any]:
    return {
        "scenario": name,
        "kind": kind,
        "value": None,
        "reference": None,
        "status": "ok",
        "cause": None,
        "error": None,
    }


def evaluate_scenario(
    data: Dict[str, Any],
    kind: str,
    *,
    name: str = "<mem>",
    base_config: Optional[ConvergenceConfig] = None,
    now: Any = None,
) -> Dict[str, Any]:
    """
    Evaluate one validated scenario document into a flat result row.
    Finance errors are recorded on the row, not raised:
      status = ok | invalid | non_convergent
    """
    row = _row(str(data.get("name") or name), kind)
    try:
        if kind == "irr":
            cfg = solver_config_from_mapping(data.get("solver") or {}, base_config)
            cfs: List[float] = data["cashflows"]
            guesses = data.get("guesses") or [cfg.guess]
            row["value"] = solve_irr_with_guesses(cfs, guesses, cfg)
            row["reference"] = reference_irr(cfs)
        elif kind == "nar_effective":
            row["value"] = nominal_from_effective(data["ear"], data["periods_per_year"])
        elif kind == "nar_observation":
            row["value"] = nominal_from_observation(
                data["start_date"], data["initial_value"], data["current_value"], now=now
            )
        else:
            raise InvalidArgument(f"unknown scenario kind: {kind!r}")
    except NonConvergent as e:
        row.update(status="non_convergent", cause=e.cause, error=str(e))
    except InvalidArgument as e:
        row.update(status="invalid", error=str(e))
    return row


__all__ = ["solve_irr_with_guesses", "reference_irr", "evaluate_scenario"]
