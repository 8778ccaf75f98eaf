# finrates/scenario_runner.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

import pandas as pd
import yaml

from .adapters import evaluate_scenario
from .finance.irr import ConvergenceConfig
from .validate import (
    _mode_from_env_or_flag,
    iter_input_files,
    load_params_from_file,
    validate_scenario_dict,
)

logger = logging.getLogger(__name__)

COLUMNS = ["scenario", "kind", "value", "reference", "status", "cause", "error"]


def _frame(rows: List[Dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(rows, columns=COLUMNS)
    df.attrs["n_scenarios"] = len(df)
    df.attrs["success_rate"] = float((df["status"] == "ok").mean()) if len(df) else 0.0
    return df


def run_file(
    path: str | Path,
    *,
    mode: Optional[str] = None,
    base_config: Optional[ConvergenceConfig] = None,
    now: Any = None,
) -> Dict[str, Any]:
    """Load, validate and evaluate one scenario file into a result row."""
    f = Path(path)
    try:
        data = load_params_from_file(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise SystemExit(f"{f}: cannot read scenario: {e}") from e
    try:
        kind = validate_scenario_dict(data, mode=_mode_from_env_or_flag(mode))
    except SystemExit as e:
        raise SystemExit(f"{f}: {e}") from None
    row = evaluate_scenario(data, kind, name=f.stem, base_config=base_config, now=now)
    if row["status"] != "ok":
        logger.warning("%s: %s (%s)", f, row["status"], row["error"])
    return row


def run_dir(
    config: str | Path,
    *,
    mode: Optional[str] = None,
    base_config: Optional[ConvergenceConfig] = None,
    now: Any = None,
) -> pd.DataFrame:
    """
    Evaluate a scenario file, or every YAML/JSON file under a directory.
    Validation failures abort the run (SystemExit); finance failures are
    kept per row so one bad series does not hide the rest.
    Results are returned, never written to disk.
    """
    cfg_path = Path(config)
    if not cfg_path.exists():
        raise SystemExit(f"{cfg_path}: no such file or directory")

    rows: List[Dict[str, Any]] = []
    for f in iter_input_files(cfg_path):
        if not f.is_file():
            continue
        rows.append(run_file(f, mode=mode, base_config=base_config, now=now))

    if not rows:
        raise SystemExit(f"{cfg_path}: no scenario files found")

    df = _frame(rows)
    logger.info(
        "ran %d scenario(s) from %s (success rate %.0f%%)",
        df.attrs["n_scenarios"], cfg_path, 100.0 * df.attrs["success_rate"],
    )
    return df


def format_results(df: pd.DataFrame, fmt: str = "text") -> str:
    if fmt == "json":
        return df.to_json(orient="records", indent=2)
    if fmt == "csv":
        return df.to_csv(index=False)
    if fmt == "text":
        return df.to_string(index=False)
    raise SystemExit(f"unknown fmt: {fmt}")


__all__ = ["run_dir", "run_file", "format_results", "COLUMNS"]
