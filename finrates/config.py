from __future__ import annotations

from typing import Any, Dict, Optional
import io
import logging
import os

import yaml

from .errors import InvalidArgument
from .finance.irr import ConvergenceConfig

logger = logging.getLogger(__name__)

SOLVER_KEYS = ("guess", "max_iterations", "tolerance")


def _parse_yaml_fallback(text: str) -> Dict[str, Any]:
    """
    Super-tolerant parser for key: value lines (only for emergencies).
    Booleans and numbers are coerced when obvious.
    """
    data: Dict[str, Any] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if ":" not in line:
            continue
        k, v = line.split(":", 1)
        k = k.strip()
        v = v.strip().strip('"').strip("'")
        if not v:
            continue
        if v.lower() in ("true", "false"):
            data[k] = v.lower() == "true"
            continue
        try:
            data[k] = int(v)
        except ValueError:
            try:
                data[k] = float(v)
            except ValueError:
                data[k] = v
    return data


def _flatten_grouped(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten shallow groups like {'solver': {...}} into one level.
    Prefers top-level keys if collisions occur.
    """
    flat: Dict[str, Any] = dict(cfg)
    for k, v in list(cfg.items()):
        if isinstance(v, dict):
            for sk, sv in v.items():
                flat.setdefault(sk, sv)
    return flat


def _coerce_number(key: str, value: Any) -> Any:
    # PyYAML reads '1e-7' (no dot) as a string
    if isinstance(value, str):
        try:
            return int(value) if key == "max_iterations" else float(value)
        except ValueError:
            raise InvalidArgument(f"solver.{key} is not a number: {value!r}") from None
    return value


def read_config_text(source: str | os.PathLike | io.StringIO) -> Dict[str, Any]:
    """
    Load YAML from a path or text stream. If YAML fails, use a tolerant fallback.
    Returns the flattened mapping.
    """
    text: str
    if hasattr(source, "read"):
        text = str(source.read())
    else:
        p = os.fspath(source)
        with open(p, "r", encoding="utf-8") as f:
            text = f.read()

    try:
        cfg = yaml.safe_load(text) or {}
        if not isinstance(cfg, dict):
            cfg = {}
    except yaml.YAMLError as e:
        logger.warning("config is not valid YAML (%s); using key: value fallback", e)
        cfg = _parse_yaml_fallback(text)

    return _flatten_grouped(cfg)


def solver_config_from_mapping(
    data: Dict[str, Any], base: Optional[ConvergenceConfig] = None
) -> ConvergenceConfig:
    """Overlay guess/max_iterations/tolerance from `data` on `base` (or defaults)."""
    cfg = base or ConvergenceConfig()
    values = {k: getattr(cfg, k) for k in SOLVER_KEYS}
    for k in SOLVER_KEYS:
        if data.get(k) is not None:
            values[k] = _coerce_number(k, data[k])
    return ConvergenceConfig(**values)


def load_solver_config(
    source: str | os.PathLike | io.StringIO | None = None,
) -> ConvergenceConfig:
    """
    Solver defaults from YAML; either top-level keys or a `solver:` group:

        solver:
          guess: 0.1
          max_iterations: 1000
          tolerance: 1.0e-7
    """
    if source is None:
        return ConvergenceConfig()
    return solver_config_from_mapping(read_config_text(source))


__all__ = ["load_solver_config", "read_config_text", "solver_config_from_mapping"]
