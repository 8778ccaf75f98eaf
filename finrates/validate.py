# finrates/validate.py
from __future__ import annotations
import os, sys, json
from pathlib import Path
from typing import Any, Dict, Iterable, List
import yaml

IRR_KEYS = {"cashflows"}
EFFECTIVE_KEYS = {"ear", "periods_per_year"}
OBSERVATION_KEYS = {"start_date", "initial_value", "current_value"}
COMMON_KEYS = {"name", "description", "solver", "guesses"}

KINDS = {
    "irr": IRR_KEYS,
    "nar_effective": EFFECTIVE_KEYS,
    "nar_observation": OBSERVATION_KEYS,
}


def _mode_from_env_or_flag(flag: str | None) -> str:
    if flag in ("strict", "relaxed"):
        return flag
    env = (os.environ.get("VALIDATION_MODE") or "").lower()
    return env if env in ("strict", "relaxed") else "relaxed"


def scenario_kinds(data: Dict[str, Any]) -> List[str]:
    """Every scenario kind whose keys are all present in `data`."""
    return [kind for kind, keys in KINDS.items() if keys <= set(data)]


def validate_scenario_dict(data: Dict[str, Any], *, mode: str = "relaxed") -> str:
    """
    Guardrails for one scenario document. Returns its kind.
      - relaxed: at least one complete kind (first one wins); extra keys ignored
      - strict : exactly one kind, and unknown top-level keys are rejected
    Numeric domain checks are left to the finance functions.
    """
    if not isinstance(data, dict):
        raise SystemExit("scenario must be a mapping")

    kinds = scenario_kinds(data)
    if not kinds:
        partial = sorted(
            k for keys in KINDS.values() if keys & set(data) for k in keys - set(data)
        )
        hint = f" (missing: {partial})" if partial else ""
        raise SystemExit(
            "scenario needs 'cashflows', 'ear'+'periods_per_year' or "
            f"'start_date'+'initial_value'+'current_value'{hint}"
        )

    if mode == "strict":
        if len(kinds) > 1:
            raise SystemExit(f"ambiguous scenario (strict mode): matches {kinds}")
        allowed = KINDS[kinds[0]] | COMMON_KEYS
        unknown = [k for k in data.keys() if k not in allowed]
        if unknown:
            raise SystemExit(f"unknown top-level keys (strict mode): {unknown}")

    if "cashflows" in data:
        cfs = data["cashflows"]
        if not isinstance(cfs, list) or len(cfs) < 2:
            raise SystemExit("cashflows must be a list with at least two values")

    guesses = data.get("guesses")
    if guesses is not None and (not isinstance(guesses, list) or not guesses):
        raise SystemExit("guesses must be a non-empty list")

    solver = data.get("solver")
    if solver is not None and not isinstance(solver, dict):
        raise SystemExit("solver must be a mapping")

    return kinds[0]


def load_params_from_file(path: Path) -> Dict[str, Any]:
    p = Path(path)
    if p.is_dir():
        # scenario_runner handles directories; keep this function file-only
        raise SystemExit(f"{p} is a directory (expected a file)")
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yaml", ".yml"):
        return yaml.safe_load(text) or {}
    return json.loads(text or "{}")


def iter_input_files(p: Path) -> Iterable[Path]:
    if p.is_file():
        yield p
    elif p.is_dir():
        for ext in ("*.yaml", "*.yml", "*.json"):
            yield from sorted(p.rglob(ext))


def _main(argv: List[str] | None = None) -> int:
    import argparse
    parser = argparse.ArgumentParser(prog="finrates.validate", add_help=True)
    parser.add_argument("paths", nargs="+", help="YAML/JSON scenario files or directories to validate")
    parser.add_argument("--mode", choices=["strict", "relaxed"], default=None, help="validation mode")
    args = parser.parse_args(argv)

    mode = _mode_from_env_or_flag(args.mode)
    had_error = False

    for raw in args.paths:
        target = Path(raw)
        any_seen = False
        for f in iter_input_files(target):
            if not f.is_file():
                continue
            any_seen = True
            try:
                data = load_params_from_file(f)
                kind = validate_scenario_dict(data, mode=mode)
                print(f"OK: {f} ({kind})")
            except SystemExit as e:
                print(f"{f}: {e}", file=sys.stderr)
                had_error = True
            except (OSError, ValueError, yaml.YAMLError) as e:
                print(f"{f}: ERROR: {e}", file=sys.stderr)
                had_error = True
        if not any_seen:
            print(f"{target}: no YAML/JSON files found", file=sys.stderr)
            had_error = True

    return 1 if had_error else 0


if __name__ == "__main__":
    raise SystemExit(_main())
