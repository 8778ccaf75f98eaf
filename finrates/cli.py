# finrates/cli.py
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

from .config import load_solver_config, solver_config_from_mapping
from .errors import InvalidArgument, NonConvergent
from .finance.irr import solve
from .finance.nominal import nominal_from_effective, nominal_from_observation
from .invertironline import AuthProvider, BrokerError, QuoteData, fetch_quote
from .scenario_runner import format_results, run_dir

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="finrates",
        description="Nominal annual rate and IRR calculator",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr.")
    sub = p.add_subparsers(dest="command", required=True)

    p_irr = sub.add_parser("irr", help="IRR of a cash-flow series (Newton-Raphson).")
    p_irr.add_argument(
        "cashflows",
        nargs="+",
        type=float,
        help="Cash flows, time zero first (e.g. -100 50 50 50).",
    )
    p_irr.add_argument("--guess", type=float, default=None, help="Initial guess (default: 0.10).")
    p_irr.add_argument("--max-iterations", type=int, default=None, help="Iteration cap (default: 1000).")
    p_irr.add_argument("--tolerance", type=float, default=None, help="Step tolerance (default: 1e-7).")
    p_irr.add_argument(
        "--config",
        default=None,
        help="YAML with solver defaults (guess/max_iterations/tolerance); flags override it.",
    )
    p_irr.add_argument("--format", dest="fmt", default="text", choices=["text", "json"])

    p_nar = sub.add_parser("nar", help="Nominal annual rate from an EAR or an observed investment.")
    p_nar.add_argument("--ear", type=float, default=None, help="Effective annual rate (0.80 = 80%%).")
    p_nar.add_argument("--periods", type=float, default=None, help="Compounding periods per year.")
    p_nar.add_argument("--start-date", default=None, help="Investment start date (ISO 8601).")
    p_nar.add_argument("--initial", type=float, default=None, help="Initial value.")
    p_nar.add_argument("--current", type=float, default=None, help="Current value.")
    p_nar.add_argument("--format", dest="fmt", default="text", choices=["text", "json"])

    p_sc = sub.add_parser("scenarios", help="Evaluate a scenario file or directory of scenarios.")
    p_sc.add_argument("path", help="YAML/JSON scenario file, or a directory of them.")
    p_sc.add_argument("--config", default=None, help="YAML with solver defaults for IRR scenarios.")
    p_sc.add_argument("--format", dest="fmt", default="text", choices=["text", "json", "csv"])
    v = p_sc.add_mutually_exclusive_group()
    v.add_argument("--strict", action="store_true", help="Enable strict validation (unknown keys raise).")
    v.add_argument("--relaxed", action="store_true", help="Enable relaxed validation (unknown keys ignored).")

    p_q = sub.add_parser("quote", help="Fetch a quote from InvertirOnline (needs IOL_USERNAME/IOL_PASSWORD).")
    p_q.add_argument("ticker")
    p_q.add_argument("--market", default="bCBA")
    p_q.add_argument("--format", dest="fmt", default="text", choices=["text", "json"])
    return p.parse_args(argv)


def _apply_validation_mode(ns: argparse.Namespace) -> None:
    # Default: leave env as-is; flags override explicitly.
    if getattr(ns, "strict", False):
        os.environ["VALIDATION_MODE"] = "strict"
    elif getattr(ns, "relaxed", False):
        os.environ["VALIDATION_MODE"] = "relaxed"


def _emit(fmt: str, key: str, value: float) -> None:
    if fmt == "json":
        print(json.dumps({key: value}))
    else:
        print(repr(value))


def _cmd_irr(ns: argparse.Namespace) -> int:
    base = load_solver_config(ns.config)
    overrides = {"guess": ns.guess, "max_iterations": ns.max_iterations, "tolerance": ns.tolerance}
    cfg = solver_config_from_mapping(overrides, base)
    logger.info("irr: %d cash flows, %s", len(ns.cashflows), cfg)
    _emit(ns.fmt, "irr", solve(ns.cashflows, cfg))
    return EXIT_OK


def _cmd_nar(ns: argparse.Namespace) -> int:
    effective = ns.ear is not None or ns.periods is not None
    observed = any(x is not None for x in (ns.start_date, ns.initial, ns.current))
    if effective == observed:
        raise InvalidArgument("use either --ear/--periods or --start-date/--initial/--current")
    if effective:
        if ns.ear is None or ns.periods is None:
            raise InvalidArgument("--ear and --periods are both required")
        value = nominal_from_effective(ns.ear, ns.periods)
    else:
        if ns.start_date is None or ns.initial is None or ns.current is None:
            raise InvalidArgument("--start-date, --initial and --current are all required")
        value = nominal_from_observation(ns.start_date, ns.initial, ns.current)
    _emit(ns.fmt, "nar", value)
    return EXIT_OK


def _cmd_scenarios(ns: argparse.Namespace) -> int:
    base = load_solver_config(ns.config)
    df = run_dir(ns.path, base_config=base)
    print(format_results(df, ns.fmt))
    return EXIT_OK if df.attrs.get("success_rate") == 1.0 else EXIT_FAILED


async def _fetch(ticker: str, market: str) -> QuoteData:
    token = await AuthProvider().get_token()
    return await fetch_quote(token, ticker, market=market)


def _cmd_quote(ns: argparse.Namespace) -> int:
    quote = asyncio.run(_fetch(ns.ticker, ns.market))
    if ns.fmt == "json":
        print(json.dumps(quote.raw, ensure_ascii=False))
    elif quote.has_puntas:
        best = quote.puntas[0]
        print(f"{quote.ticker}: bid {best.precio_compra} / ask {best.precio_venta}")
    else:
        print(f"{quote.ticker}: last {quote.ultimo_precio}")
    return EXIT_OK


COMMANDS = {
    "irr": _cmd_irr,
    "nar": _cmd_nar,
    "scenarios": _cmd_scenarios,
    "quote": _cmd_quote,
}


def main(argv: list[str] | None = None) -> int:
    try:
        ns = _parse_args(argv)
    except SystemExit as e:
        # argparse exits 2 on usage errors, 0 on --help
        return int(e.code) if isinstance(e.code, int) else EXIT_USAGE

    logging.basicConfig(
        level=logging.INFO if ns.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    _apply_validation_mode(ns)

    try:
        return COMMANDS[ns.command](ns)
    except InvalidArgument as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_USAGE
    except NonConvergent as e:
        print(f"ERROR ({e.cause}): {e}", file=sys.stderr)
        return EXIT_FAILED
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_USAGE
    except BrokerError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FAILED
    except SystemExit as e:
        # validation errors from the scenario loader
        if isinstance(e.code, int):
            return e.code
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_USAGE


__all__ = ["main"]
