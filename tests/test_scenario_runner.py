import json

import pandas as pd
import pytest

from finrates.adapters import evaluate_scenario, reference_irr, solve_irr_with_guesses
from finrates.errors import MAX_ITERATIONS, InvalidArgument, NonConvergent
from finrates.finance.irr import ConvergenceConfig
from finrates.scenario_runner import COLUMNS, format_results, run_dir, run_file

NOW = pd.Timestamp("2025-01-01", tz="UTC")


def _write(p, name, text):
    f = p / name
    f.write_text(text, encoding="utf-8")
    return f


@pytest.fixture
def scenario_dir(tmp_path, monkeypatch):
    monkeypatch.delenv("VALIDATION_MODE", raising=False)
    d = tmp_path / "sc"
    d.mkdir()
    _write(d, "a_bond.yaml", "name: bond\ncashflows: [-100, 50, 50, 50]\n")
    _write(d, "b_card.yaml", "ear: 0.8\nperiods_per_year: 1\n")
    _write(d, "c_fund.yaml", "start_date: 2024-01-01\ninitial_value: 100\ncurrent_value: 110\n")
    _write(d, "d_flat.json", json.dumps({"cashflows": [1, 2]}))
    return d


# ---------- adapters ----------
def test_retry_moves_past_a_failing_guess():
    cfs = [-100, 50, 50, 50]
    cfg = ConvergenceConfig(max_iterations=20)
    r = solve_irr_with_guesses(cfs, [-1.0, 0.1], cfg)
    assert r == pytest.approx(reference_irr(cfs), abs=1e-6)


def test_retry_reraises_last_failure():
    with pytest.raises(NonConvergent) as ei:
        solve_irr_with_guesses([-100, 50, 50, 50], [-1.0, -1.0], ConvergenceConfig(max_iterations=3))
    assert ei.value.cause == MAX_ITERATIONS


def test_retry_does_not_mask_invalid_input():
    with pytest.raises(InvalidArgument):
        solve_irr_with_guesses([-100], [0.1, 0.2])
    with pytest.raises(InvalidArgument):
        solve_irr_with_guesses([-100, 110], [])


def test_reference_irr_none_without_real_root():
    assert reference_irr([1.0, 2.0]) is None


def test_evaluate_records_failures_on_the_row():
    row = evaluate_scenario({"cashflows": [1, 2]}, "irr", name="flat")
    assert row["status"] == "non_convergent"
    assert row["cause"] in ("zero derivative", "exceeded max iterations")
    assert row["value"] is None

    row = evaluate_scenario({"ear": -2.0, "periods_per_year": 12}, "nar_effective")
    assert row["status"] == "invalid"
    assert "ear" in row["error"]


def test_evaluate_uses_scenario_solver_section():
    doc = {"cashflows": [-100, 50, 50, 50], "solver": {"max_iterations": 1}}
    row = evaluate_scenario(doc, "irr")
    assert row["status"] == "non_convergent"
    assert row["cause"] == MAX_ITERATIONS


# ---------- runner ----------
def test_run_dir_collects_every_scenario(scenario_dir):
    df = run_dir(scenario_dir, now=NOW)
    assert list(df.columns) == COLUMNS
    assert list(df["scenario"]) == ["bond", "b_card", "c_fund", "d_flat"]

    by_name = df.set_index("scenario")
    assert by_name.loc["bond", "value"] == pytest.approx(by_name.loc["bond", "reference"], abs=1e-6)
    assert by_name.loc["b_card", "value"] == 0.8
    assert by_name.loc["c_fund", "value"] == 0.0997
    assert by_name.loc["d_flat", "status"] == "non_convergent"

    assert df.attrs["n_scenarios"] == 4
    assert df.attrs["success_rate"] == pytest.approx(0.75)


def test_run_single_file(scenario_dir):
    row = run_file(scenario_dir / "a_bond.yaml")
    assert row["kind"] == "irr"
    assert row["status"] == "ok"


def test_base_config_applies_when_scenario_has_none(scenario_dir):
    df = run_dir(scenario_dir / "a_bond.yaml", base_config=ConvergenceConfig(max_iterations=1))
    assert df.loc[0, "status"] == "non_convergent"


def test_strict_env_rejects_unknown_keys(tmp_path, monkeypatch):
    _write(tmp_path, "x.yaml", "cashflows: [-100, 110]\nowner: me\n")
    monkeypatch.setenv("VALIDATION_MODE", "strict")
    with pytest.raises(SystemExit) as ei:
        run_dir(tmp_path)
    assert "x.yaml" in str(ei.value)


def test_unreadable_scenario_is_reported(tmp_path):
    _write(tmp_path, "broken.json", "{not json")
    with pytest.raises(SystemExit) as ei:
        run_dir(tmp_path)
    assert "broken.json" in str(ei.value)


def test_empty_or_missing_paths(tmp_path):
    with pytest.raises(SystemExit):
        run_dir(tmp_path)
    with pytest.raises(SystemExit):
        run_dir(tmp_path / "missing")


def test_format_results(scenario_dir):
    df = run_dir(scenario_dir, now=NOW)
    records = json.loads(format_results(df, "json"))
    assert [r["scenario"] for r in records] == ["bond", "b_card", "c_fund", "d_flat"]
    assert format_results(df, "csv").splitlines()[0] == ",".join(COLUMNS)
    assert "bond" in format_results(df, "text")
    with pytest.raises(SystemExit):
        format_results(df, "xml")
