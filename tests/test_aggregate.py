import pandas as pd
import pytest

from retireplan.data_model import SimulationResult
from retireplan.engine.aggregate import (
    aggregate_by_category,
    asset_frame,
    cashflow_frame,
    chart_rows,
    lifetime_cashflow_totals,
)
from retireplan.engine.simulator import run_simulation


def test_cashflow_frame_is_signed_long_format(profile, scenario_records):
    result = run_simulation(profile, scenario_records, 2024)

    df = cashflow_frame(result)
    first_year = df[df["Year"] == 2024]

    assert len(first_year) == 3
    assert first_year["Amount"].sum() == pytest.approx(900)
    assert set(first_year["Side"]) == {"supply", "demand"}


def test_aggregate_by_category_pivots_years(profile, scenario_records):
    result = run_simulation(profile, scenario_records, 2024)

    pivot = aggregate_by_category(cashflow_frame(result))

    assert pivot.loc[2024, "cash"] == pytest.approx(5400)
    assert pivot.loc[2024, "living"] == pytest.approx(-3600)
    assert pivot.loc[2024, "financing"] == pytest.approx(-900)
    assert pivot.loc[2040, "cash"] == 0


def test_aggregate_by_category_requires_columns():
    with pytest.raises(KeyError):
        aggregate_by_category(pd.DataFrame({"Year": [2024]}))


def test_asset_frame_debts_are_negative(profile, scenario_records):
    result = run_simulation(profile, scenario_records, 2024)

    df = asset_frame(result)
    debt_2024 = df[(df["Year"] == 2024) & (df["Side"] == "debt")]

    assert debt_2024["Amount"].sum() == pytest.approx(-20000)


def test_lifetime_totals_by_category_and_label(profile, scenario_records):
    result = run_simulation(profile, scenario_records, 2024)

    totals = lifetime_cashflow_totals(result)
    salary = sum(5400 * 1.033 ** k for k in range(9))

    assert totals["supply"]["cash|근로소득"] == pytest.approx(salary)
    assert totals["demand"]["financing|주택담보대출 이자"] == pytest.approx(900 * 7)
    assert totals["demand"]["debt|주택담보대출 원금 상환"] == pytest.approx(20000)


def test_chart_rows_carry_cumulative_net_cash(profile, scenario_records):
    result = run_simulation(profile, scenario_records, 2024)

    rows = chart_rows(result)
    running = 0.0
    for row, entry in zip(rows, result.cashflow):
        running += entry.net_amount
        assert row["cumulative"] == pytest.approx(running)
    assert rows[0]["assetBreakdown"]["현금"] == pytest.approx(900)
    assert rows[0]["debt"] == pytest.approx(20000)


def test_empty_results():
    empty = SimulationResult(cashflow=[], assets=[], current_year=2024)

    assert chart_rows(empty) == []
    assert lifetime_cashflow_totals(empty) == {"supply": {}, "demand": {}}
    assert cashflow_frame(empty).empty
