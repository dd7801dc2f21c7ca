import pytest

from retireplan.config import SimulationConfig
from retireplan.data_model import DebtInstrument, PensionInstrument, Profile, SourceType
from retireplan.engine.balance_sheet import (
    CASH_LABEL,
    SHORTFALL_LABEL,
    level_payment,
    project_assets,
    roll_forward_debt,
    roll_forward_pension,
)
from retireplan.engine.cashflow import project_cash_flow
from retireplan.engine.horizon import Horizon
from retireplan.engine.simulator import run_simulation

HORIZON = Horizon(2024, 2072)


def _debt(repayment_type, principal=10000.0, rate=5.0, start=2024, end=2033, grace_years=0):
    return DebtInstrument(
        id="d",
        title="대출",
        category="",
        start_year=start,
        end_year=end,
        base_amount_annual=principal,
        principal=principal,
        interest_rate_percent=rate,
        repayment_type=repayment_type,
        grace_years=grace_years,
    )


def _item(items, label):
    matches = [item for item in items if item.label == label]
    return matches[0] if matches else None


def test_liquidation_moves_value_into_next_year_cash_flow():
    profile = Profile(birth_year=1982, retirement_age=65)
    records = {
        "realEstates": [
            {"title": "상가", "currentValue": 50000, "appreciationRate": 2, "endYear": 2035, "liquidateAtEndYear": True},
        ]
    }

    result = run_simulation(profile, records, 2024)
    final_value = 50000 * 1.02 ** 11

    assert _item(result.asset_entry(2024).asset_items, "상가").amount == pytest.approx(50000)
    assert _item(result.asset_entry(2035).asset_items, "상가").amount == pytest.approx(final_value)
    assert _item(result.asset_entry(2036).asset_items, "상가") is None

    [proceeds] = [item for item in result.cashflow_entry(2036).positives if item.role == "liquidation"]
    assert proceeds.amount == pytest.approx(final_value)
    assert proceeds.source_type == SourceType.REAL_ESTATE
    assert not [item for item in result.cashflow_entry(2035).positives if item.role == "liquidation"]
    assert result.asset_entry(2036).liquid_cash == pytest.approx(final_value)


def test_held_asset_stays_flat_after_end_year():
    profile = Profile(birth_year=1982, retirement_age=65)
    records = {
        "assets": [
            {"title": "금", "currentValue": 1000, "growthRate": 10, "endYear": 2026, "liquidateAtEndYear": False},
        ]
    }

    result = run_simulation(profile, records, 2024)

    assert _item(result.asset_entry(2026).asset_items, "금").amount == pytest.approx(1210)
    assert _item(result.asset_entry(2030).asset_items, "금").amount == pytest.approx(1210)
    assert all(item.role != "liquidation" for entry in result.cashflow for item in entry.positives)


def test_purchase_is_an_outflow_and_holding_appears_in_start_year():
    profile = Profile(birth_year=1982, retirement_age=65, current_cash=80000)
    records = {"realEstates": [{"title": "아파트", "currentValue": 70000, "startYear": 2026, "isPurchase": True}]}

    result = run_simulation(profile, records, 2024)

    assert _item(result.asset_entry(2025).asset_items, "아파트") is None
    assert _item(result.asset_entry(2026).asset_items, "아파트").amount == pytest.approx(70000)
    [purchase] = result.cashflow_entry(2026).negatives
    assert purchase.amount == pytest.approx(70000)
    assert result.asset_entry(2026).liquid_cash == pytest.approx(10000)
    assert result.asset_entry(2026).net_assets == pytest.approx(80000)


def test_bullet_debt_stays_flat_then_disappears(profile, scenario_records):
    result = run_simulation(profile, scenario_records, 2024)

    assert _item(result.asset_entry(2024).debt_items, "주택담보대출").amount == pytest.approx(20000)
    assert _item(result.asset_entry(2029).debt_items, "주택담보대출").amount == pytest.approx(20000)
    assert _item(result.asset_entry(2030).debt_items, "주택담보대출") is None


def test_equal_payment_schedule_has_level_payments():
    schedule = roll_forward_debt(_debt("equal_payment"), HORIZON)
    payment = level_payment(10000, 0.05, 10)

    assert sorted(schedule) == list(range(2024, 2034))
    for row in schedule.values():
        assert row.interest == pytest.approx(row.opening * 0.05)
        assert row.interest + row.principal_paid == pytest.approx(payment)
    assert schedule[2033].closing == pytest.approx(0, abs=1e-6)


def test_equal_principal_schedule():
    schedule = roll_forward_debt(_debt("equal_principal", principal=10000, end=2028), HORIZON)

    assert [row.principal_paid for row in schedule.values()] == pytest.approx([2000] * 5)
    assert [row.interest for row in schedule.values()] == pytest.approx([500, 400, 300, 200, 100])
    assert schedule[2028].closing == pytest.approx(0)


def test_grace_period_then_equal_principal():
    schedule = roll_forward_debt(_debt("grace", grace_years=2), HORIZON)

    assert schedule[2024].principal_paid == 0
    assert schedule[2025].principal_paid == 0
    assert [schedule[year].principal_paid for year in range(2026, 2034)] == pytest.approx([1250] * 8)
    assert schedule[2033].closing == pytest.approx(0)


def test_debt_outside_horizon_has_no_schedule():
    assert roll_forward_debt(_debt("bullet", start=2010, end=2020), HORIZON) == {}


def test_level_payment_zero_rate():
    assert level_payment(1200, 0.0, 12) == pytest.approx(100)


def test_negative_cash_is_reported_as_shortfall():
    profile = Profile(birth_year=1982, retirement_age=65, current_cash=500)
    records = {"expenses": [{"title": "생활비", "amount": 1000, "frequency": "yearly", "endYear": 2030}]}

    result = run_simulation(profile, records, 2024)
    first = result.asset_entry(2024)

    assert first.liquid_cash == pytest.approx(-500)
    assert _item(first.asset_items, CASH_LABEL) is None
    assert _item(first.debt_items, SHORTFALL_LABEL).amount == pytest.approx(500)
    assert first.net_assets == pytest.approx(-500)


def test_cash_compounds_at_configured_rate():
    profile = Profile(birth_year=1982, retirement_age=65, current_cash=1000)

    result = run_simulation(profile, {}, 2024, SimulationConfig(cash_return_rate_percent=10))

    assert _item(result.asset_entry(2024).asset_items, CASH_LABEL).amount == pytest.approx(1100)
    assert _item(result.asset_entry(2025).asset_items, CASH_LABEL).amount == pytest.approx(1210)


def test_pension_reserve_draws_down(profile, mixed_records):
    result = run_simulation(profile, mixed_records, 2024)

    assert _item(result.asset_entry(2024).asset_items, "개인연금").amount == pytest.approx(3000)
    assert _item(result.asset_entry(2025).asset_items, "개인연금").amount == pytest.approx(3120)
    reserve_2052 = _item(result.asset_entry(2052).asset_items, "개인연금").amount
    assert _item(result.asset_entry(2053).asset_items, "개인연금") is None
    [release] = [item for item in result.cashflow_entry(2053).positives if item.role == "reserve_release"]
    assert release.label == "개인연금 잔여 적립금"
    assert release.amount == pytest.approx(reserve_2052)
    assert release.source_type == SourceType.PENSION
    assert not [item for item in result.cashflow_entry(2054).positives if item.role == "reserve_release"]


def test_asset_totals_match_items(profile, mixed_records):
    result = run_simulation(profile, mixed_records, 2024)

    for entry in result.assets:
        items = entry.asset_items + entry.debt_items
        assert all(item.amount >= 0 for item in items)
        assert entry.total_assets == pytest.approx(sum(item.amount for item in entry.asset_items), abs=0.01)
        assert entry.total_debt == pytest.approx(sum(item.amount for item in entry.debt_items), abs=0.01)
        assert entry.net_assets == pytest.approx(entry.total_assets - entry.total_debt, abs=0.01)


def test_cash_flow_must_match_horizon(profile):
    cash_flow = project_cash_flow(profile, [], Horizon(2024, 2030))

    with pytest.raises(ValueError):
        project_assets(profile, [], cash_flow, Horizon(2024, 2031))


def test_pension_reserve_left_after_payments_keeps_net_assets():
    profile = Profile(birth_year=1982, retirement_age=65)
    records = {
        "pensions": [
            {"title": "개인연금", "monthlyAmount": 5, "startAge": 60, "endAge": 70, "currentBalance": 3000, "returnRate": 4},
        ]
    }

    result = run_simulation(profile, records, 2024)
    last, after = result.asset_entry(2052), result.asset_entry(2053)

    assert _item(last.asset_items, "개인연금").amount > 0
    assert _item(after.asset_items, "개인연금") is None
    assert after.net_assets == pytest.approx(last.net_assets)
    assert result.cashflow_entry(2053).net_amount == pytest.approx(_item(last.asset_items, "개인연금").amount)


def test_reserve_funded_pension_accumulates_then_pays_out_evenly():
    pension = PensionInstrument(
        id="p",
        title="연금저축",
        category="personal",
        start_year=2028,
        end_year=2029,
        base_amount_annual=0.0,
        current_balance=1000.0,
        return_rate_percent=5.0,
        contribution_annual=600.0,
        contribution_start_year=2024,
        contribution_end_year=2026,
    )

    schedule = roll_forward_pension(pension, HORIZON)

    assert schedule.contributions == pytest.approx({2024: 600, 2025: 600, 2026: 600})
    assert schedule.reserves[2024] == pytest.approx(1600)
    assert schedule.reserves[2026] == pytest.approx(2994)
    assert schedule.reserves[2027] == pytest.approx(3143.7)
    assert schedule.payouts[2028] == pytest.approx(3300.885 / 2)
    assert schedule.payouts[2029] == pytest.approx(3300.885 / 2 * 1.05)
    assert 2029 not in schedule.reserves
    assert schedule.release_year is None


def test_duplicate_ids_keep_separate_balances(profile):
    records = {
        "realEstates": [{"id": "x1", "title": "아파트", "currentValue": 50000}],
        "assets": [{"id": "x1", "title": "주식", "currentValue": 1000}],
    }

    result = run_simulation(profile, records, 2024)
    first = result.asset_entry(2024)

    assert first.total_assets == pytest.approx(51000)
    assert _item(first.asset_items, "아파트").source_type == SourceType.REAL_ESTATE
    assert _item(first.asset_items, "주식").source_type == SourceType.ASSET
    assert len({item.instrument_id for item in first.asset_items if item.instrument_id}) == 2


def test_one_time_saving_contributes_only_in_start_year(profile):
    records = {"savings": [{"title": "예금", "amount": 1000, "frequency": "one_time", "startYear": 2024, "endYear": 2033}]}

    result = run_simulation(profile, records, 2024)
    contributions = [
        item.amount for entry in result.cashflow for item in entry.negatives if item.role == "contribution"
    ]

    assert contributions == pytest.approx([1000])
    assert _item(result.asset_entry(2033).asset_items, "예금").amount == pytest.approx(1000)


def test_planner_app_debt_record_is_projected(profile):
    records = {
        "debts": [
            {
                "title": "주택담보대출",
                "debtType": "bullet",
                "debtAmount": 20000,
                "startYear": 2024,
                "endYear": 2030,
                "interestRate": 0.045,
                "addCashToFlow": False,
            }
        ]
    }

    result = run_simulation(profile, records, 2024)

    assert result.asset_entry(2024).total_debt == pytest.approx(20000)
    [interest] = [item for item in result.cashflow_entry(2024).negatives if item.role == "interest"]
    assert interest.amount == pytest.approx(900)
    assert result.skipped == []
