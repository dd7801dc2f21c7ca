"""Report metrics over a finished simulation.

All functions are total: degenerate inputs (zero income, non-positive
endpoints, empty series) give a sentinel instead of raising. Percentages are
returned as percent values (45.0 means 45%).
"""
from __future__ import annotations

from typing import Any, Dict

from ..data_model import AssetYearEntry, CashFlowYearEntry, Profile, SimulationResult, SourceType

# recurring inflows; loans, maturities and sale proceeds are one-off
INCOME_ROLES = {"income", "payout", "rental", "yield", "housing_pension"}
LIQUID_ASSET_KEYWORDS = ("예금", "적금", "cma", "mmf", "파킹", "현금", "deposit", "cash")


def cagr(start_entry: AssetYearEntry, end_entry: AssetYearEntry, n: int) -> float | None:
    """Compound annual growth of net assets in percent, None when undefined."""
    if n <= 0:
        return None
    start, end = start_entry.net_assets, end_entry.net_assets
    if start <= 0 or end <= 0:
        return None
    return ((end / start) ** (1.0 / n) - 1.0) * 100.0


def achievement_rate(retirement_net_assets: float, target: float) -> float:
    if not target or target <= 0:
        return 0.0
    return retirement_net_assets / target * 100.0


def _retirement_entry(result: SimulationResult, profile: Profile) -> AssetYearEntry | None:
    if not result.assets:
        return None
    first, last = result.assets[0].year, result.assets[-1].year
    year = min(max(profile.retirement_year, first), last)
    return result.asset_entry(year)


def goal_achievement(result: SimulationResult, profile: Profile) -> float:
    entry = _retirement_entry(result, profile)
    if entry is None:
        return 0.0
    return achievement_rate(entry.net_assets, profile.target_net_assets)


def dsr(annual_interest: float, annual_income: float) -> float:
    if annual_income <= 0:
        return 0.0
    return annual_interest / annual_income * 100.0


def emergency_fund_months(liquid: float, monthly_expense: float) -> float:
    if monthly_expense <= 0:
        return 0.0
    return liquid / monthly_expense


def liquid_assets(entry: AssetYearEntry) -> float:
    total = 0.0
    for item in entry.asset_items:
        if item.source_type in (SourceType.CASH, SourceType.SAVING):
            total += item.amount
        elif any(kw in item.label.lower() for kw in LIQUID_ASSET_KEYWORDS):
            total += item.amount
    return total


def annual_income(entry: CashFlowYearEntry) -> float:
    return sum(item.amount for item in entry.positives if item.role in INCOME_ROLES)


def annual_expense(entry: CashFlowYearEntry) -> float:
    return sum(item.amount for item in entry.negatives if item.role == "expense")


def annual_interest(entry: CashFlowYearEntry) -> float:
    return sum(item.amount for item in entry.negatives if item.role == "interest")


def debt_ratio(entry: AssetYearEntry) -> float:
    if entry.total_assets <= 0:
        return 0.0
    return entry.total_debt / entry.total_assets * 100.0


def summary_metrics(result: SimulationResult, profile: Profile) -> Dict[str, Any]:
    """Pre-aggregated figures for report pages and narrative consumers."""
    if not result.assets or not result.cashflow:
        return {
            "currentYear": result.current_year,
            "retirementYear": profile.retirement_year,
            "retirementNetAssets": None,
            "targetNetAssets": profile.target_net_assets,
            "achievementRate": 0.0,
            "cagr": None,
            "dsr": 0.0,
            "emergencyFundMonths": 0.0,
            "debtRatio": 0.0,
            "finalNetAssets": None,
            "shortfallYear": None,
        }

    first_assets, first_flow = result.assets[0], result.cashflow[0]
    retirement = _retirement_entry(result, profile)
    shortfall = next((entry.year for entry in result.assets if entry.liquid_cash < 0), None)
    return {
        "currentYear": result.current_year,
        "retirementYear": profile.retirement_year,
        "retirementNetAssets": retirement.net_assets,
        "targetNetAssets": profile.target_net_assets,
        "achievementRate": achievement_rate(retirement.net_assets, profile.target_net_assets),
        "cagr": cagr(first_assets, retirement, retirement.year - first_assets.year),
        "dsr": dsr(annual_interest(first_flow), annual_income(first_flow)),
        "emergencyFundMonths": emergency_fund_months(liquid_assets(first_assets), annual_expense(first_flow) / 12.0),
        "debtRatio": debt_ratio(first_assets),
        "finalNetAssets": result.assets[-1].net_assets,
        "shortfallYear": shortfall,
    }
