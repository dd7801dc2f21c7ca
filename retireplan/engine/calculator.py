"""Closed-form retirement calculator.

Growing annuity: current assets compound at the nominal return ``r`` while
the annual savings start at ``annual_savings`` and grow at ``g`` per year.

    assets_n = A(1+r)^n + S((1+r)^n - (1+g)^n) / (r - g)

with the limit S * n * (1+r)^(n-1) when r and g (as fractions) are within
0.001 of each other. Amounts are in manwon, rates in percent.
"""
from __future__ import annotations

from typing import Any, Dict

SAME_RATE_TOLERANCE = 0.001


def retirement_assets(
    current_assets: float,
    annual_savings: float,
    years: int,
    return_rate_percent: float,
    savings_growth_rate_percent: float = 3.0,
) -> float | None:
    if years is None or years <= 0 or return_rate_percent is None or return_rate_percent <= 0:
        return None
    r = return_rate_percent / 100.0
    g = savings_growth_rate_percent / 100.0
    n = years

    asset_growth = current_assets * (1 + r) ** n
    if abs(r - g) > SAME_RATE_TOLERANCE:
        savings_growth = annual_savings * ((1 + r) ** n - (1 + g) ** n) / (r - g)
    else:
        savings_growth = annual_savings * n * (1 + r) ** (n - 1)
    return asset_growth + savings_growth


def real_return_rate(return_rate_percent: float, savings_growth_rate_percent: float) -> float:
    return return_rate_percent - savings_growth_rate_percent


def monthly_income(assets: float | None, return_rate_percent: float, savings_growth_rate_percent: float) -> float | None:
    """Monthly draw that preserves the real value of ``assets``."""
    real = real_return_rate(return_rate_percent, savings_growth_rate_percent)
    if assets is None or real <= 0:
        return None
    return assets * real / 100.0 / 12.0


def calculate(
    current_assets: float,
    annual_savings: float,
    years: int,
    return_rate_percent: float,
    savings_growth_rate_percent: float = 3.0,
) -> Dict[str, Any]:
    assets = retirement_assets(current_assets, annual_savings, years, return_rate_percent, savings_growth_rate_percent)
    return {
        "retirementAssets": assets,
        "monthlyIncome": monthly_income(assets, return_rate_percent, savings_growth_rate_percent),
        "realReturnRate": real_return_rate(return_rate_percent, savings_growth_rate_percent),
    }
