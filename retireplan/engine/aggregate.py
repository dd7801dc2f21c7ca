from __future__ import annotations

from typing import Any, Dict, List, Sequence

import pandas as pd

from ..data_model import CashFlowYearEntry, SimulationResult

CASHFLOW_COLUMNS = ["Year", "Age", "Side", "SourceType", "Label", "Role", "InstrumentId", "Amount"]
ASSET_COLUMNS = ["Year", "Age", "Side", "SourceType", "Label", "InstrumentId", "Amount"]


def cashflow_frame(result: SimulationResult | Sequence[CashFlowYearEntry]) -> pd.DataFrame:
    """Long format: one row per cash-flow line item; outflows carry negative amounts."""
    entries = result.cashflow if isinstance(result, SimulationResult) else result
    rows: List[Dict[str, Any]] = []
    for entry in entries:
        for side, items, sign in (("supply", entry.positives, 1.0), ("demand", entry.negatives, -1.0)):
            for item in items:
                rows.append(
                    {
                        "Year": entry.year,
                        "Age": entry.age,
                        "Side": side,
                        "SourceType": item.source_type.value,
                        "Label": item.label,
                        "Role": item.role,
                        "InstrumentId": item.instrument_id,
                        "Amount": sign * item.amount,
                    }
                )
    return pd.DataFrame(rows, columns=CASHFLOW_COLUMNS)


def asset_frame(result: SimulationResult) -> pd.DataFrame:
    """Long format: one row per balance-sheet item; debts carry negative amounts."""
    rows: List[Dict[str, Any]] = []
    for entry in result.assets:
        for side, items, sign in (("asset", entry.asset_items, 1.0), ("debt", entry.debt_items, -1.0)):
            for item in items:
                rows.append(
                    {
                        "Year": entry.year,
                        "Age": entry.age,
                        "Side": side,
                        "SourceType": item.source_type.value,
                        "Label": item.label,
                        "InstrumentId": item.instrument_id,
                        "Amount": sign * item.amount,
                    }
                )
    return pd.DataFrame(rows, columns=ASSET_COLUMNS)


def aggregate_by_category(df: pd.DataFrame) -> pd.DataFrame:
    """Year x SourceType totals; missing combinations are 0."""
    missing = {"Year", "SourceType", "Amount"}.difference(df.columns)
    if missing:
        raise KeyError(f"Missing required columns: {', '.join(sorted(missing))}")
    if df.empty:
        return pd.DataFrame()
    return df.pivot_table(index="Year", columns="SourceType", values="Amount", aggfunc="sum", fill_value=0.0)


def lifetime_cashflow_totals(cashflow: SimulationResult | Sequence[CashFlowYearEntry]) -> Dict[str, Dict[str, float]]:
    """Whole-horizon supply/demand totals keyed by ``"<sourceType>|<label>"``."""
    df = cashflow_frame(cashflow)
    totals: Dict[str, Dict[str, float]] = {"supply": {}, "demand": {}}
    if df.empty:
        return totals
    df["Key"] = df["SourceType"] + "|" + df["Label"]
    grouped = df.groupby(["Side", "Key"], sort=False)["Amount"].sum().abs()
    for (side, key), amount in grouped.items():
        totals[side][key] = float(amount)
    return totals


def chart_rows(result: SimulationResult) -> List[Dict[str, Any]]:
    """Rows for the asset projection chart, with cumulative net cash flow."""
    if not result.assets:
        return []
    net = pd.Series([entry.net_amount for entry in result.cashflow], index=[entry.year for entry in result.cashflow])
    cumulative = net.cumsum()

    rows: List[Dict[str, Any]] = []
    for entry in result.assets:
        breakdown: Dict[str, float] = {}
        for item in entry.asset_items:
            breakdown[item.label] = breakdown.get(item.label, 0.0) + item.amount
        rows.append(
            {
                "year": entry.year,
                "age": entry.age,
                "assets": entry.total_assets,
                "debt": entry.total_debt,
                "netAssets": entry.net_assets,
                "cumulative": float(cumulative.get(entry.year, 0.0)),
                "assetBreakdown": breakdown,
            }
        )
    return rows
