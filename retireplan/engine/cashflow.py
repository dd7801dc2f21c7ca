"""Cash-flow projection.

One entry per horizon year. Every active instrument contributes one or more
signed line items (positive = inflow, negative = outflow); the year's net
amount is their sum. Balance-driven lines (savings contributions, debt
interest and principal, rental income, liquidation proceeds) come from the
roll-forward schedules in ``balance_sheet`` so both projections use the same
numbers.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from ..config import SimulationConfig
from ..data_model import (
    AssetInstrument,
    CashFlowInstrument,
    CashFlowYearEntry,
    CategorizedAmount,
    DebtInstrument,
    IncomeInstrument,
    Instrument,
    PensionInstrument,
    Profile,
    RealEstateInstrument,
    SavingInstrument,
    SourceType,
    is_cash_flow_instrument,
)
from .balance_sheet import Schedules, build_schedules
from .categorizer import RuleBasedCategorizer
from .horizon import Horizon

logger = logging.getLogger(__name__)

# (signed amount, role, label suffix)
Line = Tuple[float, str, str]

ROLE_SUFFIXES: Dict[str, str] = {
    "income": "",
    "expense": "",
    "payout": "",
    "contribution": " 적립",
    "deposit": " 예치",
    "purchase": " 구매",
    "rental": " 임대소득",
    "yield": " 수익",
    "housing_pension": " 주택연금",
    "liquidation": " 매각",
    "maturity": " 만기",
    "reserve_release": " 잔여 적립금",
    "loan": " 대출 유입",
    "interest": " 이자",
    "principal": " 원금 상환",
}


def _flow_lines(inst: CashFlowInstrument, year: int) -> List[Line]:
    if not inst.is_active(year):
        return []
    amount = inst.grown_amount(year)
    if isinstance(inst, IncomeInstrument):
        return [(amount, "income", "")]
    return [(-amount, "expense", "")]


def _saving_lines(inst: SavingInstrument, year: int, schedules: Schedules) -> List[Line]:
    schedule = schedules.savings[inst.id]
    lines: List[Line] = []
    if schedule.deposit_year == year:
        lines.append((-inst.current_balance, "deposit", ROLE_SUFFIXES["deposit"]))
    contribution = schedule.contributions.get(year)
    if contribution:
        lines.append((-contribution, "contribution", ROLE_SUFFIXES["contribution"]))
    if schedule.liquidation_year == year and schedule.final_balance:
        lines.append((schedule.final_balance, "maturity", ROLE_SUFFIXES["maturity"]))
    return lines


def _pension_lines(inst: PensionInstrument, year: int, schedules: Schedules) -> List[Line]:
    schedule = schedules.pensions[inst.id]
    lines: List[Line] = []
    contribution = schedule.contributions.get(year)
    if contribution:
        lines.append((-contribution, "contribution", ROLE_SUFFIXES["contribution"]))
    payout = schedule.payouts.get(year)
    if payout:
        lines.append((payout, "payout", ROLE_SUFFIXES["payout"]))
    if schedule.release_year == year and schedule.final_balance:
        lines.append((schedule.final_balance, "reserve_release", ROLE_SUFFIXES["reserve_release"]))
    return lines


def _holding_lines(inst: RealEstateInstrument | AssetInstrument, year: int, schedules: Schedules) -> List[Line]:
    schedule = schedules.holdings[inst.id]
    lines: List[Line] = []
    if inst.is_purchase and inst.start_year == year:
        lines.append((-inst.current_value, "purchase", ROLE_SUFFIXES["purchase"]))

    value = schedule.values.get(year)
    if value is not None and inst.income_active(year) and inst.income_yield_percent:
        role = "rental" if isinstance(inst, RealEstateInstrument) else "yield"
        lines.append((value * inst.income_yield_percent / 100.0, role, ROLE_SUFFIXES[role]))

    if isinstance(inst, RealEstateInstrument) and inst.housing_pension_active(year):
        lines.append((inst.housing_pension_monthly * 12.0, "housing_pension", ROLE_SUFFIXES["housing_pension"]))

    if schedule.liquidation_year == year and schedule.final_value:
        lines.append((schedule.final_value, "liquidation", ROLE_SUFFIXES["liquidation"]))
    return lines


def _debt_lines(inst: DebtInstrument, year: int, schedules: Schedules) -> List[Line]:
    lines: List[Line] = []
    if inst.is_new_loan and inst.start_year == year:
        lines.append((inst.principal, "loan", ROLE_SUFFIXES["loan"]))
    row = schedules.debts[inst.id].get(year)
    if row is None:
        return lines
    if row.interest:
        lines.append((-row.interest, "interest", ROLE_SUFFIXES["interest"]))
    if row.principal_paid:
        lines.append((-row.principal_paid, "principal", ROLE_SUFFIXES["principal"]))
    return lines


def instrument_lines(inst: Instrument, year: int, schedules: Schedules) -> List[Line]:
    """Signed cash lines one instrument produces in ``year``."""
    if is_cash_flow_instrument(inst):
        return _flow_lines(inst, year)
    if isinstance(inst, SavingInstrument):
        return _saving_lines(inst, year, schedules)
    if isinstance(inst, PensionInstrument):
        return _pension_lines(inst, year, schedules)
    if isinstance(inst, (RealEstateInstrument, AssetInstrument)):
        return _holding_lines(inst, year, schedules)
    if isinstance(inst, DebtInstrument):
        return _debt_lines(inst, year, schedules)
    return []


class _SourceTypeCache:
    """Categorizes each (instrument, role) pair once per run."""

    def __init__(self, categorizer: RuleBasedCategorizer) -> None:
        self.categorizer = categorizer
        self._cache: Dict[Tuple[str, str], SourceType] = {}

    def get(self, inst: Instrument, role: str) -> SourceType:
        key = (inst.id, role)
        if key not in self._cache:
            self._cache[key] = self.categorizer.categorize(
                inst.title, kind=inst.kind, role=role, category=inst.category
            )
        return self._cache[key]


def project_cash_flow(
    profile: Profile,
    instruments: Sequence[Instrument],
    horizon: Horizon,
    config: SimulationConfig | None = None,
    *,
    schedules: Schedules | None = None,
    categorizer: RuleBasedCategorizer | None = None,
) -> List[CashFlowYearEntry]:
    schedules = schedules or build_schedules(instruments, horizon)
    source_types = _SourceTypeCache(categorizer or RuleBasedCategorizer())

    entries: List[CashFlowYearEntry] = []
    for year in horizon:
        positives: List[CategorizedAmount] = []
        negatives: List[CategorizedAmount] = []
        for inst in instruments:
            for amount, role, suffix in instrument_lines(inst, year, schedules):
                if amount == 0:
                    continue
                item = CategorizedAmount(
                    label=f"{inst.title}{suffix}",
                    amount=abs(amount),
                    source_type=source_types.get(inst, role),
                    instrument_id=inst.id,
                    role=role,
                )
                (positives if amount > 0 else negatives).append(item)

        net = sum(item.amount for item in positives) - sum(item.amount for item in negatives)
        entries.append(
            CashFlowYearEntry(
                year=year,
                age=profile.age_in(year),
                net_amount=net,
                positives=positives,
                negatives=negatives,
            )
        )

    logger.debug("Projected cash flow for %d year(s), %d instrument(s)", len(entries), len(instruments))
    return entries
