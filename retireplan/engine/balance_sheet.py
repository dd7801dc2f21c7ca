"""Balance-sheet projection.

Every balance-carrying instrument gets one roll-forward schedule (year ->
balance) computed from its own terms. The cash-flow projector reads the same
schedules for interest, rental income and liquidation proceeds, so the two
series never disagree about a balance. Liquid cash is the only balance that
depends on other instruments: it folds in each year's net cash flow, which is
why ``project_assets`` takes the finished cash-flow series as input.

Snapshots are year-end values:
  - holdings (real estate, generic assets) hold their declared value in the
    first projected year and compound on the prior year's value after that;
    once past ``end_year`` they are either sold (gone from ``end_year + 1``) or
    held flat,
  - savings add the year's contribution to the compounded prior balance,
  - pension reserves add contributions and subtract payouts; a reserve left
    after the payment years is released to cash in the following year,
  - debts show the balance left after the year's principal repayment and drop
    out once it reaches zero,
  - a negative liquid-cash balance is listed as a shortfall under debts.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from ..config import SimulationConfig
from ..data_model import (
    AssetInstrument,
    AssetYearEntry,
    CashFlowYearEntry,
    CategorizedAmount,
    DebtInstrument,
    Holding,
    Instrument,
    PensionInstrument,
    Profile,
    RealEstateInstrument,
    SavingInstrument,
    SourceType,
    is_balance_sheet_instrument,
)
from .categorizer import RuleBasedCategorizer
from .horizon import Horizon

logger = logging.getLogger(__name__)

CASH_LABEL = "현금"
SHORTFALL_LABEL = "현금 부족"


def level_payment(balance: float, annual_rate: float, n_years: int) -> float:
    """Standard fully-amortizing level payment (PMT) with near-zero rate guard."""
    if n_years <= 0:
        return float(balance)
    if abs(annual_rate) < 1e-12:
        return float(balance) / n_years
    return float(balance) * (annual_rate * (1 + annual_rate) ** n_years) / ((1 + annual_rate) ** n_years - 1)


@dataclass(frozen=True)
class DebtYear:
    year: int
    opening: float
    interest: float
    principal_paid: float
    closing: float


@dataclass
class HoldingSchedule:
    values: Dict[int, float] = field(default_factory=dict)
    final_value: float | None = None
    liquidation_year: int | None = None


def roll_forward_holding(holding: Holding, horizon: Horizon) -> HoldingSchedule:
    schedule = HoldingSchedule()
    seed = max(holding.start_year, horizon.start)
    if seed > holding.end_year:
        return schedule

    rate = holding.value_growth_percent / 100.0
    value = holding.current_value
    for year in range(seed, min(holding.end_year, horizon.end) + 1):
        if year > seed:
            value *= 1 + rate
        schedule.values[year] = value

    if holding.end_year > horizon.end:
        return schedule

    schedule.final_value = value
    if holding.liquidate_at_end_year:
        schedule.liquidation_year = holding.end_year + 1
    else:
        for year in range(holding.end_year + 1, horizon.end + 1):
            schedule.values[year] = value
    return schedule


@dataclass
class SavingSchedule:
    balances: Dict[int, float] = field(default_factory=dict)
    contributions: Dict[int, float] = field(default_factory=dict)
    deposit_year: int | None = None
    final_balance: float | None = None
    liquidation_year: int | None = None


def roll_forward_saving(saving: SavingInstrument, horizon: Horizon) -> SavingSchedule:
    schedule = SavingSchedule()
    seed = max(saving.start_year, horizon.start)
    if seed > saving.end_year:
        return schedule
    if saving.start_year > horizon.start and saving.current_balance > 0:
        schedule.deposit_year = saving.start_year

    rate = saving.interest_rate_percent / 100.0
    balance = saving.current_balance
    for year in range(seed, min(saving.end_year, horizon.end) + 1):
        contribution = saving.contribution(year)
        if year > seed:
            balance *= 1 + rate
        balance += contribution
        schedule.contributions[year] = contribution
        schedule.balances[year] = balance

    if saving.end_year > horizon.end:
        return schedule

    schedule.final_balance = balance
    if saving.liquidate_at_end_year:
        schedule.liquidation_year = saving.end_year + 1
    else:
        for year in range(saving.end_year + 1, horizon.end + 1):
            schedule.balances[year] = balance
    return schedule


@dataclass
class PensionSchedule:
    reserves: Dict[int, float] = field(default_factory=dict)
    contributions: Dict[int, float] = field(default_factory=dict)
    payouts: Dict[int, float] = field(default_factory=dict)
    final_balance: float | None = None
    release_year: int | None = None


def roll_forward_pension(pension: PensionInstrument, horizon: Horizon) -> PensionSchedule:
    """Contributions, payouts and the year-end reserve of one pension.

    Pay-as-you-go pensions (no reserve, no contributions) only produce
    payouts. A reserve still left after ``end_year`` is released as a single
    cash inflow in ``end_year + 1``.
    """
    schedule = PensionSchedule()
    last = min(pension.end_year, horizon.end)
    if not pension.is_funded:
        for year in range(max(pension.start_year, horizon.start), last + 1):
            schedule.payouts[year] = pension.grown_amount(year)
        return schedule

    rate = pension.return_rate_percent / 100.0
    balance = pension.current_balance
    for year in range(horizon.start, last + 1):
        if year > horizon.start:
            balance *= 1 + rate
        contribution = pension.contribution(year)
        if contribution:
            balance += contribution
            schedule.contributions[year] = contribution
        if pension.is_active(year):
            if pension.pays_from_reserve:
                payout = balance / (pension.end_year - year + 1)
            else:
                payout = pension.grown_amount(year)
            schedule.payouts[year] = payout
            balance = max(0.0, balance - payout)
        if balance > 0:
            schedule.reserves[year] = balance

    if pension.end_year < horizon.end and balance > 0:
        schedule.final_balance = balance
        schedule.release_year = max(pension.end_year + 1, horizon.start)
    return schedule


def roll_forward_debt(debt: DebtInstrument, horizon: Horizon) -> Dict[int, DebtYear]:
    """Yearly interest/principal schedule.

    ``principal`` is the balance outstanding in the first projected year; the
    remaining term runs from there to ``end_year``. Interest is charged on the
    opening balance.
    """
    schedule: Dict[int, DebtYear] = {}
    seed = max(debt.start_year, horizon.start)
    if seed > debt.end_year:
        return schedule

    rate = debt.interest_rate_percent / 100.0
    amortize_from = debt.start_year + debt.grace_years if debt.repayment_type == "grace" else seed
    payment = level_payment(debt.principal, rate, debt.end_year - seed + 1)

    balance = debt.principal
    for year in range(seed, min(debt.end_year, horizon.end) + 1):
        opening = balance
        interest = opening * rate
        years_left = debt.end_year - year + 1
        if year == debt.end_year:
            principal_paid = opening
        elif debt.repayment_type == "equal_payment":
            principal_paid = min(opening, max(0.0, payment - interest))
        elif debt.repayment_type == "equal_principal":
            principal_paid = opening / years_left
        elif debt.repayment_type == "grace" and year >= amortize_from:
            principal_paid = opening / years_left
        else:
            principal_paid = 0.0
        balance = opening - principal_paid
        schedule[year] = DebtYear(year, opening, interest, principal_paid, balance)
    return schedule


@dataclass
class Schedules:
    holdings: Dict[str, HoldingSchedule] = field(default_factory=dict)
    savings: Dict[str, SavingSchedule] = field(default_factory=dict)
    pensions: Dict[str, PensionSchedule] = field(default_factory=dict)
    debts: Dict[str, Dict[int, DebtYear]] = field(default_factory=dict)


def build_schedules(instruments: Iterable[Instrument], horizon: Horizon) -> Schedules:
    schedules = Schedules()
    for inst in instruments:
        if not is_balance_sheet_instrument(inst):
            continue
        if isinstance(inst, (RealEstateInstrument, AssetInstrument)):
            schedules.holdings[inst.id] = roll_forward_holding(inst, horizon)
        elif isinstance(inst, SavingInstrument):
            schedules.savings[inst.id] = roll_forward_saving(inst, horizon)
        elif isinstance(inst, PensionInstrument):
            schedules.pensions[inst.id] = roll_forward_pension(inst, horizon)
        elif isinstance(inst, DebtInstrument):
            schedules.debts[inst.id] = roll_forward_debt(inst, horizon)
    return schedules


def _cash_items(cash: float) -> tuple[List[CategorizedAmount], List[CategorizedAmount]]:
    if cash >= 0:
        return [CategorizedAmount(CASH_LABEL, cash, SourceType.CASH, role="cash")], []
    return [], [CategorizedAmount(SHORTFALL_LABEL, -cash, SourceType.CASH, role="shortfall")]


def project_assets(
    profile: Profile,
    instruments: Sequence[Instrument],
    cash_flow: Sequence[CashFlowYearEntry],
    horizon: Horizon,
    config: SimulationConfig | None = None,
    *,
    schedules: Schedules | None = None,
    categorizer: RuleBasedCategorizer | None = None,
) -> List[AssetYearEntry]:
    """Year-end balance sheet for every horizon year.

    ``cash_flow`` must hold exactly one entry per horizon year, in order.
    """
    config = config or SimulationConfig()
    categorizer = categorizer or RuleBasedCategorizer()
    schedules = schedules or build_schedules(instruments, horizon)

    if [entry.year for entry in cash_flow] != list(horizon.years):
        raise ValueError("Cash-flow series does not match the projection horizon.")

    source_types = {inst.id: categorizer.categorize(inst.title, kind=inst.kind, category=inst.category) for inst in instruments}
    cash_rate = config.cash_return_rate_percent / 100.0
    cash = profile.current_cash
    entries: List[AssetYearEntry] = []

    for cf in cash_flow:
        year = cf.year
        cash = cash * (1 + cash_rate) + cf.net_amount
        asset_items, debt_items = _cash_items(cash)

        for inst in instruments:
            source_type = source_types[inst.id]
            amount: float | None = None
            if inst.id in schedules.holdings:
                amount = schedules.holdings[inst.id].values.get(year)
            elif inst.id in schedules.savings:
                amount = schedules.savings[inst.id].balances.get(year)
            elif inst.id in schedules.pensions:
                amount = schedules.pensions[inst.id].reserves.get(year)
            elif inst.id in schedules.debts:
                row = schedules.debts[inst.id].get(year)
                if row is not None and row.closing > 0:
                    debt_items.append(CategorizedAmount(inst.title, row.closing, source_type, inst.id, "balance"))
                continue
            if amount is not None:
                asset_items.append(CategorizedAmount(inst.title, amount, source_type, inst.id, "balance"))

        total_assets = sum(item.amount for item in asset_items)
        total_debt = sum(item.amount for item in debt_items)
        entries.append(
            AssetYearEntry(
                year=year,
                age=profile.age_in(year),
                total_assets=total_assets,
                total_debt=total_debt,
                net_assets=total_assets - total_debt,
                liquid_cash=cash,
                asset_items=asset_items,
                debt_items=debt_items,
            )
        )

    if entries:
        logger.debug(
            "Projected balance sheet %d-%d: net assets %.1f -> %.1f",
            entries[0].year,
            entries[-1].year,
            entries[0].net_assets,
            entries[-1].net_assets,
        )
    return entries
