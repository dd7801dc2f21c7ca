from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

REPAYMENT_TYPES = ["bullet", "equal_payment", "equal_principal", "grace"]


@dataclass(frozen=True)
class Instrument:
    """Fields shared by every instrument kind.

    ``start_year``/``end_year`` are inclusive. ``base_amount_annual`` is in
    manwon per year; ``growth_rate_percent`` compounds once per elapsed year
    since ``start_year``.
    """

    kind: ClassVar[str] = ""

    id: str
    title: str
    category: str
    start_year: int
    end_year: int
    base_amount_annual: float
    growth_rate_percent: float = 0.0

    def is_active(self, year: int) -> bool:
        return self.start_year <= year <= self.end_year

    def grown_amount(self, year: int) -> float:
        elapsed = year - self.start_year
        return self.base_amount_annual * (1.0 + self.growth_rate_percent / 100.0) ** elapsed


@dataclass(frozen=True)
class IncomeInstrument(Instrument):
    kind: ClassVar[str] = "income"


@dataclass(frozen=True)
class ExpenseInstrument(Instrument):
    kind: ClassVar[str] = "expense"


@dataclass(frozen=True)
class SavingInstrument(Instrument):
    """Contribution plan (``base_amount_annual``) plus a compounding balance."""

    kind: ClassVar[str] = "saving"

    current_balance: float = 0.0
    interest_rate_percent: float = 0.0
    liquidate_at_end_year: bool = True
    one_time: bool = False

    def contribution(self, year: int) -> float:
        """Contribution paid in ``year``; a one-time plan pays only in ``start_year``."""
        if not self.is_active(year) or (self.one_time and year != self.start_year):
            return 0.0
        return self.grown_amount(year)


@dataclass(frozen=True)
class PensionInstrument(Instrument):
    """Payout phase over ``start_year..end_year``, optionally backed by a reserve.

    A reserve (``current_balance`` plus contributions) compounds at
    ``return_rate_percent``. With ``monthly_amount`` set the payout is that
    scheduled amount; without it the reserve is paid out evenly over the
    remaining payment years.
    """

    kind: ClassVar[str] = "pension"

    monthly_amount: float = 0.0
    pension_type: str = "national"
    start_age: int | None = None
    end_age: int | None = None
    current_balance: float = 0.0
    return_rate_percent: float = 0.0
    contribution_annual: float = 0.0
    contribution_start_year: int | None = None
    contribution_end_year: int | None = None

    @property
    def is_funded(self) -> bool:
        return self.current_balance > 0 or self.contribution_annual > 0

    @property
    def pays_from_reserve(self) -> bool:
        return self.monthly_amount <= 0 and self.is_funded

    def contribution(self, year: int) -> float:
        if self.contribution_annual <= 0:
            return 0.0
        start = self.contribution_start_year if self.contribution_start_year is not None else year
        end = self.contribution_end_year if self.contribution_end_year is not None else self.start_year - 1
        return self.contribution_annual if start <= year <= end else 0.0


@dataclass(frozen=True)
class RealEstateInstrument(Instrument):
    kind: ClassVar[str] = "realEstate"

    current_value: float = 0.0
    appreciation_rate_percent: float = 0.0
    is_rental: bool = False
    rental_yield_percent: float = 0.0
    rental_start_year: int | None = None
    rental_end_year: int | None = None
    is_purchase: bool = False
    liquidate_at_end_year: bool = False
    housing_pension_monthly: float = 0.0
    housing_pension_start_year: int | None = None

    @property
    def value_growth_percent(self) -> float:
        return self.appreciation_rate_percent

    @property
    def income_yield_percent(self) -> float:
        return self.rental_yield_percent if self.is_rental else 0.0

    def income_active(self, year: int) -> bool:
        if not self.is_rental:
            return False
        start = self.rental_start_year if self.rental_start_year is not None else self.start_year
        end = self.rental_end_year if self.rental_end_year is not None else self.end_year
        return max(start, self.start_year) <= year <= min(end, self.end_year)

    def housing_pension_active(self, year: int) -> bool:
        if self.housing_pension_monthly <= 0 or self.housing_pension_start_year is None:
            return False
        return self.housing_pension_start_year <= year <= self.end_year


@dataclass(frozen=True)
class AssetInstrument(Instrument):
    kind: ClassVar[str] = "asset"

    current_value: float = 0.0
    income_yield_percent: float = 0.0
    is_purchase: bool = False
    liquidate_at_end_year: bool = False

    @property
    def value_growth_percent(self) -> float:
        return self.growth_rate_percent

    def income_active(self, year: int) -> bool:
        return self.income_yield_percent != 0 and self.is_active(year)


@dataclass(frozen=True)
class DebtInstrument(Instrument):
    kind: ClassVar[str] = "debt"

    principal: float = 0.0
    interest_rate_percent: float = 0.0
    repayment_type: str = "bullet"
    grace_years: int = 0
    is_new_loan: bool = False

    def __post_init__(self) -> None:
        if self.repayment_type not in REPAYMENT_TYPES:
            raise ValueError(f"Unknown repayment type: {self.repayment_type}")

    @property
    def term_years(self) -> int:
        return self.end_year - self.start_year + 1

    @property
    def is_interest_only(self) -> bool:
        return self.repayment_type == "bullet"


CashFlowInstrument = Union[IncomeInstrument, ExpenseInstrument]
BalanceSheetInstrument = Union[
    SavingInstrument,
    PensionInstrument,
    RealEstateInstrument,
    AssetInstrument,
    DebtInstrument,
]
Holding = Union[RealEstateInstrument, AssetInstrument]

CASH_FLOW_KINDS = {"income", "expense"}
BALANCE_SHEET_KINDS = {"saving", "pension", "realEstate", "asset", "debt"}


def is_cash_flow_instrument(instrument: Instrument) -> bool:
    return instrument.kind in CASH_FLOW_KINDS


def is_balance_sheet_instrument(instrument: Instrument) -> bool:
    return instrument.kind in BALANCE_SHEET_KINDS
