"""Raw record -> instrument normalization.

Accepts the already-fetched collections of a profile (``incomes``,
``expenses``, ``savings``, ``pensions``, ``realEstates``, ``assets``,
``debts``) as lists of dicts or DataFrames and turns them into typed
instruments. Money is normalized to manwon per year. A record that fails
validation is skipped with a reason code; the rest of the run goes on.

Records saved by the planner app keep some rates as fractions (``0.035``
for 3.5%). Those records are recognized by their app-only fields (see
``APP_FORMAT_MARKERS``) and their rates are converted to percent.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping

import pandas as pd

from ..config import SimulationConfig
from ..data_model import (
    AssetInstrument,
    DebtInstrument,
    ExpenseInstrument,
    IncomeInstrument,
    Instrument,
    PensionInstrument,
    Profile,
    RealEstateInstrument,
    SavingInstrument,
    SkippedRecord,
)

logger = logging.getLogger(__name__)

MISSING_AMOUNT = "missing_amount"
NON_FINITE_AMOUNT = "non_finite_amount"
NON_FINITE_RATE = "non_finite_rate"
INVALID_YEAR = "invalid_year"
INVERTED_RANGE = "inverted_range"
MISSING_AGE = "missing_age"
MISSING_MATURITY = "missing_maturity"
UNKNOWN_COLLECTION = "unknown_collection"
UNKNOWN_FREQUENCY = "unknown_frequency"
UNKNOWN_REPAYMENT_TYPE = "unknown_repayment_type"
UNKNOWN_UNIT = "unknown_unit"
NEGATIVE_AMOUNT = "negative_amount"
RATE_OUT_OF_RANGE = "rate_out_of_range"

COLLECTION_KINDS: Dict[str, str] = {
    "incomes": "income",
    "expenses": "expense",
    "savings": "saving",
    "pensions": "pension",
    "realEstates": "realEstate",
    "real_estates": "realEstate",
    "assets": "asset",
    "debts": "debt",
}

ONE_TIME = "once"

FREQUENCY_MULTIPLIERS: Dict[str, float] = {
    "daily": 360.0,
    "monthly": 12.0,
    "quarterly": 4.0,
    "yearly": 1.0,
    ONE_TIME: 1.0,
}

FREQUENCY_ALIASES: Dict[str, str] = {
    "one_time": ONE_TIME,
    "onetime": ONE_TIME,
    "lump_sum": ONE_TIME,
    "annual": "yearly",
    "annually": "yearly",
}

UNIT_FACTORS: Dict[str, float] = {
    "manwon": 1.0,
    "won": 1.0 / 10000.0,
    "eok": 10000.0,
}

REPAYMENT_ALIASES: Dict[str, str] = {
    "bullet": "bullet",
    "interest_only": "bullet",
    "lump_sum": "bullet",
    "equal_payment": "equal_payment",
    "equal": "equal_payment",
    "amortizing": "equal_payment",
    "equal_principal": "equal_principal",
    "principal": "equal_principal",
    "grace": "grace",
}

# fields only the planner app writes; their presence means fraction rates
APP_FORMAT_MARKERS: Dict[str, tuple[str, ...]] = {
    "saving": ("originalFrequency", "originalAmount"),
    "asset": ("assetType",),
    "debt": ("debtAmount",),
}


class _SkipRecord(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass
class NormalizationResult:
    valid: List[Instrument] = field(default_factory=list)
    skipped: List[SkippedRecord] = field(default_factory=list)


@dataclass(frozen=True)
class _Context:
    profile: Profile
    current_year: int
    config: SimulationConfig

    @property
    def death_year(self) -> int:
        return self.profile.death_year(self.config.life_expectancy)


def _lookup(record: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in record and record[key] is not None and record[key] != "":
            return record[key]
    return None


def _has(record: Mapping[str, Any], *keys: str) -> bool:
    return _lookup(record, keys) is not None


def _app_record(record: Mapping[str, Any], kind: str) -> bool:
    return _has(record, *APP_FORMAT_MARKERS.get(kind, ()))


def _number(record: Mapping[str, Any], *keys: str, reason: str = MISSING_AMOUNT) -> float | None:
    raw = _lookup(record, keys)
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise _SkipRecord(reason)
    try:
        value = float(str(raw).replace(",", "")) if isinstance(raw, str) else float(raw)
    except (TypeError, ValueError):
        raise _SkipRecord(reason)
    if not math.isfinite(value):
        raise _SkipRecord(NON_FINITE_AMOUNT if reason == MISSING_AMOUNT else reason)
    return value


def _amount(record: Mapping[str, Any], *keys: str) -> float | None:
    value = _number(record, *keys)
    if value is not None and value < 0:
        raise _SkipRecord(NEGATIVE_AMOUNT)
    return value


def _required_amount(record: Mapping[str, Any], *keys: str) -> float:
    value = _amount(record, *keys)
    if value is None:
        raise _SkipRecord(MISSING_AMOUNT)
    return value


def _rate(
    record: Mapping[str, Any],
    *keys: str,
    default: float = 0.0,
    minimum: float = -100.0,
    scale: float = 1.0,
) -> float:
    value = _number(record, *keys, reason=NON_FINITE_RATE)
    if value is None:
        return default
    value *= scale
    if value < minimum:
        raise _SkipRecord(RATE_OUT_OF_RANGE)
    return value


def _percent(
    record: Mapping[str, Any],
    percent_keys: tuple[str, ...],
    keys: tuple[str, ...],
    *,
    fraction: bool,
    default: float = 0.0,
    minimum: float = -100.0,
) -> float:
    """Rate in percent; ``keys`` hold fractions when ``fraction`` is set."""
    if _has(record, *percent_keys):
        return _rate(record, *percent_keys, minimum=minimum)
    return _rate(record, *keys, default=default, minimum=minimum, scale=100.0 if fraction else 1.0)


def _year(record: Mapping[str, Any], *keys: str, default: int | None = None) -> int | None:
    for key in keys:
        value = _number(record, key, reason=INVALID_YEAR)
        # the planner app stores 0 for "not set"
        if value:
            return int(value)
    return default


def _flag(record: Mapping[str, Any], *keys: str, default: bool = False) -> bool:
    raw = _lookup(record, keys)
    if raw is None:
        return default
    if isinstance(raw, str):
        return raw.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(raw)


def _unit_factor(record: Mapping[str, Any]) -> float:
    unit = str(record.get("unit") or "manwon").strip().lower()
    if unit not in UNIT_FACTORS:
        raise _SkipRecord(UNKNOWN_UNIT)
    return UNIT_FACTORS[unit]


def _frequency(record: Mapping[str, Any], ctx: _Context, *keys: str) -> str:
    raw = _lookup(record, keys or ("frequency", "originalFrequency"))
    frequency = str(raw or ctx.config.default_frequency).strip().lower()
    frequency = FREQUENCY_ALIASES.get(frequency, frequency)
    if frequency not in FREQUENCY_MULTIPLIERS:
        raise _SkipRecord(UNKNOWN_FREQUENCY)
    return frequency


def _annual_amount(record: Mapping[str, Any], ctx: _Context, required: bool = True) -> tuple[float | None, bool]:
    """Annualized amount in manwon, and whether it is paid only once.

    ``baseAmountAnnual`` is taken as is; otherwise ``amount`` is scaled by its
    frequency.
    """
    factor = _unit_factor(record)
    annual = _amount(record, "baseAmountAnnual", "base_amount_annual")
    if annual is not None:
        return annual * factor, False
    amount = _amount(record, "amount")
    if amount is None:
        if required:
            raise _SkipRecord(MISSING_AMOUNT)
        return None, False
    frequency = _frequency(record, ctx)
    return amount * FREQUENCY_MULTIPLIERS[frequency] * factor, frequency == ONE_TIME


def _span(record: Mapping[str, Any], ctx: _Context) -> tuple[int, int]:
    start = _year(record, "startYear", "start_year", default=ctx.current_year)
    end = _year(record, "endYear", "end_year", default=ctx.death_year)
    if start > end:
        raise _SkipRecord(INVERTED_RANGE)
    return start, end


def _common(record: Mapping[str, Any], record_id: str, fallback_title: str) -> dict[str, Any]:
    title = str(_lookup(record, ("title", "name")) or fallback_title).strip()
    return {
        "id": str(record.get("id") or record_id),
        "title": title,
        "category": str(_lookup(record, ("category", "type")) or ""),
    }


def _build_flow(cls: type, record: Mapping[str, Any], record_id: str, ctx: _Context) -> Instrument:
    annual, one_time = _annual_amount(record, ctx)
    growth = _rate(record, "growthRatePercent", "growthRate", "growth_rate_percent")
    start, end = _span(record, ctx)
    return cls(
        **_common(record, record_id, "수입" if cls is IncomeInstrument else "지출"),
        start_year=start,
        end_year=start if one_time else end,
        base_amount_annual=annual,
        growth_rate_percent=growth,
    )


def _build_income(record, record_id, ctx):
    return _build_flow(IncomeInstrument, record, record_id, ctx)


def _build_expense(record, record_id, ctx):
    return _build_flow(ExpenseInstrument, record, record_id, ctx)


def _build_saving(record, record_id, ctx):
    contribution, one_time = _annual_amount(record, ctx, required=False)
    balance = _amount(record, "currentBalance", "currentAmount", "balance", "current_balance")
    if contribution is None and balance is None:
        raise _SkipRecord(MISSING_AMOUNT)
    factor = _unit_factor(record)
    fraction = _app_record(record, "saving")
    start, end = _span(record, ctx)
    return SavingInstrument(
        **_common(record, record_id, "저축"),
        start_year=start,
        end_year=end,
        base_amount_annual=contribution or 0.0,
        growth_rate_percent=_percent(record, ("growthRatePercent",), ("growthRate", "yearlyGrowthRate"), fraction=fraction),
        current_balance=(balance or 0.0) * factor,
        interest_rate_percent=_percent(record, ("interestRatePercent",), ("interestRate", "rate"), fraction=fraction),
        liquidate_at_end_year=_flag(record, "liquidateAtEndYear", "liquidate_at_end_year", default=True),
        one_time=one_time,
    )


def _pension_contribution(record: Mapping[str, Any], ctx: _Context, payment_start: int) -> tuple[float, int, int]:
    """Annual contribution and its inclusive year range; (0, ...) when none."""
    amount = _amount(record, "contributionAmount", "contribution_amount")
    start = _year(record, "contributionStartYear", "contribution_start_year", default=ctx.current_year)
    end = _year(record, "contributionEndYear", "contribution_end_year", default=payment_start - 1)
    if not amount:
        return 0.0, start, end
    frequency = _frequency(record, ctx, "contributionFrequency", "contribution_frequency")
    if frequency == ONE_TIME:
        end = start
    if start > end:
        raise _SkipRecord(INVERTED_RANGE)
    return amount * FREQUENCY_MULTIPLIERS[frequency] * _unit_factor(record), start, end


def _build_pension(record, record_id, ctx):
    factor = _unit_factor(record)
    balance = (_amount(record, "currentBalance", "currentAmount", "current_balance") or 0.0) * factor

    birth_year = ctx.profile.birth_year
    start_age = _year(record, "startAge", "start_age")
    end_age = _year(record, "endAge", "end_age")
    start = _year(record, "paymentStartYear", "startYear", "start_year")
    end = _year(record, "paymentEndYear", "endYear", "end_year")
    if start is None:
        if start_age is None:
            raise _SkipRecord(MISSING_AGE)
        start = birth_year + start_age
    if end is None:
        end = birth_year + (end_age if end_age is not None else ctx.config.life_expectancy)
    if start > end:
        raise _SkipRecord(INVERTED_RANGE)

    contribution, contribution_start, contribution_end = _pension_contribution(record, ctx, start)
    monthly = _amount(record, "monthlyAmount", "monthly_amount")
    if monthly is None:
        annual, _ = _annual_amount(record, ctx, required=not (balance or contribution))
        monthly = (annual or 0.0) / 12.0
    else:
        monthly = monthly * factor

    return PensionInstrument(
        **_common(record, record_id, "연금"),
        start_year=start,
        end_year=end,
        base_amount_annual=monthly * 12.0,
        growth_rate_percent=_rate(record, "growthRatePercent", "growthRate", "inflationRate"),
        monthly_amount=monthly,
        pension_type=str(_lookup(record, ("pensionType", "type")) or "national"),
        start_age=start_age if start_age is not None else start - birth_year,
        end_age=end_age if end_age is not None else end - birth_year,
        current_balance=balance,
        return_rate_percent=_rate(record, "returnRatePercent", "returnRate"),
        contribution_annual=contribution,
        contribution_start_year=contribution_start if contribution else None,
        contribution_end_year=contribution_end if contribution else None,
    )


def _yield_from_income(record: Mapping[str, Any], value: float, factor: float, *keys: str) -> float:
    monthly = _amount(record, *keys)
    if monthly is None or value <= 0:
        return 0.0
    return monthly * factor * 12.0 / value * 100.0


def _build_real_estate(record, record_id, ctx):
    factor = _unit_factor(record)
    value = _required_amount(record, "currentValue", "value", "amount") * factor
    start, end = _span(record, ctx)
    is_rental = _flag(record, "isRental", "hasRentalIncome")
    rental_yield = _rate(record, "rentalYieldPercent", "rentalYield", default=float("nan"), minimum=0.0)
    if math.isnan(rental_yield):
        rental_yield = _yield_from_income(record, value, factor, "monthlyRentalIncome", "rentalIncome")
    housing_monthly = (_amount(record, "housingPensionMonthly", "monthlyPensionAmount") or 0.0) * factor
    return RealEstateInstrument(
        **_common(record, record_id, "부동산"),
        start_year=start,
        end_year=end,
        base_amount_annual=value,
        growth_rate_percent=_rate(record, "appreciationRatePercent", "appreciationRate", "growthRate"),
        current_value=value,
        appreciation_rate_percent=_rate(record, "appreciationRatePercent", "appreciationRate", "growthRate"),
        is_rental=is_rental,
        rental_yield_percent=rental_yield if is_rental else 0.0,
        rental_start_year=_year(record, "rentalIncomeStartYear", "rentalStartYear"),
        rental_end_year=_year(record, "rentalIncomeEndYear", "rentalEndYear"),
        is_purchase=_flag(record, "isPurchase"),
        liquidate_at_end_year=_flag(record, "liquidateAtEndYear", "liquidate_at_end_year", default=_has(record, "endYear", "end_year")),
        housing_pension_monthly=housing_monthly,
        housing_pension_start_year=_year(record, "housingPensionStartYear", "pensionStartYear"),
    )


def _asset_income_yield(record: Mapping[str, Any], value: float, factor: float, fraction: bool) -> float:
    if _has(record, "incomeYieldPercent", "incomeYield"):
        return _rate(record, "incomeYieldPercent", "incomeYield", minimum=0.0)
    if fraction:
        if str(record.get("assetType") or "").strip().lower() != "income":
            return 0.0
        return _rate(record, "incomeRate", minimum=0.0, scale=100.0)
    return _yield_from_income(record, value, factor, "monthlyIncome")


def _build_asset(record, record_id, ctx):
    factor = _unit_factor(record)
    value = _required_amount(record, "currentValue", "value", "amount") * factor
    fraction = _app_record(record, "asset")
    start, end = _span(record, ctx)
    return AssetInstrument(
        **_common(record, record_id, "자산"),
        start_year=start,
        end_year=end,
        base_amount_annual=value,
        growth_rate_percent=_percent(record, ("growthRatePercent",), ("growthRate", "rate"), fraction=fraction),
        current_value=value,
        income_yield_percent=_asset_income_yield(record, value, factor, fraction),
        is_purchase=_flag(record, "isPurchase"),
        liquidate_at_end_year=_flag(record, "liquidateAtEndYear", "liquidate_at_end_year", default=_has(record, "endYear", "end_year")),
    )


def _build_debt(record, record_id, ctx):
    factor = _unit_factor(record)
    principal = _required_amount(record, "principal", "principalAmount", "debtAmount", "amount") * factor
    rate = _percent(
        record,
        ("interestRatePercent",),
        ("interestRate", "rate"),
        fraction=_app_record(record, "debt"),
        minimum=0.0,
    )
    start = _year(record, "startYear", "start_year", default=ctx.current_year)
    end = _year(record, "maturityYear", "endYear", "end_year")
    if end is None:
        term = _year(record, "termYears", "term_years")
        if term is None:
            raise _SkipRecord(MISSING_MATURITY)
        end = start + term - 1
    if start > end:
        raise _SkipRecord(INVERTED_RANGE)

    raw_type = str(_lookup(record, ("repaymentType", "debtType", "repayment_type")) or "bullet").strip().lower()
    repayment = REPAYMENT_ALIASES.get(raw_type)
    if repayment is None:
        raise _SkipRecord(UNKNOWN_REPAYMENT_TYPE)
    return DebtInstrument(
        **_common(record, record_id, "부채"),
        start_year=start,
        end_year=end,
        base_amount_annual=principal,
        growth_rate_percent=0.0,
        principal=principal,
        interest_rate_percent=rate,
        repayment_type=repayment,
        grace_years=max(0, _year(record, "graceYears", "gracePeriod", default=0)),
        is_new_loan=_flag(record, "isNewLoan", "addCashToFlow", default=start > ctx.current_year),
    )


BUILDERS: Dict[str, Callable[[Mapping[str, Any], str, _Context], Instrument]] = {
    "income": _build_income,
    "expense": _build_expense,
    "saving": _build_saving,
    "pension": _build_pension,
    "realEstate": _build_real_estate,
    "asset": _build_asset,
    "debt": _build_debt,
}


def _records(rows: Any) -> List[dict[str, Any]]:
    if rows is None:
        return []
    if isinstance(rows, pd.DataFrame):
        clean = rows.astype(object).where(pd.notna(rows), None)
        return clean.to_dict("records")
    if isinstance(rows, Mapping):
        return [dict(rows)]
    if isinstance(rows, (str, bytes, int, float, bool)):
        return [{"value": rows}]
    return [dict(row) if isinstance(row, Mapping) else {"value": row} for row in rows]


def unique_ids(instruments: Iterable[Instrument]) -> List[Instrument]:
    """Renames instruments whose id is already taken (``<id>-2``, ``<id>-3``...).

    Schedules, categories and result line items are keyed by id, so two
    instruments must never share one.
    """
    taken: set[str] = set()
    result: List[Instrument] = []
    for inst in instruments:
        new_id = inst.id
        suffix = 2
        while new_id in taken:
            new_id = f"{inst.id}-{suffix}"
            suffix += 1
        if new_id != inst.id:
            logger.warning("Duplicate instrument id %r for %r; using %r", inst.id, inst.title, new_id)
            inst = replace(inst, id=new_id)
        taken.add(new_id)
        result.append(inst)
    return result


def normalize(
    raw_records: Mapping[str, Any],
    profile: Profile,
    current_year: int,
    config: SimulationConfig | None = None,
) -> NormalizationResult:
    """Validate and canonicalize raw records into instruments.

    Malformed records end up in ``result.skipped`` with a reason code; they are
    never fatal. Instrument ids are unique across all collections.
    """
    ctx = _Context(profile=profile, current_year=current_year, config=config or SimulationConfig())
    result = NormalizationResult()

    for collection, rows in (raw_records or {}).items():
        if collection == "profile":
            continue
        kind = COLLECTION_KINDS.get(collection)
        records = _records(rows)
        if kind is None:
            for record in records:
                result.skipped.append(SkippedRecord(collection, record, UNKNOWN_COLLECTION))
            logger.warning("Skipping %d record(s) from unknown collection %r", len(records), collection)
            continue

        builder = BUILDERS[kind]
        for index, record in enumerate(records):
            try:
                result.valid.append(builder(record, f"{collection}-{index}", ctx))
            except _SkipRecord as exc:
                result.skipped.append(SkippedRecord(collection, record, exc.reason))
                logger.warning(
                    "Skipped %s record %r: %s",
                    collection,
                    record.get("title") or record.get("id") or index,
                    exc.reason,
                )

    result.valid = unique_ids(result.valid)
    logger.debug("Normalized %d instrument(s), skipped %d", len(result.valid), len(result.skipped))
    return result
