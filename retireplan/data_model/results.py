from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List


class SourceType(str, Enum):
    """Fixed reporting buckets for breakdown line items."""

    CASH = "cash"
    SAVING = "saving"
    PENSION = "pension"
    REAL_ESTATE = "realEstate"
    ASSET = "asset"
    DEBT = "debt"
    LIVING = "living"
    MEDICAL = "medical"
    FINANCING = "financing"
    OTHER = "other"


@dataclass(frozen=True)
class CategorizedAmount:
    label: str
    amount: float
    source_type: SourceType = SourceType.OTHER
    instrument_id: str | None = None
    role: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "amount": self.amount,
            "sourceType": self.source_type.value,
            "category": self.source_type.value,
            "instrumentId": self.instrument_id,
        }


def _total(items: List[CategorizedAmount]) -> float:
    return sum(item.amount for item in items)


@dataclass(frozen=True)
class CashFlowYearEntry:
    year: int
    age: int
    net_amount: float
    positives: List[CategorizedAmount] = field(default_factory=list)
    negatives: List[CategorizedAmount] = field(default_factory=list)

    @property
    def total_positive(self) -> float:
        return _total(self.positives)

    @property
    def total_negative(self) -> float:
        return _total(self.negatives)

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "age": self.age,
            "amount": self.net_amount,
            "netAmount": self.net_amount,
            "breakdown": {
                "positives": [item.to_dict() for item in self.positives],
                "negatives": [item.to_dict() for item in self.negatives],
            },
        }


@dataclass(frozen=True)
class AssetYearEntry:
    year: int
    age: int
    total_assets: float
    total_debt: float
    net_assets: float
    liquid_cash: float = 0.0
    asset_items: List[CategorizedAmount] = field(default_factory=list)
    debt_items: List[CategorizedAmount] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "age": self.age,
            "totalAssets": self.total_assets,
            "totalDebt": self.total_debt,
            "netAssets": self.net_assets,
            "liquidCash": self.liquid_cash,
            "breakdown": {
                "totalAssets": self.total_assets,
                "totalDebt": self.total_debt,
                "netAssets": self.net_assets,
                "assetItems": [item.to_dict() for item in self.asset_items],
                "debtItems": [item.to_dict() for item in self.debt_items],
            },
        }


@dataclass(frozen=True)
class SkippedRecord:
    collection: str
    record: dict[str, Any]
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"collection": self.collection, "record": self.record, "reason": self.reason}


@dataclass(frozen=True)
class SimulationResult:
    cashflow: List[CashFlowYearEntry]
    assets: List[AssetYearEntry]
    current_year: int
    skipped: List[SkippedRecord] = field(default_factory=list)

    @property
    def years(self) -> List[int]:
        return [entry.year for entry in self.cashflow]

    def asset_entry(self, year: int) -> AssetYearEntry | None:
        for entry in self.assets:
            if entry.year == year:
                return entry
        return None

    def cashflow_entry(self, year: int) -> CashFlowYearEntry | None:
        for entry in self.cashflow:
            if entry.year == year:
                return entry
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "cashflow": [entry.to_dict() for entry in self.cashflow],
            "assets": [entry.to_dict() for entry in self.assets],
            "skipped": [item.to_dict() for item in self.skipped],
        }
