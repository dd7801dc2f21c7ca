from .instruments import (
    REPAYMENT_TYPES,
    AssetInstrument,
    BalanceSheetInstrument,
    CashFlowInstrument,
    DebtInstrument,
    ExpenseInstrument,
    Holding,
    IncomeInstrument,
    Instrument,
    PensionInstrument,
    RealEstateInstrument,
    SavingInstrument,
    is_balance_sheet_instrument,
    is_cash_flow_instrument,
)
from .profile import DEFAULT_LIFE_EXPECTANCY, Profile, profile_from_record
from .results import (
    AssetYearEntry,
    CashFlowYearEntry,
    CategorizedAmount,
    SimulationResult,
    SkippedRecord,
    SourceType,
)

__all__ = [
    "DEFAULT_LIFE_EXPECTANCY",
    "REPAYMENT_TYPES",
    "AssetInstrument",
    "AssetYearEntry",
    "BalanceSheetInstrument",
    "CashFlowInstrument",
    "CashFlowYearEntry",
    "CategorizedAmount",
    "DebtInstrument",
    "ExpenseInstrument",
    "Holding",
    "IncomeInstrument",
    "Instrument",
    "PensionInstrument",
    "Profile",
    "RealEstateInstrument",
    "SavingInstrument",
    "SimulationResult",
    "SkippedRecord",
    "SourceType",
    "is_balance_sheet_instrument",
    "is_cash_flow_instrument",
    "profile_from_record",
]
