from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from ..config import SimulationConfig
from ..data_model import (
    AssetYearEntry,
    CashFlowYearEntry,
    Instrument,
    Profile,
    SimulationResult,
    SkippedRecord,
)
from .balance_sheet import build_schedules, project_assets
from .cashflow import project_cash_flow
from .categorizer import RuleBasedCategorizer
from .horizon import build_horizon
from .normalizer import normalize, unique_ids

logger = logging.getLogger(__name__)


def _check_breakdowns(
    cash_flow: Sequence[CashFlowYearEntry],
    assets: Sequence[AssetYearEntry],
    tolerance: float,
) -> None:
    for entry in cash_flow:
        gap = entry.net_amount - (entry.total_positive - entry.total_negative)
        if abs(gap) > tolerance:
            logger.warning("Cash-flow breakdown for %d is off by %.4f", entry.year, gap)
    for entry in assets:
        gap = entry.net_assets - (entry.total_assets - entry.total_debt)
        if abs(gap) > tolerance:
            logger.warning("Balance-sheet breakdown for %d is off by %.4f", entry.year, gap)


def simulate(
    profile: Profile,
    instruments: Sequence[Instrument],
    current_year: int,
    config: SimulationConfig | None = None,
    *,
    categorizer: RuleBasedCategorizer | None = None,
    skipped: Sequence[SkippedRecord] = (),
) -> SimulationResult:
    """Project already-normalized instruments over the profile's horizon."""
    config = config or SimulationConfig()
    instruments = unique_ids(instruments)
    categorizer = categorizer or RuleBasedCategorizer()
    horizon = build_horizon(profile, current_year, config)
    if len(horizon) == 0:
        logger.info("Profile is past life expectancy in %d; nothing to project", current_year)

    schedules = build_schedules(instruments, horizon)
    cash_flow = project_cash_flow(profile, instruments, horizon, config, schedules=schedules, categorizer=categorizer)
    assets = project_assets(profile, instruments, cash_flow, horizon, config, schedules=schedules, categorizer=categorizer)
    _check_breakdowns(cash_flow, assets, config.breakdown_tolerance)
    return SimulationResult(cashflow=cash_flow, assets=assets, current_year=current_year, skipped=list(skipped))


def run_simulation(
    profile: Profile,
    raw_records: Mapping[str, Any],
    current_year: int,
    config: SimulationConfig | None = None,
    *,
    categorizer: RuleBasedCategorizer | None = None,
) -> SimulationResult:
    """Normalize raw collections and run the full projection.

    ``current_year`` is always supplied by the caller so repeated runs over the
    same inputs return identical results.
    """
    config = config or SimulationConfig()
    normalized = normalize(raw_records, profile, current_year, config)
    result = simulate(
        profile,
        normalized.valid,
        current_year,
        config,
        categorizer=categorizer,
        skipped=normalized.skipped,
    )
    if result.assets:
        logger.info(
            "Simulated %d-%d for %d instrument(s) (%d skipped); final net assets %.1f",
            result.assets[0].year,
            result.assets[-1].year,
            len(normalized.valid),
            len(normalized.skipped),
            result.assets[-1].net_assets,
        )
    return result
