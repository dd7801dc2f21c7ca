"""Simulation settings.

Everything the engine would otherwise read from the environment or the wall
clock lives here, so a run is fully determined by (profile, records, year,
config). ``config_from_env()`` mirrors the env-flag style used elsewhere in
the backend; see the docstring for the variables it understands.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .data_model import DEFAULT_LIFE_EXPECTANCY

logger = logging.getLogger(__name__)

FREQUENCY_OPTIONS = ["daily", "monthly", "quarterly", "yearly", "once"]


@dataclass(frozen=True)
class SimulationConfig:
    life_expectancy: int = DEFAULT_LIFE_EXPECTANCY
    # liquid cash compounds at this rate; 0 keeps it a plain running total
    cash_return_rate_percent: float = 0.0
    breakdown_tolerance: float = 0.01
    default_frequency: str = "monthly"


def _env_number(name: str, default: float, cast=float):
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring %s=%r (not a number); using %s", name, raw, default)
        return default


def config_from_env() -> SimulationConfig:
    """Creates a SimulationConfig from env vars.

    Env vars:
      RETIREPLAN_LIFE_EXPECTANCY=90        -> last simulated age
      RETIREPLAN_CASH_RETURN_RATE=0        -> annual % applied to liquid cash
      RETIREPLAN_DEFAULT_FREQUENCY=monthly -> frequency for records without one
    """
    frequency = str(os.getenv("RETIREPLAN_DEFAULT_FREQUENCY", "monthly")).strip().lower()
    if frequency not in FREQUENCY_OPTIONS:
        logger.warning("Unknown RETIREPLAN_DEFAULT_FREQUENCY=%r; using monthly", frequency)
        frequency = "monthly"
    return SimulationConfig(
        life_expectancy=_env_number("RETIREPLAN_LIFE_EXPECTANCY", DEFAULT_LIFE_EXPECTANCY, int),
        cash_return_rate_percent=_env_number("RETIREPLAN_CASH_RETURN_RATE", 0.0),
        default_frequency=frequency,
    )
