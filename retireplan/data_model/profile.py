from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

DEFAULT_LIFE_EXPECTANCY = 90


@dataclass(frozen=True)
class Profile:
    birth_year: int
    retirement_age: int
    target_net_assets: float = 0.0
    has_spouse: bool = False
    spouse_birth_year: int | None = None
    spouse_retirement_age: int | None = None
    current_cash: float = 0.0
    name: str = ""

    def current_age(self, current_year: int) -> int:
        return current_year - self.birth_year

    def age_in(self, year: int) -> int:
        return year - self.birth_year

    @property
    def retirement_year(self) -> int:
        return self.birth_year + self.retirement_age

    def death_year(self, life_expectancy: int = DEFAULT_LIFE_EXPECTANCY) -> int:
        return self.birth_year + life_expectancy

    @property
    def spouse_retirement_year(self) -> int | None:
        if not self.has_spouse or self.spouse_birth_year is None or self.spouse_retirement_age is None:
            return None
        return self.spouse_birth_year + self.spouse_retirement_age


def _first(record: Mapping[str, Any], *keys: str, default=None):
    for key in keys:
        if key in record and record[key] not in (None, ""):
            return record[key]
    return default


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(value)


def _optional_int(value: Any) -> int | None:
    if value in (None, ""):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def profile_from_record(record: Mapping[str, Any], current_year: int) -> Profile:
    """Build a Profile from a persisted (camelCase) profile document.

    ``birthYear`` wins over ``currentAge``; the latter is only used to back out
    a birth year when the document predates the birth-year field.
    """
    birth_year = _optional_int(_first(record, "birthYear", "birth_year"))
    if birth_year is None:
        age = _optional_int(_first(record, "currentAge", "current_age", "currentKoreanAge"))
        if age is None:
            raise ValueError("Profile needs either birthYear or currentAge.")
        birth_year = current_year - age

    retirement_age = _optional_int(_first(record, "retirementAge", "retirement_age", default=65))
    has_spouse = _truthy(_first(record, "hasSpouse", "has_spouse", default=False))
    return Profile(
        birth_year=birth_year,
        retirement_age=retirement_age if retirement_age is not None else 65,
        target_net_assets=float(_first(record, "targetNetAssets", "targetAssets", "target_net_assets", default=0.0) or 0.0),
        has_spouse=has_spouse,
        spouse_birth_year=_optional_int(_first(record, "spouseBirthYear", "spouse_birth_year")) if has_spouse else None,
        spouse_retirement_age=_optional_int(_first(record, "spouseRetirementAge", "spouse_retirement_age")) if has_spouse else None,
        current_cash=float(_first(record, "currentCash", "current_cash", default=0.0) or 0.0),
        name=str(_first(record, "name", default="") or ""),
    )
