from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from ..config import SimulationConfig
from ..data_model import Profile


@dataclass(frozen=True)
class Horizon:
    """Inclusive year range of a run. ``end < start`` means an empty run."""

    start: int
    end: int

    @property
    def years(self) -> range:
        return range(self.start, self.end + 1)

    def __iter__(self) -> Iterator[int]:
        return iter(self.years)

    def __len__(self) -> int:
        return max(0, self.end - self.start + 1)

    def __contains__(self, year: object) -> bool:
        return isinstance(year, int) and self.start <= year <= self.end


def build_horizon(profile: Profile, current_year: int, config: SimulationConfig | None = None) -> Horizon:
    config = config or SimulationConfig()
    death_year = profile.death_year(config.life_expectancy)
    # past the life-expectancy year: empty, never negative-length
    return Horizon(start=current_year, end=max(death_year, current_year - 1))
