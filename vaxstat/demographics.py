"""Population by single year of age."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping

from .models import AgeGroup


@dataclass(frozen=True)
class AgeDistribution:
    """Mapping age -> number of people of that age."""
    ages: Mapping[int, int]

    def __post_init__(self) -> None:
        object.__setattr__(self, "ages", dict(self.ages))

    def population(self) -> int:
        return sum(self.ages.values())

    def population_of(self, age_group: AgeGroup) -> int:
        return sum(count for age, count in self.ages.items() if age_group.includes(age))

