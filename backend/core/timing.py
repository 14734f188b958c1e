"""Resolve symbolic timing anchors to concrete ages."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from backend.models import Profile, Timing, TimingKind


def age_on(date_of_birth: date, on: date) -> int:
    """Whole years between a birth date and ``on``."""
    age = on.year - date_of_birth.year
    if (on.month, on.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def current_age(profile: Profile, as_of: date) -> Optional[int]:
    """Explicit current age wins; otherwise derive it from the birth date."""
    if profile.current_age is not None:
        return profile.current_age
    if profile.date_of_birth is not None:
        return age_on(profile.date_of_birth, as_of)
    return None


@dataclass(frozen=True)
class AgeAnchors:
    """The ages a timing can refer to, fixed for one projection run."""

    as_of: date
    current_age: int
    retirement_age: int
    death_age: int
    date_of_birth: Optional[date] = None

    @property
    def current_year(self) -> int:
        return self.as_of.year

    def year_at(self, age: int) -> int:
        return self.current_year + (age - self.current_age)

    def resolve(self, timing: Optional[Timing]) -> Optional[int]:
        """Age at which ``timing`` falls, or None when it cannot be resolved."""
        if timing is None:
            return None

        if timing.kind == TimingKind.RETIREMENT:
            return self.retirement_age
        if timing.kind == TimingKind.DEATH:
            return self.death_age
        if timing.kind == TimingKind.AGE:
            return timing.value
        if timing.kind == TimingKind.CALENDAR_YEAR:
            if timing.value is None:
                return None
            return self.current_age + (timing.value - self.current_year)

        # TimingKind.DATE
        if timing.on_date is None:
            return None
        if self.date_of_birth is not None:
            return age_on(self.date_of_birth, timing.on_date)
        return self.current_age + (timing.on_date.year - self.current_year)
