from __future__ import annotations

from datetime import date

from backend.core.timing import AgeAnchors, age_on, current_age
from backend.models import Profile, Timing, TimingKind

ANCHORS = AgeAnchors(
    as_of=date(2025, 6, 1),
    current_age=40,
    retirement_age=65,
    death_age=90,
    date_of_birth=date(1985, 3, 15),
)


def test_age_on_counts_birthdays():
    assert age_on(date(1985, 3, 15), date(2025, 3, 14)) == 39
    assert age_on(date(1985, 3, 15), date(2025, 3, 15)) == 40


def test_current_age_prefers_explicit_age():
    profile = Profile(current_age=41, date_of_birth=date(1985, 3, 15))
    assert current_age(profile, date(2025, 6, 1)) == 41


def test_current_age_from_birth_date():
    profile = Profile(date_of_birth=date(1985, 3, 15))
    assert current_age(profile, date(2025, 6, 1)) == 40
    assert current_age(Profile(), date(2025, 6, 1)) is None


def test_resolve_life_anchors():
    assert ANCHORS.resolve(Timing(kind=TimingKind.RETIREMENT)) == 65
    assert ANCHORS.resolve(Timing(kind=TimingKind.DEATH)) == 90
    assert ANCHORS.resolve(Timing(kind=TimingKind.AGE, value=50)) == 50
    assert ANCHORS.resolve(None) is None


def test_resolve_calendar_year():
    assert ANCHORS.resolve(Timing(kind=TimingKind.CALENDAR_YEAR, value=2030)) == 45
    assert ANCHORS.resolve(Timing(kind=TimingKind.CALENDAR_YEAR)) is None


def test_resolve_date_uses_birth_date_when_known():
    timing = Timing.model_validate({"kind": "date", "date": "2030-01-01"})
    assert ANCHORS.resolve(timing) == 44

    no_birthday = AgeAnchors(as_of=date(2025, 6, 1), current_age=40, retirement_age=65, death_age=90)
    assert no_birthday.resolve(timing) == 45


def test_year_at():
    assert ANCHORS.year_at(40) == 2025
    assert ANCHORS.year_at(65) == 2050
