from __future__ import annotations

from math import isclose

import pytest

from backend.core.growth import growth_schedule, monthly_rate, project_account


def test_zero_rate_is_start_plus_contributions():
    assert project_account(1000, 0.0, 250, 24) == 1000 + 250 * 24


def test_no_elapsed_months_returns_start():
    assert project_account(5000, 0.07, 500, 0) == 5000
    assert project_account(5000, 0.07, 500, -3) == 5000


def test_simple_accumulation_one_year():
    """10k at 7% with 500/month lands near 16.9k after twelve months."""
    balance = project_account(10000, 0.07, 500, 12)

    factor = (1 + 0.07 / 12) ** 12
    expected = 10000 * factor + 500 * (factor - 1) / (0.07 / 12)
    assert isclose(balance, expected, rel_tol=1e-12)
    assert balance == pytest.approx(16919.19, abs=0.5)


def test_monthly_rate_is_simple_division():
    # annual/12, so a year of compounding overshoots the nominal rate
    assert isclose(monthly_rate(0.12), 0.01)
    assert project_account(100, 0.12, 0, 12) > 112


def test_growth_schedule_chains_years():
    balances = growth_schedule(1000, 0.05, 0, 3)
    assert len(balances) == 4
    assert balances[0] == 1000
    assert isclose(balances[3], project_account(1000, 0.05, 0, 36), rel_tol=1e-12)


def test_negative_rate_shrinks_balance():
    assert project_account(1000, -0.1, 0, 12) < 1000
