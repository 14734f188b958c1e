from __future__ import annotations

import math
from math import isclose

import pytest

from backend.core.growth import project_account
from backend.core.projection import Phase, run_projection
from backend.core.withdrawals import WithdrawalPolicy
from backend.tests.factories import make_inputs


def test_simple_accumulation_scenario():
    inputs = make_inputs(
        accounts=[{"id": "a", "balance": 10000, "growth_rate": 0.07}],
        contributions=[{"amount": 500, "frequency": "monthly", "destination_account_id": "a"}],
        current_age=30,
        horizon_age=31,
    )

    result = run_projection(inputs)

    assert result.ages() == [30, 31]
    assert result.point_at(30).portfolio_value == 10000
    assert result.point_at(31).balances["a"] == pytest.approx(16919.19, abs=0.5)
    assert isclose(result.point_at(31).contributions, 6000.0)


def test_ordered_depletion_scenario():
    inputs = make_inputs(
        accounts=[{"id": "A", "balance": 5000}, {"id": "B", "balance": 50000}],
        expenses=[{"amount": 8000, "frequency": "annual", "growth_rate": 0}],
        current_age=65,
        retirement_age=65,
        horizon_age=67,
        policy=WithdrawalPolicy.ordered(["A", "B"]),
    )

    result = run_projection(inputs)

    assert [point.balances for point in result.points] == [
        {"A": 0.0, "B": 47000.0},
        {"A": 0.0, "B": 39000.0},
        {"A": 0.0, "B": 31000.0},
    ]
    assert result.point_at(65).withdrawals == {"A": 5000.0, "B": 3000.0}
    assert result.succeeded


def test_insufficient_funds_records_shortfall():
    inputs = make_inputs(
        accounts=[{"id": "a", "balance": 1000}],
        expenses=[{"amount": 5000, "frequency": "annual", "growth_rate": 0}],
        current_age=70,
        retirement_age=70,
        horizon_age=71,
    )

    result = run_projection(inputs)
    first, second = result.points

    assert first.total_withdrawn == 1000
    assert first.shortfall == 4000
    assert first.portfolio_value == 0
    assert first.cash_flow == -4000
    assert second.shortfall == 5000
    assert result.fails_at_age == 70
    assert result.total_shortfall == 9000
    assert any("fails at age 70" in warning for warning in result.warnings)


def test_balances_never_go_negative():
    inputs = make_inputs(
        accounts=[{"id": "a", "balance": 20000, "growth_rate": 0.04}, {"id": "b", "balance": 5000}],
        expenses=[{"amount": 4000, "frequency": "monthly"}],
        goals=[{"name": "Roof", "target_amount": 15000, "timing": {"kind": "age", "value": 62}}],
        current_age=60,
        retirement_age=61,
        horizon_age=70,
    )

    result = run_projection(inputs)
    for point in result.points:
        assert all(balance >= 0 for balance in point.balances.values())
        need = max(0.0, point.annual_expenses - point.annual_income)
        if point.phase == Phase.DECUMULATING:
            assert isclose(point.total_withdrawn + point.shortfall, need, abs_tol=1e-6)
    assert not result.succeeded


def test_phase_switches_once_at_retirement():
    result = run_projection(make_inputs(accounts=[{"id": "a", "balance": 1}], current_age=60, retirement_age=63, horizon_age=66))

    phases = [point.phase for point in result.points]
    assert phases == [Phase.ACCUMULATING] * 3 + [Phase.DECUMULATING] * 4


def test_contributions_stop_after_retirement():
    inputs = make_inputs(
        accounts=[{"id": "a", "balance": 0}],
        contributions=[{"amount": 100, "destination_account_id": "a"}],
        current_age=60,
        retirement_age=62,
        horizon_age=64,
    )

    result = run_projection(inputs)
    assert [point.contributions for point in result.points] == [0.0, 1200.0, 1200.0, 0.0, 0.0]


def test_income_offsets_retirement_need():
    inputs = make_inputs(
        accounts=[{"id": "a", "balance": 100000}],
        incomes=[
            {"name": "Salary", "amount": 5000},
            {"name": "Pension", "amount": 1000, "start": {"kind": "retirement"}},
        ],
        expenses=[{"amount": 3000, "growth_rate": 0}],
        current_age=60,
        retirement_age=62,
        horizon_age=64,
    )

    result = run_projection(inputs)

    assert result.point_at(60).annual_income == 60000
    assert result.point_at(60).cash_flow == 24000
    at_retirement = result.point_at(62)
    assert at_retirement.annual_income == 12000
    assert at_retirement.total_withdrawn == 24000
    assert at_retirement.cash_flow == 0
    assert result.point_at(64).balances["a"] == 100000 - 3 * 24000


def test_undirected_contributions_follow_balance_share():
    inputs = make_inputs(
        accounts=[{"id": "a", "balance": 3000}, {"id": "b", "balance": 1000}],
        contributions=[{"amount": 400}],
        current_age=30,
        horizon_age=31,
    )

    point = run_projection(inputs).point_at(31)
    assert isclose(point.balances["a"], 6600.0)
    assert isclose(point.balances["b"], 2200.0)


def test_undirected_contributions_split_evenly_when_empty():
    inputs = make_inputs(
        accounts=[{"id": "a", "balance": 0}, {"id": "b", "balance": 0}],
        contributions=[{"amount": 100}],
        current_age=30,
        horizon_age=31,
    )

    point = run_projection(inputs).point_at(31)
    assert point.balances == {"a": 600.0, "b": 600.0}


def test_goal_linked_contribution_stops_at_goal_age():
    inputs = make_inputs(
        accounts=[{"id": "a", "balance": 0}],
        contributions=[{"amount": 100, "destination_account_id": "a", "goal_id": "g1"}],
        goals=[{"id": "g1", "name": "Home", "target_amount": 1000, "timing": {"kind": "age", "value": 33}, "source_account_id": "a"}],
        current_age=30,
        horizon_age=34,
    )

    result = run_projection(inputs)
    assert [point.contributions for point in result.points] == [0.0, 1200.0, 1200.0, 1200.0, 0.0]
    assert result.point_at(33).balances["a"] == 3600 - 1000
    assert result.goal_intercepts[0].withdrawn == 1000


def test_goal_intercept_draws_from_source_account():
    inputs = make_inputs(
        accounts=[{"id": "A", "balance": 10000}, {"id": "B", "balance": 10000}],
        goals=[{"name": "Wedding", "target_amount": 3000, "timing": {"kind": "age", "value": 41}, "source_account_id": "B"}],
        current_age=40,
        horizon_age=42,
    )

    result = run_projection(inputs)
    assert result.point_at(41).balances == {"A": 10000.0, "B": 7000.0}
    assert result.point_at(41).goal_withdrawals == 3000
    assert result.point_at(42).balances == {"A": 10000.0, "B": 7000.0}


def test_underfunded_goal_is_warned():
    inputs = make_inputs(
        accounts=[{"id": "A", "balance": 10000}, {"id": "B", "balance": 10000}],
        goals=[{"name": "Yacht", "target_amount": 15000, "timing": {"kind": "age", "value": 41}}],
        current_age=40,
        horizon_age=42,
        policy=WithdrawalPolicy.ordered(["A"]),
    )

    result = run_projection(inputs)
    intercept = result.goal_intercepts[0]
    assert intercept.withdrawn == 10000
    assert intercept.unmet == 5000
    assert result.point_at(41).balances == {"A": 0.0, "B": 10000.0}
    assert any("underfunded" in warning for warning in result.warnings)


def test_malformed_records_never_produce_nan():
    inputs = make_inputs(
        accounts=[{"id": "a", "value": "NaN", "growth_rate": "n/a"}, {"id": "b", "value": 1000, "growth_rate": 0.05}],
        contributions=[{"amount": None}, {"amount": "12,000", "frequency": "annually"}],
        expenses=[{"amount": "oops", "frequency": "bogus"}, {"amount": float("inf")}],
        incomes=[{"amount": float("nan")}],
        current_age=60,
        retirement_age=62,
        horizon_age=65,
    )

    result = run_projection(inputs)
    for point in result.points:
        values = [point.portfolio_value, point.cash_flow, point.annual_expenses, *point.balances.values()]
        assert not any(math.isnan(value) or math.isinf(value) for value in values)


def test_projection_is_idempotent():
    inputs = make_inputs(
        accounts=[{"id": "a", "balance": 5000, "growth_rate": 0.05}],
        contributions=[{"amount": 250}],
        expenses=[{"amount": 2000}],
        current_age=55,
        retirement_age=60,
        horizon_age=80,
    )

    first = run_projection(inputs)
    second = run_projection(inputs)
    assert first.model_dump() == second.model_dump()
    assert first.fingerprint == inputs.fingerprint()


def test_account_series_matches_points():
    inputs = make_inputs(
        accounts=[{"id": "a", "balance": 1000, "growth_rate": 0.05}],
        contributions=[{"amount": 50, "destination_account_id": "a"}],
        current_age=30,
        horizon_age=33,
    )

    result = run_projection(inputs)
    series = result.account_series("a")
    assert series.ages == [30, 31, 32, 33]
    assert isclose(series.balances[2], project_account(series.balances[1], 0.05, 50, 12), rel_tol=1e-12)
    assert [row.balance for row in result.account_column("a")] == series.balances

    with pytest.raises(KeyError):
        result.account_column("missing")
