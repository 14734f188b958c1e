from __future__ import annotations

import pytest

from backend.core.comparison import compare_projections
from backend.core.projection import run_projection
from backend.domain.plan import PlanValidationError
from backend.tests.factories import make_inputs


def scenario(monthly_saving: float, horizon_age: int = 45):
    return make_inputs(
        accounts=[{"id": "a", "balance": 10000, "growth_rate": 0.05}],
        contributions=[{"amount": monthly_saving, "destination_account_id": "a"}],
        current_age=40,
        horizon_age=horizon_age,
    )


def test_rows_line_up_by_age():
    comparison = compare_projections(scenario(100), scenario(400))

    assert [row.age for row in comparison.rows] == [40, 41, 42, 43, 44, 45]
    assert comparison.rows[0].difference == 0
    for row in comparison.rows[1:]:
        assert row.proposed_value > row.current_value
        assert row.difference == row.proposed_value - row.current_value


def test_scenarios_run_independently():
    current = scenario(100)
    comparison = compare_projections(current, scenario(400))
    alone = compare_projections(current, current)

    assert comparison.current.model_dump() == alone.current.model_dump()
    assert all(row.difference == 0 for row in alone.rows)


def test_mismatched_ages_are_rejected():
    with pytest.raises(PlanValidationError, match="same ages"):
        compare_projections(scenario(100), scenario(100, horizon_age=50))


def test_custom_runner_is_used():
    calls = []

    def runner(inputs):
        calls.append(inputs.fingerprint())
        return run_projection(inputs)

    compare_projections(scenario(100), scenario(200), run=runner)
    assert len(calls) == 2
