"""Overlay two independent projections ("current situation" vs. "proposed plan")."""

from __future__ import annotations

from typing import Callable, List

from pydantic import BaseModel

from backend.core.projection import ProjectionResult, run_projection
from backend.domain.plan import PlanValidationError
from backend.models import ProjectionInputs


class ComparisonRow(BaseModel):
    age: int
    year: int
    current_value: float
    proposed_value: float
    difference: float


class ComparisonResult(BaseModel):
    rows: List[ComparisonRow]
    current: ProjectionResult
    proposed: ProjectionResult


def overlay(current: ProjectionResult, proposed: ProjectionResult) -> List[ComparisonRow]:
    if current.ages() != proposed.ages():
        raise PlanValidationError(
            [
                "scenarios must cover the same ages: "
                f"{current.current_age}-{current.horizon_age} vs {proposed.current_age}-{proposed.horizon_age}"
            ]
        )

    return [
        ComparisonRow(
            age=mine.age,
            year=mine.year,
            current_value=mine.portfolio_value,
            proposed_value=theirs.portfolio_value,
            difference=theirs.portfolio_value - mine.portfolio_value,
        )
        for mine, theirs in zip(current.points, proposed.points)
    ]


def compare_projections(
    current: ProjectionInputs,
    proposed: ProjectionInputs,
    run: Callable[[ProjectionInputs], ProjectionResult] = run_projection,
) -> ComparisonResult:
    """Run both scenarios independently and line them up age by age."""
    current_result = run(current)
    proposed_result = run(proposed)
    return ComparisonResult(
        rows=overlay(current_result, proposed_result),
        current=current_result,
        proposed=proposed_result,
    )
