"""Headline numbers for a projected plan."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from backend.core.frequency import normalize
from backend.core.projection import ProjectionResult
from backend.models import ProjectionInputs


class PlanSummary(BaseModel):
    monthly_income: float
    monthly_expenses: float
    monthly_savings: float
    savings_rate: float  # percent of monthly income
    total_assets: float
    years_to_retirement: int
    projected_retirement_savings: float
    assets_last_until_age: int
    fails_at_age: Optional[int] = None
    probability_of_success: int


def probability_of_success(
    monthly_income: float,
    monthly_expenses: float,
    monthly_savings: float,
    years_to_retirement: int,
    total_assets: float,
) -> int:
    """Rule-based 0-100 score of how likely the plan is to hold up.

    A heuristic over savings rate, time to retirement, assets relative to
    income and expense ratio, not a simulation of market outcomes.
    """
    if monthly_income <= 0:
        return 0

    probability = 50

    savings_rate = monthly_savings / monthly_income * 100
    if savings_rate >= 20:
        probability += 25
    elif savings_rate >= 15:
        probability += 15
    elif savings_rate >= 10:
        probability += 5
    elif savings_rate >= 5:
        probability -= 10
    else:
        probability -= 25

    if years_to_retirement >= 35:
        probability += 15
    elif years_to_retirement >= 25:
        probability += 10
    elif years_to_retirement >= 15:
        probability += 5
    elif years_to_retirement >= 10:
        probability -= 5
    else:
        probability -= 15

    assets_to_income = total_assets / (monthly_income * 12)
    if assets_to_income >= 3:
        probability += 10
    elif assets_to_income >= 1:
        probability += 5
    elif assets_to_income >= 0.5:
        probability += 2
    else:
        probability -= 5

    expense_ratio = monthly_expenses / monthly_income
    if expense_ratio <= 0.5:
        probability += 10
    elif expense_ratio <= 0.7:
        probability += 5
    elif expense_ratio <= 0.8:
        pass
    elif expense_ratio <= 0.9:
        probability -= 5
    else:
        probability -= 15

    return max(0, min(100, round(probability)))


def summarize_plan(inputs: ProjectionInputs, result: ProjectionResult) -> PlanSummary:
    first = result.points[0]
    monthly_income = first.annual_income / 12
    monthly_expenses = first.annual_expenses / 12
    monthly_savings = normalize(inputs.contributions)
    total_assets = sum(account.balance for account in inputs.accounts)
    years_to_retirement = max(0, result.retirement_age - result.current_age)

    at_retirement = result.point_at(result.retirement_age) or result.points[-1]
    if result.fails_at_age is not None:
        assets_last_until_age = result.fails_at_age - 1
    else:
        assets_last_until_age = result.horizon_age

    return PlanSummary(
        monthly_income=monthly_income,
        monthly_expenses=monthly_expenses,
        monthly_savings=monthly_savings,
        savings_rate=(monthly_savings / monthly_income * 100) if monthly_income > 0 else 0.0,
        total_assets=total_assets,
        years_to_retirement=years_to_retirement,
        projected_retirement_savings=at_retirement.portfolio_value,
        assets_last_until_age=assets_last_until_age,
        fails_at_age=result.fails_at_age,
        probability_of_success=probability_of_success(
            monthly_income,
            monthly_expenses,
            monthly_savings,
            years_to_retirement,
            total_assets,
        ),
    )
