"""Request/response contracts for projection endpoints."""

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.config import MAX_HORIZON_AGE
from backend.core.comparison import ComparisonRow
from backend.core.projection import AccountColumnRow, ProjectionResult
from backend.core.summary import PlanSummary
from backend.core.withdrawals import WithdrawalPolicy
from backend.models import (
    Account,
    Contribution,
    Expense,
    Goal,
    Income,
    Profile,
    ProjectionInputs,
)


class ProjectionRequest(BaseModel):
    """Everything the frontend sends to project one scenario.

    ``withdrawal_policy`` is required: the caller decides between ordered
    and proportional drawdown.
    """

    model_config = ConfigDict(extra="forbid")

    accounts: List[Account] = Field(default_factory=list)
    contributions: List[Contribution] = Field(default_factory=list)
    expenses: List[Expense] = Field(default_factory=list)
    incomes: List[Income] = Field(default_factory=list)
    goals: List[Goal] = Field(default_factory=list)
    profile: Profile
    withdrawal_policy: WithdrawalPolicy
    as_of: Optional[date] = Field(default=None, description="Defaults to today.")
    retirement_age: Optional[int] = Field(default=None, ge=0, le=MAX_HORIZON_AGE)
    horizon_age: Optional[int] = Field(default=None, ge=0, le=MAX_HORIZON_AGE)

    def to_inputs(self, today: date) -> ProjectionInputs:
        return ProjectionInputs(
            accounts=self.accounts,
            contributions=self.contributions,
            expenses=self.expenses,
            incomes=self.incomes,
            goals=self.goals,
            profile=self.profile,
            withdrawal_policy=self.withdrawal_policy,
            as_of=self.as_of or today,
            retirement_age=self.retirement_age,
            horizon_age=self.horizon_age,
        )


class ProjectionResponse(BaseModel):
    projection: ProjectionResult
    summary: PlanSummary


class AccountColumnResponse(BaseModel):
    account_id: str
    rows: List[AccountColumnRow]


class ComparisonRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    current: ProjectionRequest
    proposed: ProjectionRequest


class ComparisonResponse(BaseModel):
    rows: List[ComparisonRow]
    current_summary: PlanSummary
    proposed_summary: PlanSummary
    current: ProjectionResult
    proposed: ProjectionResult


class AllocationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total_need: float = Field(..., ge=0)
    balances: Dict[str, float]
    policy: WithdrawalPolicy


class AllocationResponse(BaseModel):
    requested: float
    withdrawals: Dict[str, float]
    total: float
    shortfall: float
