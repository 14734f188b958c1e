from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from backend.core.goals import AccountSeries, intercept_goal
from backend.core.growth import project_account
from backend.core.withdrawals import allocate
from backend.domain.plan import (
    PlanValidationError,
    PreparedPlan,
    active_rows,
    prepare_plan,
)
from backend.models import ProjectionInputs

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    ACCUMULATING = "accumulating"
    DECUMULATING = "decumulating"


class GoalWithdrawal(BaseModel):
    model_config = ConfigDict(frozen=True)

    goal_id: Optional[str]
    goal_name: str
    age: int
    requested: float
    withdrawn: float
    unmet: float
    withdrawals: Dict[str, float]


class ProjectionPoint(BaseModel):
    """State at one age.

    Balances are taken after the year of growth leading to ``age`` and after
    the withdrawals made at ``age``. Flow fields describe that same age:
    ``account_contributions`` were paid during the year leading to it,
    ``withdrawals`` and ``goal_withdrawals`` were taken at it.
    """

    model_config = ConfigDict(frozen=True)

    age: int
    year: int
    phase: Phase
    balances: Dict[str, float]
    portfolio_value: float
    net_worth: float
    annual_income: float
    annual_expenses: float
    contributions: float
    account_contributions: Dict[str, float]
    withdrawals: Dict[str, float]
    total_withdrawn: float
    goal_withdrawals: float
    shortfall: float
    cash_flow: float


class AccountColumnRow(BaseModel):
    age: int
    year: int
    balance: float


class ProjectionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    points: List[ProjectionPoint]
    current_age: int
    retirement_age: int
    horizon_age: int
    account_rates: Dict[str, float]
    fails_at_age: Optional[int] = None
    total_shortfall: float = 0.0
    goal_intercepts: List[GoalWithdrawal] = []
    warnings: List[str] = []
    fingerprint: str = ""

    @property
    def succeeded(self) -> bool:
        return self.fails_at_age is None

    def ages(self) -> List[int]:
        return [point.age for point in self.points]

    def point_at(self, age: int) -> Optional[ProjectionPoint]:
        for point in self.points:
            if point.age == age:
                return point
        return None

    def portfolio_series(self) -> List[Tuple[int, float]]:
        return [(point.age, point.portfolio_value) for point in self.points]

    def account_column(self, account_id: str) -> List[AccountColumnRow]:
        """One account's balances, for tables filtered to a single column."""
        if account_id not in self.account_rates:
            raise KeyError(account_id)
        return [
            AccountColumnRow(age=point.age, year=point.year, balance=point.balances[account_id])
            for point in self.points
        ]

    def account_series(self, account_id: str) -> AccountSeries:
        """One account's balances and flows, ready for what-if goal withdrawals."""
        if account_id not in self.account_rates:
            raise KeyError(account_id)
        goal_by_age: Dict[int, float] = {}
        for intercept in self.goal_intercepts:
            goal_by_age[intercept.age] = goal_by_age.get(intercept.age, 0.0) + intercept.withdrawals.get(account_id, 0.0)
        return AccountSeries(
            account_id=account_id,
            annual_rate=self.account_rates[account_id],
            ages=self.ages(),
            balances=[point.balances[account_id] for point in self.points],
            monthly_contributions=[point.account_contributions[account_id] / 12 for point in self.points],
            withdrawals=[point.withdrawals[account_id] for point in self.points],
            goal_withdrawals=[goal_by_age.get(point.age, 0.0) for point in self.points],
        )


def _monthly_contributions(plan: PreparedPlan, balances: Dict[str, float], age: int) -> Dict[str, float]:
    """Monthly amount paid into each account during the year starting at ``age``.

    Undirected contributions follow each account's share of the total balance,
    split evenly when every balance is zero.
    """
    monthly = {account_id: 0.0 for account_id in balances}
    undirected = 0.0
    for contribution in plan.contributions:
        if age >= contribution.end_age:
            continue
        if contribution.account_id is None:
            undirected += contribution.monthly_amount
        else:
            monthly[contribution.account_id] += contribution.monthly_amount

    if undirected and balances:
        total = sum(balances.values())
        for account_id, balance in balances.items():
            share = balance / total if total > 0 else 1.0 / len(balances)
            monthly[account_id] += undirected * share
    return monthly


def run_projection(inputs: ProjectionInputs) -> ProjectionResult:
    """
    Simulate the plan age by age from the current age to the horizon.

    Per age:
      1) Grow each account for the year leading to this age: with its
         contributions while that year began before retirement, without
         contributions afterwards.
      2) From retirement age on, withdraw this age's need
         (expenses less income) using the withdrawal policy.
      3) Take goal withdrawals timed at this age.
      4) Record the point.

    Shortfalls are recorded, never turned into negative balances; the first
    one sets ``fails_at_age``.
    """
    preparation = prepare_plan(inputs)
    if preparation.errors or not preparation.plan:
        raise PlanValidationError(preparation.errors)

    plan = preparation.plan
    warnings = list(preparation.warnings)
    balances: Dict[str, float] = {account.id: account.balance for account in plan.accounts}
    rates: Dict[str, float] = {account.id: account.growth_rate for account in plan.accounts}

    if not balances and plan.contributions:
        warnings.append("contributions ignored: there are no accounts to receive them")

    points: List[ProjectionPoint] = []
    intercepts: List[GoalWithdrawal] = []
    fails_at_age: Optional[int] = None
    total_shortfall = 0.0

    for age in range(plan.current_age, plan.horizon_age + 1):
        paid_in = {account_id: 0.0 for account_id in balances}

        # ---------- Growth into this age ----------
        if age > plan.current_age:
            prior = age - 1
            if prior < plan.retirement_age:
                monthly = _monthly_contributions(plan, balances, prior)
            else:
                monthly = {account_id: 0.0 for account_id in balances}
            for account_id in balances:
                balances[account_id] = project_account(balances[account_id], rates[account_id], monthly[account_id], 12)
                paid_in[account_id] = monthly[account_id] * 12

        phase = Phase.ACCUMULATING if age < plan.retirement_age else Phase.DECUMULATING
        years_from_now = age - plan.current_age
        income = sum(active_rows(plan.incomes, age))
        expenses = sum(expense.annual_at(years_from_now) for expense in plan.expenses)

        # ---------- Retirement withdrawals ----------
        withdrawals = {account_id: 0.0 for account_id in balances}
        shortfall = 0.0
        if phase == Phase.DECUMULATING:
            need = max(0.0, expenses - income)
            allocation = allocate(need, balances, plan.policy)
            allocation.apply(balances)
            withdrawals = allocation.withdrawals
            shortfall = allocation.shortfall
            if shortfall > 0:
                total_shortfall += shortfall
                if fails_at_age is None:
                    fails_at_age = age
                    logger.info("plan fails at age %s: short %.2f", age, shortfall)

        # ---------- Goals ----------
        goal_total = 0.0
        for prepared in plan.goals_at(age):
            intercept = intercept_goal(balances, prepared.goal, age, prepared.amount, plan.policy)
            goal_total += intercept.withdrawn
            if intercept.unmet > 0:
                warnings.append(f"goal '{prepared.goal.name}' at age {age} underfunded by {intercept.unmet:.2f}")
            intercepts.append(
                GoalWithdrawal(
                    goal_id=intercept.goal_id,
                    goal_name=intercept.goal_name,
                    age=age,
                    requested=intercept.requested,
                    withdrawn=intercept.withdrawn,
                    unmet=intercept.unmet,
                    withdrawals=intercept.withdrawals,
                )
            )

        portfolio_value = sum(balances.values())
        total_withdrawn = sum(withdrawals.values())
        if phase == Phase.ACCUMULATING:
            cash_flow = income - expenses
        else:
            cash_flow = income + total_withdrawn - expenses

        points.append(
            ProjectionPoint(
                age=age,
                year=plan.anchors.year_at(age),
                phase=phase,
                balances=dict(balances),
                portfolio_value=portfolio_value,
                net_worth=portfolio_value,
                annual_income=income,
                annual_expenses=expenses,
                contributions=sum(paid_in.values()),
                account_contributions=paid_in,
                withdrawals=withdrawals,
                total_withdrawn=total_withdrawn,
                goal_withdrawals=goal_total,
                shortfall=shortfall,
                cash_flow=cash_flow,
            )
        )

    if fails_at_age is not None:
        warnings.append(f"plan fails at age {fails_at_age}: total shortfall {total_shortfall:.2f}")

    logger.debug(
        "projected ages %s-%s for %d accounts", plan.current_age, plan.horizon_age, len(balances)
    )
    return ProjectionResult(
        points=points,
        current_age=plan.current_age,
        retirement_age=plan.retirement_age,
        horizon_age=plan.horizon_age,
        account_rates=rates,
        fails_at_age=fails_at_age,
        total_shortfall=total_shortfall,
        goal_intercepts=intercepts,
        warnings=warnings,
        fingerprint=inputs.fingerprint(),
    )
