from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from backend.config import MAX_HORIZON_AGE
from backend.core.frequency import annual_equivalent, monthly_equivalent
from backend.core.goals import amount_per_occurrence, occurrence_ages
from backend.core.timing import AgeAnchors, current_age
from backend.core.withdrawals import UnlistedAccounts, WithdrawalPolicy
from backend.domain.goal_templates import get_goal_template
from backend.models import Goal, Income, ProjectionInputs, Timing, TimingKind


class PlanValidationError(ValueError):
    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass
class Interval:
    """Half-open age window [start, end)."""

    start: int
    end: int
    row: object


@dataclass
class PreparedAccount:
    id: str
    name: str
    balance: float
    growth_rate: float


@dataclass
class PreparedContribution:
    name: str
    monthly_amount: float
    account_id: Optional[str]  # None => spread across accounts by balance
    end_age: int  # exclusive


@dataclass
class PreparedExpense:
    name: str
    annual_amount: float
    growth_rate: float

    def annual_at(self, years_from_now: int) -> float:
        return self.annual_amount * (1 + self.growth_rate) ** years_from_now


@dataclass
class PreparedGoal:
    goal: Goal
    ages: List[int]
    amount: float


@dataclass
class PreparedPlan:
    anchors: AgeAnchors
    horizon_age: int
    accounts: List[PreparedAccount]
    contributions: List[PreparedContribution]
    expenses: List[PreparedExpense]
    incomes: List[Interval]
    goals: List[PreparedGoal]
    policy: WithdrawalPolicy

    @property
    def current_age(self) -> int:
        return self.anchors.current_age

    @property
    def retirement_age(self) -> int:
        return self.anchors.retirement_age

    def goals_at(self, age: int) -> List[PreparedGoal]:
        return [goal for goal in self.goals if age in goal.ages]


@dataclass
class PreparationResult:
    plan: Optional[PreparedPlan]
    errors: List[str]
    warnings: List[str] = field(default_factory=list)


def active_rows(intervals: Sequence[Interval], age: int) -> List[object]:
    return [interval.row for interval in intervals if interval.start <= age < interval.end]


def policy_from_goals(goals: Sequence[Goal]) -> WithdrawalPolicy:
    """The product default: the retirement goal's order, else proportional."""
    for goal in goals:
        if goal.is_retirement and goal.withdrawal_order:
            return WithdrawalPolicy.ordered(goal.withdrawal_order)
    return WithdrawalPolicy.proportional()


def _income_interval(income: Income, anchors: AgeAnchors, horizon: int) -> Interval:
    start = anchors.resolve(income.start)
    if start is None:
        start = anchors.current_age
    end = anchors.resolve(income.end)
    if end is None:
        # earned income stops at retirement; income that begins then keeps going
        end = anchors.retirement_age if start < anchors.retirement_age else horizon + 1
    annual = annual_equivalent(income.amount, income.frequency)
    return Interval(start=start, end=end, row=annual)


def _fill_goal_defaults(goal: Goal, anchors: AgeAnchors, warnings: List[str]) -> Goal:
    """Fill a missing amount or timing from the goal type's template."""
    template = get_goal_template(goal.goal_type)
    updates = {}
    if goal.target_amount is None:
        updates["target_amount"] = template.default_amount if template else 0.0
        warnings.append(f"goal '{goal.name}' has no target amount; using {updates['target_amount']:.0f}")
    if goal.timing is None and goal.recurrence is None and template is not None:
        age = anchors.current_age + template.suggested_timeline
        updates["timing"] = Timing(kind=TimingKind.AGE, value=age)
        warnings.append(f"goal '{goal.name}' has no timing; using age {age}")
    return goal.model_copy(update=updates) if updates else goal


def prepare_plan(inputs: ProjectionInputs) -> PreparationResult:
    errors: List[str] = []
    warnings: List[str] = []
    profile = inputs.profile

    age_now = current_age(profile, inputs.as_of)
    if age_now is None:
        errors.append("profile requires current_age or date_of_birth")
        return PreparationResult(plan=None, errors=errors, warnings=warnings)

    retirement_age = inputs.retirement_age if inputs.retirement_age is not None else profile.retirement_age
    death_age = profile.death_age
    if inputs.horizon_age is not None:
        horizon = min(inputs.horizon_age, MAX_HORIZON_AGE)
        if horizon < age_now:
            errors.append(f"horizon age {horizon} is before current age {age_now}")
    else:
        if death_age < age_now:
            warnings.append(f"death age {death_age} is before current age {age_now}; projecting age {age_now} only")
            death_age = age_now
        horizon = min(death_age, MAX_HORIZON_AGE)
    if retirement_age > horizon:
        warnings.append(f"retirement age {retirement_age} is after the horizon {horizon}; no retirement years projected")

    anchors = AgeAnchors(
        as_of=inputs.as_of,
        current_age=age_now,
        retirement_age=retirement_age,
        death_age=death_age,
        date_of_birth=profile.date_of_birth,
    )

    # ---------- Accounts ----------
    accounts: List[PreparedAccount] = []
    seen: Dict[str, int] = {}
    for account in inputs.accounts:
        if account.id in seen:
            errors.append(f"duplicate account id {account.id}")
            continue
        seen[account.id] = len(accounts)
        accounts.append(
            PreparedAccount(
                id=account.id,
                name=account.name or account.id,
                balance=account.balance,
                growth_rate=account.growth_rate,
            )
        )

    if errors:
        return PreparationResult(plan=None, errors=errors, warnings=warnings)

    # ---------- Withdrawal policy ----------
    policy = inputs.withdrawal_policy
    unknown = [account_id for account_id in policy.order if account_id not in seen]
    if unknown:
        warnings.append(f"withdrawal order names unknown accounts: {', '.join(unknown)}")
    excluded = policy.excluded_accounts(list(seen))
    if excluded and policy.unlisted == UnlistedAccounts.EXCLUDE:
        warnings.append(f"accounts not in the withdrawal order are never drawn: {', '.join(excluded)}")

    # ---------- Goals ----------
    goals: List[PreparedGoal] = []
    first_age_by_goal: Dict[str, int] = {}
    for goal in inputs.goals:
        if goal.is_retirement:
            continue
        goal = _fill_goal_defaults(goal, anchors, warnings)
        ages = occurrence_ages(goal, anchors)
        if not ages:
            warnings.append(f"goal '{goal.name}' has no resolvable timing; skipped")
            continue
        in_range = [age for age in ages if age_now <= age <= horizon]
        if len(in_range) < len(ages):
            warnings.append(f"goal '{goal.name}' has occurrences outside ages {age_now}-{horizon}")
        if goal.source_account_id is not None and goal.source_account_id not in seen:
            warnings.append(
                f"goal '{goal.name}' names unknown account {goal.source_account_id}; using withdrawal policy"
            )
        if goal.id is not None:
            first_age_by_goal[goal.id] = ages[0]
        goals.append(PreparedGoal(goal=goal, ages=in_range, amount=amount_per_occurrence(goal)))

    # ---------- Contributions ----------
    contributions: List[PreparedContribution] = []
    for contribution in inputs.contributions:
        account_id = contribution.destination_account_id
        if account_id is not None and account_id not in seen:
            warnings.append(
                f"contribution '{contribution.name}' targets unknown account {account_id}; spreading across accounts"
            )
            account_id = None
        end_age = retirement_age
        if contribution.goal_id is not None and contribution.goal_id in first_age_by_goal:
            end_age = min(end_age, first_age_by_goal[contribution.goal_id])
        contributions.append(
            PreparedContribution(
                name=contribution.name,
                monthly_amount=monthly_equivalent(contribution.amount, contribution.frequency),
                account_id=account_id,
                end_age=end_age,
            )
        )

    # ---------- Expenses & income ----------
    expenses = [
        PreparedExpense(
            name=expense.name,
            annual_amount=annual_equivalent(expense.amount, expense.frequency),
            growth_rate=expense.growth_rate,
        )
        for expense in inputs.expenses
    ]
    incomes = [_income_interval(income, anchors, horizon) for income in inputs.incomes]

    prepared = PreparedPlan(
        anchors=anchors,
        horizon_age=horizon,
        accounts=accounts,
        contributions=contributions,
        expenses=expenses,
        incomes=incomes,
        goals=goals,
        policy=policy,
    )
    return PreparationResult(plan=prepared, errors=errors, warnings=warnings)
