"""One-off and recurring goal withdrawals ("goal intercepts")."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, List, Optional

from backend.core.frequency import occurrences_per_year
from backend.core.growth import project_account
from backend.core.timing import AgeAnchors
from backend.core.withdrawals import WithdrawalPolicy, allocate
from backend.models import Goal, Profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GoalIntercept:
    goal_id: Optional[str]
    goal_name: str
    age: int
    requested: float
    withdrawals: Dict[str, float]

    @property
    def withdrawn(self) -> float:
        return sum(self.withdrawals.values())

    @property
    def unmet(self) -> float:
        return max(0.0, self.requested - self.withdrawn)


def occurrence_ages(goal: Goal, anchors: AgeAnchors) -> List[int]:
    """Every age at which ``goal`` draws money, in ascending order.

    Recurring goals run from their start through their end (inclusive),
    defaulting to the end of life when no end is given.
    """
    if goal.is_retirement:
        return []

    if goal.recurrence is not None:
        start = anchors.resolve(goal.recurrence.start)
        if start is None:
            return []
        end = anchors.resolve(goal.recurrence.end) if goal.recurrence.end else anchors.death_age
        if end is None:
            end = anchors.death_age
        return list(range(start, end + 1))

    age = anchors.resolve(goal.timing)
    return [] if age is None else [age]


def amount_per_occurrence(goal: Goal) -> float:
    """Amount drawn at each occurrence age.

    Projection steps are annual, so a monthly travel budget lands as twelve
    payments' worth once a year.
    """
    amount = goal.target_amount or 0.0
    if goal.recurrence is not None:
        return amount * occurrences_per_year(goal.recurrence.frequency)
    return amount


def intercept_goal(
    balances: Dict[str, float],
    goal: Goal,
    age: int,
    amount: float,
    policy: WithdrawalPolicy,
) -> GoalIntercept:
    """Withdraw ``amount`` for ``goal`` from ``balances`` in place.

    A goal naming a known source account draws only from that account;
    otherwise the withdrawal policy decides. Never takes more than is there.
    """
    source = goal.source_account_id
    if source is not None and source in balances:
        taken = min(amount, max(0.0, balances[source]))
        balances[source] -= taken
        withdrawals = {source: taken}
    else:
        allocation = allocate(amount, balances, policy)
        allocation.apply(balances)
        withdrawals = {k: v for k, v in allocation.withdrawals.items() if v > 0}

    intercept = GoalIntercept(
        goal_id=goal.id,
        goal_name=goal.name,
        age=age,
        requested=amount,
        withdrawals=withdrawals,
    )
    if intercept.unmet > 0:
        logger.debug("goal %s at age %s short by %.2f", goal.name, age, intercept.unmet)
    return intercept


@dataclass
class AccountSeries:
    """One account's balances over a projection.

    ``monthly_contributions[i]`` is what was paid in during the year leading
    to ``ages[i]``; ``withdrawals[i]`` and ``goal_withdrawals[i]`` were taken
    at ``ages[i]`` after that year's growth.
    """

    account_id: str
    annual_rate: float
    ages: List[int]
    balances: List[float]
    monthly_contributions: List[float] = field(default_factory=list)
    withdrawals: List[float] = field(default_factory=list)
    goal_withdrawals: List[float] = field(default_factory=list)

    def __post_init__(self) -> None:
        size = len(self.ages)
        if len(self.balances) != size:
            raise ValueError("ages and balances must be the same length")
        for name in ("monthly_contributions", "withdrawals", "goal_withdrawals"):
            values = list(getattr(self, name))
            setattr(self, name, values + [0.0] * (size - len(values)))

    def balance_at(self, age: int) -> float:
        return self.balances[self.ages.index(age)]


def apply_goal_withdrawal(
    series: AccountSeries,
    goal: Goal,
    profile: Profile,
    as_of: date,
    retirement_age: Optional[int] = None,
) -> AccountSeries:
    """Return a copy of ``series`` with ``goal`` withdrawn from it.

    At each occurrence the goal takes ``min(amount, balance)``; every later
    balance is re-derived by growing the reduced balance forward, so the
    withdrawal also removes the growth it would have earned.

    ``retirement_age`` overrides the profile's, as a projection override does.
    """
    if goal.source_account_id not in (None, series.account_id) or not series.ages:
        return series

    anchors = AgeAnchors(
        as_of=as_of,
        current_age=series.ages[0],
        retirement_age=profile.retirement_age if retirement_age is None else retirement_age,
        death_age=profile.death_age,
        date_of_birth=profile.date_of_birth,
    )
    hits = set(occurrence_ages(goal, anchors))
    indexes = [i for i, age in enumerate(series.ages) if age in hits]
    if not indexes:
        return series

    amount = amount_per_occurrence(goal)
    balances = list(series.balances)
    withdrawals = list(series.withdrawals)
    goal_withdrawals = list(series.goal_withdrawals)

    first = indexes[0]
    for i in range(first, len(balances)):
        if i > first:
            grown = project_account(
                balances[i - 1],
                series.annual_rate,
                series.monthly_contributions[i],
                12,
            )
            withdrawals[i] = min(withdrawals[i], max(0.0, grown))
            remaining = grown - withdrawals[i]
            goal_withdrawals[i] = min(goal_withdrawals[i], max(0.0, remaining))
            balances[i] = remaining - goal_withdrawals[i]
        if series.ages[i] in hits:
            taken = min(amount, max(0.0, balances[i]))
            balances[i] -= taken
            goal_withdrawals[i] += taken

    return replace(
        series,
        balances=balances,
        withdrawals=withdrawals,
        goal_withdrawals=goal_withdrawals,
    )
