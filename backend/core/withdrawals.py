"""Split a cash need across accounts according to a withdrawal policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.config import EPSILON

logger = logging.getLogger(__name__)


class PolicyKind(str, Enum):
    ORDERED = "ordered"
    PROPORTIONAL = "proportional"


class UnlistedAccounts(str, Enum):
    """What an ordered policy does with accounts missing from its order."""

    EXCLUDE = "exclude"
    PROPORTIONAL = "proportional"


class WithdrawalPolicy(BaseModel):
    """Either ``ordered`` (drain accounts in sequence) or ``proportional`` (by balance share)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: PolicyKind
    order: List[str] = Field(default_factory=list)
    unlisted: UnlistedAccounts = UnlistedAccounts.EXCLUDE

    @field_validator("order", mode="before")
    @classmethod
    def _stringify_order(cls, value):
        if isinstance(value, list):
            return [str(item) if isinstance(item, int) and not isinstance(item, bool) else item for item in value]
        return value

    @classmethod
    def ordered(
        cls, order: List[str], unlisted: UnlistedAccounts = UnlistedAccounts.EXCLUDE
    ) -> "WithdrawalPolicy":
        return cls(kind=PolicyKind.ORDERED, order=list(order), unlisted=unlisted)

    @classmethod
    def proportional(cls) -> "WithdrawalPolicy":
        return cls(kind=PolicyKind.PROPORTIONAL)

    @property
    def is_ordered(self) -> bool:
        return self.kind == PolicyKind.ORDERED and bool(self.order)

    def excluded_accounts(self, account_ids: List[str]) -> List[str]:
        """Accounts this policy will never draw from."""
        if not self.is_ordered or self.unlisted == UnlistedAccounts.PROPORTIONAL:
            return []
        listed = set(self.order)
        return [account_id for account_id in account_ids if account_id not in listed]


@dataclass
class Allocation:
    requested: float
    withdrawals: Dict[str, float] = field(default_factory=dict)

    @property
    def total(self) -> float:
        return sum(self.withdrawals.values())

    @property
    def shortfall(self) -> float:
        unmet = self.requested - self.total
        return unmet if unmet > EPSILON else 0.0

    def apply(self, balances: Dict[str, float]) -> None:
        """Deduct the withdrawals from ``balances`` in place."""
        for account_id, amount in self.withdrawals.items():
            balances[account_id] = max(0.0, balances[account_id] - amount)


def _withdraw_in_order(
    need: float,
    order: List[str],
    balances: Mapping[str, float],
    withdrawals: Dict[str, float],
) -> float:
    """Drain accounts in ``order``; return the need still unmet."""
    seen = set()
    for account_id in order:
        if need <= EPSILON:
            break
        if account_id in seen:
            continue
        seen.add(account_id)
        if account_id not in balances:
            logger.debug("withdrawal order names unknown account %s", account_id)
            continue

        available = max(0.0, balances[account_id])
        if available <= 0:
            continue
        amount = min(available, need)
        withdrawals[account_id] += amount
        need -= amount
    return max(0.0, need)


def _withdraw_proportionally(
    need: float,
    account_ids: List[str],
    balances: Mapping[str, float],
    withdrawals: Dict[str, float],
) -> float:
    available = {account_id: max(0.0, balances[account_id]) for account_id in account_ids}
    total_available = sum(available.values())
    if need <= EPSILON or total_available <= 0:
        return max(0.0, need)

    if total_available <= need:
        for account_id, amount in available.items():
            withdrawals[account_id] += amount
        return need - total_available

    for account_id, amount in available.items():
        withdrawals[account_id] += need * (amount / total_available)
    return 0.0


def allocate(
    total_need: float,
    balances: Mapping[str, float],
    policy: WithdrawalPolicy,
) -> Allocation:
    """Decide how much to withdraw from each account to cover ``total_need``.

    ``balances`` maps account id to current balance; it is not modified.
    The returned allocation lists every account (zero when untouched) and
    never takes more than an account holds. When the eligible balances are
    collectively short, everything eligible is withdrawn and the remainder is
    reported as ``shortfall``.
    """
    need = max(0.0, total_need)
    allocation = Allocation(requested=need, withdrawals={account_id: 0.0 for account_id in balances})
    if need <= 0:
        return allocation

    account_ids = list(balances)
    if not policy.is_ordered:
        if policy.kind == PolicyKind.ORDERED:
            logger.debug("ordered withdrawal policy has no order; falling back to proportional")
        _withdraw_proportionally(need, account_ids, balances, allocation.withdrawals)
        return allocation

    remaining = _withdraw_in_order(need, policy.order, balances, allocation.withdrawals)
    if remaining > EPSILON and policy.unlisted == UnlistedAccounts.PROPORTIONAL:
        listed = set(policy.order)
        unlisted_ids = [account_id for account_id in account_ids if account_id not in listed]
        _withdraw_proportionally(remaining, unlisted_ids, balances, allocation.withdrawals)
    return allocation
