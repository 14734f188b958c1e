from __future__ import annotations

import hashlib
from datetime import date
from enum import Enum
from typing import Any, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from backend.config import (
    DEFAULT_DEATH_AGE,
    DEFAULT_EXPENSE_GROWTH_RATE,
    DEFAULT_RETIREMENT_AGE,
    MAX_HORIZON_AGE,
)
from backend.core.frequency import Frequency, coerce_number
from backend.core.withdrawals import WithdrawalPolicy

# Records mirror the rows the hosted store returns, so unknown columns
# (user_id, created_at, ...) are ignored rather than rejected.
RECORD_CONFIG = ConfigDict(extra="ignore", populate_by_name=True)


def _non_negative(value: Any) -> float:
    return max(0.0, coerce_number(value))


def _stringify_id(value: Any) -> Any:
    # stored rows may key accounts and goals by integer
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class TimingKind(str, Enum):
    DATE = "date"
    CALENDAR_YEAR = "calendar_year"
    AGE = "age"
    RETIREMENT = "retirement"
    DEATH = "death"


class Timing(BaseModel):
    """When something happens: a date, a year, an age, or a life anchor."""

    model_config = RECORD_CONFIG

    kind: TimingKind
    value: Optional[int] = None
    on_date: Optional[date] = Field(default=None, validation_alias=AliasChoices("on_date", "date"))

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> Optional[int]:
        number = coerce_number(value, default=-1.0)
        return None if number < 0 else int(number)


class FrequencyRecord(BaseModel):
    """Base for records holding an ``amount`` paid at some ``frequency``."""

    model_config = RECORD_CONFIG

    id: Optional[str] = None
    name: str = ""
    amount: float = 0.0
    frequency: Frequency = Frequency.MONTHLY

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return _stringify_id(value)

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float:
        return _non_negative(value)

    @field_validator("frequency", mode="before")
    @classmethod
    def _parse_frequency(cls, value: Any) -> Frequency:
        return Frequency.parse(value)


class Recurrence(BaseModel):
    model_config = RECORD_CONFIG

    frequency: Frequency = Frequency.ANNUAL
    start: Timing
    end: Optional[Timing] = None

    @field_validator("frequency", mode="before")
    @classmethod
    def _parse_frequency(cls, value: Any) -> Frequency:
        return Frequency.parse(value)


class Holding(BaseModel):
    model_config = RECORD_CONFIG

    symbol: Optional[str] = None
    shares: float = 0.0
    value: float = 0.0

    @field_validator("shares", "value", mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> float:
        return coerce_number(value)


class Account(BaseModel):
    """An asset the engine grows and draws down."""

    model_config = RECORD_CONFIG

    id: str
    name: str = ""
    type: str = "other"
    balance: float = Field(default=0.0, validation_alias=AliasChoices("balance", "value"))
    growth_rate: float = 0.0
    holdings: List[Holding] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return _stringify_id(value)

    @field_validator("balance", mode="before")
    @classmethod
    def _coerce_balance(cls, value: Any) -> float:
        return _non_negative(value)

    @field_validator("growth_rate", mode="before")
    @classmethod
    def _coerce_rate(cls, value: Any) -> float:
        return coerce_number(value)

    @field_validator("holdings", mode="before")
    @classmethod
    def _coerce_holdings(cls, value: Any) -> list:
        return value if isinstance(value, list) else []


class Contribution(FrequencyRecord):
    destination_account_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("destination_account_id", "destination_asset_id"),
    )
    goal_id: Optional[str] = None

    @field_validator("destination_account_id", "goal_id", mode="before")
    @classmethod
    def _coerce_refs(cls, value: Any) -> Any:
        return _stringify_id(value)


class Expense(FrequencyRecord):
    category: str = "essential"
    growth_rate: float = DEFAULT_EXPENSE_GROWTH_RATE

    @field_validator("growth_rate", mode="before")
    @classmethod
    def _coerce_rate(cls, value: Any) -> float:
        return coerce_number(value, default=DEFAULT_EXPENSE_GROWTH_RATE)


class Income(FrequencyRecord):
    start: Optional[Timing] = None
    end: Optional[Timing] = None


class Goal(BaseModel):
    """A financial goal; one-off or recurring lump-sum withdrawals.

    The retirement goal is special: it is never withdrawn, it carries the
    user's ``withdrawal_order`` instead.
    """

    model_config = RECORD_CONFIG

    id: Optional[str] = None
    name: str = ""
    goal_type: str = "other"
    target_amount: Optional[float] = None
    timing: Optional[Timing] = None
    recurrence: Optional[Recurrence] = None
    source_account_id: Optional[str] = None
    withdrawal_order: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _read_target_date(cls, data: Any) -> Any:
        # raw goal rows carry a plain target_date column
        if isinstance(data, dict) and not data.get("timing") and data.get("target_date"):
            data = dict(data)
            data["timing"] = {"kind": TimingKind.DATE.value, "date": data["target_date"]}
        return data

    @field_validator("id", "source_account_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        return _stringify_id(value)

    @field_validator("target_amount", mode="before")
    @classmethod
    def _coerce_target(cls, value: Any) -> Optional[float]:
        if value is None or value == "":
            return None
        return _non_negative(value)

    @field_validator("goal_type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        return str(value or "other").strip().lower()

    @field_validator("withdrawal_order", mode="before")
    @classmethod
    def _coerce_order(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None]

    @property
    def is_retirement(self) -> bool:
        return self.goal_type == "retirement"


class Profile(BaseModel):
    model_config = RECORD_CONFIG

    date_of_birth: Optional[date] = None
    current_age: Optional[int] = Field(default=None, ge=0, le=MAX_HORIZON_AGE)
    retirement_age: int = Field(default=DEFAULT_RETIREMENT_AGE, ge=0, le=MAX_HORIZON_AGE)
    death_age: int = Field(
        default=DEFAULT_DEATH_AGE,
        ge=0,
        le=MAX_HORIZON_AGE,
        validation_alias=AliasChoices("death_age", "projected_death_age"),
    )

    @field_validator("retirement_age", mode="before")
    @classmethod
    def _default_retirement(cls, value: Any) -> int:
        return int(coerce_number(value, default=DEFAULT_RETIREMENT_AGE))

    @field_validator("death_age", mode="before")
    @classmethod
    def _default_death(cls, value: Any) -> int:
        return int(coerce_number(value, default=DEFAULT_DEATH_AGE))


class ProjectionInputs(BaseModel):
    """Immutable snapshot of everything one projection run reads."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    accounts: List[Account] = Field(default_factory=list)
    contributions: List[Contribution] = Field(default_factory=list)
    expenses: List[Expense] = Field(default_factory=list)
    incomes: List[Income] = Field(default_factory=list)
    goals: List[Goal] = Field(default_factory=list)
    profile: Profile
    withdrawal_policy: WithdrawalPolicy
    as_of: date
    retirement_age: Optional[int] = Field(default=None, ge=0, le=MAX_HORIZON_AGE)
    horizon_age: Optional[int] = Field(default=None, ge=0, le=MAX_HORIZON_AGE)

    def fingerprint(self) -> str:
        """Stable hash of the inputs, used to memoize projection runs."""
        return hashlib.sha256(self.model_dump_json().encode("utf-8")).hexdigest()
