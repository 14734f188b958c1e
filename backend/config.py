"""Engine constants and app-wide settings."""

from __future__ import annotations

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

API_VERSION = "0.1.0"

# ---------- Engine constants ----------

# The product's weekly multiplier, kept as 4.33 rather than 52/12 so totals
# match what users already see on their dashboards.
WEEKS_PER_MONTH = 4.33

DEFAULT_EXPENSE_GROWTH_RATE = 0.03
DEFAULT_RETIREMENT_AGE = 67
DEFAULT_DEATH_AGE = 85
MAX_HORIZON_AGE = 120

# Tolerance below which a remaining withdrawal need counts as met.
EPSILON = 1e-9


# ---------- App settings ----------

ENV_PREFIX = "FINPLAN_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]
    )
    log_level: str = "INFO"
    cache_size: int = Field(default=128, ge=0)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from FINPLAN_* environment variables."""
    environ = os.environ if environ is None else environ
    raw = {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in environ.items()
        if key.startswith(ENV_PREFIX)
    }
    return Settings.model_validate({k: v for k, v in raw.items() if k in Settings.model_fields})
