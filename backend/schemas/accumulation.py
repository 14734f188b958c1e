"""Data contracts for single-account accumulation schedules."""

from typing import List

from pydantic import BaseModel, Field


class AccumulationRequest(BaseModel):
    """Inputs required to compute an accumulation schedule."""

    starting_balance: float = Field(..., ge=0, description="Balance at period 0.")
    annual_rate: float = Field(
        ...,
        ge=-1,
        le=1,
        description="Annual growth rate as a decimal (e.g. 0.07 for 7%); may be negative.",
    )
    years: int = Field(..., ge=1, le=100, description="Number of years to project.")
    monthly_contribution: float = Field(
        0.0,
        ge=0,
        description="Contribution added at the end of each month.",
    )


class AccumulationPoint(BaseModel):
    """Single row of an accumulation schedule."""

    period: int = Field(..., ge=0)
    contributed: float = Field(..., ge=0, description="Starting balance plus contributions so far.")
    balance: float = Field(..., ge=0)


class AccumulationResponse(BaseModel):
    """Projected accumulation schedule."""

    schedule: List[AccumulationPoint]
    final_balance: float = Field(..., ge=0)
