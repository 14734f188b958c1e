"""Compound growth with monthly contributions for a single account."""

from __future__ import annotations

from typing import List

from backend.schemas.accumulation import (
    AccumulationPoint,
    AccumulationRequest,
    AccumulationResponse,
)


def monthly_rate(annual_rate: float) -> float:
    """Annual rate spread evenly over twelve months.

    This is annual/12, not the compound-equivalent (1 + annual)^(1/12) - 1,
    so a year of monthly compounding slightly overshoots the annual rate.
    """
    return annual_rate / 12.0


def project_account(
    starting_balance: float,
    annual_rate: float,
    monthly_contribution: float,
    months_elapsed: int,
) -> float:
    """Balance after ``months_elapsed`` months of growth plus end-of-month contributions."""
    if months_elapsed <= 0:
        return starting_balance

    rate = monthly_rate(annual_rate)
    if rate == 0:
        return starting_balance + monthly_contribution * months_elapsed

    factor = (1.0 + rate) ** months_elapsed
    return starting_balance * factor + monthly_contribution * (factor - 1.0) / rate


def growth_schedule(
    starting_balance: float,
    annual_rate: float,
    monthly_contribution: float,
    years: int,
) -> List[float]:
    """Year-end balances for ``years`` years, index 0 being the starting balance."""
    balances = [starting_balance]
    balance = starting_balance
    for _ in range(years):
        balance = project_account(balance, annual_rate, monthly_contribution, 12)
        balances.append(balance)
    return balances


def calculate_accumulation_schedule(request: AccumulationRequest) -> AccumulationResponse:
    """Compute a year-by-year growth schedule with constant monthly contributions."""
    balances = growth_schedule(
        request.starting_balance,
        request.annual_rate,
        request.monthly_contribution,
        request.years,
    )
    schedule = [
        AccumulationPoint(
            period=year,
            contributed=request.starting_balance + request.monthly_contribution * 12 * year,
            balance=balance,
        )
        for year, balance in enumerate(balances)
    ]
    return AccumulationResponse(schedule=schedule, final_balance=schedule[-1].balance)
