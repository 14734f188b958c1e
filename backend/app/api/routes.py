"""HTTP routes for the Flask API."""

from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from backend.core.comparison import compare_projections
from backend.core.growth import calculate_accumulation_schedule
from backend.core.health import get_health
from backend.core.summary import summarize_plan
from backend.core.withdrawals import allocate
from backend.domain.plan import PlanValidationError
from backend.schemas.accumulation import (
    AccumulationRequest,
    AccumulationResponse,
)
from backend.schemas.projection import (
    AccountColumnResponse,
    AllocationRequest,
    AllocationResponse,
    ComparisonRequest,
    ComparisonResponse,
    ProjectionRequest,
    ProjectionResponse,
)

api_bp = Blueprint("api", __name__)


def _projection_cache():
    return current_app.extensions["projection_cache"]


def _today():
    return datetime.now(timezone.utc).date()


@api_bp.errorhandler(ValidationError)
def _handle_validation_error(exc: ValidationError):
    """Convert Pydantic validation errors into JSON responses."""
    return jsonify({"detail": exc.errors(include_url=False, include_context=False)}), HTTPStatus.UNPROCESSABLE_ENTITY


@api_bp.errorhandler(PlanValidationError)
def _handle_plan_error(exc: PlanValidationError):
    current_app.logger.warning("rejected plan: %s", exc)
    return jsonify({"error": exc.errors}), HTTPStatus.BAD_REQUEST


@api_bp.get("/health")
def health() -> Any:
    """Health-check endpoint."""
    return jsonify(get_health().model_dump())


@api_bp.post("/calc/accumulation")
def accumulation() -> Any:
    """Year-by-year growth of a single account."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    payload = AccumulationRequest.model_validate(raw_payload)
    result = calculate_accumulation_schedule(payload)
    response = AccumulationResponse.model_validate(result.model_dump())
    return jsonify(response.model_dump())


@api_bp.post("/withdrawals/allocate")
def withdrawals_allocate() -> Any:
    """Preview how one withdrawal would be split across accounts."""
    payload = AllocationRequest.model_validate(request.get_json(force=True, silent=False))
    allocation = allocate(payload.total_need, payload.balances, payload.policy)
    response = AllocationResponse(
        requested=allocation.requested,
        withdrawals=allocation.withdrawals,
        total=allocation.total,
        shortfall=allocation.shortfall,
    )
    return jsonify(response.model_dump())


@api_bp.post("/projection")
def projection() -> Any:
    """Project one scenario; ``?account=<id>`` narrows it to one account's column."""
    payload = ProjectionRequest.model_validate(request.get_json(force=True, silent=False))
    inputs = payload.to_inputs(_today())
    result = _projection_cache().get_or_compute(inputs)

    account_id = request.args.get("account")
    if account_id:
        try:
            rows = result.account_column(account_id)
        except KeyError:
            return jsonify({"error": [f"unknown account {account_id}"]}), HTTPStatus.NOT_FOUND
        return jsonify(AccountColumnResponse(account_id=account_id, rows=rows).model_dump(mode="json"))

    if not result.succeeded:
        current_app.logger.info("projection runs short at age %s", result.fails_at_age)

    response = ProjectionResponse(projection=result, summary=summarize_plan(inputs, result))
    return jsonify(response.model_dump(mode="json"))


@api_bp.post("/projection/compare")
def projection_compare() -> Any:
    """Current situation vs. proposed plan, aligned age by age."""
    payload = ComparisonRequest.model_validate(request.get_json(force=True, silent=False))
    today = _today()
    current_inputs = payload.current.to_inputs(today)
    proposed_inputs = payload.proposed.to_inputs(today)

    comparison = compare_projections(current_inputs, proposed_inputs, run=_projection_cache().get_or_compute)
    current, proposed = comparison.current, comparison.proposed

    response = ComparisonResponse(
        rows=comparison.rows,
        current_summary=summarize_plan(current_inputs, current),
        proposed_summary=summarize_plan(proposed_inputs, proposed),
        current=current,
        proposed=proposed,
    )
    return jsonify(response.model_dump(mode="json"))
