"""Health-check payload used by the API."""

from backend.config import API_VERSION
from backend.schemas.health import HealthResponse


def get_health() -> HealthResponse:
    """Report that the projection service is up."""
    return HealthResponse(status="ok", version=API_VERSION)
