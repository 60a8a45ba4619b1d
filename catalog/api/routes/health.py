"""
Health check endpoints.

We provide two endpoints:
- /health: Basic liveness check (is the process running?)
- /health/ready: Readiness check (can we serve traffic?)

The distinction matters in orchestration systems where liveness and
readiness have different behaviors.
"""

import logging
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ..dependencies import ItemRepositoryDep, SettingsDep, StorageBackendDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""
    name: str
    status: str  # "ok", "degraded" or "error"
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response with details."""
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the service is running. Does not check dependencies.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """Liveness check. Fast, and never touches external dependencies."""
    return HealthResponse(
        status="ok",
        version=__version__,
        details={
            "storage_backend": settings.object_storage_backend.value,
            "mock_mode": {
                "snowflake": settings.snowflake_mock_mode,
            },
        }
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns 200 if the service can handle traffic. Checks external dependencies.",
    responses={
        503: {
            "description": "Service not ready",
            "model": ReadinessResponse,
        }
    },
)
async def readiness_check(
    response: Response,
    settings: SettingsDep,
    storage: StorageBackendDep,
    repository: ItemRepositoryDep,
) -> ReadinessResponse:
    """
    Readiness check - can we serve traffic?

    Configuration, database and storage must be usable. A missing
    analysis key only degrades the service: uploads still work, items
    just get placeholder attributes.
    """
    checks: list[ReadinessCheck] = []
    all_ok = True

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        checks.append(ReadinessCheck(
            name="configuration",
            status="error",
            error=f"Missing required fields: {', '.join(missing_fields)}"
        ))
        all_ok = False
    else:
        checks.append(ReadinessCheck(name="configuration", status="ok"))

    try:
        repository.list_items(limit=1)
        checks.append(ReadinessCheck(
            name="database",
            status="ok",
            error="mock mode" if settings.snowflake_mock_mode else None,
        ))
    except Exception as e:
        logger.error("Database health check failed", extra={"error": str(e)})
        checks.append(ReadinessCheck(
            name="database",
            status="error",
            error=type(e).__name__,
        ))
        all_ok = False

    checks.append(ReadinessCheck(name=f"storage:{storage.name}", status="ok"))

    if settings.anthropic_api_key:
        checks.append(ReadinessCheck(name="analysis", status="ok"))
    else:
        checks.append(ReadinessCheck(
            name="analysis",
            status="degraded",
            error="API key not configured; items get placeholder attributes"
        ))

    if not all_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Readiness check failed",
            extra={
                "checks": [
                    {"name": c.name, "status": c.status, "error": c.error}
                    for c in checks
                ]
            }
        )

    return ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        version=__version__,
        checks=checks,
    )
