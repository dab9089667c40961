"""Health check endpoint."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from claude_chat.core.version import APP_VERSION

logger = logging.getLogger("claude_chat.api.health")

router = APIRouter()


class HealthResponse(BaseModel):
    """Schema returned by the /health endpoint."""

    status: Literal["healthy", "unhealthy"]
    timestamp: datetime
    checks: dict[str, str]
    version: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    tags=["health"],
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": HealthResponse}},
)
async def health(request: Request, response: Response) -> HealthResponse:
    """Report service status; the database is probed with ``SELECT 1``."""

    try:
        await request.app.state.database.ping()
        database_status = "ok"
    except (SQLAlchemyError, OSError) as error:
        logger.warning("Database health check failed", extra={"error": type(error).__name__})
        database_status = "error"

    healthy = database_status == "ok"
    if not healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status="healthy" if healthy else "unhealthy",
        timestamp=datetime.now(tz=timezone.utc),
        checks={"database": database_status},
        version=APP_VERSION,
    )
