"""
Health check endpoint.

Returns status + DB connectivity so callers can distinguish between
"API down" and "API up but DB unreachable", and whether inference runs
against the real endpoints or the fallback results.
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from vericlip.core import database as db_module

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    database: str  # "connected" | "disconnected"
    inference: str  # "remote" | "fallback"
    environment: str


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    """
    Liveness of the API and its database connection.

    HTTP 200 even when the database is disconnected.
    """
    from vericlip.core.config import settings

    db_status = "disconnected"
    try:
        # Access via module reference so tests can patch db_module.db_client
        if db_module.db_client.client is not None:
            await db_module.db_client.client.admin.command("ping")
            db_status = "connected"
    except Exception as exc:
        logger.warning("DB ping failed: %s", exc)

    inference = "fallback" if settings.ai_mock_mode or not settings.hf_api_key else "remote"

    return HealthResponse(
        status="ok",
        version="0.1.0",
        database=db_status,
        inference=inference,
        environment=settings.environment,
    )
