"""Health check endpoint — public, no auth required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from src.cycle.config_loader import ConfigValidationError
from src.dependencies import AppSettings, get_cycle_constants

router = APIRouter(tags=["system"])
logger = logging.getLogger("peri.health")


@router.get("/health")
async def health_check(settings: AppSettings) -> dict:
    """Liveness probe. Returns 200 if the API process is up.

    Also reports whether the cycle constants load and validate.
    """
    config_version = None
    try:
        config_version = get_cycle_constants().version
    except (ConfigValidationError, OSError) as exc:
        logger.warning("Health check config probe failed: %s", exc)

    return {
        "status": "healthy" if config_version else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "cycleConfig": config_version or "invalid",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
