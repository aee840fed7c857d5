"""Health check endpoints."""

from datetime import datetime
from typing import Any

import structlog
from fastapi import APIRouter

from portim.api.dependencies import CredentialsDep, StorageDep
from portim.core.config import settings

logger = structlog.get_logger()

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
@router.get("/")
async def health_check() -> dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.app_env,
    }


@router.get("/ready")
async def readiness_check(
    storage: StorageDep,
    credentials: CredentialsDep,
) -> dict[str, Any]:
    """Readiness check - verifies storage and the encryption key."""
    checks = {
        "storage": False,
        "encryption": credentials.can_encrypt,
    }

    try:
        checks["storage"] = await storage.health_check()
    except Exception as e:
        logger.warning("Storage readiness check failed", error=str(e))

    all_healthy = all(checks.values())

    return {
        "status": "ready" if all_healthy else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": checks,
    }


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    """Liveness check - basic endpoint for kubernetes probes."""
    return {"status": "alive"}
