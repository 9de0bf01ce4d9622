"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_osrm_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.osrm_client import check_health as osrm_health_check
    return osrm_health_check


@router.get("/health/osrm", status_code=status.HTTP_200_OK)
def health_osrm() -> dict:
    """Check OSRM service health."""
    osrm_health_check = _get_osrm_health_check()
    return {"service": "osrm", "healthy": osrm_health_check()}


@router.get("/health/planner", status_code=status.HTTP_200_OK)
def health_planner() -> dict:
    """Report whether optimization will use the reasoning service or the default order."""
    from ...config import settings

    return {
        "service": "planner",
        "configured": bool(settings.planner_api_key),
        "model": settings.planner_model,
    }
