"""Global refresh trigger and refresh status endpoints"""

import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from api.dependencies import Services, get_services
from api.deps import get_current_user
from api.models.refresh import LastRefreshResponse, RefreshSummaryResponse
from core.models import User, to_iso
from utils.logger import get_logger

router = APIRouter()
logger = get_logger("r2dash.api")


def _secret_matches(provided: Optional[str], expected: str) -> bool:
    if not provided or not expected:
        return False
    return secrets.compare_digest(provided.encode(), expected.encode())


@router.post("/refresh", response_model=RefreshSummaryResponse)
def trigger_refresh(
    x_cron_secret: Optional[str] = Header(default=None, alias="X-Cron-Secret"),
    services: Services = Depends(get_services),
):
    """Run a global stats refresh; guarded by the shared cron secret"""
    if not _secret_matches(x_cron_secret, services.config_manager.cron_secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    try:
        summary = services.scheduler.run_global_refresh(trigger="manual")
    except Exception as e:
        logger.error(f"Manual refresh failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to refresh statistics", "details": str(e)},
        )

    return RefreshSummaryResponse(**summary.to_dict())


@router.get("/last-refresh", response_model=LastRefreshResponse)
def last_refresh(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """When this user's buckets and the global pass were last refreshed"""
    summary = services.scheduler.last_summary()
    return LastRefreshResponse(
        last_api_refresh=to_iso(services.user_cache.read_last_refresh(user.email)),
        last_cron_refresh=to_iso(summary.timestamp) if summary else None,
        cron_summary=RefreshSummaryResponse(**summary.to_dict()) if summary else None,
    )
