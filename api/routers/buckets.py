"""Bucket listing endpoints"""

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from api.dependencies import Services, get_services
from api.deps import get_current_user
from api.models.buckets import (
    BucketListResponse,
    BucketResponse,
    CacheClearResponse,
    CachedBucketListResponse,
)
from api.models.refresh import TaskStatus
from core.errors import NotFound, TotalFailure
from core.models import BucketSummary, User, to_iso
from utils.logger import get_logger

router = APIRouter()
logger = get_logger("r2dash.api")


def _to_response(buckets: List[BucketSummary]) -> List[BucketResponse]:
    return [BucketResponse(**bucket.to_dict()) for bucket in buckets]


def run_background_refresh(task_id: str, user_id: str, services: Services) -> None:
    """Background task: re-aggregate so the next cached read sees fresh data"""
    try:
        services.task_manager.update_task(task_id, status="running", message="Refreshing buckets...")
        user = services.user_store.require_user(user_id)
        result = services.aggregator.list_buckets(user_id, user.accounts)
        result.raise_for_failure()
        services.task_manager.complete_task(
            task_id, result={"buckets": len(result.buckets), "warnings": len(result.warnings)}
        )
    except TotalFailure as e:
        services.task_manager.fail_task(task_id, "; ".join(e.warnings))
    except Exception as e:
        logger.error(f"Background refresh for {user_id} failed: {e}")
        services.task_manager.fail_task(task_id, str(e))


@router.get("/buckets", response_model=BucketListResponse)
def list_buckets(
    force_refresh: bool = False,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Aggregate buckets of all active accounts (slow, authoritative path)"""
    active = user.active_accounts()
    result = services.aggregator.list_buckets(user.email, user.accounts, force_refresh=force_refresh)
    result.raise_for_failure()

    if not active:
        message = "No active accounts found"
    else:
        message = f"Retrieved {len(result.buckets)} R2 buckets from {len(active)} accounts"

    return BucketListResponse(
        data=_to_response(result.buckets),
        warnings=result.warnings,
        last_refreshed=to_iso(result.refreshed_at),
        message=message,
    )


@router.get("/buckets/cached", response_model=CachedBucketListResponse)
def list_cached_buckets(
    background_tasks: BackgroundTasks,
    refresh: bool = True,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """
    Serve the last snapshot instantly and refresh it in the background.
    Without a snapshot, fall back to a synchronous aggregation.
    """
    snapshot = services.user_cache.read_cached(user.email)

    if snapshot is not None:
        task_id = None
        if refresh:
            services.task_manager.cleanup_old_tasks()
            task_id = services.task_manager.create_task(
                "bucket-refresh", f"Background bucket refresh for {user.email}", owner=user.email
            )
            background_tasks.add_task(run_background_refresh, task_id, user.email, services)
        return CachedBucketListResponse(
            data=_to_response(snapshot.buckets),
            cached=True,
            last_refreshed=to_iso(snapshot.captured_at),
            warnings=snapshot.warnings,
            refresh_task_id=task_id,
        )

    result = services.aggregator.list_buckets(user.email, user.accounts)
    result.raise_for_failure()

    return CachedBucketListResponse(
        data=_to_response(result.buckets),
        cached=False,
        last_refreshed=to_iso(result.refreshed_at),
        warnings=result.warnings,
    )


@router.get("/buckets/tasks/{task_id}", response_model=TaskStatus)
async def get_refresh_task(
    task_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Status of a background refresh"""
    task = services.task_manager.get_task(task_id)
    # Tasks of other users are reported as missing
    if not task or task.get("owner") != user.email:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task {task_id} not found",
        )
    return TaskStatus(**task)


@router.delete("/cache", response_model=CacheClearResponse)
def clear_cache(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Drop cached stats of every account of the user"""
    try:
        deleted = services.account_manager.clear_user_cache(user.email)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return CacheClearResponse(deleted_count=deleted, message=f"Cleared {deleted} cache entries")
