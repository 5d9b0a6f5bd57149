"""Pydantic models for API."""

from .accounts import (
    AccountCreate,
    AccountDeleteResponse,
    AccountResponse,
    AccountUpdate,
)
from .auth import RegisterRequest, TokenResponse, UserInfo
from .buckets import (
    BucketListResponse,
    BucketResponse,
    CacheClearResponse,
    CachedBucketListResponse,
)
from .refresh import LastRefreshResponse, RefreshSummaryResponse, TaskStatus

__all__ = [
    "AccountCreate",
    "AccountDeleteResponse",
    "AccountResponse",
    "AccountUpdate",
    "RegisterRequest",
    "TokenResponse",
    "UserInfo",
    "BucketListResponse",
    "BucketResponse",
    "CacheClearResponse",
    "CachedBucketListResponse",
    "LastRefreshResponse",
    "RefreshSummaryResponse",
    "TaskStatus",
]
