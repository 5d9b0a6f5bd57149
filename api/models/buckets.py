"""Bucket listing models"""

from typing import List, Optional

from api.models.common import APIModel


class BucketResponse(APIModel):
    name: str
    created_at: Optional[str] = None
    region: str = "auto"
    storage_class: str = "Standard"
    account_name: str
    account_id: str
    objects: int = 0
    size: int = 0


class BucketListResponse(APIModel):
    """Result of a synchronous aggregation"""

    data: List[BucketResponse]
    warnings: List[str] = []
    last_refreshed: Optional[str] = None
    message: str


class CachedBucketListResponse(APIModel):
    """Result of the fast cached read"""

    data: List[BucketResponse]
    cached: bool
    last_refreshed: Optional[str] = None
    warnings: List[str] = []
    refresh_task_id: Optional[str] = None


class CacheClearResponse(APIModel):
    deleted_count: int
    message: str
