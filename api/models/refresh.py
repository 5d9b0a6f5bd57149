"""Global refresh models"""

from typing import Optional

from api.models.common import APIModel


class RefreshSummaryResponse(APIModel):
    total_users: int
    total_accounts: int
    total_buckets: int
    refreshed_stats: int
    errors: int
    timestamp: Optional[str] = None


class LastRefreshResponse(APIModel):
    last_api_refresh: Optional[str] = None
    last_cron_refresh: Optional[str] = None
    cron_summary: Optional[RefreshSummaryResponse] = None


class TaskStatus(APIModel):
    """Status of a background refresh"""

    id: str
    type: str
    description: str
    status: str
    message: str
    created_at: str
    updated_at: str
    completed_at: Optional[str] = None
    error: Optional[str] = None
    result: Optional[dict] = None
