"""
User Refresh Cache
Coarse per-user snapshot of the aggregated bucket list, for instant reads
"""
from datetime import datetime
from typing import Optional

from core.kv_store import Clock, KeyValueStore, delete_key, read_record, write_record
from core.models import CachedBucketList, parse_iso, utc_now

SNAPSHOT_KIND = "user-buckets"
LAST_REFRESH_KIND = "last-api-refresh"


def snapshot_key(user_id: str) -> str:
    return f"user-buckets:{user_id}"


def last_refresh_key(user_id: str) -> str:
    return f"last-api-refresh:{user_id}"


class UserRefreshCache:
    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: int = 3600,
        last_refresh_ttl_seconds: int = 86400,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.last_refresh_ttl_seconds = last_refresh_ttl_seconds
        self._clock = clock or utc_now

    def read_cached(self, user_id: str) -> Optional[CachedBucketList]:
        """Latest snapshot for the user, or None if never written or expired"""
        data = read_record(self.store, snapshot_key(user_id), SNAPSHOT_KIND)
        if data is None:
            return None
        snapshot = CachedBucketList.from_dict(data)
        if snapshot is None:
            return None
        # The store may not enforce TTLs as precisely as we do
        if (self._clock() - snapshot.captured_at).total_seconds() >= self.ttl_seconds:
            return None
        return snapshot

    def write(self, user_id: str, snapshot: CachedBucketList) -> bool:
        return write_record(
            self.store, snapshot_key(user_id), SNAPSHOT_KIND, snapshot.to_dict(), self.ttl_seconds
        )

    def clear(self, user_id: str) -> bool:
        return delete_key(self.store, snapshot_key(user_id))

    def mark_refreshed(self, user_id: str, when: datetime) -> bool:
        return write_record(
            self.store,
            last_refresh_key(user_id),
            LAST_REFRESH_KIND,
            {"timestamp": when.isoformat()},
            self.last_refresh_ttl_seconds,
        )

    def read_last_refresh(self, user_id: str) -> Optional[datetime]:
        data = read_record(self.store, last_refresh_key(user_id), LAST_REFRESH_KIND)
        if data is None:
            return None
        return parse_iso(data.get("timestamp"))
