"""
Stats Cache
Per-bucket statistics with a freshness window in front of the provider
"""
from typing import Optional

from core.errors import ProviderUnavailable
from core.kv_store import Clock, KeyValueStore, delete_key, read_record, write_record
from core.models import Account, BucketStat, utc_now
from core.provider import StorageProvider
from utils.logger import get_logger

logger = get_logger("r2dash.stats")

RECORD_KIND = "bucket-stat"
DEFAULT_TTL_SECONDS = 60 * 60


def stats_key(account_external_id: str, bucket_name: str) -> str:
    return f"bucket-stats:{account_external_id}:{bucket_name}"


class StatsCache:
    """
    Maps (external account id, bucket) to BucketStat.

    A cached entry is reused while younger than ``ttl_seconds``; otherwise the
    provider is asked again and the result is written back with the same TTL.
    """

    def __init__(
        self,
        store: KeyValueStore,
        provider: StorageProvider,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.provider = provider
        self.ttl_seconds = ttl_seconds
        self._clock = clock or utc_now

    def peek(self, account_external_id: str, bucket_name: str) -> Optional[BucketStat]:
        """Return the stored entry, fresh or not, without calling the provider"""
        data = read_record(self.store, stats_key(account_external_id, bucket_name), RECORD_KIND)
        if data is None:
            return None
        return BucketStat.from_dict(data)

    def is_fresh(self, stat: BucketStat) -> bool:
        age = stat.age_seconds(self._clock())
        return age is not None and age < self.ttl_seconds

    def get_or_refresh(
        self,
        account: Account,
        bucket_name: str,
        force_refresh: bool = False,
        contain_errors: bool = True,
    ) -> BucketStat:
        """
        Cached stats for one bucket, refetched when stale or forced.

        Args:
            account: Owning account (external id and credential are used)
            bucket_name: Bucket to look up
            force_refresh: Skip the freshness check and always ask the provider
            contain_errors: Return a zero stat instead of raising when the
                provider fails

        Raises:
            ProviderUnavailable: only when ``contain_errors`` is False
        """
        cached = self.peek(account.account_id, bucket_name)
        if not force_refresh and cached is not None and self.is_fresh(cached):
            return cached

        try:
            fresh = self.provider.get_bucket_stats(account.account_id, account.api_token, bucket_name)
        except ProviderUnavailable as e:
            logger.error(f"Failed to get stats for bucket {bucket_name} ({account.name}): {e}")
            if not contain_errors:
                raise
            return BucketStat.zero()

        now = self._clock()
        # fetched_at never moves backwards for a key
        if cached is not None and cached.fetched_at is not None and cached.fetched_at > now:
            now = cached.fetched_at

        stat = BucketStat(
            object_count=max(0, int(fresh.object_count)),
            total_size_bytes=max(0, int(fresh.total_size_bytes)),
            fetched_at=now,
        )
        write_record(
            self.store,
            stats_key(account.account_id, bucket_name),
            RECORD_KIND,
            stat.to_dict(),
            self.ttl_seconds,
        )
        return stat

    def invalidate(self, account_external_id: str, bucket_name: str) -> bool:
        """Drop one entry; True when the delete reached the store"""
        return delete_key(self.store, stats_key(account_external_id, bucket_name))
