"""
Bucket Aggregator
Builds one bucket list out of all active accounts of a user
"""
import concurrent.futures
from typing import List, Optional, Sequence

from core.errors import ProviderUnavailable
from core.kv_store import Clock
from core.models import (
    Account,
    AggregationResult,
    BucketListing,
    BucketSummary,
    CachedBucketList,
    utc_now,
)
from core.provider import StorageProvider
from core.stats_cache import StatsCache
from core.user_cache import UserRefreshCache
from utils.logger import get_logger

logger = get_logger("r2dash.aggregator")


class BucketAggregator:
    """
    Fans out over accounts, attaching cached stats to every listed bucket.

    One failing account becomes a warning; only when every queried account
    fails is the pass reported as failed, and in that case nothing is cached
    so the previous snapshot stays servable.
    """

    def __init__(
        self,
        provider: StorageProvider,
        stats_cache: StatsCache,
        user_cache: UserRefreshCache,
        max_workers: int = 8,
        clock: Optional[Clock] = None,
    ):
        self.provider = provider
        self.stats_cache = stats_cache
        self.user_cache = user_cache
        self.max_workers = max(1, max_workers)
        self._clock = clock or utc_now

    def _summarize(self, account: Account, listing: BucketListing, force_refresh: bool) -> BucketSummary:
        stat = self.stats_cache.get_or_refresh(account, listing.name, force_refresh=force_refresh)
        return BucketSummary(
            name=listing.name,
            account_name=account.name,
            account_id=account.account_id,
            objects=stat.object_count,
            size=stat.total_size_bytes,
            created_at=listing.created_at,
        )

    def _account_buckets(self, account: Account, force_refresh: bool) -> List[BucketSummary]:
        listings = self.provider.list_buckets(account.account_id, account.api_token)
        if not listings:
            return []

        workers = min(self.max_workers, len(listings))
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._summarize, account, listing, force_refresh)
                for listing in listings
            ]
            return [future.result() for future in concurrent.futures.as_completed(futures)]

    def list_buckets(
        self,
        user_id: str,
        accounts: Sequence[Account],
        force_refresh: bool = False,
    ) -> AggregationResult:
        """
        Aggregate buckets across the user's active accounts.

        Args:
            user_id: Owner of the snapshot written on success
            accounts: All accounts of the user; inactive ones are skipped
            force_refresh: Bypass the per-bucket stats freshness window

        Returns:
            AggregationResult with ``success`` False only on total failure
        """
        active = [acc for acc in accounts if acc.is_active]
        buckets: List[BucketSummary] = []
        warnings: List[str] = []
        failed = 0

        for account in active:
            try:
                buckets.extend(self._account_buckets(account, force_refresh))
            except ProviderUnavailable as e:
                failed += 1
                warnings.append(f"Failed to fetch buckets for account {account.name}: {e}")
                logger.error(f"Failed to fetch buckets for account {account.name} ({e.code}): {e}")

        result = AggregationResult(
            success=not (failed and failed == len(active)),
            buckets=buckets,
            warnings=warnings,
            accounts_queried=len(active),
            accounts_failed=failed,
        )

        if not result.success:
            logger.warning(f"Aggregation for {user_id} failed on all {failed} accounts, keeping previous snapshot")
            return result

        refreshed_at = self._clock()
        result.refreshed_at = refreshed_at
        self.user_cache.write(
            user_id,
            CachedBucketList(buckets=buckets, captured_at=refreshed_at, warnings=warnings),
        )
        self.user_cache.mark_refreshed(user_id, refreshed_at)

        logger.info(
            f"Retrieved {len(buckets)} buckets from {len(active) - failed}/{len(active)} accounts for {user_id}"
        )
        return result
