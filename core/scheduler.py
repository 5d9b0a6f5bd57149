"""
Refresh Scheduler
Global pass that force-refreshes every bucket of every active account
"""
import time
from enum import Enum
from typing import Optional

from core.errors import ProviderUnavailable
from core.kv_store import Clock, KeyValueStore, read_record, write_record
from core.models import RefreshSummary, utc_now
from core.provider import StorageProvider
from core.stats_cache import StatsCache
from core.user_store import UserStore
from utils.logger import (
    get_logger,
    log_refresh_complete,
    log_refresh_failure,
    log_refresh_start,
)

logger = get_logger("r2dash.refresh")

SUMMARY_KEY = "last-cron-refresh"
SUMMARY_KIND = "refresh-summary"


class RefreshState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class RefreshScheduler:
    """
    Walks users -> active accounts -> buckets, forcing a live stats fetch.

    Failures of one user, account or bucket only bump the error counter. The
    summary is written once at the end of the run, even when errors occurred.
    """

    def __init__(
        self,
        user_store: UserStore,
        provider: StorageProvider,
        stats_cache: StatsCache,
        store: KeyValueStore,
        summary_ttl_seconds: int = 86400,
        clock: Optional[Clock] = None,
    ):
        self.user_store = user_store
        self.provider = provider
        self.stats_cache = stats_cache
        self.store = store
        self.summary_ttl_seconds = summary_ttl_seconds
        self._clock = clock or utc_now
        self.state = RefreshState.IDLE

    def _refresh_user(self, key: str, summary: RefreshSummary) -> None:
        user = self.user_store.load(key)
        if user is None:
            return

        for account in user.active_accounts():
            summary.total_accounts += 1
            try:
                listings = self.provider.list_buckets(account.account_id, account.api_token)
            except ProviderUnavailable as e:
                logger.error(f"Failed to process account {account.name}: {e}")
                summary.errors += 1
                continue

            for listing in listings:
                summary.total_buckets += 1
                try:
                    self.stats_cache.get_or_refresh(
                        account, listing.name, force_refresh=True, contain_errors=False
                    )
                    summary.refreshed_stats += 1
                except ProviderUnavailable as e:
                    logger.error(f"Failed to refresh stats for bucket {listing.name}: {e}")
                    summary.errors += 1

    def run_global_refresh(self, trigger: str = "cron") -> RefreshSummary:
        """
        Run one full pass and persist its summary.

        Args:
            trigger: Label for the logs ("cron", "manual", ...)

        Raises:
            Exception: anything escaping the per-user boundary (e.g. the user
                listing itself failing); no summary is written in that case
        """
        self.state = RefreshState.RUNNING
        started = time.monotonic()
        log_refresh_start(trigger)

        summary = RefreshSummary()
        try:
            for key in self.user_store.list_user_keys():
                summary.total_users += 1
                try:
                    self._refresh_user(key, summary)
                except Exception as e:
                    logger.error(f"Failed to process user {key}: {e}")
                    summary.errors += 1
        except Exception as e:
            self.state = RefreshState.FAILED
            log_refresh_failure(str(e))
            raise

        summary.timestamp = self._clock()
        write_record(self.store, SUMMARY_KEY, SUMMARY_KIND, summary.to_dict(), self.summary_ttl_seconds)

        self.state = RefreshState.COMPLETED
        log_refresh_complete(summary.to_dict(), time.monotonic() - started)
        return summary

    def last_summary(self) -> Optional[RefreshSummary]:
        data = read_record(self.store, SUMMARY_KEY, SUMMARY_KIND)
        if data is None:
            return None
        return RefreshSummary.from_dict(data)
