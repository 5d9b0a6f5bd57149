import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

import pytest

from core.errors import ProviderUnavailable
from core.kv_store import MemoryKeyValueStore
from core.models import Account, BucketListing, BucketStat
from core.provider import StorageProvider
from core.security import SecurityManager


class FakeClock:
    """Controllable time source"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeProvider(StorageProvider):
    """
    In-memory provider.

    buckets maps external account id -> {bucket name: (objects, size)}.
    Accounts in failing_accounts fail their listing; buckets in
    failing_buckets fail their stats call.
    """

    def __init__(self):
        self.buckets: Dict[str, Dict[str, tuple]] = {}
        self.failing_accounts: Set[str] = set()
        self.failing_buckets: Set[str] = set()
        self.list_calls: List[str] = []
        self.stats_calls: List[tuple] = []
        self._lock = threading.Lock()

    def add(self, account_id: str, bucket: str, objects: int = 1, size: int = 10) -> None:
        self.buckets.setdefault(account_id, {})[bucket] = (objects, size)

    def list_buckets(self, account_external_id: str, credential: str) -> List[BucketListing]:
        with self._lock:
            self.list_calls.append(account_external_id)
        if account_external_id in self.failing_accounts:
            raise ProviderUnavailable("listing refused", code="auth", account=account_external_id)
        return [
            BucketListing(name=name, created_at="2024-01-01T00:00:00Z")
            for name in self.buckets.get(account_external_id, {})
        ]

    def get_bucket_stats(self, account_external_id: str, credential: str, bucket_name: str) -> BucketStat:
        with self._lock:
            self.stats_calls.append((account_external_id, bucket_name))
        if bucket_name in self.failing_buckets:
            raise ProviderUnavailable("stats refused", code="stats_error", account=account_external_id)
        objects, size = self.buckets.get(account_external_id, {}).get(bucket_name, (0, 0))
        return BucketStat(object_count=objects, total_size_bytes=size)


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Fixture pointing the data directory at a temporary location"""
    path = tmp_path / ".r2dash"
    monkeypatch.setenv("R2DASH_DATA_DIR", str(path))
    monkeypatch.delenv("R2DASH_MASTER_KEY", raising=False)
    monkeypatch.delenv("R2DASH_CRON_SECRET", raising=False)
    return path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryKeyValueStore(clock)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def security(data_dir):
    return SecurityManager(data_dir / ".secret.key")


def make_account(account_id: str, name: Optional[str] = None, active: bool = True) -> Account:
    return Account(
        id=f"account_{account_id}",
        name=name or account_id,
        account_id=account_id,
        api_token=f"token-{account_id}",
        is_active=active,
    )


@pytest.fixture
def account_factory():
    """Fixture returning the account builder"""
    return make_account
