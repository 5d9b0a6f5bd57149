"""
Dashboard records
Plain dataclasses for everything the cache and refresh layers persist
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.errors import TotalFailure


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def parse_iso(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, returning None for anything unusable"""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _non_negative_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    return max(0, number)


@dataclass
class Account:
    id: str
    name: str
    account_id: str
    api_token: str
    is_active: bool = True
    created_at: str = field(default_factory=lambda: utc_now().isoformat())

    def has_credential(self) -> bool:
        return bool(self.api_token)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "accountId": self.account_id,
            "apiToken": self.api_token,
            "isActive": self.is_active,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            account_id=str(data.get("accountId", "")),
            api_token=str(data.get("apiToken") or ""),
            is_active=bool(data.get("isActive", True)),
            created_at=str(data.get("createdAt") or utc_now().isoformat()),
        )


@dataclass
class User:
    id: str
    email: str
    password_hash: str
    created_at: str = field(default_factory=lambda: utc_now().isoformat())
    accounts: List[Account] = field(default_factory=list)

    def active_accounts(self) -> List[Account]:
        return [acc for acc in self.accounts if acc.is_active]

    def find_account(self, account_id: str) -> Optional[Account]:
        return next((acc for acc in self.accounts if acc.id == account_id), None)


@dataclass(frozen=True)
class BucketStat:
    object_count: int
    total_size_bytes: int
    fetched_at: Optional[datetime] = None

    @classmethod
    def zero(cls) -> "BucketStat":
        return cls(object_count=0, total_size_bytes=0)

    def age_seconds(self, now: datetime) -> Optional[float]:
        if self.fetched_at is None:
            return None
        return (now - self.fetched_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "objects": self.object_count,
            "size": self.total_size_bytes,
            "timestamp": to_iso(self.fetched_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BucketStat":
        return cls(
            object_count=_non_negative_int(data.get("objects")),
            total_size_bytes=_non_negative_int(data.get("size")),
            fetched_at=parse_iso(data.get("timestamp")),
        )


@dataclass(frozen=True)
class BucketListing:
    """A bucket as reported by the provider listing call"""

    name: str
    created_at: Optional[str] = None


@dataclass
class BucketSummary:
    name: str
    account_name: str
    account_id: str
    objects: int = 0
    size: int = 0
    created_at: Optional[str] = None
    region: str = "auto"
    storage_class: str = "Standard"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "createdAt": self.created_at,
            "region": self.region,
            "storageClass": self.storage_class,
            "accountName": self.account_name,
            "accountId": self.account_id,
            "objects": self.objects,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BucketSummary":
        return cls(
            name=str(data["name"]),
            account_name=str(data.get("accountName", "")),
            account_id=str(data.get("accountId", "")),
            objects=_non_negative_int(data.get("objects")),
            size=_non_negative_int(data.get("size")),
            created_at=data.get("createdAt"),
            region=str(data.get("region") or "auto"),
            storage_class=str(data.get("storageClass") or "Standard"),
        )


@dataclass
class CachedBucketList:
    """Aggregated bucket list snapshot for one user"""

    buckets: List[BucketSummary]
    captured_at: datetime
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "buckets": [b.to_dict() for b in self.buckets],
            "capturedAt": to_iso(self.captured_at),
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["CachedBucketList"]:
        captured_at = parse_iso(data.get("capturedAt"))
        raw_buckets = data.get("buckets")
        if captured_at is None or not isinstance(raw_buckets, list):
            return None
        return cls(
            buckets=[BucketSummary.from_dict(b) for b in raw_buckets if isinstance(b, dict) and "name" in b],
            captured_at=captured_at,
            warnings=[str(w) for w in data.get("warnings") or []],
        )


@dataclass
class RefreshSummary:
    total_users: int = 0
    total_accounts: int = 0
    total_buckets: int = 0
    refreshed_stats: int = 0
    errors: int = 0
    timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalUsers": self.total_users,
            "totalAccounts": self.total_accounts,
            "totalBuckets": self.total_buckets,
            "refreshedStats": self.refreshed_stats,
            "errors": self.errors,
            "timestamp": to_iso(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RefreshSummary":
        return cls(
            total_users=_non_negative_int(data.get("totalUsers")),
            total_accounts=_non_negative_int(data.get("totalAccounts")),
            total_buckets=_non_negative_int(data.get("totalBuckets")),
            refreshed_stats=_non_negative_int(data.get("refreshedStats")),
            errors=_non_negative_int(data.get("errors")),
            timestamp=parse_iso(data.get("timestamp")),
        )


@dataclass
class AggregationResult:
    success: bool
    buckets: List[BucketSummary] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    refreshed_at: Optional[datetime] = None
    accounts_queried: int = 0
    accounts_failed: int = 0

    def raise_for_failure(self) -> None:
        """Raise TotalFailure when no account could be queried"""
        if not self.success:
            raise TotalFailure(self.warnings)


@dataclass
class AccountDeletion:
    account_name: str
    deleted_cache_entries: int
