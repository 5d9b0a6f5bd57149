"""
Storage Provider Client
Talks to the Cloudflare v4 API to enumerate R2 buckets of an account
"""
import random
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests

from core.errors import ProviderUnavailable
from core.models import BucketListing, BucketStat
from utils.logger import get_logger

logger = get_logger("r2dash.provider")


class StatsSource(ABC):
    """Computes usage numbers for a single bucket"""

    @abstractmethod
    def bucket_stats(self, account_external_id: str, credential: str, bucket_name: str) -> BucketStat:
        raise NotImplementedError


class SyntheticStatsSource(StatsSource):
    """
    Placeholder numbers.

    R2 has no cheap per-bucket usage endpoint; until a counter fed by the
    upload/delete path exists, the dashboard shows generated values.
    """

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)
        self._lock = threading.Lock()

    def bucket_stats(self, account_external_id: str, credential: str, bucket_name: str) -> BucketStat:
        with self._lock:
            objects = self._random.randrange(100)
            size = self._random.randrange(1_000_000_000)
        return BucketStat(object_count=objects, total_size_bytes=size)


class StorageProvider(ABC):
    @abstractmethod
    def list_buckets(self, account_external_id: str, credential: str) -> List[BucketListing]:
        """
        List buckets of an account.

        Raises:
            ProviderUnavailable: on network, auth, rate limit or payload errors
        """
        raise NotImplementedError

    @abstractmethod
    def get_bucket_stats(self, account_external_id: str, credential: str, bucket_name: str) -> BucketStat:
        """
        Usage numbers of one bucket; fetched_at is left for the caller to set.

        Raises:
            ProviderUnavailable: when the numbers cannot be obtained
        """
        raise NotImplementedError


class CloudflareR2Provider(StorageProvider):
    """
    Cloudflare R2 through the v4 REST API.

    Args:
        api_base_url: API root, e.g. https://api.cloudflare.com/client/v4
        timeout: Per-request timeout in seconds
        page_size: Buckets requested per page
        stats_source: Strategy for per-bucket usage numbers
        session: requests session (injected in tests)
    """

    def __init__(
        self,
        api_base_url: str = "https://api.cloudflare.com/client/v4",
        timeout: float = 30,
        page_size: int = 1000,
        stats_source: Optional[StatsSource] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size
        self.stats_source = stats_source or SyntheticStatsSource()
        self.session = session or requests.Session()

    def _headers(self, credential: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {credential}",
            "Content-Type": "application/json",
        }

    def _error_code(self, response: requests.Response) -> str:
        if response.status_code == 429:
            return "rate_limited"
        if response.status_code in (401, 403):
            return "auth"
        return f"http_{response.status_code}"

    def _api_errors(self, payload: Dict[str, Any]) -> str:
        errors = payload.get("errors")
        if not isinstance(errors, list):
            return ""
        messages = [
            str(err.get("message", "")) for err in errors if isinstance(err, dict)
        ]
        return "; ".join(m for m in messages if m)

    def _get_page(self, account_external_id: str, credential: str, cursor: Optional[str]) -> Dict[str, Any]:
        url = f"{self.api_base_url}/accounts/{account_external_id}/r2/buckets"
        params: Dict[str, Any] = {"per_page": self.page_size}
        if cursor:
            params["cursor"] = cursor

        try:
            response = self.session.get(
                url, headers=self._headers(credential), params=params, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ProviderUnavailable(
                f"Network error listing buckets: {e}", code="network", account=account_external_id
            ) from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not isinstance(payload, dict):
            code = self._error_code(response) if not response.ok else "bad_payload"
            raise ProviderUnavailable(
                f"Unexpected response listing buckets (HTTP {response.status_code})",
                code=code,
                account=account_external_id,
            )

        if not response.ok or payload.get("success") is not True:
            detail = self._api_errors(payload) or f"HTTP {response.status_code}"
            code = self._error_code(response) if not response.ok else "api_error"
            raise ProviderUnavailable(
                f"Bucket listing rejected: {detail}", code=code, account=account_external_id
            )

        return payload

    def _parse_buckets(self, payload: Dict[str, Any], account_external_id: str) -> List[BucketListing]:
        result = payload.get("result")
        raw_buckets = result.get("buckets") if isinstance(result, dict) else None
        if not isinstance(raw_buckets, list):
            raise ProviderUnavailable(
                "Bucket listing has no bucket list", code="bad_payload", account=account_external_id
            )

        buckets = []
        for raw in raw_buckets:
            name = raw.get("name") if isinstance(raw, dict) else None
            if not isinstance(name, str) or not name:
                logger.warning(f"Skipping unnamed bucket entry for account {account_external_id}")
                continue
            created = raw.get("creation_date")
            buckets.append(BucketListing(name=name, created_at=created if isinstance(created, str) else None))
        return buckets

    def list_buckets(self, account_external_id: str, credential: str) -> List[BucketListing]:
        buckets: List[BucketListing] = []
        seen_cursors = set()
        cursor: Optional[str] = None

        while True:
            payload = self._get_page(account_external_id, credential, cursor)
            buckets.extend(self._parse_buckets(payload, account_external_id))

            info = payload.get("result_info")
            cursor = info.get("cursor") if isinstance(info, dict) else None
            if not isinstance(cursor, str) or not cursor or cursor in seen_cursors:
                break
            seen_cursors.add(cursor)

        logger.debug(f"Listed {len(buckets)} buckets for account {account_external_id}")
        return buckets

    def get_bucket_stats(self, account_external_id: str, credential: str, bucket_name: str) -> BucketStat:
        try:
            return self.stats_source.bucket_stats(account_external_id, credential, bucket_name)
        except ProviderUnavailable:
            raise
        except Exception as e:
            raise ProviderUnavailable(
                f"Stats unavailable for bucket {bucket_name}: {e}",
                code="stats_error",
                account=account_external_id,
            ) from e
