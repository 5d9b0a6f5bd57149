"""Error taxonomy shared by the cache, refresh and API layers"""

from typing import List, Optional


class DashboardError(Exception):
    """Base class for all dashboard errors"""


class Unauthorized(DashboardError):
    """Missing or invalid user identity, or a wrong shared secret"""


class NotFound(DashboardError):
    """Referenced user or account does not exist"""


class StoreError(DashboardError):
    """Key-value store read or write failed"""


class ProviderUnavailable(DashboardError):
    """
    External provider call failed (network, auth, rate limit, bad payload).

    Attributes:
        code: Short machine-readable reason ("http_429", "network", ...)
        account: External account id the call was made for, if known
    """

    def __init__(self, message: str, code: str = "unknown", account: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.account = account


class TotalFailure(DashboardError):
    """No account could be queried during an aggregation pass"""

    def __init__(self, warnings: List[str]):
        super().__init__("Failed to fetch buckets from any account")
        self.warnings = list(warnings)
