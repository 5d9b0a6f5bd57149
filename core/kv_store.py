"""
Key-Value Store
Adapters over simple string key/value storage with optional TTL, plus the
versioned record envelope every cached value is wrapped in
"""
import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from core.errors import StoreError
from core.models import utc_now
from utils.logger import get_logger

logger = get_logger("r2dash.store")

Clock = Callable[[], datetime]

# Bump when a record layout changes incompatibly
RECORD_SCHEMA_VERSION = 1


class KeyValueStore(ABC):
    """Minimal contract the dashboard needs from its storage"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def list(self, prefix: str = "") -> List[str]:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store, used for tests and single-process deployments"""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utc_now
        self._data: Dict[str, Tuple[str, Optional[datetime]]] = {}
        self._lock = threading.Lock()

    def _expired(self, expires_at: Optional[datetime]) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    def _expiry(self, ttl_seconds: Optional[int]) -> Optional[datetime]:
        if ttl_seconds is None:
            return None
        return self._clock() + timedelta(seconds=ttl_seconds)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._expired(expires_at):
                del self._data[key]
                return None
            return value

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        with self._lock:
            self._data[key] = (value, self._expiry(ttl_seconds))

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def list(self, prefix: str = "") -> List[str]:
        with self._lock:
            return sorted(
                key
                for key, (_, expires_at) in self._data.items()
                if key.startswith(prefix) and not self._expired(expires_at)
            )


class SqliteKeyValueStore(KeyValueStore):
    """
    SQLite-backed store living in the data directory.

    One row per key, and every call goes to the database, so the API server
    and the cron refresh process can share the file safely. Expiry is a
    unix timestamp compared inside SQL.
    """

    def __init__(self, path: Path, clock: Optional[Clock] = None, timeout: float = 10.0):
        self.path = Path(path)
        self.timeout = timeout
        self._clock = clock or utc_now
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create store directory for {self.path}: {e}") from e
        with self._connection() as conn:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS kv ("
                " key TEXT PRIMARY KEY,"
                " value TEXT NOT NULL,"
                " expires_at REAL)"
            )

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(str(self.path), timeout=self.timeout)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open store {self.path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Store operation failed on {self.path}: {e}") from e
        finally:
            conn.close()

    def _now(self) -> float:
        return self._clock().timestamp()

    def get(self, key: str) -> Optional[str]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT value FROM kv WHERE key = ? AND (expires_at IS NULL OR expires_at > ?)",
                (key, self._now()),
            ).fetchone()
        return row[0] if row else None

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        now = self._now()
        expires_at = now + ttl_seconds if ttl_seconds is not None else None
        with self._connection() as conn:
            conn.execute("DELETE FROM kv WHERE expires_at <= ?", (now,))
            conn.execute(
                "INSERT OR REPLACE INTO kv (key, value, expires_at) VALUES (?, ?, ?)",
                (key, value, expires_at),
            )

    def delete(self, key: str) -> None:
        with self._connection() as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))

    def list(self, prefix: str = "") -> List[str]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT key FROM kv"
                " WHERE substr(key, 1, ?) = ? AND (expires_at IS NULL OR expires_at > ?)"
                " ORDER BY key",
                (len(prefix), prefix, self._now()),
            ).fetchall()
        return [row[0] for row in rows]


def encode_record(kind: str, data: Dict[str, Any]) -> str:
    return json.dumps({"schema": RECORD_SCHEMA_VERSION, "kind": kind, "data": data})


def decode_record(raw: Optional[str], kind: str) -> Optional[Dict[str, Any]]:
    """
    Unwrap a record envelope.

    Returns None (and logs) for anything that is not a record of the expected
    kind at a schema version this code understands.
    """
    if raw is None:
        return None
    try:
        envelope = json.loads(raw)
    except ValueError:
        logger.warning(f"Discarding undecodable {kind} record")
        return None

    if not isinstance(envelope, dict) or envelope.get("kind") != kind:
        logger.warning(f"Discarding record with unexpected kind (wanted {kind})")
        return None

    schema = envelope.get("schema")
    if not isinstance(schema, int) or schema > RECORD_SCHEMA_VERSION:
        logger.warning(f"Discarding {kind} record with unsupported schema {schema!r}")
        return None

    data = envelope.get("data")
    return data if isinstance(data, dict) else None


def read_record(store: KeyValueStore, key: str, kind: str) -> Optional[Dict[str, Any]]:
    """Read a record, treating store failures as a miss"""
    try:
        raw = store.get(key)
    except Exception as e:
        logger.error(f"Cache read failed for {key}: {e}")
        return None
    return decode_record(raw, kind)


def write_record(
    store: KeyValueStore,
    key: str,
    kind: str,
    data: Dict[str, Any],
    ttl_seconds: Optional[int] = None,
) -> bool:
    """Write a record, treating store failures as a no-op"""
    try:
        store.put(key, encode_record(kind, data), ttl_seconds)
        return True
    except Exception as e:
        logger.error(f"Cache write failed for {key}: {e}")
        return False


def delete_key(store: KeyValueStore, key: str) -> bool:
    """Delete a key, treating store failures as a no-op"""
    try:
        store.delete(key)
        return True
    except Exception as e:
        logger.error(f"Cache delete failed for {key}: {e}")
        return False


def create_store(backend: str, data_dir: Path, clock: Optional[Clock] = None) -> KeyValueStore:
    """Build the configured store backend"""
    if backend == "memory":
        return MemoryKeyValueStore(clock)
    if backend == "sqlite":
        return SqliteKeyValueStore(Path(data_dir) / "store.db", clock)
    raise ValueError(f"Unknown store backend: {backend}")
