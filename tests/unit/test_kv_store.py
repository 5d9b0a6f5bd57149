import json
import sqlite3
from unittest.mock import MagicMock

import pytest

from core.errors import StoreError
from core.kv_store import (
    MemoryKeyValueStore,
    SqliteKeyValueStore,
    decode_record,
    encode_record,
    read_record,
    write_record,
)


def test_memory_store_expires_entries(clock):
    """Entries disappear once their TTL has elapsed"""
    store = MemoryKeyValueStore(clock)
    store.put("a", "1", ttl_seconds=60)
    store.put("b", "2")

    clock.advance(seconds=59)
    assert store.get("a") == "1"

    clock.advance(seconds=1)
    assert store.get("a") is None
    assert store.get("b") == "2"


def test_memory_store_lists_by_prefix(clock):
    store = MemoryKeyValueStore(clock)
    store.put("user:a@example.com", "x")
    store.put("user:b@example.com", "y", ttl_seconds=10)
    store.put("bucket-stats:acc:b", "z")

    assert store.list("user:") == ["user:a@example.com", "user:b@example.com"]

    clock.advance(seconds=11)
    assert store.list("user:") == ["user:a@example.com"]


def test_sqlite_store_survives_reload(tmp_path, clock):
    """A second store instance on the same file sees earlier writes"""
    path = tmp_path / "store.db"
    first = SqliteKeyValueStore(path, clock)
    first.put("k", "v", ttl_seconds=3600)
    first.put("gone", "v")
    first.delete("gone")

    second = SqliteKeyValueStore(path, clock)
    assert second.get("k") == "v"
    assert second.get("gone") is None


def test_sqlite_store_shared_between_processes(tmp_path, clock):
    """The API server and the cron refresh see each other's writes"""
    path = tmp_path / "store.db"
    api = SqliteKeyValueStore(path, clock)
    cron = SqliteKeyValueStore(path, clock)

    api.put("user:new@example.com", "record")
    cron.put("last-cron-refresh", "summary", ttl_seconds=86400)

    assert api.get("last-cron-refresh") == "summary"
    assert cron.get("user:new@example.com") == "record"
    assert SqliteKeyValueStore(path, clock).list() == ["last-cron-refresh", "user:new@example.com"]

    cron.delete("user:new@example.com")
    assert api.get("user:new@example.com") is None


def test_sqlite_store_expires_and_lists_by_prefix(tmp_path, clock):
    store = SqliteKeyValueStore(tmp_path / "store.db", clock)
    store.put("user:a@example.com", "x")
    store.put("user:b@example.com", "y", ttl_seconds=60)
    store.put("bucket-stats:acc:b", "z")

    assert store.list("user:") == ["user:a@example.com", "user:b@example.com"]
    assert store.list("user_") == []

    clock.advance(seconds=60)
    assert store.get("user:b@example.com") is None
    assert store.list("user:") == ["user:a@example.com"]
    assert store.list() == ["bucket-stats:acc:b", "user:a@example.com"]


def test_sqlite_store_tolerates_bad_expiry(tmp_path, clock):
    """A row with a garbage expiry neither crashes the store nor hides other keys"""
    path = tmp_path / "store.db"
    SqliteKeyValueStore(path, clock).put("ok", "1")
    conn = sqlite3.connect(str(path))
    conn.execute("INSERT INTO kv (key, value, expires_at) VALUES ('odd', '2', 'not-a-date')")
    conn.commit()
    conn.close()

    store = SqliteKeyValueStore(path, clock)
    assert store.get("ok") == "1"
    store.put("new", "3", ttl_seconds=10)
    assert "ok" in store.list()


def test_sqlite_store_rejects_corrupt_file(tmp_path):
    path = tmp_path / "store.db"
    path.write_text("{not a database at all, just some text that is long enough}" * 4)

    with pytest.raises(StoreError) as excinfo:
        SqliteKeyValueStore(path)

    assert "store" in str(excinfo.value).lower()


def test_decode_record_rejects_foreign_data():
    assert decode_record(encode_record("bucket-stat", {"objects": 1}), "bucket-stat") == {"objects": 1}
    # Wrong kind
    assert decode_record(encode_record("user", {"email": "x"}), "bucket-stat") is None
    # Newer schema than this code understands
    newer = json.dumps({"schema": 99, "kind": "bucket-stat", "data": {}})
    assert decode_record(newer, "bucket-stat") is None
    # Legacy raw JSON without an envelope
    assert decode_record(json.dumps({"objects": 1}), "bucket-stat") is None
    assert decode_record("garbage", "bucket-stat") is None


def test_store_failures_are_miss_and_noop():
    """Cache helpers never raise when the store is down"""
    broken = MagicMock()
    broken.get.side_effect = StoreError("down")
    broken.put.side_effect = StoreError("down")

    assert read_record(broken, "k", "bucket-stat") is None
    assert write_record(broken, "k", "bucket-stat", {"objects": 1}, 60) is False
