import pytest

from core.aggregator import BucketAggregator
from core.errors import TotalFailure
from core.stats_cache import StatsCache
from core.user_cache import UserRefreshCache


@pytest.fixture
def user_cache(store, clock):
    return UserRefreshCache(store, ttl_seconds=3600, clock=clock)


@pytest.fixture
def aggregator(store, provider, clock, user_cache):
    stats_cache = StatsCache(store, provider, ttl_seconds=3600, clock=clock)
    return BucketAggregator(provider, stats_cache, user_cache, max_workers=4, clock=clock)


def _names(buckets):
    return sorted(b.name for b in buckets)


def test_inactive_accounts_are_skipped(aggregator, provider, account_factory):
    """Buckets of an inactive account never show up"""
    provider.add("acc-1", "a", objects=5, size=100)
    provider.add("acc-1", "b", objects=10, size=200)
    provider.add("acc-2", "c")
    accounts = [account_factory("acc-1"), account_factory("acc-2", active=False)]

    result = aggregator.list_buckets("user@example.com", accounts)

    assert result.success
    assert _names(result.buckets) == ["a", "b"]
    by_name = {b.name: b for b in result.buckets}
    assert (by_name["a"].objects, by_name["a"].size) == (5, 100)
    assert (by_name["b"].objects, by_name["b"].size) == (10, 200)
    assert "acc-2" not in provider.list_calls


def test_one_failing_account_is_a_warning(aggregator, provider, user_cache, account_factory):
    for acc in ("acc-1", "acc-2", "acc-3"):
        provider.add(acc, f"{acc}-bucket")
    provider.failing_accounts.add("acc-2")
    accounts = [account_factory(acc, name=f"Account {acc}") for acc in ("acc-1", "acc-2", "acc-3")]

    result = aggregator.list_buckets("user@example.com", accounts)

    assert result.success
    assert _names(result.buckets) == ["acc-1-bucket", "acc-3-bucket"]
    assert len(result.warnings) == 1
    assert "Account acc-2" in result.warnings[0]

    snapshot = user_cache.read_cached("user@example.com")
    assert _names(snapshot.buckets) == ["acc-1-bucket", "acc-3-bucket"]
    assert snapshot.warnings == result.warnings


def test_total_failure_keeps_previous_snapshot(aggregator, provider, user_cache, clock, account_factory):
    """When every account fails nothing is written"""
    provider.add("acc-1", "a")
    provider.add("acc-2", "b")
    accounts = [account_factory("acc-1"), account_factory("acc-2")]

    assert aggregator.list_buckets("user@example.com", accounts).success
    before = user_cache.read_cached("user@example.com").to_dict()
    refreshed_before = user_cache.read_last_refresh("user@example.com")

    clock.advance(minutes=5)
    provider.failing_accounts.update({"acc-1", "acc-2"})
    result = aggregator.list_buckets("user@example.com", accounts)

    assert not result.success
    assert result.buckets == []
    assert len(result.warnings) == 2
    assert user_cache.read_cached("user@example.com").to_dict() == before
    assert user_cache.read_last_refresh("user@example.com") == refreshed_before


def test_total_failure_without_snapshot_writes_nothing(aggregator, provider, user_cache, account_factory):
    provider.failing_accounts.add("acc-1")

    result = aggregator.list_buckets("user@example.com", [account_factory("acc-1")])

    assert not result.success
    assert user_cache.read_cached("user@example.com") is None
    with pytest.raises(TotalFailure) as excinfo:
        result.raise_for_failure()
    assert excinfo.value.warnings == result.warnings


def test_repeated_aggregation_hits_stats_cache(aggregator, provider, account_factory):
    """Two passes in a row give the same list with one stats call per bucket"""
    for bucket in ("a", "b", "c"):
        provider.add("acc-1", bucket, objects=3, size=30)
    accounts = [account_factory("acc-1")]

    first = aggregator.list_buckets("user@example.com", accounts)
    second = aggregator.list_buckets("user@example.com", accounts)

    key = lambda b: b.name
    assert sorted(first.buckets, key=key) == sorted(second.buckets, key=key)
    assert sorted(provider.stats_calls) == [("acc-1", "a"), ("acc-1", "b"), ("acc-1", "c")]


def test_force_refresh_bypasses_stats_cache(aggregator, provider, account_factory):
    provider.add("acc-1", "a")
    accounts = [account_factory("acc-1")]

    aggregator.list_buckets("user@example.com", accounts)
    aggregator.list_buckets("user@example.com", accounts, force_refresh=True)

    assert len(provider.stats_calls) == 2


def test_failing_bucket_stats_do_not_abort(aggregator, provider, account_factory):
    provider.add("acc-1", "good", objects=2, size=20)
    provider.add("acc-1", "bad", objects=9, size=90)
    provider.failing_buckets.add("bad")

    result = aggregator.list_buckets("user@example.com", [account_factory("acc-1")])

    by_name = {b.name: b for b in result.buckets}
    assert result.success
    assert (by_name["bad"].objects, by_name["bad"].size) == (0, 0)
    assert (by_name["good"].objects, by_name["good"].size) == (2, 20)


def test_no_active_accounts_is_an_empty_success(aggregator, user_cache, clock, account_factory):
    result = aggregator.list_buckets("user@example.com", [account_factory("acc-1", active=False)])

    assert result.success
    assert result.buckets == []
    assert user_cache.read_last_refresh("user@example.com") == clock.now
