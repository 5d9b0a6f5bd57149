import pytest

from core.errors import ProviderUnavailable
from core.stats_cache import StatsCache, stats_key


@pytest.fixture
def cache(store, provider, clock):
    return StatsCache(store, provider, ttl_seconds=3600, clock=clock)


def test_fresh_entry_is_served_from_cache(cache, provider, clock, account_factory):
    """A read 59 minutes after the fetch does not call the provider"""
    account = account_factory("acc-1")
    provider.add("acc-1", "a", objects=5, size=100)

    first = cache.get_or_refresh(account, "a")
    assert (first.object_count, first.total_size_bytes) == (5, 100)
    assert first.fetched_at == clock.now

    clock.advance(minutes=59)
    second = cache.get_or_refresh(account, "a")

    assert provider.stats_calls == [("acc-1", "a")]
    assert second == first


def test_stale_entry_is_refetched(cache, provider, clock, account_factory):
    """A read 61 minutes after the fetch calls the provider and moves fetched_at"""
    account = account_factory("acc-1")
    provider.add("acc-1", "a", objects=5, size=100)

    first = cache.get_or_refresh(account, "a")
    clock.advance(minutes=61)
    provider.add("acc-1", "a", objects=6, size=150)
    second = cache.get_or_refresh(account, "a")

    assert len(provider.stats_calls) == 2
    assert second.fetched_at > first.fetched_at
    assert (second.object_count, second.total_size_bytes) == (6, 150)


@pytest.mark.parametrize("age_minutes", [0, 1, 30, 59])
def test_force_refresh_always_calls_provider(cache, provider, clock, account_factory, age_minutes):
    account = account_factory("acc-1")
    provider.add("acc-1", "a")

    cache.get_or_refresh(account, "a")
    clock.advance(minutes=age_minutes)
    cache.get_or_refresh(account, "a", force_refresh=True)

    assert len(provider.stats_calls) == 2


def test_provider_failure_returns_zero_stat(cache, provider, store, account_factory):
    """A failing bucket yields zeros and nothing is cached"""
    account = account_factory("acc-1")
    provider.add("acc-1", "broken")
    provider.failing_buckets.add("broken")

    stat = cache.get_or_refresh(account, "broken")

    assert (stat.object_count, stat.total_size_bytes) == (0, 0)
    assert store.get(stats_key("acc-1", "broken")) is None


def test_strict_mode_raises_provider_errors(cache, provider, account_factory):
    account = account_factory("acc-1")
    provider.failing_buckets.add("broken")

    with pytest.raises(ProviderUnavailable):
        cache.get_or_refresh(account, "broken", contain_errors=False)


def test_fetched_at_never_goes_backwards(cache, provider, clock, account_factory):
    """A refresh with a clock behind the stored entry keeps the stored timestamp"""
    account = account_factory("acc-1")
    provider.add("acc-1", "a")

    first = cache.get_or_refresh(account, "a")
    clock.advance(minutes=-10)
    second = cache.get_or_refresh(account, "a", force_refresh=True)

    assert second.fetched_at == first.fetched_at


def test_invalidate_forces_cold_miss(cache, provider, account_factory):
    account = account_factory("acc-1")
    provider.add("acc-1", "a")

    cache.get_or_refresh(account, "a")
    assert cache.invalidate("acc-1", "a") is True
    assert cache.peek("acc-1", "a") is None

    cache.get_or_refresh(account, "a")
    assert len(provider.stats_calls) == 2
