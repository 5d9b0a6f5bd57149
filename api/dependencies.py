"""Service wiring and shared dependencies for API endpoints"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from api.task_manager import TaskManager
from config import ConfigManager
from core.accounts import AccountManager
from core.aggregator import BucketAggregator
from core.auth import AuthManager
from core.kv_store import Clock, KeyValueStore, create_store
from core.provider import CloudflareR2Provider, StorageProvider, SyntheticStatsSource
from core.scheduler import RefreshScheduler
from core.stats_cache import StatsCache
from core.user_cache import UserRefreshCache
from core.user_store import UserStore


@dataclass
class Services:
    """Everything a request handler may need, built once at startup"""

    config_manager: ConfigManager
    store: KeyValueStore
    provider: StorageProvider
    stats_cache: StatsCache
    user_cache: UserRefreshCache
    user_store: UserStore
    aggregator: BucketAggregator
    scheduler: RefreshScheduler
    account_manager: AccountManager
    auth_manager: AuthManager
    task_manager: TaskManager


def build_services(
    config_manager: ConfigManager,
    store: Optional[KeyValueStore] = None,
    provider: Optional[StorageProvider] = None,
    clock: Optional[Clock] = None,
) -> Services:
    """
    Build the service graph from configuration

    Args:
        config_manager: Loaded configuration
        store: Key-value store override (default: configured backend)
        provider: Provider override (default: Cloudflare R2 client)
        clock: Time source override, used by tests
    """
    cache_settings = config_manager.get_cache_settings()
    provider_settings = config_manager.get_provider_settings()
    refresh_settings = config_manager.get_refresh_settings()
    stats_settings = config_manager.get_stats_settings()

    if store is None:
        store = create_store(cache_settings["backend"], config_manager.data_dir, clock)
    if provider is None:
        provider = CloudflareR2Provider(
            api_base_url=provider_settings["api_base_url"],
            timeout=provider_settings["request_timeout"],
            page_size=provider_settings["page_size"],
            stats_source=SyntheticStatsSource(stats_settings.get("seed")),
        )

    stats_cache = StatsCache(store, provider, cache_settings["stats_ttl_seconds"], clock)
    user_cache = UserRefreshCache(
        store,
        ttl_seconds=cache_settings["user_buckets_ttl_seconds"],
        last_refresh_ttl_seconds=cache_settings["last_refresh_ttl_seconds"],
        clock=clock,
    )
    user_store = UserStore(store, config_manager.security)

    return Services(
        config_manager=config_manager,
        store=store,
        provider=provider,
        stats_cache=stats_cache,
        user_cache=user_cache,
        user_store=user_store,
        aggregator=BucketAggregator(
            provider,
            stats_cache,
            user_cache,
            max_workers=refresh_settings["stats_workers"],
            clock=clock,
        ),
        scheduler=RefreshScheduler(
            user_store,
            provider,
            stats_cache,
            store,
            summary_ttl_seconds=cache_settings["summary_ttl_seconds"],
            clock=clock,
        ),
        account_manager=AccountManager(user_store, provider, stats_cache, user_cache),
        auth_manager=AuthManager(user_store, config_manager.jwt_secret),
        task_manager=TaskManager(),
    )


def get_services(request: Request) -> Services:
    """Dependency to get the application's Services"""
    return request.app.state.services
