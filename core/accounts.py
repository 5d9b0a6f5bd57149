"""
Account Manager
Storage account CRUD on top of the user records, with stats cache cleanup
"""
import time
from typing import List, Optional

from core.errors import NotFound
from core.models import Account, AccountDeletion
from core.provider import StorageProvider
from core.stats_cache import StatsCache
from core.user_cache import UserRefreshCache
from core.user_store import UserStore
from utils.logger import get_logger

logger = get_logger("r2dash.accounts")


class AccountManager:
    """
    Manages the storage accounts of a user.

    Deleting an account (or clearing a user's cache) purges the related
    ``bucket-stats`` entries on a best-effort basis: the bucket names come
    from a live listing, and any failure there is logged and ignored.
    """

    def __init__(
        self,
        user_store: UserStore,
        provider: StorageProvider,
        stats_cache: StatsCache,
        user_cache: UserRefreshCache,
    ):
        self.user_store = user_store
        self.provider = provider
        self.stats_cache = stats_cache
        self.user_cache = user_cache

    def list_accounts(self, user_id: str) -> List[Account]:
        return self.user_store.require_user(user_id).accounts

    def get_account(self, user_id: str, account_id: str) -> Account:
        account = self.user_store.require_user(user_id).find_account(account_id)
        if account is None:
            raise NotFound(f"Account {account_id} not found")
        return account

    def add_account(self, user_id: str, name: str, account_id: str, api_token: str) -> Account:
        """
        Add an account to the user

        Args:
            user_id: Owner email
            name: Display name
            account_id: Cloudflare account id
            api_token: API token with R2 read access

        Returns:
            The new (active) account
        """
        user = self.user_store.require_user(user_id)
        account = Account(
            id=f"account_{int(time.time() * 1000)}",
            name=name,
            account_id=account_id,
            api_token=api_token,
        )
        # Two adds within the same millisecond
        while user.find_account(account.id) is not None:
            account.id = f"{account.id}_1"

        user.accounts.append(account)
        self.user_store.save_user(user)
        logger.info(f"Added account {name} for {user_id}")
        return account

    def update_account(
        self,
        user_id: str,
        account_id: str,
        name: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Account:
        """Rename and/or (de)activate an account"""
        user = self.user_store.require_user(user_id)
        account = user.find_account(account_id)
        if account is None:
            raise NotFound(f"Account {account_id} not found")

        if name is not None:
            account.name = name
        if is_active is not None:
            account.is_active = is_active

        self.user_store.save_user(user)
        return account

    def _purge_stats(self, account: Account) -> int:
        """Delete cached stats of every bucket the account currently has"""
        deleted = 0
        try:
            for listing in self.provider.list_buckets(account.account_id, account.api_token):
                if self.stats_cache.invalidate(account.account_id, listing.name):
                    deleted += 1
        except Exception as e:
            logger.warning(f"Failed to clean cache for account {account.name}: {e}")
        return deleted

    def delete_account(self, user_id: str, account_id: str) -> AccountDeletion:
        """
        Remove an account and its cached stats.

        Raises:
            NotFound: unknown user or account (nothing is changed)
        """
        user = self.user_store.require_user(user_id)
        account = user.find_account(account_id)
        if account is None:
            raise NotFound(f"Account {account_id} not found")

        deleted = 0
        if account.is_active and account.has_credential():
            deleted = self._purge_stats(account)

        user.accounts = [acc for acc in user.accounts if acc.id != account_id]
        self.user_store.save_user(user)

        logger.info(f"Deleted account {account.name} for {user_id} ({deleted} cache entries)")
        return AccountDeletion(account_name=account.name, deleted_cache_entries=deleted)

    def clear_user_cache(self, user_id: str) -> int:
        """
        Drop all cached stats of the user's accounts and their snapshot.

        Returns:
            Number of bucket stat entries deleted
        """
        user = self.user_store.require_user(user_id)
        deleted = sum(self._purge_stats(account) for account in user.accounts if account.has_credential())
        self.user_cache.clear(user_id)
        logger.info(f"Cleared {deleted} cache entries for {user_id}")
        return deleted
