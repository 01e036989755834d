"""
Per-account ledger registry.

Hands out exactly one SyncStatusStore per account so that every caller in
the process shares the same in-memory record and write ordering.
"""

import logging
import threading

from ..storage.state_store import StateStore
from .ledger import SyncStatusStore

logger = logging.getLogger(__name__)


class SyncStatusRegistry:
    """
    Cache of SyncStatusStore handles keyed by account.

    Ledgers are created lazily and not loaded until first used, so
    get() never blocks on storage.

    Usage:
        registry = SyncStatusRegistry(state_store)
        registry.get("alice@example.com").set_dirty("exp-1", True)
    """

    def __init__(self, state_store: StateStore):
        self.state_store = state_store
        self._ledgers: dict[str, SyncStatusStore] = {}
        self._lock = threading.Lock()

    def get(self, account: str) -> SyncStatusStore:
        """
        Get the ledger for an account, creating it on first request.

        Args:
            account: Opaque account key

        Returns:
            The account's SyncStatusStore
        """
        with self._lock:
            ledger = self._ledgers.get(account)
            if ledger is None:
                ledger = SyncStatusStore(self.state_store, account)
                self._ledgers[account] = ledger
                logger.debug(f"Created sync ledger for account {account}")
            return ledger

    def accounts(self) -> list[str]:
        """Accounts with a ledger in this registry."""
        with self._lock:
            return sorted(self._ledgers)

    def forget(self, account: str) -> bool:
        """
        Drop the cached ledger for an account.

        The next get() will load the record from storage again.

        Returns:
            True if a ledger was cached
        """
        with self._lock:
            return self._ledgers.pop(account, None) is not None
