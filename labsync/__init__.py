"""Local experiment sync status ledger."""

from .storage import StateStore, StateStoreError, ExperimentStatus, LocalSyncStatus
from .sync import SyncStatusStore, SyncStatusRegistry, LedgerError, ExperimentNotFoundError

__all__ = [
    "StateStore",
    "StateStoreError",
    "ExperimentStatus",
    "LocalSyncStatus",
    "SyncStatusStore",
    "SyncStatusRegistry",
    "LedgerError",
    "ExperimentNotFoundError",
]
