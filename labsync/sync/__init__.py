"""Local sync status ledger module."""

from .ledger import SyncStatusStore, LedgerError, ExperimentNotFoundError
from .registry import SyncStatusRegistry

__all__ = [
    "SyncStatusStore",
    "LedgerError",
    "ExperimentNotFoundError",
    "SyncStatusRegistry",
]
