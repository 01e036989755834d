"""Persistent sync status storage module."""

from .state_store import StateStore, StateStoreError
from .models import ExperimentStatus, LocalSyncStatus, FORCE_FULL_SYNC

__all__ = [
    "StateStore",
    "StateStoreError",
    "ExperimentStatus",
    "LocalSyncStatus",
    "FORCE_FULL_SYNC",
]
