"""
Pytest configuration and shared fixtures.

Provides temporary state stores and sample sync status records.
"""

import pytest
from pathlib import Path
from typing import Generator
import tempfile

from labsync.storage.state_store import StateStore, StateStoreError
from labsync.storage.models import ExperimentStatus, LocalSyncStatus
from labsync.sync.ledger import SyncStatusStore


class RecordingStateStore(StateStore):
    """StateStore that counts calls and can be told to fail."""

    def __init__(self, database_path: Path):
        super().__init__(database_path)
        self.reads = 0
        self.writes = 0
        self.fail_reads = False
        self.fail_writes = False

    def read(self, account: str) -> LocalSyncStatus:
        self.reads += 1
        if self.fail_reads:
            raise StateStoreError("disk unavailable")
        return super().read(account)

    def write(self, record: LocalSyncStatus, account: str) -> None:
        self.writes += 1
        if self.fail_writes:
            raise StateStoreError("disk full")
        super().write(record, account)


# ============================================================================
# Storage Fixtures
# ============================================================================

@pytest.fixture
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database path in its own directory."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp) / "sync_status.db"


@pytest.fixture
def state_store(temp_db_path: Path) -> StateStore:
    """Create a fresh StateStore with temp database."""
    return StateStore(temp_db_path)


@pytest.fixture
def recording_store(temp_db_path: Path) -> RecordingStateStore:
    """Create a StateStore that records reads and writes."""
    return RecordingStateStore(temp_db_path)


@pytest.fixture
def account() -> str:
    """Account key used by ledger tests."""
    return "alice@example.com"


@pytest.fixture
def ledger(recording_store: RecordingStateStore, account: str) -> SyncStatusStore:
    """Create an unloaded ledger for the test account."""
    return SyncStatusStore(recording_store, account)


# ============================================================================
# Record Fixtures
# ============================================================================

@pytest.fixture
def sample_record() -> LocalSyncStatus:
    """Create a sample record with two experiments."""
    return LocalSyncStatus(
        experiment_statuses=[
            ExperimentStatus(
                experiment_id="exp-1",
                dirty=True,
                last_synced_version=3,
                server_archived=False,
                downloaded=True,
            ),
            ExperimentStatus(
                experiment_id="exp-2",
                dirty=False,
                last_synced_version=11,
                server_archived=True,
                downloaded=False,
            ),
        ],
        last_synced_library_version=42,
    )
