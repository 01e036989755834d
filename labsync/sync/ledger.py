"""
Local sync status ledger.

Single source of truth, per account, for sync bookkeeping. All changes
must go through the accessors on SyncStatusStore rather than by editing
the underlying LocalSyncStatus record; changes made to the record
outside this class may be overwritten and are not saved.
"""

import logging
import threading
from dataclasses import replace
from typing import Optional

from ..storage.models import FORCE_FULL_SYNC, ExperimentStatus, LocalSyncStatus
from ..storage.state_store import StateStore, StateStoreError

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for sync ledger errors."""
    pass


class ExperimentNotFoundError(LedgerError):
    """Raised when an accessor is used on an experiment that was never added."""

    def __init__(self, experiment_id: str, account: str):
        super().__init__(
            f"Experiment {experiment_id!r} is not tracked for account {account}"
        )
        self.experiment_id = experiment_id
        self.account = account


class SyncStatusStore:
    """
    Per-account ledger of local sync status.

    The record is loaded from the StateStore on first use (or eagerly via
    open()) and written back in full after every mutation. A failed write
    is logged and reported through the mutator's return value; the
    in-memory change is kept either way so the next successful write
    carries it.

    Getters and setters on an experiment that was never added raise
    ExperimentNotFoundError.

    Usage:
        ledger = SyncStatusStore.open(state_store, "alice@example.com")

        if not ledger.has_experiment("exp-1"):
            ledger.add_experiment("exp-1")
        ledger.set_dirty("exp-1", True)
    """

    def __init__(
        self,
        state_store: StateStore,
        account: str,
        record: Optional[LocalSyncStatus] = None,
    ):
        """
        Initialize the ledger without touching storage.

        Args:
            state_store: Durable storage for the record
            account: Opaque account key scoping the record
            record: Optional starting record; bypasses storage when given

        Raises:
            ValueError: If record has empty or duplicate experiment ids
        """
        if record is not None:
            record.validate()

        self.state_store = state_store
        self.account = account
        self._record = record
        self._lock = threading.RLock()

    @classmethod
    def open(cls, state_store: StateStore, account: str) -> "SyncStatusStore":
        """
        Create a ledger with its record already loaded.

        Args:
            state_store: Durable storage for the record
            account: Opaque account key

        Returns:
            A loaded SyncStatusStore
        """
        ledger = cls(state_store, account)
        ledger.ensure_loaded()
        return ledger

    @property
    def is_loaded(self) -> bool:
        return self._record is not None

    def ensure_loaded(self) -> None:
        """
        Load the record from storage if none is held yet.

        A read failure leaves the ledger usable with an empty record.
        """
        with self._lock:
            if self._record is not None:
                return

            try:
                self._record = self.state_store.read(self.account)
            except StateStoreError as e:
                logger.error(
                    f"Failed to load sync status for account {self.account}, "
                    f"starting from an empty record: {e}",
                    exc_info=True,
                )
                self._record = LocalSyncStatus()
                return

            logger.debug(
                f"Loaded sync status for account {self.account}: "
                f"{len(self._record.experiment_statuses)} experiments"
            )

    def replace_record(self, record: LocalSyncStatus) -> None:
        """
        Swap in a record directly, bypassing storage.

        Used to set up known starting states. Nothing is persisted.

        Raises:
            ValueError: If record has empty or duplicate experiment ids
        """
        record.validate()
        with self._lock:
            self._record = record

    def reset(self) -> bool:
        """
        Replace the record with an empty one and persist it.

        Returns:
            True if the empty record was persisted
        """
        with self._lock:
            self._record = LocalSyncStatus()
            logger.info(f"Reset sync status for account {self.account}")
            return self._write()

    def snapshot(self) -> LocalSyncStatus:
        """Return a deep copy of the current record."""
        with self._lock:
            self.ensure_loaded()
            return self._record.copy()

    # ------------------------------------------------------------------
    # Experiment accessors
    # ------------------------------------------------------------------

    def has_experiment(self, experiment_id: str) -> bool:
        """Check if an experiment is tracked."""
        with self._lock:
            self.ensure_loaded()
            return self._record.find(experiment_id) is not None

    def add_experiment(self, experiment_id: str) -> bool:
        """
        Start tracking an experiment.

        The library watermark is set to FORCE_FULL_SYNC, since the remote
        side does not know about the experiment yet. Adding an experiment
        that is already tracked changes nothing.

        Args:
            experiment_id: Id of the experiment to track

        Returns:
            True if the record was persisted (or nothing needed persisting)

        Raises:
            ValueError: If experiment_id is empty
        """
        if not experiment_id:
            raise ValueError("experiment_id must not be empty")

        with self._lock:
            self.ensure_loaded()

            if self._record.find(experiment_id) is not None:
                logger.debug(f"Experiment {experiment_id} already tracked")
                return True

            self._record.experiment_statuses.append(
                ExperimentStatus(experiment_id=experiment_id)
            )
            self._record.last_synced_library_version = FORCE_FULL_SYNC
            logger.info(f"Tracking experiment {experiment_id} for account {self.account}")
            return self._write()

    def experiment_ids(self) -> list[str]:
        """Ids of all tracked experiments, in the order they were added."""
        with self._lock:
            self.ensure_loaded()
            return self._record.experiment_ids

    def dirty_experiment_ids(self) -> list[str]:
        """Ids of experiments with local changes not yet pushed."""
        with self._lock:
            self.ensure_loaded()
            return [s.experiment_id for s in self._record.experiment_statuses if s.dirty]

    def get_status(self, experiment_id: str) -> ExperimentStatus:
        """
        Get a copy of an experiment's status.

        Changing the returned object has no effect on the ledger.
        """
        with self._lock:
            return replace(self._require(experiment_id))

    def get_dirty(self, experiment_id: str) -> bool:
        """Whether the experiment has local changes that must be synced."""
        with self._lock:
            return self._require(experiment_id).dirty

    def set_dirty(self, experiment_id: str, dirty: bool) -> bool:
        """
        Set the dirty bit of an experiment.

        Marking an experiment dirty also resets the library watermark to 0
        so the next library pass reconsiders this account.

        Returns:
            True if the change was persisted
        """
        dirty = bool(dirty)
        with self._lock:
            status = self._require(experiment_id)
            status.dirty = dirty
            if dirty:
                self._record.last_synced_library_version = 0
            logger.debug(f"Experiment {experiment_id} dirty={dirty}")
            return self._write()

    def get_last_synced_version(self, experiment_id: str) -> int:
        """The last remote version this experiment was synced to or from."""
        with self._lock:
            return self._require(experiment_id).last_synced_version

    def set_last_synced_version(self, experiment_id: str, version: int) -> bool:
        version = int(version)
        with self._lock:
            self._require(experiment_id).last_synced_version = version
            logger.debug(f"Experiment {experiment_id} last_synced_version={version}")
            return self._write()

    def get_server_archived(self, experiment_id: str) -> bool:
        """Whether the server last reported the experiment as archived."""
        with self._lock:
            return self._require(experiment_id).server_archived

    def set_server_archived(self, experiment_id: str, archived: bool) -> bool:
        archived = bool(archived)
        with self._lock:
            self._require(experiment_id).server_archived = archived
            logger.debug(f"Experiment {experiment_id} server_archived={archived}")
            return self._write()

    def get_downloaded(self, experiment_id: str) -> bool:
        """Whether a local copy of the experiment exists."""
        with self._lock:
            return self._require(experiment_id).downloaded

    def set_downloaded(self, experiment_id: str, downloaded: bool) -> bool:
        downloaded = bool(downloaded)
        with self._lock:
            self._require(experiment_id).downloaded = downloaded
            logger.debug(f"Experiment {experiment_id} downloaded={downloaded}")
            return self._write()

    # ------------------------------------------------------------------
    # Library watermark
    # ------------------------------------------------------------------

    def get_last_synced_library_version(self) -> int:
        with self._lock:
            self.ensure_loaded()
            return self._record.last_synced_library_version

    def set_last_synced_library_version(self, version: int) -> bool:
        """
        Record the remote library version this account is synced to.

        Returns:
            True if the change was persisted
        """
        version = int(version)
        with self._lock:
            self.ensure_loaded()
            self._record.last_synced_library_version = version
            logger.debug(f"Account {self.account} last_synced_library_version={version}")
            return self._write()

    def needs_full_sync(self) -> bool:
        """True when the watermark forces a full resync."""
        return self.get_last_synced_library_version() == FORCE_FULL_SYNC

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, experiment_id: str) -> ExperimentStatus:
        """Find the live status entry or raise ExperimentNotFoundError."""
        self.ensure_loaded()
        status = self._record.find(experiment_id)
        if status is None:
            raise ExperimentNotFoundError(experiment_id, self.account)
        return status

    def _write(self) -> bool:
        """Persist the whole record. Failures are logged, not raised."""
        try:
            self.state_store.write(self._record, self.account)
        except StateStoreError as e:
            logger.error(
                f"Sync status write failed for account {self.account}: {e}",
                exc_info=True,
            )
            return False
        return True
