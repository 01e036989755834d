"""
Local sync status models.

These models track, per account, which experiments are known locally and
how far each one has been synchronized with the remote library.
"""

from dataclasses import dataclass, field, replace
from typing import Optional

# Library watermark value that forces a full resync on the next pass
FORCE_FULL_SYNC = -1


@dataclass
class ExperimentStatus:
    """
    Sync bookkeeping for a single experiment.

    Attributes:
        experiment_id: Experiment identifier (immutable once registered)
        dirty: Local changes exist that have not been pushed remotely
        last_synced_version: Last remote version synced to or from
        server_archived: Last known archived flag on the remote copy
        downloaded: Whether a local copy of the experiment exists
    """
    experiment_id: str
    dirty: bool = False
    last_synced_version: int = 0
    server_archived: bool = False
    downloaded: bool = False

    @classmethod
    def from_row(cls, row: tuple) -> "ExperimentStatus":
        """Create from SQLite row tuple."""
        (
            experiment_id,
            dirty,
            last_synced_version,
            server_archived,
            downloaded,
        ) = row

        return cls(
            experiment_id=experiment_id,
            dirty=bool(dirty),
            last_synced_version=last_synced_version or 0,
            server_archived=bool(server_archived),
            downloaded=bool(downloaded),
        )


@dataclass
class LocalSyncStatus:
    """
    The whole sync status record for one account.

    A fresh account starts with no experiments and a library
    watermark of 0.
    """
    experiment_statuses: list[ExperimentStatus] = field(default_factory=list)
    last_synced_library_version: int = 0

    @property
    def experiment_ids(self) -> list[str]:
        """Ids of all tracked experiments, in registration order."""
        return [status.experiment_id for status in self.experiment_statuses]

    def validate(self) -> None:
        """
        Check that every experiment id is non-empty and unique.

        Raises:
            ValueError: If an id is empty or appears more than once
        """
        seen = set()
        for status in self.experiment_statuses:
            if not status.experiment_id:
                raise ValueError("experiment_id must not be empty")
            if status.experiment_id in seen:
                raise ValueError(f"Duplicate experiment_id {status.experiment_id!r}")
            seen.add(status.experiment_id)

    def find(self, experiment_id: str) -> Optional[ExperimentStatus]:
        """
        Look up an experiment's status.

        Args:
            experiment_id: Experiment to look for

        Returns:
            The ExperimentStatus held by this record, or None if not tracked
        """
        if not experiment_id:
            return None

        for status in self.experiment_statuses:
            if status.experiment_id == experiment_id:
                return status
        return None

    def copy(self) -> "LocalSyncStatus":
        """Return a deep copy that shares no mutable state with this record."""
        return LocalSyncStatus(
            experiment_statuses=[replace(s) for s in self.experiment_statuses],
            last_synced_library_version=self.last_synced_library_version,
        )
