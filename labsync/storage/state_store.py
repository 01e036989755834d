"""
SQLite-based persistent sync status store.

Provides durable, whole-record storage of each account's LocalSyncStatus.
A record is always written in a single transaction, so a reader sees
either the previous record or the new one, never a mix.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .models import ExperimentStatus, LocalSyncStatus

logger = logging.getLogger(__name__)


class StateStoreError(Exception):
    """Raised when state store operations fail."""
    pass


class StateStore:
    """
    SQLite-based persistent sync status store.

    Features:
    - Whole-record atomic writes with transactions
    - Connection per operation via context manager
    - Records keyed by an opaque account key
    - Missing records read back as empty defaults

    Usage:
        store = StateStore(Path("data/sync_status.db"))

        record = store.read("alice@example.com")
        record.last_synced_library_version = 12
        store.write(record, "alice@example.com")
    """

    CREATE_STATUS_TABLE_SQL = """
        CREATE TABLE IF NOT EXISTS local_sync_status (
            account_key TEXT PRIMARY KEY,
            last_synced_library_version INTEGER NOT NULL DEFAULT 0
        )
    """

    CREATE_EXPERIMENT_TABLE_SQL = """
        CREATE TABLE IF NOT EXISTS experiment_status (
            account_key TEXT NOT NULL,
            experiment_id TEXT NOT NULL,
            position INTEGER NOT NULL,
            dirty INTEGER DEFAULT 0,
            last_synced_version INTEGER DEFAULT 0,
            server_archived INTEGER DEFAULT 0,
            downloaded INTEGER DEFAULT 0,
            PRIMARY KEY (account_key, experiment_id),
            FOREIGN KEY (account_key)
                REFERENCES local_sync_status(account_key) ON DELETE CASCADE
        )
    """

    CREATE_INDEXES_SQL = [
        "CREATE INDEX IF NOT EXISTS idx_experiment_position "
        "ON experiment_status(account_key, position)",
    ]

    def __init__(self, database_path: Path):
        """
        Initialize state store.

        Args:
            database_path: Path to SQLite database file

        Raises:
            StateStoreError: If the database cannot be created
        """
        self.database_path = Path(database_path)

        # Ensure parent directory exists
        try:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StateStoreError(
                f"Cannot create directory for {self.database_path}: {e}"
            ) from e

        self._initialize_database()

        logger.info(f"State store initialized at {self.database_path}")

    def _initialize_database(self) -> None:
        """Create tables and indexes."""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(self.CREATE_STATUS_TABLE_SQL)
                cursor.execute(self.CREATE_EXPERIMENT_TABLE_SQL)
                for index_sql in self.CREATE_INDEXES_SQL:
                    cursor.execute(index_sql)
                conn.commit()
        except sqlite3.Error as e:
            raise StateStoreError(
                f"Failed to initialize database {self.database_path}: {e}"
            ) from e

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """
        Get a database connection with proper settings.

        Yields:
            SQLite connection with WAL mode and foreign keys enabled
        """
        conn = sqlite3.connect(
            self.database_path,
            timeout=30.0,
            isolation_level="DEFERRED",
        )

        try:
            # Enable WAL mode for better concurrency
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")
            yield conn
        except BaseException:
            # Release the write lock before the exception propagates
            conn.rollback()
            raise
        finally:
            conn.close()

    def read(self, account: str) -> LocalSyncStatus:
        """
        Read the sync status record for an account.

        Args:
            account: Opaque account key

        Returns:
            The stored LocalSyncStatus, or an empty one if none was written

        Raises:
            StateStoreError: If the database cannot be read
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT last_synced_library_version
                    FROM local_sync_status
                    WHERE account_key = ?
                    """,
                    (account,),
                )

                row = cursor.fetchone()
                if row is None:
                    logger.debug(f"No sync status stored for account {account}")
                    return LocalSyncStatus()

                cursor.execute(
                    """
                    SELECT
                        experiment_id,
                        dirty,
                        last_synced_version,
                        server_archived,
                        downloaded
                    FROM experiment_status
                    WHERE account_key = ?
                    ORDER BY position
                    """,
                    (account,),
                )

                return LocalSyncStatus(
                    experiment_statuses=[
                        ExperimentStatus.from_row(r) for r in cursor.fetchall()
                    ],
                    last_synced_library_version=row[0],
                )
        except sqlite3.Error as e:
            raise StateStoreError(
                f"Failed to read sync status for account {account}: {e}"
            ) from e

    def write(self, record: LocalSyncStatus, account: str) -> None:
        """
        Replace the stored sync status record for an account.

        The whole record is rewritten in one transaction. Experiment order
        is preserved.

        Args:
            record: Record to persist
            account: Opaque account key

        Raises:
            StateStoreError: If the record could not be written
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT OR REPLACE INTO local_sync_status (
                        account_key,
                        last_synced_library_version
                    ) VALUES (?, ?)
                    """,
                    (account, record.last_synced_library_version),
                )
                cursor.execute(
                    "DELETE FROM experiment_status WHERE account_key = ?",
                    (account,),
                )
                cursor.executemany(
                    """
                    INSERT INTO experiment_status (
                        account_key,
                        experiment_id,
                        position,
                        dirty,
                        last_synced_version,
                        server_archived,
                        downloaded
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            account,
                            status.experiment_id,
                            position,
                            1 if status.dirty else 0,
                            status.last_synced_version,
                            1 if status.server_archived else 0,
                            1 if status.downloaded else 0,
                        )
                        for position, status in enumerate(record.experiment_statuses)
                    ],
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StateStoreError(
                f"Failed to write sync status for account {account}: {e}"
            ) from e

        logger.debug(
            f"Saved sync status for account {account} "
            f"({len(record.experiment_statuses)} experiments, "
            f"library version {record.last_synced_library_version})"
        )

    def exists(self, account: str) -> bool:
        """
        Check whether a record has ever been written for an account.

        Args:
            account: Opaque account key

        Returns:
            True if a record is stored
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT 1 FROM local_sync_status WHERE account_key = ?",
                    (account,),
                )
                return cursor.fetchone() is not None
        except sqlite3.Error as e:
            raise StateStoreError(f"Failed to query account {account}: {e}") from e

    def delete(self, account: str) -> bool:
        """
        Delete the whole sync status record for an account.

        Args:
            account: Opaque account key

        Returns:
            True if a record was deleted, False if none existed
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "DELETE FROM local_sync_status WHERE account_key = ?",
                    (account,),
                )
                conn.commit()
                deleted = cursor.rowcount > 0
        except sqlite3.Error as e:
            raise StateStoreError(f"Failed to delete account {account}: {e}") from e

        if deleted:
            logger.info(f"Deleted sync status for account {account}")

        return deleted

    def list_accounts(self) -> list[str]:
        """
        List accounts that have a stored record.

        Returns:
            Sorted list of account keys
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT account_key FROM local_sync_status ORDER BY account_key"
                )
                return [row[0] for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StateStoreError(f"Failed to list accounts: {e}") from e

    def clear(self) -> None:
        """
        Clear all sync status for every account.

        WARNING: This is destructive. Use only for testing or reset.
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM experiment_status")
                cursor.execute("DELETE FROM local_sync_status")
                conn.commit()
        except sqlite3.Error as e:
            raise StateStoreError(f"Failed to clear sync status: {e}") from e

        logger.warning("All sync status cleared")
