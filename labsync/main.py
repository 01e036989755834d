#!/usr/bin/env python3
"""
Local Sync Status Ledger - Main Entry Point

Inspects and edits the per-account sync status ledger that records which
experiments have unsynced changes and how far each has been synchronized.

Usage:
    python -m labsync.main                           # Show status
    python -m labsync.main --add exp-1               # Track an experiment
    python -m labsync.main --mark-dirty exp-1        # Flag local changes
    python -m labsync.main --reset --account alice   # Forget all sync state

Environment Variables:
    LABSYNC_DATABASE_PATH   - SQLite database file (default: data/sync_status.db)
    LABSYNC_ACCOUNT         - Account key to operate on (default: local)
    LOG_LEVEL               - Logging level (default: INFO)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

# Add project root to path for imports if running as script
if __name__ == "__main__" and __package__ is None:
    PROJECT_ROOT = Path(__file__).parent.parent
    sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import load_settings, ConfigurationError
from labsync.storage.state_store import StateStore, StateStoreError
from labsync.sync.ledger import SyncStatusStore, ExperimentNotFoundError


def setup_logging(verbose: bool = False, level_name: str = "INFO") -> None:
    """
    Configure logging for the application.

    Args:
        verbose: If True, enable DEBUG level logging
        level_name: Level to use when not verbose
    """
    level = logging.DEBUG if verbose else getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Inspect and edit the local experiment sync status ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m labsync.main                              # Show status
    python -m labsync.main --add exp-1                  # Track experiment
    python -m labsync.main --set-version exp-1 7        # Record remote version
    python -m labsync.main --set-library-version 42     # Record library watermark
    python -m labsync.main --env .env.local --verbose   # Custom env, debug output
        """,
    )

    parser.add_argument(
        "--account",
        help="Account key to operate on (overrides LABSYNC_ACCOUNT)",
    )

    parser.add_argument(
        "--env",
        type=Path,
        help="Path to .env file (default: .env in current directory)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )

    actions = parser.add_mutually_exclusive_group()

    actions.add_argument(
        "--status",
        action="store_true",
        help="Show sync status (default when no other action is given)",
    )

    actions.add_argument(
        "--add",
        metavar="EXPERIMENT",
        help="Start tracking an experiment",
    )

    actions.add_argument(
        "--mark-dirty",
        metavar="EXPERIMENT",
        help="Flag an experiment as having unsynced local changes",
    )

    actions.add_argument(
        "--mark-clean",
        metavar="EXPERIMENT",
        help="Clear an experiment's dirty flag",
    )

    actions.add_argument(
        "--set-version",
        nargs=2,
        metavar=("EXPERIMENT", "VERSION"),
        help="Record the remote version an experiment was last synced to",
    )

    actions.add_argument(
        "--set-library-version",
        type=int,
        metavar="VERSION",
        help="Record the remote library version the account is synced to",
    )

    actions.add_argument(
        "--reset",
        action="store_true",
        help="Discard all sync status for the account",
    )

    return parser.parse_args(argv)


def show_status(ledger: SyncStatusStore) -> None:
    """
    Display current sync status.

    Args:
        ledger: Ledger to report on
    """
    logger = logging.getLogger(__name__)

    record = ledger.snapshot()
    dirty_count = sum(1 for s in record.experiment_statuses if s.dirty)

    logger.info("=" * 50)
    logger.info(f"Sync Status for account {ledger.account}")
    logger.info("=" * 50)
    logger.info(f"Library version:           {record.last_synced_library_version}")
    logger.info(f"Needs full sync:           {ledger.needs_full_sync()}")
    logger.info(f"Tracked experiments:       {len(record.experiment_statuses)}")
    logger.info(f"Dirty (unsynced changes):  {dirty_count}")

    for status in record.experiment_statuses:
        logger.info(
            f"  {status.experiment_id}: version={status.last_synced_version} "
            f"dirty={status.dirty} archived={status.server_archived} "
            f"downloaded={status.downloaded}"
        )

    logger.info("=" * 50)


def apply_action(args: argparse.Namespace, ledger: SyncStatusStore) -> bool:
    """
    Apply the requested edit to the ledger.

    Args:
        args: Parsed command line arguments
        ledger: Ledger to edit

    Returns:
        True if the change was persisted

    Raises:
        ExperimentNotFoundError: If an edit targets an untracked experiment
        ValueError: If a version argument is not an integer
    """
    if args.add:
        return ledger.add_experiment(args.add)
    if args.mark_dirty:
        return ledger.set_dirty(args.mark_dirty, True)
    if args.mark_clean:
        return ledger.set_dirty(args.mark_clean, False)
    if args.set_version:
        experiment_id, version = args.set_version
        return ledger.set_last_synced_version(experiment_id, int(version))
    if args.set_library_version is not None:
        return ledger.set_last_synced_library_version(args.set_library_version)
    if args.reset:
        return ledger.reset()
    return True


def _is_edit(args: argparse.Namespace) -> bool:
    return bool(
        args.add
        or args.mark_dirty
        or args.mark_clean
        or args.set_version
        or args.set_library_version is not None
        or args.reset
    )


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    logger = logging.getLogger(__name__)

    try:
        settings = load_settings(env_file=args.env)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        logger.error("Please check your .env file or environment variables")
        return 1

    setup_logging(verbose=args.verbose, level_name=settings.log_level)

    account = args.account or settings.ledger.account

    try:
        state_store = StateStore(settings.storage.database_path)
    except StateStoreError as e:
        logger.error(f"Cannot open state store: {e}")
        return 1

    ledger = SyncStatusStore.open(state_store, account)

    try:
        if _is_edit(args):
            if not apply_action(args, ledger):
                logger.error("Change applied in memory but could not be saved")
                return 1
            logger.info("Sync status updated")
            return 0

        show_status(ledger)
        return 0

    except ExperimentNotFoundError as e:
        logger.error(f"{e}. Use --add to track it first")
        return 1
    except ValueError as e:
        logger.error(f"Invalid argument: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
