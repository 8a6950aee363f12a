"""
Reconciliation Run Tracking
===========================
Records each batch reconciliation in the reconciliation_runs table.

Features:
- Context manager for automatic run tracking
- Metrics update helpers
- Status management (RUNNING, SUCCESS, FAILED, PARTIAL)

Usage:
    from partner_sync.run_tracking import track_reconciliation_run, update_run_metrics

    with track_reconciliation_run(db_manager, scope="all") as run_id:
        summary = driver.run()
        update_run_metrics(db_manager, run_id, summary)
"""

import json
import logging
import uuid
from contextlib import contextmanager
from typing import Optional, Dict, Any, Generator

logger = logging.getLogger(__name__)


@contextmanager
def track_reconciliation_run(
    db_manager,
    scope: str = "all",
    dry_run: bool = False,
    metadata: Optional[Dict[str, Any]] = None
) -> Generator[str, None, None]:
    """
    Context manager for tracking a reconciliation run.

    Creates a RUNNING record on entry. On normal exit the status becomes
    SUCCESS unless it was already set (e.g. PARTIAL); on exception it
    becomes FAILED with the error message and the exception propagates.

    Args:
        db_manager: DatabaseManager instance
        scope: "all" for a batch pass, otherwise the partner id
        dry_run: Whether the run performs writes
        metadata: Additional JSON metadata to store

    Yields:
        run_id: UUID string of the created run record
    """
    run_id = str(uuid.uuid4())
    metadata_json = json.dumps(metadata) if metadata else None

    try:
        with db_manager.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO reconciliation_runs (run_id, scope, dry_run, metadata)
                    VALUES (%s, %s, %s, %s::jsonb)
                    """,
                    (run_id, scope, dry_run, metadata_json)
                )
        logger.info(f"Reconciliation run started: scope={scope} (run_id={run_id[:8]}...)")
    except Exception as e:
        logger.error(f"Failed to create reconciliation run record: {e}")
        raise

    try:
        yield run_id

        with db_manager.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE reconciliation_runs
                    SET completed_at = NOW(),
                        status = CASE WHEN status = 'RUNNING' THEN 'SUCCESS' ELSE status END
                    WHERE run_id = %s
                    """,
                    (run_id,)
                )
        logger.info(f"Reconciliation run completed (run_id={run_id[:8]}...)")

    except Exception as e:
        error_msg = str(e)[:1000]  # Truncate long errors
        try:
            with db_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        UPDATE reconciliation_runs
                        SET completed_at = NOW(),
                            status = 'FAILED',
                            error_message = %s
                        WHERE run_id = %s
                        """,
                        (error_msg, run_id)
                    )
            logger.error(f"Reconciliation run failed (run_id={run_id[:8]}...) - {error_msg}")
        except Exception as db_error:
            logger.error(f"Failed to update reconciliation run status: {db_error}")
        raise


def update_run_metrics(db_manager, run_id: str, summary: Dict[str, Any]) -> None:
    """
    Store the summary counts of a run.

    Failures here are logged and swallowed: tracking must never turn a
    finished reconciliation into a failed one.
    """
    try:
        with db_manager.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE reconciliation_runs
                    SET partners_processed = %s,
                        profiles_created = %s,
                        profiles_fixed = %s,
                        already_synced = %s,
                        failed = %s,
                        users_created = %s,
                        metadata = COALESCE(metadata, '{}'::jsonb) || %s::jsonb
                    WHERE run_id = %s
                    """,
                    (
                        summary.get('total_partners', 0),
                        summary.get('created', 0),
                        summary.get('fixed', 0),
                        summary.get('already_synced', 0),
                        summary.get('failed', 0),
                        summary.get('users_created', 0),
                        json.dumps({'failures': summary.get('failures', [])}),
                        run_id,
                    )
                )
    except Exception as e:
        logger.warning(f"Failed to update run metrics: {e}")


def mark_run_partial(db_manager, run_id: str, error_message: Optional[str] = None) -> None:
    """Mark a run as PARTIAL: it completed, but some partners failed."""
    try:
        with db_manager.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE reconciliation_runs
                    SET status = 'PARTIAL',
                        error_message = COALESCE(error_message, '') || %s
                    WHERE run_id = %s
                    """,
                    (error_message or '', run_id)
                )
        logger.warning(f"Reconciliation run marked as PARTIAL: {run_id[:8]}...")
    except Exception as e:
        logger.error(f"Failed to mark run as partial: {e}")


def get_latest_run(db_manager) -> Optional[Dict[str, Any]]:
    """Most recent reconciliation run, or None."""
    try:
        result = db_manager.execute_query(
            """
            SELECT run_id, scope, dry_run, started_at, completed_at, status,
                   partners_processed, profiles_created, profiles_fixed,
                   already_synced, failed, users_created, error_message
            FROM reconciliation_runs
            ORDER BY started_at DESC
            LIMIT 1
            """
        )
    except Exception as e:
        logger.error(f"Failed to get latest run: {e}")
        return None

    if not result:
        return None
    row = result[0]
    return {
        'run_id': str(row[0]),
        'scope': row[1],
        'dry_run': row[2],
        'started_at': row[3],
        'completed_at': row[4],
        'status': row[5],
        'partners_processed': row[6],
        'profiles_created': row[7],
        'profiles_fixed': row[8],
        'already_synced': row[9],
        'failed': row[10],
        'users_created': row[11],
        'error_message': row[12],
    }
