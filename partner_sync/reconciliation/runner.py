"""
Partner Sync - Entry Points
===========================
Wires the PostgreSQL repositories into the driver, the inline hook and
the link audit.
"""

import logging
from typing import Any, Dict, List, Optional

from partner_sync.db_utils import DatabaseManager
from partner_sync.logging_config import run_context
from partner_sync.reconciliation.audit import LinkAuditor, LinkStatus
from partner_sync.reconciliation.driver import ReconciliationDriver, ReconciliationSummary
from partner_sync.reconciliation.hooks import PartnerProfileSyncHook
from partner_sync.repositories import (
    PostgresCategoryRepository,
    PostgresPartnerRepository,
    PostgresServicePartnerRepository,
    PostgresUserRepository,
)
from partner_sync.run_tracking import (
    mark_run_partial,
    track_reconciliation_run,
    update_run_metrics,
)

logger = logging.getLogger(__name__)


def build_driver(db_manager: DatabaseManager, dry_run: bool = False) -> ReconciliationDriver:
    return ReconciliationDriver(
        partners=PostgresPartnerRepository(db_manager),
        users=PostgresUserRepository(db_manager),
        categories=PostgresCategoryRepository(db_manager),
        profiles=PostgresServicePartnerRepository(db_manager),
        dry_run=dry_run,
    )


def build_profile_sync_hook(db_manager: DatabaseManager) -> PartnerProfileSyncHook:
    """Hook for the partner profile API; share one DatabaseManager per process."""
    return PartnerProfileSyncHook(build_driver(db_manager))


def reconcile(driver: ReconciliationDriver, partner_id: Optional[str] = None) -> ReconciliationSummary:
    """Batch pass when partner_id is None, otherwise a single-partner summary."""
    if partner_id is None:
        return driver.run()

    summary = ReconciliationSummary(dry_run=driver.dry_run, total_partners=1)
    summary.record(driver.reconcile_one(partner_id))
    return summary


def run_reconciliation(
    db_config_path: Optional[str] = None,
    partner_id: Optional[str] = None,
    dry_run: bool = False
) -> Dict[str, Any]:
    """
    Main entry point for reconciliation.

    Args:
        db_config_path: Path to database configuration file
        partner_id: Restrict the run to one Partner
        dry_run: Compute changes without writing Users or profiles

    Returns:
        Summary dictionary with reconciliation statistics
    """
    logger.info("Initializing Partner Reconciliation")
    logger.info(f"  Scope: {partner_id or 'all partners'}")
    logger.info(f"  Dry run: {'yes' if dry_run else 'no'}")

    db_manager = DatabaseManager(db_config_path)
    try:
        driver = build_driver(db_manager, dry_run=dry_run)
        with track_reconciliation_run(db_manager, scope=partner_id or "all", dry_run=dry_run) as run_id:
            with run_context(run_id):
                result = reconcile(driver, partner_id).to_dict()
            update_run_metrics(db_manager, run_id, result)
            if result['failed'] or result['errors']:
                mark_run_partial(
                    db_manager, run_id,
                    f"{result['failed']} partner(s) failed; {len(result['errors'])} scope error(s)"
                )
        return result
    finally:
        db_manager.close()


def run_link_audit(db_config_path: Optional[str] = None) -> List[LinkStatus]:
    db_manager = DatabaseManager(db_config_path)
    try:
        auditor = LinkAuditor(
            partners=PostgresPartnerRepository(db_manager),
            users=PostgresUserRepository(db_manager),
            profiles=PostgresServicePartnerRepository(db_manager),
        )
        return auditor.audit()
    finally:
        db_manager.close()
