"""
Partner Sync - Reconciliation Module
====================================
Orchestration of the identity, category and profile steps.

Provides:
- Batch and single-partner reconciliation with failure isolation
- Inline post-edit hook for the partner-facing API
- Read-only link audit
"""

from partner_sync.reconciliation.driver import (
    ReconciliationDriver,
    ReconciliationSummary,
    PartnerOutcome,
    PartnerFailure,
)

from partner_sync.reconciliation.hooks import PartnerProfileSyncHook

from partner_sync.reconciliation.audit import (
    LinkAuditor,
    LinkStatus,
    summarize,
)

from partner_sync.reconciliation.runner import (
    build_driver,
    build_profile_sync_hook,
    reconcile,
    run_reconciliation,
    run_link_audit,
)

__all__ = [
    'ReconciliationDriver',
    'ReconciliationSummary',
    'PartnerOutcome',
    'PartnerFailure',
    'PartnerProfileSyncHook',
    'LinkAuditor',
    'LinkStatus',
    'summarize',
    'build_driver',
    'build_profile_sync_hook',
    'reconcile',
    'run_reconciliation',
    'run_link_audit',
]
