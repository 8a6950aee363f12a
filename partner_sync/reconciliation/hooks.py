"""
Partner Sync - Inline Trigger
=============================
Single-partner reconciliation called by the partner-facing API right after
it has persisted a Partner change.

The hook runs synchronously but never raises: a sync failure is logged and
the profile stays stale until the next batch pass or the next edit. The
calling request handler must not be affected either way.
"""

import logging
from typing import Optional

from partner_sync.reconciliation.driver import PartnerOutcome, ReconciliationDriver

logger = logging.getLogger(__name__)


class PartnerProfileSyncHook:
    def __init__(self, driver: ReconciliationDriver):
        self.driver = driver

    def after_profile_update(self, partner_id: str) -> Optional[PartnerOutcome]:
        """Call after the partner edits their own profile."""
        return self._sync(partner_id, "profile update")

    def after_documents_submitted(self, partner_id: str) -> Optional[PartnerOutcome]:
        """Call after onboarding details and documents are (re)submitted."""
        return self._sync(partner_id, "document submission")

    def _sync(self, partner_id: str, trigger: str) -> Optional[PartnerOutcome]:
        try:
            outcome = self.driver.reconcile_one(partner_id)
        except Exception as e:
            logger.error(f"Inline sync after {trigger} crashed for partner {partner_id}: {e}", exc_info=True)
            return None

        if outcome.failure is not None:
            logger.warning(
                f"Inline sync after {trigger} failed for partner {partner_id}: "
                f"{outcome.failure.describe()}"
            )
        else:
            logger.info(f"Inline sync after {trigger}: partner {partner_id} {outcome.outcome}")
        return outcome
