"""
Partner Sync - Reconciliation Driver
====================================
Converges Partner, User and ServicePartner into one linked state.

For each Partner in scope:
1. Resolve the shared User (phone OR email, create on miss)
2. Map service category names to catalog ids
3. Create or merge the ServicePartner profile

Scopes:
- Batch: every Partner, newest first, one sequential pass
- Single: one Partner by id (used by the inline post-edit hook)

Failures are caught at the partner boundary and recorded in the summary;
the rest of the scope is always processed. Nothing is retried within a
run: the next batch pass or the partner's next edit picks it up again.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from partner_sync.categories import CategoryMapper
from partner_sync.errors import (
    ProfileValidationFailure,
    ReconciliationError,
    SourceRecordAccessFailure,
)
from partner_sync.identity import UserResolver
from partner_sync.models import Partner
from partner_sync.profiles import ProfileSynchronizer, SyncAction
from partner_sync.repositories.base import (
    CategoryRepository,
    PartnerRepository,
    ServicePartnerRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

# Per-partner outcome labels
CREATED = "created"
FIXED = "fixed"
ALREADY_SYNCED = "already_synced"
FAILED = "failed"

_ACTION_OUTCOMES = {
    SyncAction.CREATED: CREATED,
    SyncAction.FIXED: FIXED,
    SyncAction.UNCHANGED: ALREADY_SYNCED,
}


@dataclass
class PartnerFailure:
    """Diagnostic record for a partner that could not be reconciled"""
    partner_id: Optional[str]
    phone_number: Optional[str]
    kind: str
    message: str
    field_errors: Dict[str, str] = field(default_factory=dict)

    def describe(self) -> str:
        line = f"{self.partner_id} ({self.phone_number or 'no phone'}) {self.kind}: {self.message}"
        if self.field_errors:
            details = "; ".join(f"{name}: {msg}" for name, msg in self.field_errors.items())
            line = f"{line} [{details}]"
        return line

    def to_dict(self) -> Dict[str, Any]:
        return {
            'partner_id': self.partner_id,
            'phone_number': self.phone_number,
            'kind': self.kind,
            'message': self.message,
            'field_errors': dict(self.field_errors),
        }


@dataclass
class PartnerOutcome:
    """What happened to one Partner"""
    partner_id: Optional[str]
    outcome: str
    user_id: Optional[str] = None
    profile_id: Optional[str] = None
    user_created: bool = False
    changed_fields: List[str] = field(default_factory=list)
    failure: Optional[PartnerFailure] = None

    @property
    def succeeded(self) -> bool:
        return self.failure is None


@dataclass
class ReconciliationSummary:
    """Summary statistics from a reconciliation run"""
    total_partners: int = 0
    already_synced: int = 0
    created: int = 0
    fixed: int = 0
    failed: int = 0
    users_created: int = 0
    dry_run: bool = False
    failures: List[PartnerFailure] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def record(self, outcome: PartnerOutcome) -> None:
        if outcome.user_created:
            self.users_created += 1
        if outcome.outcome == CREATED:
            self.created += 1
        elif outcome.outcome == FIXED:
            self.fixed += 1
        elif outcome.outcome == ALREADY_SYNCED:
            self.already_synced += 1
        else:
            self.failed += 1
            if outcome.failure is not None:
                self.failures.append(outcome.failure)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_partners': self.total_partners,
            'already_synced': self.already_synced,
            'created': self.created,
            'fixed': self.fixed,
            'failed': self.failed,
            'users_created': self.users_created,
            'dry_run': self.dry_run,
            'failures': [failure.to_dict() for failure in self.failures],
            'errors': list(self.errors),
        }


class ReconciliationDriver:
    """
    Orchestrates identity resolution, category mapping and profile sync.

    The driver holds no state between partners apart from the summary of
    the current run, so it is safe to re-enter from the inline hook while
    a batch pass is in progress.
    """

    def __init__(
        self,
        partners: PartnerRepository,
        users: UserRepository,
        categories: CategoryRepository,
        profiles: ServicePartnerRepository,
        dry_run: bool = False
    ):
        self.partners = partners
        self.dry_run = dry_run
        self.resolver = UserResolver(users, dry_run=dry_run)
        self.mapper = CategoryMapper(categories)
        self.synchronizer = ProfileSynchronizer(profiles, dry_run=dry_run)

    def run(self) -> ReconciliationSummary:
        """
        Reconcile every Partner.

        Returns:
            ReconciliationSummary with per-outcome counts and failure lines
        """
        summary = ReconciliationSummary(dry_run=self.dry_run)

        logger.info("=" * 60)
        logger.info("Partner Reconciliation - Starting" + (" (dry run)" if self.dry_run else ""))
        logger.info("=" * 60)

        try:
            partners = self.partners.list_all(newest_first=True)
        except Exception as e:
            failure = SourceRecordAccessFailure(f"Could not read Partner records: {e}")
            logger.error(str(failure), exc_info=True)
            summary.errors.append(str(failure))
            return summary

        summary.total_partners = len(partners)
        logger.info(f"Found {len(partners)} partners to reconcile")

        for position, record in enumerate(partners, start=1):
            if isinstance(record, SourceRecordAccessFailure):
                summary.record(self._failed(record.partner_id, None, record))
                continue
            logger.debug(f"[{position}/{len(partners)}] Partner {record.id}")
            summary.record(self.reconcile_partner(record))

        logger.info("=" * 60)
        logger.info("Partner Reconciliation Complete!")
        logger.info(f"  Total partners:  {summary.total_partners}")
        logger.info(f"  Already synced:  {summary.already_synced}")
        logger.info(f"  Newly created:   {summary.created}")
        logger.info(f"  Fixed:           {summary.fixed}")
        logger.info(f"  Failed:          {summary.failed}")
        logger.info(f"  Users created:   {summary.users_created}")
        logger.info("=" * 60)

        return summary

    def reconcile_one(self, partner_id: str) -> PartnerOutcome:
        """Reconcile a single Partner by id; failures are returned, not raised."""
        try:
            partner = self.partners.get(partner_id)
        except SourceRecordAccessFailure as e:
            return self._failed(partner_id, None, e)
        except Exception as e:
            return self._failed(partner_id, None, SourceRecordAccessFailure(
                f"Could not read Partner {partner_id}: {e}", partner_id=partner_id
            ))

        if partner is None:
            return self._failed(partner_id, None, SourceRecordAccessFailure(
                f"Partner {partner_id} not found", partner_id=partner_id
            ))

        return self.reconcile_partner(partner)

    def reconcile_partner(self, partner: Partner) -> PartnerOutcome:
        phone = partner.phone_number
        try:
            resolution = self.resolver.resolve(partner)
            category_ids = self.mapper.map(partner.service_categories)
            result = self.synchronizer.sync(resolution.user, partner, category_ids)
        except ReconciliationError as e:
            return self._failed(partner.id, phone, e)
        except Exception as e:
            logger.error(f"[FAILED] Unexpected error for partner {partner.id}: {e}", exc_info=True)
            return self._failed(partner.id, phone, e, already_logged=True)

        outcome = PartnerOutcome(
            partner_id=partner.id,
            outcome=_ACTION_OUTCOMES[result.action],
            user_id=resolution.user.id,
            profile_id=result.profile.id,
            user_created=resolution.created,
            changed_fields=result.changed_fields,
        )

        if result.action == SyncAction.CREATED:
            logger.info(f"[CREATED] ServicePartner for {phone}")
        elif result.action == SyncAction.FIXED:
            logger.info(f"[FIX] {phone}: updated {', '.join(result.changed_fields)}")
        else:
            logger.debug(f"[SYNCED] {phone} already consistent")
        return outcome

    def _failed(
        self,
        partner_id: Optional[str],
        phone: Optional[str],
        error: Exception,
        already_logged: bool = False
    ) -> PartnerOutcome:
        field_errors = error.field_errors if isinstance(error, ProfileValidationFailure) else {}
        failure = PartnerFailure(
            partner_id=partner_id,
            phone_number=phone,
            kind=type(error).__name__,
            message=getattr(error, 'message', None) or str(error),
            field_errors=field_errors,
        )
        if not already_logged:
            logger.error(f"[FAILED] {failure.describe()}")
        return PartnerOutcome(partner_id=partner_id, outcome=FAILED, failure=failure)
