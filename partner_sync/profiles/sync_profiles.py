"""
Partner Sync - Profile Synchronization
======================================
Creates or merges the admin-facing ServicePartner profile for a User.

Process (per invocation):
1. Look up the profile by user reference
2. Absent  -> build a full profile from the Partner and create it
3. Present -> partial merge of the Partner-owned fields
4. Validate and persist (skipped when the merge changed nothing)

Merge rules:
- business_name follows the Partner full name; a blank name is repaired
- categories are replaced only by a non-empty mapped set
- status is forced back to active
- service_areas are filled only when empty
- verification documents are merged by URL: existing entries keep their
  type and admin annotations, only their status follows the Partner
- is_verified and partner_type belong to admins and are never touched
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Sequence

from pydantic import ValidationError

from partner_sync.defaults import (
    DEFAULT_DOCUMENT_TYPE,
    build_service_areas,
    default_display_name,
    document_status_for,
)
from partner_sync.errors import DuplicateRecordError, ProfileValidationFailure
from partner_sync.models import (
    Partner,
    PartnerType,
    ProfileStatus,
    ServicePartner,
    ServicePartnerWrite,
    User,
    VerificationDocument,
)
from partner_sync.repositories.base import ServicePartnerRepository

logger = logging.getLogger(__name__)


class SyncAction(str, Enum):
    CREATED = "created"
    FIXED = "fixed"
    UNCHANGED = "unchanged"


@dataclass
class ProfileSyncResult:
    profile: ServicePartner
    action: SyncAction
    changed_fields: List[str] = field(default_factory=list)


def merge_verification_documents(
    existing: Sequence[VerificationDocument],
    partner: Partner
) -> List[VerificationDocument]:
    """
    One entry per current Partner document, in Partner order.

    Entries already stored for the same URL are kept (type, number,
    verification timestamp, rejection reason) and only their status is
    refreshed from the Partner status. URLs the Partner no longer lists
    are dropped.
    """
    status = document_status_for(partner.status)
    by_url = {document.document_url: document for document in existing}

    merged: List[VerificationDocument] = []
    seen = set()
    for url in partner.documents:
        if url in seen:
            continue
        seen.add(url)
        current = by_url.get(url)
        if current is None:
            merged.append(VerificationDocument(
                document_type=DEFAULT_DOCUMENT_TYPE,
                document_url=url,
                status=status,
            ))
        else:
            merged.append(current.model_copy(update={'status': status}))
    return merged


def _field_errors(exc: ValidationError) -> Dict[str, str]:
    errors = {}
    for error in exc.errors():
        location = ".".join(str(part) for part in error['loc']) or "__root__"
        errors[location] = error['msg']
    return errors


class ProfileSynchronizer:
    def __init__(self, profiles: ServicePartnerRepository, dry_run: bool = False):
        self.profiles = profiles
        self.dry_run = dry_run

    def sync(self, user: User, partner: Partner, category_ids: Sequence[str]) -> ProfileSyncResult:
        existing = self.profiles.find_by_user(user.id)
        if existing is None:
            return self._create(user, partner, category_ids)
        return self._merge(existing, partner, category_ids)

    def _create(self, user: User, partner: Partner, category_ids: Sequence[str]) -> ProfileSyncResult:
        profile = self._validate(partner, {
            'user_id': user.id,
            'business_name': default_display_name(partner),
            'partner_type': PartnerType.INDIVIDUAL,
            'categories': list(category_ids),
            'service_areas': build_service_areas(partner),
            'is_verified': False,
            'status': ProfileStatus.ACTIVE,
            'verification_documents': merge_verification_documents([], partner),
        })

        if self.dry_run:
            logger.info(f"  [DRY RUN] Would create ServicePartner for User {user.id}")
            return ProfileSyncResult(profile=profile, action=SyncAction.CREATED)

        try:
            profile = self.profiles.create(profile)
        except DuplicateRecordError as exc:
            raise ProfileValidationFailure(
                "User already has a ServicePartner profile",
                partner_id=partner.id,
                field_errors={'user_id': str(exc)}
            ) from exc
        return ProfileSyncResult(profile=profile, action=SyncAction.CREATED)

    def _merge(
        self,
        existing: ServicePartner,
        partner: Partner,
        category_ids: Sequence[str]
    ) -> ProfileSyncResult:
        changes: Dict[str, Any] = {}

        full_name = (partner.full_name or "").strip()
        if full_name and full_name != existing.business_name:
            changes['business_name'] = full_name
        elif not existing.business_name.strip():
            changes['business_name'] = default_display_name(partner)

        # An empty mapping must never erase assigned categories
        if category_ids and list(category_ids) != existing.categories:
            changes['categories'] = list(category_ids)

        if existing.status != ProfileStatus.ACTIVE:
            changes['status'] = ProfileStatus.ACTIVE

        if not existing.service_areas:
            changes['service_areas'] = build_service_areas(partner)

        documents = merge_verification_documents(existing.verification_documents, partner)
        if documents != existing.verification_documents:
            changes['verification_documents'] = documents

        if not changes:
            return ProfileSyncResult(profile=existing, action=SyncAction.UNCHANGED)

        changed_fields = sorted(changes)
        candidate = existing.model_copy(update=changes).model_dump()
        candidate['updated_at'] = datetime.now(timezone.utc)
        profile = self._validate(partner, candidate)

        if self.dry_run:
            logger.info(f"  [DRY RUN] Would update ServicePartner {existing.id}: {changed_fields}")
        else:
            profile = self.profiles.update(profile)
        return ProfileSyncResult(profile=profile, action=SyncAction.FIXED, changed_fields=changed_fields)

    def _validate(self, partner: Partner, data: Dict[str, Any]) -> ServicePartner:
        try:
            return ServicePartnerWrite.model_validate(data)
        except ValidationError as exc:
            raise ProfileValidationFailure(
                "ServicePartner failed validation",
                partner_id=partner.id,
                field_errors=_field_errors(exc)
            ) from exc
