"""
Partner Sync - Link Audit
=========================
Read-only check of how far each Partner is from a fully linked state.

Uses the same matching keys as the identity resolver, so a Partner
reported as `user_missing` is exactly one the next reconciliation would
create a User for.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional

from partner_sync.contact_normalization import normalize_phone
from partner_sync.defaults import default_user_email
from partner_sync.errors import SourceRecordAccessFailure
from partner_sync.models import ProfileStatus
from partner_sync.repositories.base import (
    PartnerRepository,
    ServicePartnerRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

LINKED = "linked"
INACTIVE = "inactive"
USER_MISSING = "user_missing"
PROFILE_MISSING = "profile_missing"
UNREADABLE = "unreadable"


@dataclass
class LinkStatus:
    partner_id: str
    phone_number: Optional[str]
    state: str
    user_id: Optional[str] = None
    profile_id: Optional[str] = None
    detail: str = ""


class LinkAuditor:
    def __init__(
        self,
        partners: PartnerRepository,
        users: UserRepository,
        profiles: ServicePartnerRepository
    ):
        self.partners = partners
        self.users = users
        self.profiles = profiles

    def audit(self) -> List[LinkStatus]:
        statuses = []
        for record in self.partners.list_all(newest_first=True):
            if isinstance(record, SourceRecordAccessFailure):
                statuses.append(LinkStatus(
                    partner_id=record.partner_id, phone_number=None, state=UNREADABLE, detail=record.message
                ))
            else:
                statuses.append(self.check(record))
        counts = summarize(statuses)
        logger.info(f"Link audit: {len(statuses)} partners, {counts}")
        return statuses

    def check(self, partner) -> LinkStatus:
        phone = normalize_phone(partner.phone_number)
        status = LinkStatus(partner_id=partner.id, phone_number=partner.phone_number, state=USER_MISSING)
        if phone is None:
            status.state = UNREADABLE
            status.detail = "no phone number"
            return status

        try:
            user = self.users.find_by_phone_or_email(phone, default_user_email(partner))
            if user is None:
                return status
            status.user_id = user.id
            profile = self.profiles.find_by_user(user.id)
        except Exception as e:
            status.state = UNREADABLE
            status.detail = str(e)
            return status

        if profile is None:
            status.state = PROFILE_MISSING
            return status

        status.profile_id = profile.id
        if profile.status != ProfileStatus.ACTIVE:
            status.state = INACTIVE
            status.detail = f"profile status is {profile.status.value}"
        else:
            status.state = LINKED
        return status


def summarize(statuses: List[LinkStatus]) -> Dict[str, int]:
    return dict(Counter(status.state for status in statuses))
