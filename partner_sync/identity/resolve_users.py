"""
Partner Sync - Identity Engine: User Resolution
===============================================
Finds or creates the shared User a Partner is linked through.

Matching:
- Phone number (exact, trimmed) OR email (lowercased)
- A Partner without an email is matched on its synthetic address, so a
  User created for it on an earlier run is found again instead of
  duplicated

New Users are linkage anchors, not login accounts: their password is a
random secret that is hashed immediately and never surfaced.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from passlib.context import CryptContext

from partner_sync.contact_normalization import normalize_phone
from partner_sync.defaults import (
    DEFAULT_USER_ROLE,
    default_display_name,
    default_user_email,
)
from partner_sync.errors import DuplicateRecordError, IdentityResolutionFailure
from partner_sync.models import Partner, User
from partner_sync.repositories.base import UserRepository

logger = logging.getLogger(__name__)

PASSWORD_CONTEXT = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
GENERATED_SECRET_BYTES = 24


@dataclass
class UserResolution:
    """Result of resolving a Partner to a User"""
    user: User
    created: bool


def generate_password_hash() -> str:
    """Hash of a throwaway random secret for engine-created Users."""
    return PASSWORD_CONTEXT.hash(secrets.token_urlsafe(GENERATED_SECRET_BYTES))


class UserResolver:
    """
    Resolves Partner -> User by phone OR email, creating the User on a miss.

    With dry_run=True a missing User is built but not stored.
    """

    def __init__(self, users: UserRepository, dry_run: bool = False):
        self.users = users
        self.dry_run = dry_run

    def resolve(self, partner: Partner) -> UserResolution:
        phone = normalize_phone(partner.phone_number)
        if phone is None:
            raise IdentityResolutionFailure(
                "Partner has no phone number to match on", partner_id=partner.id
            )
        email = default_user_email(partner)

        user = self._lookup(partner, phone, email)
        if user is not None:
            logger.debug(f"  Partner {partner.id} matched existing User {user.id}")
            return UserResolution(user=user, created=False)

        new_user = User(
            name=default_display_name(partner),
            email=email,
            phone=phone,
            password_hash=generate_password_hash(),
            role=DEFAULT_USER_ROLE,
            status=True,
        )

        if self.dry_run:
            logger.info(f"  [DRY RUN] Would create User for {phone}")
            return UserResolution(user=new_user, created=True)

        try:
            created = self.users.create(new_user)
        except DuplicateRecordError as exc:
            # Another writer created it between our lookup and insert
            existing = self._lookup(partner, phone, email)
            if existing is not None:
                logger.info(f"  Adopted concurrently created User {existing.id} for {phone}")
                return UserResolution(user=existing, created=False)
            raise IdentityResolutionFailure(
                f"User create for {phone} collided with an existing record: {exc}",
                partner_id=partner.id
            ) from exc
        except Exception as exc:
            raise IdentityResolutionFailure(
                f"Failed to create User for {phone}: {exc}", partner_id=partner.id
            ) from exc

        logger.info(f"  Created new User {created.id} for {phone}")
        return UserResolution(user=created, created=True)

    def _lookup(self, partner: Partner, phone: str, email: Optional[str]) -> Optional[User]:
        try:
            return self.users.find_by_phone_or_email(phone, email)
        except Exception as exc:
            raise IdentityResolutionFailure(
                f"User lookup failed for {phone}: {exc}", partner_id=partner.id
            ) from exc
