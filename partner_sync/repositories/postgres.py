"""
Partner Sync - PostgreSQL Repositories
======================================
psycopg2 implementations of the repository interfaces.

List-valued fields (service categories, documents, profile categories,
service areas, verification documents) live in JSONB columns so each
record keeps its document shape. Uniqueness violations on insert are
translated to DuplicateRecordError.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Union

from psycopg2 import errors as pg_errors
from psycopg2.extras import Json, RealDictCursor
from pydantic import ValidationError

from partner_sync.db_utils import DatabaseManager
from partner_sync.errors import DuplicateRecordError, SourceRecordAccessFailure
from partner_sync.models import Partner, ServiceCategory, ServicePartner, User

logger = logging.getLogger(__name__)

PARTNER_COLUMNS = """
    id, phone_number, email, full_name, address, city, state, pincode,
    service_categories, documents, status, created_at
"""

USER_COLUMNS = "id, name, email, phone, password_hash, role, status, created_at"

PROFILE_COLUMNS = """
    id, user_id, business_name, partner_type, categories, service_areas,
    is_verified, status, verification_documents, created_at, updated_at
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _profile_params(profile: ServicePartner) -> dict:
    data = profile.model_dump(mode='json')
    return {
        'id': profile.id,
        'user_id': profile.user_id,
        'business_name': profile.business_name,
        'partner_type': data['partner_type'],
        'categories': Json(data['categories']),
        'service_areas': Json(data['service_areas']),
        'is_verified': profile.is_verified,
        'status': data['status'],
        'verification_documents': Json(data['verification_documents']),
        'created_at': profile.created_at,
        'updated_at': profile.updated_at,
    }


def _partner_from_row(row) -> Partner:
    """Validate one partners row; a malformed row is a per-record read failure."""
    data = dict(row)
    try:
        return Partner.model_validate(data)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(part) for part in error['loc']) for error in exc.errors())
        raise SourceRecordAccessFailure(
            f"Partner {data.get('id')} is malformed ({fields})",
            partner_id=data.get('id')
        ) from exc


class PostgresPartnerRepository:
    """Read-only access to onboarding Partner records."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def list_all(self, newest_first: bool = True) -> List[Union[Partner, SourceRecordAccessFailure]]:
        order = "DESC" if newest_first else "ASC"
        with self.db_manager.get_cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"SELECT {PARTNER_COLUMNS} FROM partners ORDER BY created_at {order} NULLS LAST, id"
            )
            rows = cur.fetchall()

        records: List[Union[Partner, SourceRecordAccessFailure]] = []
        for row in rows:
            try:
                records.append(_partner_from_row(row))
            except SourceRecordAccessFailure as failure:
                logger.warning(str(failure))
                records.append(failure)
        return records

    def get(self, partner_id: str) -> Optional[Partner]:
        with self.db_manager.get_cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(f"SELECT {PARTNER_COLUMNS} FROM partners WHERE id = %s", (partner_id,))
            row = cur.fetchone()
        return _partner_from_row(row) if row else None


class PostgresUserRepository:
    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def find_by_phone_or_email(self, phone: str, email: Optional[str]) -> Optional[User]:
        # Prefer the phone match when both keys hit different users
        with self.db_manager.get_cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"""
                SELECT {USER_COLUMNS}
                FROM users
                WHERE phone = %(phone)s
                   OR (%(email)s::text IS NOT NULL AND lower(email) = %(email)s)
                ORDER BY (phone IS NOT DISTINCT FROM %(phone)s) DESC, created_at
                LIMIT 1
                """,
                {'phone': phone, 'email': email}
            )
            row = cur.fetchone()
        return User.model_validate(dict(row)) if row else None

    def create(self, user: User) -> User:
        created_at = user.created_at or _utcnow()
        try:
            with self.db_manager.get_cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO users ({USER_COLUMNS})
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (user.id, user.name, user.email, user.phone, user.password_hash,
                     user.role, user.status, created_at)
                )
        except pg_errors.UniqueViolation as exc:
            raise DuplicateRecordError('user', str(exc).strip()) from exc
        return user.model_copy(update={'created_at': created_at})


class PostgresCategoryRepository:
    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def find_by_names(self, names: Sequence[str]) -> List[ServiceCategory]:
        if not names:
            return []
        with self.db_manager.get_cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                "SELECT id, name FROM service_categories WHERE name = ANY(%s) ORDER BY name, id",
                (list(names),)
            )
            return [ServiceCategory.model_validate(dict(row)) for row in cur.fetchall()]


class PostgresServicePartnerRepository:
    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def find_by_user(self, user_id: str) -> Optional[ServicePartner]:
        with self.db_manager.get_cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"SELECT {PROFILE_COLUMNS} FROM service_partners WHERE user_id = %s "
                "ORDER BY created_at LIMIT 1",
                (user_id,)
            )
            row = cur.fetchone()
        return ServicePartner.model_validate(dict(row)) if row else None

    def create(self, profile: ServicePartner) -> ServicePartner:
        now = _utcnow()
        profile = profile.model_copy(update={
            'created_at': profile.created_at or now,
            'updated_at': profile.updated_at or now,
        })
        try:
            with self.db_manager.get_cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO service_partners ({PROFILE_COLUMNS})
                    VALUES (
                        %(id)s, %(user_id)s, %(business_name)s, %(partner_type)s,
                        %(categories)s, %(service_areas)s, %(is_verified)s, %(status)s,
                        %(verification_documents)s, %(created_at)s, %(updated_at)s
                    )
                    """,
                    _profile_params(profile)
                )
        except pg_errors.UniqueViolation as exc:
            raise DuplicateRecordError('service_partner', str(exc).strip()) from exc
        return profile

    def update(self, profile: ServicePartner) -> ServicePartner:
        profile = profile.model_copy(update={'updated_at': profile.updated_at or _utcnow()})
        with self.db_manager.get_cursor() as cur:
            cur.execute(
                """
                UPDATE service_partners
                SET business_name = %(business_name)s,
                    partner_type = %(partner_type)s,
                    categories = %(categories)s,
                    service_areas = %(service_areas)s,
                    is_verified = %(is_verified)s,
                    status = %(status)s,
                    verification_documents = %(verification_documents)s,
                    updated_at = %(updated_at)s
                WHERE id = %(id)s
                """,
                _profile_params(profile)
            )
            if cur.rowcount == 0:
                raise SourceRecordAccessFailure(f"ServicePartner {profile.id} vanished before update")
        return profile
