"""
In-memory repositories for tests
================================
Implement the repository Protocols over plain dicts, enforcing the same
uniqueness rules as the SQL schema (users.phone, users.email,
service_partners.user_id). Records are copied on the way in and out so a
test can never mutate "stored" state by accident.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Union

from partner_sync.errors import DuplicateRecordError, SourceRecordAccessFailure
from partner_sync.models import Partner, ServiceCategory, ServicePartner, User

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class InMemoryStore:
    def __init__(self):
        self.partners: Dict[str, Partner] = {}
        self.users: Dict[str, User] = {}
        self.categories: Dict[str, ServiceCategory] = {}
        self.profiles: Dict[str, ServicePartner] = {}

    def add_partner(self, partner: Partner) -> Partner:
        self.partners[partner.id] = partner.model_copy(deep=True)
        return partner

    def add_category(self, category_id: str, name: str) -> ServiceCategory:
        category = ServiceCategory(id=category_id, name=name)
        self.categories[category_id] = category
        return category

    def add_user(self, user: User) -> User:
        self.users[user.id] = user.model_copy(deep=True)
        return user

    def add_profile(self, profile: ServicePartner) -> ServicePartner:
        self.profiles[profile.id] = ServicePartner.model_validate(profile.model_dump())
        return profile

    def profile_for(self, user_id: str) -> Optional[ServicePartner]:
        for profile in self.profiles.values():
            if profile.user_id == user_id:
                return profile.model_copy(deep=True)
        return None

    def user_by_phone(self, phone: str) -> Optional[User]:
        for user in self.users.values():
            if user.phone == phone:
                return user
        return None


class FakePartnerRepository:
    def __init__(self, store: InMemoryStore):
        self.store = store
        self.unavailable = False
        # Rows that exist but fail validation, listed after the readable ones
        self.malformed: Dict[str, str] = {}

    def list_all(self, newest_first: bool = True) -> List[Union[Partner, SourceRecordAccessFailure]]:
        if self.unavailable:
            raise ConnectionError("partner store unreachable")
        partners = sorted(
            self.store.partners.values(),
            key=lambda partner: partner.created_at or EPOCH,
            reverse=newest_first,
        )
        records: List[Union[Partner, SourceRecordAccessFailure]] = [
            partner.model_copy(deep=True) for partner in partners
        ]
        for partner_id, message in self.malformed.items():
            records.append(SourceRecordAccessFailure(message, partner_id=partner_id))
        return records

    def get(self, partner_id: str) -> Optional[Partner]:
        if self.unavailable:
            raise ConnectionError("partner store unreachable")
        if partner_id in self.malformed:
            raise SourceRecordAccessFailure(self.malformed[partner_id], partner_id=partner_id)
        partner = self.store.partners.get(partner_id)
        return partner.model_copy(deep=True) if partner else None


class FakeUserRepository:
    def __init__(self, store: InMemoryStore):
        self.store = store
        self.created: List[User] = []
        self.create_error: Optional[Exception] = None
        # Inserted just before the next create, as if by a concurrent writer
        self.concurrent_user: Optional[User] = None

    def find_by_phone_or_email(self, phone: str, email: Optional[str]) -> Optional[User]:
        by_email = None
        for user in self.store.users.values():
            if user.phone == phone:
                return user.model_copy(deep=True)
            if email is not None and user.email.lower() == email and by_email is None:
                by_email = user
        return by_email.model_copy(deep=True) if by_email else None

    def create(self, user: User) -> User:
        if self.concurrent_user is not None:
            self.store.add_user(self.concurrent_user)
            self.concurrent_user = None
        if self.create_error is not None:
            raise self.create_error
        for existing in self.store.users.values():
            if existing.phone == user.phone:
                raise DuplicateRecordError('user', f"phone {user.phone} exists")
            if existing.email.lower() == user.email.lower():
                raise DuplicateRecordError('user', f"email {user.email} exists")
        stored = user.model_copy(update={'created_at': EPOCH + timedelta(seconds=len(self.created))})
        self.store.add_user(stored)
        self.created.append(stored)
        return stored.model_copy(deep=True)


class FakeCategoryRepository:
    def __init__(self, store: InMemoryStore):
        self.store = store
        self.unavailable = False
        self.calls = 0

    def find_by_names(self, names: Sequence[str]) -> List[ServiceCategory]:
        self.calls += 1
        if self.unavailable:
            raise ConnectionError("category catalog unreachable")
        wanted = set(names)
        return [category for category in self.store.categories.values() if category.name in wanted]


class FakeServicePartnerRepository:
    def __init__(self, store: InMemoryStore):
        self.store = store
        self.creates = 0
        self.updates = 0
        self.lookup_error: Optional[Exception] = None
        self.update_error: Optional[Exception] = None

    def find_by_user(self, user_id: str) -> Optional[ServicePartner]:
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.store.profile_for(user_id)

    def create(self, profile: ServicePartner) -> ServicePartner:
        if self.store.profile_for(profile.user_id) is not None:
            raise DuplicateRecordError('service_partner', f"user {profile.user_id} already has a profile")
        self.creates += 1
        self.store.add_profile(profile)
        return profile

    def update(self, profile: ServicePartner) -> ServicePartner:
        if self.update_error is not None:
            raise self.update_error
        self.updates += 1
        self.store.add_profile(profile)
        return profile


def make_partner(partner_id: str = "p-1", minutes_ago: int = 0, **fields) -> Partner:
    data = {
        'id': partner_id,
        'phone_number': "+919876543210",
        'email': None,
        'full_name': None,
        'service_categories': [],
        'documents': [],
        'status': "pending",
        'created_at': datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago),
    }
    data.update(fields)
    return Partner.model_validate(data)
