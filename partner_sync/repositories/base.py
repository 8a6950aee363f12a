from typing import List, Optional, Protocol, Sequence, Union

from partner_sync.errors import SourceRecordAccessFailure
from partner_sync.models import Partner, ServiceCategory, ServicePartner, User


class PartnerRepository(Protocol):
    def list_all(self, newest_first: bool = True) -> List[Union[Partner, SourceRecordAccessFailure]]:
        """All partners; a row that cannot be read is returned as a failure in its place."""
        ...

    def get(self, partner_id: str) -> Optional[Partner]:
        """Raises SourceRecordAccessFailure when the row exists but cannot be read."""
        ...


class UserRepository(Protocol):
    def find_by_phone_or_email(self, phone: str, email: Optional[str]) -> Optional[User]:
        ...

    def create(self, user: User) -> User:
        """Insert a new User; raises DuplicateRecordError on a uniqueness clash."""
        ...


class CategoryRepository(Protocol):
    def find_by_names(self, names: Sequence[str]) -> List[ServiceCategory]:
        """Exact, case-sensitive name lookup."""
        ...


class ServicePartnerRepository(Protocol):
    def find_by_user(self, user_id: str) -> Optional[ServicePartner]:
        ...

    def create(self, profile: ServicePartner) -> ServicePartner:
        """Insert a new profile; raises DuplicateRecordError if the User already has one."""
        ...

    def update(self, profile: ServicePartner) -> ServicePartner:
        ...
