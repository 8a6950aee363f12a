"""
Partner Sync - Repositories
===========================
Storage boundary for the reconciliation engine.

The engine only sees the Protocol interfaces in `base`; the PostgreSQL
implementations are wired in by the entry points.
"""

from partner_sync.repositories.base import (
    PartnerRepository,
    UserRepository,
    CategoryRepository,
    ServicePartnerRepository,
)

from partner_sync.repositories.postgres import (
    PostgresPartnerRepository,
    PostgresUserRepository,
    PostgresCategoryRepository,
    PostgresServicePartnerRepository,
)

__all__ = [
    'PartnerRepository',
    'UserRepository',
    'CategoryRepository',
    'ServicePartnerRepository',
    'PostgresPartnerRepository',
    'PostgresUserRepository',
    'PostgresCategoryRepository',
    'PostgresServicePartnerRepository',
]
