import sys
from pathlib import Path

import pytest

# Add parent and this directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from fakes import (
    FakeCategoryRepository,
    FakePartnerRepository,
    FakeServicePartnerRepository,
    FakeUserRepository,
    InMemoryStore,
)
from partner_sync.reconciliation import ReconciliationDriver


@pytest.fixture
def store():
    store = InMemoryStore()
    store.add_category("cat-plumbing", "Plumbing")
    store.add_category("cat-cleaning", "Cleaning")
    store.add_category("cat-electrical", "Electrical")
    return store


@pytest.fixture
def partner_repo(store):
    return FakePartnerRepository(store)


@pytest.fixture
def user_repo(store):
    return FakeUserRepository(store)


@pytest.fixture
def category_repo(store):
    return FakeCategoryRepository(store)


@pytest.fixture
def profile_repo(store):
    return FakeServicePartnerRepository(store)


@pytest.fixture
def driver(partner_repo, user_repo, category_repo, profile_repo):
    return ReconciliationDriver(
        partners=partner_repo,
        users=user_repo,
        categories=category_repo,
        profiles=profile_repo,
    )
