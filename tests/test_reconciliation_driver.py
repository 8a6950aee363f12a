#!/usr/bin/env python3
"""
Reconciliation Driver Tests
===========================
End-to-end passes over the in-memory stores: create, re-reconcile,
idempotence, failure isolation and dry runs.

Usage:
    pytest tests/test_reconciliation_driver.py -v
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from fakes import make_partner
from partner_sync.errors import SourceRecordAccessFailure
from partner_sync.models import (
    DocumentStatus,
    DocumentType,
    PartnerStatus,
    ProfileStatus,
    ServiceArea,
    ServicePartner,
)
from partner_sync.reconciliation import ReconciliationDriver
from partner_sync.reconciliation.driver import ALREADY_SYNCED, CREATED, FAILED, FIXED


def asha(**fields):
    data = {
        'partner_id': "p-asha",
        'phone_number': "+91999",
        'email': "a@x.com",
        'full_name': "Asha",
        'city': "Pune",
        'service_categories': ["Plumbing"],
        'documents': ["/d1.pdf"],
        'status': "pending",
    }
    data.update(fields)
    return make_partner(**data)


def snapshot(store):
    return {
        profile_id: profile.model_dump(exclude={'updated_at'})
        for profile_id, profile in store.profiles.items()
    }


# ============================================================================
# SCENARIOS
# ============================================================================

def test_new_partner_gets_user_and_profile(store, driver):
    store.add_partner(asha())

    summary = driver.run()

    assert summary.total_partners == 1
    assert summary.created == 1
    assert summary.users_created == 1
    user = store.user_by_phone("+91999")
    assert user.email == "a@x.com"

    profile = store.profile_for(user.id)
    assert profile.business_name == "Asha"
    assert profile.categories == ["cat-plumbing"]
    assert profile.service_areas == [ServiceArea(city="Pune", areas=["Unknown"], pin_codes=["000000"])]
    assert profile.is_verified is False
    assert profile.status == ProfileStatus.ACTIVE
    assert [(d.document_type, d.document_url, d.status) for d in profile.verification_documents] == [
        (DocumentType.PROFESSIONAL_CERTIFICATE, "/d1.pdf", DocumentStatus.PENDING)
    ]
    print("✓ Partner linked to new User and ServicePartner")


def test_approval_flows_into_document_status(store, driver):
    store.add_partner(asha())
    driver.run()

    store.add_partner(asha(status="approved"))
    summary = driver.run()

    assert summary.fixed == 1
    profile = store.profile_for(store.user_by_phone("+91999").id)
    assert [d.status for d in profile.verification_documents] == [DocumentStatus.APPROVED]
    assert profile.business_name == "Asha"
    assert profile.categories == ["cat-plumbing"]
    assert profile.status == ProfileStatus.ACTIVE


# ============================================================================
# PROPERTIES
# ============================================================================

def test_second_run_is_idempotent(store, driver, user_repo):
    store.add_partner(asha())
    store.add_partner(make_partner("p-2", minutes_ago=5, phone_number="+91888"))
    store.add_partner(make_partner("p-3", minutes_ago=10, phone_number="+91777", service_categories=["Cleaning"]))

    first = driver.run()
    before = snapshot(store)
    second = driver.run()

    assert first.created == 3
    assert second.created == 0
    assert second.fixed == 0
    assert second.users_created == 0
    assert second.already_synced == 3
    assert len(user_repo.created) == 3
    assert snapshot(store) == before


def test_partners_sharing_a_phone_share_one_user_and_profile(store, driver):
    store.add_partner(make_partner("p-new", minutes_ago=0, phone_number="+91999", full_name="Asha"))
    store.add_partner(make_partner("p-old", minutes_ago=60, phone_number="+91999", full_name="Asha"))

    summary = driver.run()

    assert len(store.users) == 1
    assert len(store.profiles) == 1
    assert summary.created == 1
    assert summary.already_synced == 1


def test_profile_categories_come_from_catalog(store, driver):
    store.add_partner(asha(service_categories=["Plumbing", "Gardening", "electrical"]))
    driver.run()

    profile = next(iter(store.profiles.values()))
    assert set(profile.categories) <= set(store.categories)
    assert profile.categories == ["cat-plumbing"]


def test_rejected_partner_profile_is_still_active(store, driver):
    store.add_partner(asha(status="rejected"))
    driver.run()

    profile = next(iter(store.profiles.values()))
    assert profile.status == ProfileStatus.ACTIVE
    assert profile.verification_documents[0].status == DocumentStatus.PENDING


def test_inactive_profile_is_reactivated(store, driver):
    store.add_partner(asha())
    driver.run()
    profile = next(iter(store.profiles.values()))
    store.add_profile(profile.model_copy(update={'status': ProfileStatus.INACTIVE}))

    summary = driver.run()

    assert summary.fixed == 1
    assert store.profiles[profile.id].status == ProfileStatus.ACTIVE


def test_partners_processed_newest_first(store, driver, user_repo):
    store.add_partner(make_partner("p-old", minutes_ago=30, phone_number="+91111"))
    store.add_partner(make_partner("p-new", minutes_ago=1, phone_number="+91222"))
    store.add_partner(make_partner("p-mid", minutes_ago=10, phone_number="+91333"))

    driver.run()

    assert [user.phone for user in user_repo.created] == ["+91222", "+91333", "+91111"]


# ============================================================================
# FAILURES
# ============================================================================

def test_one_bad_partner_does_not_stop_the_run(store, driver):
    store.add_partner(make_partner("p-1", minutes_ago=1, phone_number="+91111"))
    store.add_partner(make_partner("p-bad", minutes_ago=2, phone_number="+91222", documents=[""]))
    store.add_partner(make_partner("p-3", minutes_ago=3, phone_number="+91333"))
    store.add_partner(make_partner("p-blank", minutes_ago=4, phone_number=""))

    summary = driver.run()

    assert summary.total_partners == 4
    assert summary.created == 2
    assert summary.failed == 2
    kinds = {failure.partner_id: failure.kind for failure in summary.failures}
    assert kinds == {
        'p-bad': "ProfileValidationFailure",
        'p-blank': "IdentityResolutionFailure",
    }
    bad = next(failure for failure in summary.failures if failure.partner_id == "p-bad")
    assert bad.phone_number == "+91222"
    assert 'verification_documents' in bad.field_errors
    print(f"✓ Failure isolated: {bad.describe()}")


def test_unexpected_error_is_recorded_and_run_continues(store, driver, profile_repo):
    store.add_partner(make_partner("p-1", phone_number="+91111"))
    store.add_partner(make_partner("p-2", minutes_ago=5, phone_number="+91222"))
    profile_repo.lookup_error = RuntimeError("connection reset")

    summary = driver.run()

    assert summary.failed == 2
    assert [failure.kind for failure in summary.failures] == ["RuntimeError", "RuntimeError"]
    assert "connection reset" in summary.failures[0].message


def test_catalog_outage_still_syncs_profile(store, driver, category_repo):
    store.add_partner(asha())
    driver.run()

    category_repo.unavailable = True
    store.add_partner(asha(full_name="Asha Patil"))
    summary = driver.run()

    assert summary.fixed == 1
    profile = next(iter(store.profiles.values()))
    assert profile.business_name == "Asha Patil"
    assert profile.categories == ["cat-plumbing"]


def test_unreadable_partner_store_is_a_scope_error(partner_repo, driver):
    partner_repo.unavailable = True

    summary = driver.run()

    assert summary.total_partners == 0
    assert len(summary.errors) == 1
    assert "Could not read Partner records" in summary.errors[0]


def test_reconcile_one_missing_partner(driver):
    outcome = driver.reconcile_one("p-missing")

    assert outcome.outcome == FAILED
    assert outcome.failure.kind == "SourceRecordAccessFailure"
    assert outcome.failure.partner_id == "p-missing"


def test_malformed_partner_row_is_counted_as_failed(store, driver, partner_repo):
    store.add_partner(make_partner("p-1", phone_number="+91111"))
    store.add_partner(make_partner("p-2", minutes_ago=5, phone_number="+91222"))
    partner_repo.malformed["p-bad"] = "Partner p-bad is malformed (documents.0)"

    summary = driver.run()

    assert summary.errors == []
    assert summary.total_partners == 3
    assert summary.created == 2
    assert summary.failed == 1
    assert summary.failures[0].partner_id == "p-bad"
    assert summary.failures[0].kind == "SourceRecordAccessFailure"


def test_reconcile_one_malformed_partner(partner_repo, driver):
    partner_repo.malformed["p-bad"] = "Partner p-bad is malformed (status)"

    outcome = driver.reconcile_one("p-bad")

    assert outcome.outcome == FAILED
    assert outcome.failure.kind == "SourceRecordAccessFailure"
    assert outcome.failure.message == "Partner p-bad is malformed (status)"


def test_vanished_profile_on_update_is_failed_not_fixed(store, driver, profile_repo):
    store.add_partner(asha())
    driver.run()

    store.add_partner(asha(full_name="Asha Patil"))
    profile_repo.update_error = SourceRecordAccessFailure("ServicePartner sp-1 vanished before update")
    summary = driver.run()

    assert summary.fixed == 0
    assert summary.failed == 1
    assert summary.failures[0].partner_id == "p-asha"
    assert summary.failures[0].kind == "SourceRecordAccessFailure"


def test_phones_with_same_digits_get_separate_users(store, driver):
    store.add_partner(make_partner("p-1", phone_number="+91999"))
    store.add_partner(make_partner("p-2", minutes_ago=5, phone_number="91999"))

    summary = driver.run()

    assert summary.created == 2
    assert summary.users_created == 2
    emails = {user.email for user in store.users.values()}
    assert len(emails) == 2


def test_reconcile_one_outcomes(store, driver):
    store.add_partner(asha())

    assert driver.reconcile_one("p-asha").outcome == CREATED
    assert driver.reconcile_one("p-asha").outcome == ALREADY_SYNCED

    store.add_partner(asha(service_categories=["Cleaning"]))
    outcome = driver.reconcile_one("p-asha")
    assert outcome.outcome == FIXED
    assert outcome.changed_fields == ["categories"]


# ============================================================================
# DRY RUN
# ============================================================================

def test_dry_run_reports_without_writing(store, partner_repo, user_repo, category_repo, profile_repo):
    store.add_partner(asha())
    store.add_partner(make_partner("p-2", minutes_ago=5, phone_number="+91888"))
    driver = ReconciliationDriver(partner_repo, user_repo, category_repo, profile_repo, dry_run=True)

    summary = driver.run()

    assert summary.dry_run is True
    assert summary.created == 2
    assert summary.users_created == 2
    assert store.users == {}
    assert store.profiles == {}


def test_summary_to_dict_shape(store, driver):
    store.add_partner(asha())
    store.add_partner(make_partner("p-bad", minutes_ago=5, phone_number=None))

    result = driver.run().to_dict()

    assert result['total_partners'] == 2
    assert result['created'] == 1
    assert result['failed'] == 1
    assert result['failures'][0]['partner_id'] == "p-bad"
    assert result['failures'][0]['kind'] == "IdentityResolutionFailure"
    assert result['errors'] == []


def test_stored_profile_round_trips_as_model(store, driver):
    store.add_partner(asha(status=PartnerStatus.APPROVED.value))
    driver.run()
    profile = next(iter(store.profiles.values()))
    assert ServicePartner.model_validate(profile.model_dump()) == profile
