"""
Partner Sync - Default Resolution
=================================
Every fallback value the engine writes when a Partner field is missing.

Keeping these in one place means the create path, the merge path and the
link audit all agree on what a "missing" value turns into, which is what
makes repeated runs land on the same User and the same profile values.
"""

import hashlib
from typing import List

from partner_sync.contact_normalization import normalize_email, normalize_phone, phone_digits
from partner_sync.models import (
    DocumentStatus,
    DocumentType,
    Partner,
    PartnerStatus,
    ServiceArea,
)

UNKNOWN = "Unknown"
PLACEHOLDER_PINCODE = "000000"
SYNTHETIC_EMAIL_DOMAIN = "urban.temp"
SYNTHETIC_SUFFIX_LENGTH = 8
DEFAULT_DOCUMENT_TYPE = DocumentType.PROFESSIONAL_CERTIFICATE
DEFAULT_USER_ROLE = "user"


def _present(value) -> bool:
    return value is not None and str(value).strip() != ""


def default_display_name(partner: Partner) -> str:
    """Partner full name, or "Partner <phone>" when absent."""
    if _present(partner.full_name):
        return partner.full_name.strip()
    return f"Partner {(partner.phone_number or '').strip()}".strip()


def synthetic_email(phone: str) -> str:
    """
    Deterministic placeholder address for a partner without an email.

    The digits keep the address readable; the suffix is taken from the whole
    trimmed phone, so "+91999" and "91999" get different addresses.
    """
    phone = normalize_phone(phone) or ''
    suffix = hashlib.sha256(phone.encode('utf-8')).hexdigest()[:SYNTHETIC_SUFFIX_LENGTH]
    return f"partner_{phone_digits(phone)}.{suffix}@{SYNTHETIC_EMAIL_DOMAIN}"


def default_user_email(partner: Partner) -> str:
    """Normalized partner email, falling back to the synthetic address."""
    return normalize_email(partner.email) or synthetic_email(partner.phone_number or '')


def default_city(partner: Partner) -> str:
    return partner.city.strip() if _present(partner.city) else UNKNOWN


def default_area(partner: Partner) -> str:
    return partner.address.strip() if _present(partner.address) else UNKNOWN


def default_pincode(partner: Partner) -> str:
    return partner.pincode.strip() if _present(partner.pincode) else PLACEHOLDER_PINCODE


def build_service_area(partner: Partner) -> ServiceArea:
    return ServiceArea(
        city=default_city(partner),
        areas=[default_area(partner)],
        pin_codes=[default_pincode(partner)],
    )


def build_service_areas(partner: Partner) -> List[ServiceArea]:
    return [build_service_area(partner)]


def document_status_for(partner_status: PartnerStatus) -> DocumentStatus:
    """Verification documents are approved only once the Partner is approved."""
    if partner_status == PartnerStatus.APPROVED:
        return DocumentStatus.APPROVED
    return DocumentStatus.PENDING
