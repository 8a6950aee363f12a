"""
Partner Sync - Entity Models
============================
Value types for the four records the engine reads and writes.

- Partner: mobile onboarding record (read only here)
- User: shared identity, the join point between the two write paths
- ServiceCategory: canonical catalog entry
- ServicePartner: admin-facing profile, exactly one per User

Read models are lenient so legacy rows (blank business names, old status
values) can still be loaded and repaired. ServicePartnerWrite carries the
structural constraints enforced before anything is persisted.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def new_id() -> str:
    return str(uuid.uuid4())


# =====================================================================
# ENUMS
# =====================================================================

class PartnerStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PartnerType(str, Enum):
    INDIVIDUAL = "individual"
    COMPANY = "company"


class ProfileStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    # Written by older onboarding code, never by this engine
    PENDING = "pending"


class DocumentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DocumentType(str, Enum):
    PAN = "pan"
    AADHAAR = "aadhaar"
    GST = "gst"
    TRADE_LICENSE = "trade_license"
    PROFESSIONAL_CERTIFICATE = "professional_certificate"
    ADDRESS_PROOF = "address_proof"


# =====================================================================
# SOURCE RECORDS
# =====================================================================

class Partner(BaseModel):
    """Mobile onboarding record for a prospective service provider."""
    id: str
    phone_number: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    service_categories: List[str] = Field(default_factory=list)
    documents: List[str] = Field(default_factory=list)
    status: PartnerStatus = PartnerStatus.PENDING
    created_at: Optional[datetime] = None

    @field_validator('service_categories', 'documents', mode='before')
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value


class User(BaseModel):
    """Shared identity. Never updated by the engine after creation."""
    id: str = Field(default_factory=new_id)
    name: str
    email: str
    phone: str
    password_hash: str
    role: str = "user"
    status: bool = True
    created_at: Optional[datetime] = None


class ServiceCategory(BaseModel):
    id: str
    name: str


# =====================================================================
# ADMIN PROFILE
# =====================================================================

class ServiceArea(BaseModel):
    city: str
    areas: List[str] = Field(default_factory=list)
    pin_codes: List[str] = Field(default_factory=list)


class VerificationDocument(BaseModel):
    document_type: DocumentType = DocumentType.PROFESSIONAL_CERTIFICATE
    document_url: str
    status: DocumentStatus = DocumentStatus.PENDING
    # Admin-side annotations, preserved across merges
    document_number: Optional[str] = None
    verified_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None


class ServicePartner(BaseModel):
    """Admin-facing profile as stored."""
    id: str = Field(default_factory=new_id)
    user_id: str
    business_name: str = ""
    partner_type: PartnerType = PartnerType.INDIVIDUAL
    categories: List[str] = Field(default_factory=list)
    service_areas: List[ServiceArea] = Field(default_factory=list)
    is_verified: bool = False
    status: ProfileStatus = ProfileStatus.ACTIVE
    verification_documents: List[VerificationDocument] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('categories', 'service_areas', 'verification_documents', mode='before')
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value


class ServicePartnerWrite(ServicePartner):
    """
    ServicePartner with the constraints checked before every create or update.

    A pydantic ValidationError raised here is reported per field by the
    profile synchronizer.
    """

    @field_validator('user_id')
    @classmethod
    def _user_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("User reference is required")
        return value

    @field_validator('business_name')
    @classmethod
    def _business_name_required(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("Business name is required")
        return value

    @field_validator('verification_documents')
    @classmethod
    def _document_urls_present(cls, value: List[VerificationDocument]) -> List[VerificationDocument]:
        for position, document in enumerate(value):
            if not document.document_url or not document.document_url.strip():
                raise ValueError(f"Document {position} has no URL")
        return value
