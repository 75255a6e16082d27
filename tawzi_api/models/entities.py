# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core record models for the Tawzi3 beneficiary portal.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, Field, field_validator, ConfigDict
from .base import BaseRecord, BaseRecordCreate, as_reference, as_text
from .enums import ComplaintStatus, CredentialMode


RecordId = Union[int, str]

DEMOGRAPHIC_FIELDS = (
    "males_0_2",
    "males_5_17",
    "males_17_60",
    "males_60_plus",
    "females_0_2",
    "females_5_17",
    "females_17_60",
    "females_60_plus",
)


class Camp(BaseRecord):
    """Camp (tenant) display metadata."""

    camp_name: Optional[str] = Field(None, description="Camp display name")
    location: Optional[str] = Field(None, description="Camp location")
    representative_name: Optional[str] = Field(None, description="Camp representative")
    representative_phone: Optional[str] = Field(None, description="Representative contact")

    @field_validator('camp_name', 'location', 'representative_name', 'representative_phone', mode='before')
    @classmethod
    def coerce_text(cls, v):
        return as_text(v)


class Beneficiary(BaseRecord):
    """Registered household record."""

    record_id: Optional[RecordId] = Field(None, alias="id", description="Embedded record id (not the store key)")
    head_name: Optional[str] = Field(None, description="Head of household name")
    head_id_number: Optional[str] = Field(None, description="National identifier of the head of household")
    main_phone: Optional[str] = Field(None, description="Registered phone number")
    password_hash: Optional[str] = Field(None, description="SHA-256 hex digest of the portal password")
    family_count: Optional[Any] = Field(None, description="Stored family size")
    disabled_count: Optional[Any] = Field(None, description="Number of disabled members")
    males_0_2: Optional[Any] = None
    males_5_17: Optional[Any] = None
    males_17_60: Optional[Any] = None
    males_60_plus: Optional[Any] = None
    females_0_2: Optional[Any] = None
    females_5_17: Optional[Any] = None
    females_17_60: Optional[Any] = None
    females_60_plus: Optional[Any] = None
    governorate: Optional[str] = Field(None, description="Governorate of origin")
    town: Optional[str] = Field(None, description="Town of origin")
    landmark: Optional[str] = Field(None, description="Landmark of origin")

    @field_validator('head_name', 'head_id_number', 'main_phone', 'password_hash',
                     'governorate', 'town', 'landmark', mode='before')
    @classmethod
    def coerce_text(cls, v):
        return as_text(v)

    @field_validator('record_id', mode='before')
    @classmethod
    def coerce_reference(cls, v):
        return as_reference(v)

    def has_password(self) -> bool:
        """Check whether the beneficiary has switched to password login."""
        return bool(self.password_hash)

    @property
    def credential_mode(self) -> CredentialMode:
        """Active credential mode; a stored password hash disables phone login."""
        return CredentialMode.PASSWORD if self.has_password() else CredentialMode.PHONE


class Parcel(BaseRecord):
    """Definition of a distributable aid package."""

    record_id: Optional[RecordId] = Field(None, alias="id", description="Embedded parcel id")
    name: Optional[str] = Field(None, description="Parcel name")
    description: Optional[str] = Field(None, description="Parcel contents")
    type_parcel: Optional[str] = Field(None, description="Parcel type")
    status: Optional[str] = Field(None, description="Lifecycle status literal")
    date: Optional[str] = Field(None, description="Parcel date, sortable text")

    @field_validator('name', 'description', 'type_parcel', 'status', 'date', mode='before')
    @classmethod
    def coerce_text(cls, v):
        return as_text(v)

    @field_validator('record_id', mode='before')
    @classmethod
    def coerce_reference(cls, v):
        return as_reference(v)


class Distribution(BaseRecord):
    """Join record allocating one parcel to one beneficiary."""

    beneficiary_id: Optional[RecordId] = Field(None, description="Beneficiary reference, representation varies")
    parcel_id: Optional[RecordId] = Field(None, description="Parcel reference, representation varies")
    status: Optional[str] = Field(None, description="Receipt status literal")
    distribution_date: Optional[str] = Field(None, description="Distribution date")

    @field_validator('status', 'distribution_date', mode='before')
    @classmethod
    def coerce_text(cls, v):
        return as_text(v)

    @field_validator('beneficiary_id', 'parcel_id', mode='before')
    @classmethod
    def coerce_reference(cls, v):
        return as_reference(v)


class Complaint(BaseRecord):
    """Complaint filed by a beneficiary.

    Status moves on from pending in the administration backend, so any
    stored status literal is accepted here.
    """

    beneficiary_id: str = Field(..., description="Store key of the filing beneficiary")
    complaint_text: Optional[str] = Field(None, description="Complaint text")
    status: Optional[str] = Field(None, description="Complaint status literal")
    created_at: Optional[datetime] = Field(None, description="Server-assigned creation timestamp")

    @field_validator('complaint_text', 'status', mode='before')
    @classmethod
    def coerce_text(cls, v):
        return as_text(v)


class ComplaintCreate(BaseRecordCreate):
    """New complaint document as written to the store."""

    beneficiary_id: str = Field(..., description="Store key of the filing beneficiary")
    complaint_text: str = Field(..., min_length=1, max_length=2000, description="Complaint text")
    status: ComplaintStatus = Field(default=ComplaintStatus.PENDING, description="Initial status")

    @field_validator('complaint_text')
    @classmethod
    def validate_text(cls, v):
        """Validate complaint text."""
        if not v.strip():
            raise ValueError('Complaint text cannot be empty')
        return v.strip()

    def to_document(self) -> Dict[str, Any]:
        """Store document without the scope field, which the store adds."""
        return {
            "beneficiary_id": self.beneficiary_id,
            "complaint_text": self.complaint_text,
            "status": self.status
        }


class SessionContext(BaseModel):
    """Signed-in beneficiary session, passed explicitly to every operation."""

    camp_id: str = Field(..., description="Camp scope")
    beneficiary_key: str = Field(..., description="Beneficiary store key")
    national_id: Optional[str] = Field(None, description="Head of household national identifier")
    record_id: Optional[RecordId] = Field(None, description="Embedded beneficiary record id")
    head_name: Optional[str] = Field(None, description="Display name")
    token_payload: Optional[Dict[str, Any]] = Field(None, description="Original JWT payload")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")

    model_config = ConfigDict(
        use_enum_values=True
    )

    @classmethod
    def from_records(cls, beneficiary: Beneficiary, camp_id: str) -> "SessionContext":
        """Build the session for a freshly authenticated beneficiary."""
        return cls(
            camp_id=camp_id,
            beneficiary_key=beneficiary.key,
            national_id=beneficiary.head_id_number,
            record_id=beneficiary.record_id,
            head_name=beneficiary.head_name
        )

    def to_claims(self) -> Dict[str, Any]:
        """Session claims embedded in issued tokens."""
        return {
            "sub": self.beneficiary_key,
            "camp_id": self.camp_id,
            "national_id": self.national_id,
            "record_id": self.record_id,
            "name": self.head_name
        }
