# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints with HAL support.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field
from datetime import datetime

# Shown in place of any missing text value
PLACEHOLDER = "---"


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    type: Optional[str] = Field(None, description="Content type")
    title: Optional[str] = Field(None, description="Link title")
    templated: Optional[bool] = Field(None, description="Whether URL is templated")


class ParcelView(BaseModel):
    """Flattened parcel + distribution view record."""

    parcel_id: str = Field(..., description="Parcel store key")
    name: str = Field(PLACEHOLDER, description="Parcel name")
    description: str = Field("", description="Parcel description, empty when absent")
    type: str = Field(PLACEHOLDER, description="Parcel type")
    parcel_status: str = Field(PLACEHOLDER, description="Parcel lifecycle status")
    parcel_date: str = Field(PLACEHOLDER, description="Parcel date")
    distribution_status: str = Field(PLACEHOLDER, description="Receipt status")
    distribution_date: str = Field(PLACEHOLDER, description="Distribution date")


class CampInfo(BaseModel):
    """Camp display metadata."""

    camp_id: str = Field(..., description="Camp key")
    name: str = Field(PLACEHOLDER, description="Camp name")
    location: str = Field(PLACEHOLDER, description="Camp location")
    representative_name: str = Field(PLACEHOLDER, description="Representative name")
    representative_phone: str = Field(PLACEHOLDER, description="Representative phone")


class HouseholdComposition(BaseModel):
    """Demographic breakdown of a household."""

    family_total: int = Field(0, description="Stored family count, or the sum of the age/sex buckets")
    males_0_2: int = 0
    males_5_17: int = 0
    males_17_60: int = 0
    males_60_plus: int = 0
    females_0_2: int = 0
    females_5_17: int = 0
    females_17_60: int = 0
    females_60_plus: int = 0
    disabled_count: int = 0


class OriginInfo(BaseModel):
    """Original place of residence."""

    governorate: str = PLACEHOLDER
    town: str = PLACEHOLDER
    landmark: str = PLACEHOLDER


class ProfileView(BaseModel):
    """Beneficiary profile as shown in the portal."""

    beneficiary_id: str = Field(..., description="Beneficiary store key")
    head_name: str = Field(PLACEHOLDER, description="Head of household name")
    national_id: str = Field(PLACEHOLDER, description="National identifier")
    main_phone: str = Field(PLACEHOLDER, description="Registered phone number")
    credential_mode: str = Field(..., description="Active login credential (password or phone)")
    camp: CampInfo
    household: HouseholdComposition
    origin: OriginInfo


class ComplaintResponse(BaseModel):
    """Complaint as returned to its author."""

    id: str = Field(..., description="Complaint store key")
    complaint_text: str = Field(..., description="Complaint text")
    status: str = Field(..., description="Complaint status")
    created_at: Optional[datetime] = Field(None, description="Server-assigned creation timestamp")


class AuthTokenResponse(BaseModel):
    """Token pair issued on login."""

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_in: int
    access_expires_at: str
    refresh_expires_at: Optional[str] = None


class QRCredential(BaseModel):
    """QR-coded identity credential."""

    text: str = Field(..., description="Encoded payload")
    name: str = Field(PLACEHOLDER, description="Head of household name")
    national_id: str = Field(PLACEHOLDER, description="National identifier")
    image: str = Field(..., description="PNG image as a data URI")
    fallback: bool = Field(False, description="Whether the store-key fallback payload was used")


class ErrorResponse(BaseModel):
    """RFC 7807 problem details."""

    type: str = Field(..., description="Problem type URI")
    title: str = Field(..., description="Short summary")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Human-readable explanation")
    instance: str = Field(..., description="Request path")
    errors: Optional[List[Dict[str, Any]]] = Field(None, description="Field errors")
