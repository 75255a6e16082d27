# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the Tawzi3 portal.
"""

# Base models
from .base import BaseRecord, BaseRecordCreate

# Enumerations
from .enums import (
    ParcelStatus,
    DistributionStatus,
    ComplaintStatus,
    CredentialMode
)

# Records
from .entities import (
    Camp,
    Beneficiary,
    Parcel,
    Distribution,
    Complaint,
    ComplaintCreate,
    SessionContext
)

# References
from .references import ByStoreKey, ByDomainId, Reference

# Request models
from .requests import (
    LoginRequest,
    RefreshTokenRequest,
    ComplaintRequest,
    VerifyCredentialRequest,
    ChangePasswordRequest
)

# Response models
from .responses import (
    PLACEHOLDER,
    HalLink,
    ParcelView,
    CampInfo,
    HouseholdComposition,
    OriginInfo,
    ProfileView,
    ComplaintResponse,
    AuthTokenResponse,
    QRCredential,
    ErrorResponse
)

__all__ = [
    # Base models
    "BaseRecord",
    "BaseRecordCreate",

    # Enumerations
    "ParcelStatus",
    "DistributionStatus",
    "ComplaintStatus",
    "CredentialMode",

    # Records
    "Camp",
    "Beneficiary",
    "Parcel",
    "Distribution",
    "Complaint",
    "ComplaintCreate",
    "SessionContext",

    # References
    "ByStoreKey",
    "ByDomainId",
    "Reference",

    # Request models
    "LoginRequest",
    "RefreshTokenRequest",
    "ComplaintRequest",
    "VerifyCredentialRequest",
    "ChangePasswordRequest",

    # Response models
    "PLACEHOLDER",
    "HalLink",
    "ParcelView",
    "CampInfo",
    "HouseholdComposition",
    "OriginInfo",
    "ProfileView",
    "ComplaintResponse",
    "AuthTokenResponse",
    "QRCredential",
    "ErrorResponse"
]
