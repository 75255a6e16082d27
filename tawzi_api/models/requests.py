# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from pydantic import BaseModel, Field, field_validator


def _strip(v):
    return v.strip() if isinstance(v, str) else v


class LoginRequest(BaseModel):
    """Request model for beneficiary login."""

    national_id: str = Field(..., min_length=1, max_length=50, description="Head of household national identifier")
    credential: str = Field(..., min_length=1, max_length=200, description="Password, or registered phone number")

    @field_validator('national_id', 'credential', mode='before')
    @classmethod
    def strip_whitespace(cls, v):
        """Inputs are compared after trimming."""
        return _strip(v)


class RefreshTokenRequest(BaseModel):
    """Request model for token refresh."""

    refresh_token: str = Field(..., min_length=1, description="Refresh token")


class ComplaintRequest(BaseModel):
    """Request model for filing a complaint."""

    complaint_text: str = Field(..., min_length=1, max_length=2000, description="Complaint text")

    @field_validator('complaint_text', mode='before')
    @classmethod
    def strip_whitespace(cls, v):
        return _strip(v)


class VerifyCredentialRequest(BaseModel):
    """Request model for verifying the current credential before a password change."""

    current_credential: str = Field(..., min_length=1, max_length=200, description="Current password or phone number")

    @field_validator('current_credential', mode='before')
    @classmethod
    def strip_whitespace(cls, v):
        return _strip(v)


class ChangePasswordRequest(BaseModel):
    """Request model for changing the portal password.

    Length and confirmation are checked by the domain layer so the caller
    gets the localized message for each case.
    """

    current_credential: str = Field(..., min_length=1, max_length=200, description="Current password or phone number")
    new_password: str = Field(..., max_length=200, description="New password")
    confirm_password: str = Field(..., max_length=200, description="New password, repeated")

    @field_validator('current_credential', 'new_password', 'confirm_password', mode='before')
    @classmethod
    def strip_whitespace(cls, v):
        return _strip(v)
