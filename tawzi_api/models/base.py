# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base record models with common fields and coercion helpers.
"""

from datetime import date, datetime
from typing import Any, Optional
from pydantic import BaseModel, Field, ConfigDict


def as_text(value: Any) -> Optional[str]:
    """Coerce a stored scalar to text; empty values become None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    text = str(value).strip()
    return text or None


class BaseRecord(BaseModel):
    """Base for records read from a camp-scoped collection.

    Records are maintained by the administration backend, so unknown
    attributes are ignored and the store key is carried separately from any
    embedded ``id`` attribute.
    """

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Use enum values instead of enum objects
        use_enum_values=True,
        # Validate assignment
        validate_assignment=True,
        extra="ignore"
    )

    key: Optional[str] = Field(None, alias="_key", description="Store-assigned document key")
    camp_id: Optional[str] = Field(None, alias="campId", description="Owning camp key")


class BaseRecordCreate(BaseModel):
    """Base model for records the portal writes."""

    model_config = ConfigDict(
        use_enum_values=True,
        validate_assignment=True
    )

    camp_id: str = Field(..., description="Owning camp key")


def as_reference(value: Any) -> Any:
    """Keep int/str references as stored; stringify anything else (e.g. ObjectId)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, str)):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return str(value)
