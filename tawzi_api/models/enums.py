# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the Tawzi3 beneficiary portal.

Stored status literals are the Arabic strings written by the camp
administration backend. English aliases are accepted on read.
"""

from enum import Enum
from typing import Optional


class ParcelStatus(str, Enum):
    """Parcel lifecycle status."""
    OPEN = "مفتوح"
    CLOSED = "انتهى"

    @classmethod
    def parse(cls, value) -> Optional["ParcelStatus"]:
        """Map a stored value (Arabic literal or English alias) to a status."""
        return _lookup(cls, value, {"open": cls.OPEN, "closed": cls.CLOSED})


class DistributionStatus(str, Enum):
    """Receipt status of a distribution record."""
    RECEIVED = "استلم"
    NOT_RECEIVED = "لم يستلم"

    @classmethod
    def parse(cls, value) -> Optional["DistributionStatus"]:
        """Map a stored value (Arabic literal or English alias) to a status."""
        return _lookup(cls, value, {
            "received": cls.RECEIVED,
            "not received": cls.NOT_RECEIVED,
            "not_received": cls.NOT_RECEIVED
        })


class ComplaintStatus(str, Enum):
    """Complaint status. The portal only ever writes PENDING."""
    PENDING = "pending"


class CredentialMode(str, Enum):
    """Active login credential of a beneficiary."""
    PASSWORD = "password"
    PHONE = "phone"


def _lookup(enum_cls, value, aliases):
    if value is None:
        return None
    text = str(value).strip()
    for member in enum_cls:
        if member.value == text:
            return member
    return aliases.get(text.lower())
