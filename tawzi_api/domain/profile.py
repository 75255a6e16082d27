# SPDX-License-Identifier: Apache-2.0

"""
Profile domain logic: household composition, profile view and QR payload.
"""

from typing import Any, Optional
from ..models.entities import Beneficiary, Camp, DEMOGRAPHIC_FIELDS
from ..models.responses import (
    PLACEHOLDER, CampInfo, HouseholdComposition, OriginInfo, ProfileView
)


def as_count(value: Any) -> int:
    """Stored counts are numbers or numeric text; anything else counts as 0."""
    if isinstance(value, bool) or value is None:
        return 0
    try:
        count = int(float(value))
    except (TypeError, ValueError):
        return 0
    return max(count, 0)


def household_composition(beneficiary: Beneficiary) -> HouseholdComposition:
    """
    Demographic breakdown of a household.

    The stored ``family_count`` wins when set; otherwise the family total
    is the sum of the eight age/sex buckets.
    """
    buckets = {name: as_count(getattr(beneficiary, name)) for name in DEMOGRAPHIC_FIELDS}
    family_total = as_count(beneficiary.family_count) or sum(buckets.values())

    return HouseholdComposition(
        family_total=family_total,
        disabled_count=as_count(beneficiary.disabled_count),
        **buckets
    )


def build_camp_info(camp_id: str, camp: Optional[Camp]) -> CampInfo:
    """Camp display metadata, with placeholders when the camp record is missing."""
    if camp is None:
        return CampInfo(camp_id=camp_id)

    return CampInfo(
        camp_id=camp_id,
        name=camp.camp_name or PLACEHOLDER,
        location=camp.location or PLACEHOLDER,
        representative_name=camp.representative_name or PLACEHOLDER,
        representative_phone=camp.representative_phone or PLACEHOLDER,
    )


def build_profile_view(beneficiary: Beneficiary, camp_id: str, camp: Optional[Camp]) -> ProfileView:
    """Assemble the profile shown to a signed-in beneficiary."""
    return ProfileView(
        beneficiary_id=beneficiary.key,
        head_name=beneficiary.head_name or PLACEHOLDER,
        national_id=beneficiary.head_id_number or PLACEHOLDER,
        main_phone=beneficiary.main_phone or PLACEHOLDER,
        credential_mode=beneficiary.credential_mode.value,
        camp=build_camp_info(camp_id, camp),
        household=household_composition(beneficiary),
        origin=OriginInfo(
            governorate=beneficiary.governorate or PLACEHOLDER,
            town=beneficiary.town or PLACEHOLDER,
            landmark=beneficiary.landmark or PLACEHOLDER,
        ),
    )


def qr_text(beneficiary: Beneficiary, beneficiary_key: Optional[str] = None) -> str:
    """QR payload: the national identifier, or the store key when it is missing."""
    return beneficiary.head_id_number or str(beneficiary_key or beneficiary.key or "")
