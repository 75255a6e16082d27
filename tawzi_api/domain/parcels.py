# SPDX-License-Identifier: Apache-2.0

"""
Parcel distribution domain logic.

Pure functions used by the distribution resolver: identifier candidate
ordering, parcel reference ordering, the visibility rule, projection to
the flattened parcel view and the date ordering.
"""

import re
from typing import Any, Iterable, List, Optional, Tuple, Union
from ..models.entities import Distribution, Parcel
from ..models.enums import DistributionStatus, ParcelStatus
from ..models.references import ByDomainId, ByStoreKey, Reference
from ..models.responses import PLACEHOLDER, ParcelView


Candidate = Union[int, str]

_INTEGER = re.compile(r"^-?\d+$")


def as_number(value: Any) -> Optional[int]:
    """
    Numeric form of an identifier, or None when it has none.

    Integers are returned unchanged and digit strings are parsed.
    Booleans are never numbers here.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER.match(value.strip()):
        return int(value.strip())
    return None


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _unique(values: Iterable[Any]) -> List[Any]:
    """Drop empty values and repeats, keyed by (type, value) so "7" and 7 both survive."""
    seen = set()
    result = []
    for value in values:
        if _is_empty(value):
            continue
        marker: Tuple[type, Any] = (type(value), value)
        if marker in seen:
            continue
        seen.add(marker)
        result.append(value)
    return result


def beneficiary_candidates(
    beneficiary_key: Optional[str],
    record_id: Optional[Candidate] = None,
    national_id: Optional[str] = None
) -> List[Candidate]:
    """
    Ordered identifier candidates for matching distribution records.

    Distribution records reference their beneficiary inconsistently: by
    store key, by embedded record id or by national id, stored as text or
    as a number. Candidates are tried in this order:

        store key, record id, national id,
        then the numeric form of each of the three.

    Args:
        beneficiary_key: Store key of the beneficiary document
        record_id: Embedded ``id`` attribute of the beneficiary, if any
        national_id: Head of household national identifier

    Returns:
        Distinct, non-empty candidates in priority order
    """
    raw = [beneficiary_key, record_id, national_id]
    return _unique(raw + [as_number(value) for value in raw])


def parcel_references(raw_parcel_id: Any) -> List[Reference]:
    """
    Ordered references for resolving a distribution's parcel.

    The store key is tried first, then the embedded ``id`` attribute by
    its stored value, then by its numeric form.
    """
    if _is_empty(raw_parcel_id):
        return []

    references: List[Reference] = [
        ByStoreKey(str(raw_parcel_id)),
        ByDomainId(raw_parcel_id, "id"),
    ]
    numeric = as_number(raw_parcel_id)
    if numeric is not None:
        references.append(ByDomainId(numeric, "id"))

    seen = set()
    unique: List[Reference] = []
    for reference in references:
        marker = (reference.__class__, type(reference.value), reference.value)
        if marker not in seen:
            seen.add(marker)
            unique.append(reference)
    return unique


def is_visible(parcel_status: Optional[str], distribution_status: Optional[str]) -> bool:
    """
    Whether a (parcel, distribution) pair is shown to the beneficiary.

    Only a closed parcel that was never received is hidden.
    """
    closed = ParcelStatus.parse(parcel_status) == ParcelStatus.CLOSED
    not_received = DistributionStatus.parse(distribution_status) == DistributionStatus.NOT_RECEIVED
    return not (closed and not_received)


def _text(value: Optional[str]) -> str:
    return value if value else PLACEHOLDER


def project_parcel_view(parcel_key: str, parcel: Parcel, distribution: Distribution) -> ParcelView:
    """Flatten a resolved parcel and its distribution into a view record."""
    return ParcelView(
        parcel_id=parcel_key or PLACEHOLDER,
        name=_text(parcel.name),
        description=parcel.description or "",
        type=_text(parcel.type_parcel),
        parcel_status=_text(parcel.status),
        parcel_date=_text(parcel.date),
        distribution_status=_text(distribution.status),
        distribution_date=_text(distribution.distribution_date),
    )


def sort_parcel_views(views: Iterable[ParcelView]) -> List[ParcelView]:
    """
    Order views by parcel date, newest first.

    Dates are compared as strings. Equal dates keep their input order.
    """
    # sorted() is stable under reverse=True
    return sorted(views, key=lambda view: view.parcel_date, reverse=True)
