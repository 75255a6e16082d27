# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Record references.

Beneficiaries and parcels are addressed either by the store-assigned
document key or by a value embedded in the record itself, and historical
records do not agree on which one (or which representation, text or
number) they use. A reference states explicitly which scheme is meant.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class ByStoreKey:
    """Address a record by its store-assigned document key."""
    key: Union[int, str]

    @property
    def value(self) -> Union[int, str]:
        return self.key

    def describe(self) -> str:
        return f"store_key={self.key!r}"


@dataclass(frozen=True)
class ByDomainId:
    """Address a record by a value embedded in it (e.g. ``id``, ``head_id_number``)."""
    value: Union[int, str]
    attribute: str = "id"

    def describe(self) -> str:
        return f"{self.attribute}={self.value!r}"


Reference = Union[ByStoreKey, ByDomainId]
