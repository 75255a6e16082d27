# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the distribution resolver.
"""

import pytest

from tawzi_api.domain.parcels import beneficiary_candidates
from tawzi_api.models.entities import Distribution
from tawzi_api.models.references import ByDomainId, ByStoreKey
from tawzi_api.services.mongodb import RecordStoreError
from tawzi_api.services.resolver import DistributionResolver, ParcelResolutionError

CAMP = "camp-1"
OPEN = "مفتوح"
CLOSED = "انتهى"
RECEIVED = "استلم"
NOT_RECEIVED = "لم يستلم"


def add_parcel(store, key, status=OPEN, date="2025-01-01", camp=CAMP, **fields):
    document = {"_key": key, "campId": camp, "name": f"parcel {key}", "status": status, "date": date}
    document.update(fields)
    store.insert("parcels", document)


def add_distribution(store, beneficiary_id, parcel_id, status=RECEIVED, camp=CAMP, **fields):
    document = {"campId": camp, "beneficiary_id": beneficiary_id, "parcel_id": parcel_id, "status": status}
    document.update(fields)
    return store.insert("distribution", document)


def distribution_queries(store):
    return [call for call in store.calls if call[0] == "find_by_camp" and call[1] == "distribution"]


class TestDistributionLookup:
    """Candidate ordering when finding distributions."""

    def test_first_matching_candidate_wins(self, empty_store):
        """Results of later candidates are never merged in."""
        add_parcel(empty_store, "p-1", date="2025-01-01")
        add_parcel(empty_store, "p-2", date="2025-02-01")
        add_distribution(empty_store, "ben-1", "p-1")
        add_distribution(empty_store, 17, "p-2")

        views = DistributionResolver(empty_store).resolve_parcels(CAMP, ["ben-1", 17])

        assert [view.parcel_id for view in views] == ["p-1"]
        assert len(distribution_queries(empty_store)) == 1

    def test_falls_through_to_numeric_national_id(self, empty_store):
        """A distribution keyed by the numeric national id is found after the text forms miss."""
        add_parcel(empty_store, "p-1")
        add_distribution(empty_store, 401234567, "p-1")

        candidates = beneficiary_candidates("ben-9", None, "401234567")
        views = DistributionResolver(empty_store).resolve_parcels(CAMP, candidates)

        assert [view.parcel_id for view in views] == ["p-1"]
        queried = [call[3]["beneficiary_id"] for call in distribution_queries(empty_store)]
        assert queried == ["ben-9", "401234567", 401234567]

    def test_no_distribution_returns_empty_list(self, empty_store):
        """A beneficiary with no allocations gets an empty list, not an error."""
        add_parcel(empty_store, "p-1")
        add_distribution(empty_store, "someone-else", "p-1")

        views = DistributionResolver(empty_store).resolve_parcels(CAMP, ["ben-1", 17])

        assert views == []
        assert len(distribution_queries(empty_store)) == 2

    def test_other_camps_are_not_visible(self, empty_store):
        """Distributions of another camp never match."""
        add_parcel(empty_store, "p-1", camp="camp-2")
        add_distribution(empty_store, "ben-1", "p-1", camp="camp-2")

        assert DistributionResolver(empty_store).resolve_parcels(CAMP, ["ben-1"]) == []


class TestParcelResolution:
    """Resolving a distribution's parcel reference."""

    def test_resolves_by_store_key(self, empty_store):
        add_parcel(empty_store, "p-1", id=99)
        distribution = Distribution.model_validate({"_key": "d-1", "parcel_id": "p-1"})

        key, parcel = DistributionResolver(empty_store).resolve_parcel(CAMP, distribution)

        assert key == "p-1"
        assert parcel.record_id == 99

    def test_resolves_by_embedded_id(self, empty_store):
        """A parcel keyed differently is found through its embedded id."""
        add_parcel(empty_store, "auto-key", id="P-9")
        distribution = Distribution.model_validate({"_key": "d-1", "parcel_id": "P-9"})

        key, _ = DistributionResolver(empty_store).resolve_parcel(CAMP, distribution)

        assert key == "auto-key"

    def test_resolves_by_numeric_embedded_id(self, empty_store):
        """A text reference matches a parcel whose embedded id is stored as a number."""
        add_parcel(empty_store, "auto-key", id=5)
        distribution = Distribution.model_validate({"_key": "d-1", "parcel_id": "5"})

        key, parcel = DistributionResolver(empty_store).resolve_parcel(CAMP, distribution)

        assert key == "auto-key"
        assert parcel.record_id == 5

    def test_unresolvable_parcel_lists_references_tried(self, empty_store):
        distribution = Distribution.model_validate({"_key": "d-7", "parcel_id": "12"})

        with pytest.raises(ParcelResolutionError) as exc_info:
            DistributionResolver(empty_store).resolve_parcel(CAMP, distribution)

        error = exc_info.value
        assert error.distribution_key == "d-7"
        assert error.parcel_id == "12"
        assert error.tried == [ByStoreKey("12"), ByDomainId("12", "id"), ByDomainId(12, "id")]
        assert "d-7" in str(error)

    def test_missing_parcel_is_dropped_and_siblings_kept(self, empty_store):
        add_parcel(empty_store, "p-1", date="2025-01-05")
        add_distribution(empty_store, "ben-1", "p-1")
        add_distribution(empty_store, "ben-1", "p-gone")

        views = DistributionResolver(empty_store).resolve_parcels(CAMP, ["ben-1"])

        assert [view.parcel_id for view in views] == ["p-1"]

    def test_store_failure_propagates(self, empty_store):
        add_parcel(empty_store, "p-1")
        add_distribution(empty_store, "ben-1", "p-1")
        empty_store.fail("find_one_by_key")

        with pytest.raises(RecordStoreError) as exc_info:
            DistributionResolver(empty_store).resolve_parcels(CAMP, ["ben-1"])

        assert exc_info.value.collection == "parcels"
        assert exc_info.value.camp_id == CAMP

    def test_distribution_query_failure_propagates(self, empty_store):
        empty_store.fail("find_by_camp")

        with pytest.raises(RecordStoreError):
            DistributionResolver(empty_store).resolve_parcels(CAMP, ["ben-1"])


class TestVisibilityAndOrdering:
    """Visibility filter and date ordering of resolved parcels."""

    @pytest.mark.parametrize("parcel_status,distribution_status,visible", [
        (OPEN, RECEIVED, True),
        (OPEN, NOT_RECEIVED, True),
        (CLOSED, RECEIVED, True),
        (CLOSED, NOT_RECEIVED, False),
    ])
    def test_visibility(self, empty_store, parcel_status, distribution_status, visible):
        add_parcel(empty_store, "p-1", status=parcel_status)
        add_distribution(empty_store, "ben-1", "p-1", status=distribution_status)

        views = DistributionResolver(empty_store).resolve_parcels(CAMP, ["ben-1"])

        assert len(views) == (1 if visible else 0)

    def test_closed_unreceived_parcel_hidden_among_others(self, empty_store):
        add_parcel(empty_store, "A", status=OPEN, date="2025-02-01")
        add_parcel(empty_store, "B", status=CLOSED, date="2025-01-01")
        add_distribution(empty_store, "ben-1", "A", status=RECEIVED)
        add_distribution(empty_store, "ben-1", "B", status=NOT_RECEIVED)

        views = DistributionResolver(empty_store).resolve_parcels(CAMP, ["ben-1"])

        assert len(views) == 1
        view = views[0]
        assert view.parcel_id == "A"
        assert view.parcel_status == OPEN
        assert view.distribution_status == RECEIVED

    def test_newest_first_and_stable_for_equal_dates(self, empty_store):
        add_parcel(empty_store, "first", date="2025-03-01")
        add_parcel(empty_store, "older", date="2025-01-15")
        add_parcel(empty_store, "second", date="2025-03-01")
        add_distribution(empty_store, "ben-1", "first")
        add_distribution(empty_store, "ben-1", "older")
        add_distribution(empty_store, "ben-1", "second")

        views = DistributionResolver(empty_store).resolve_parcels(CAMP, ["ben-1"])

        assert [view.parcel_id for view in views] == ["first", "second", "older"]

    def test_view_placeholders(self, empty_store):
        empty_store.insert("parcels", {"_key": "bare", "campId": CAMP})
        add_distribution(empty_store, "ben-1", "bare", status=None)

        view = DistributionResolver(empty_store).resolve_parcels(CAMP, ["ben-1"])[0]

        assert view.name == "---"
        assert view.description == ""
        assert view.type == "---"
        assert view.parcel_date == "---"
        assert view.distribution_status == "---"
        assert view.distribution_date == "---"
