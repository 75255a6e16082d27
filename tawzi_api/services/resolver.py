# SPDX-License-Identifier: Apache-2.0

"""
Distribution resolver.

Finds the distribution records addressed to a beneficiary, resolves each
one to its parcel and returns the visible parcels as flattened view
records, newest first.

Distribution records written by the administration backend do not agree
on how they reference beneficiaries and parcels (store key or embedded
id, text or number). This is a known inconsistency in the upstream data
that should be fixed by a migration at the source; until then resolution
tries an ordered list of candidates and references instead of a single
strict lookup.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple
from opentelemetry import trace
import logging

from ..domain.parcels import (
    Candidate, is_visible, parcel_references, project_parcel_view, sort_parcel_views
)
from ..models.entities import Distribution, Parcel
from ..models.references import ByStoreKey, Reference
from ..models.responses import ParcelView
from .mongodb import DISTRIBUTIONS, PARCELS

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class DataInconsistencyError(Exception):
    """Raised when stored records contradict each other. Never shown to beneficiaries."""
    pass


class ParcelResolutionError(DataInconsistencyError):
    """Raised when a distribution's parcel reference matches no parcel."""

    def __init__(self, camp_id: str, distribution_key: Optional[str], parcel_id: Any,
                 tried: Sequence[Reference] = ()):
        self.camp_id = camp_id
        self.distribution_key = distribution_key
        self.parcel_id = parcel_id
        self.tried = list(tried)
        attempts = ", ".join(reference.describe() for reference in self.tried) or "none"
        super().__init__(
            f"Distribution {distribution_key} in camp {camp_id} references parcel "
            f"{parcel_id!r} which does not exist (tried: {attempts})"
        )


class RecordStore(Protocol):
    """Camp-scoped read operations the resolver needs."""

    def find_by_camp(self, collection: str, camp_id: str, filters: Dict = None) -> List[Dict]:
        ...

    def find_one_by_key(self, collection: str, camp_id: str, key: Any) -> Optional[Dict]:
        ...


class DistributionResolver:
    """
    Resolves a beneficiary's distributions to visible parcel views.

    Read-only. Record store failures propagate as ``RecordStoreError`` and
    are not retried.
    """

    def __init__(self, record_store: RecordStore):
        self.record_store = record_store

    def resolve_parcels(self, camp_id: str, candidates: Sequence[Candidate]) -> List[ParcelView]:
        """
        Resolve the parcels allocated to a beneficiary.

        Args:
            camp_id: Camp scope of the session
            candidates: Ordered beneficiary identifier candidates

        Returns:
            Visible parcel views sorted by parcel date, newest first. An
            empty list when no distribution matches.

        Raises:
            RecordStoreError: If a store operation fails
        """
        with tracer.start_as_current_span("resolver.resolve_parcels") as span:
            span.set_attributes({
                "camp.id": camp_id,
                "resolver.candidate_count": len(candidates)
            })

            distributions = self.find_distributions(camp_id, candidates)
            if not distributions:
                span.set_attribute("resolver.result_count", 0)
                return []

            views = []
            dropped = 0
            hidden = 0
            for distribution in distributions:
                try:
                    parcel_key, parcel = self.resolve_parcel(camp_id, distribution)
                except ParcelResolutionError as e:
                    dropped += 1
                    logger.warning(
                        "Dropping distribution with unresolvable parcel",
                        extra={
                            "camp_id": camp_id,
                            "distribution_key": e.distribution_key,
                            "parcel_id": e.parcel_id,
                            "references_tried": [reference.describe() for reference in e.tried]
                        }
                    )
                    continue

                if not is_visible(parcel.status, distribution.status):
                    hidden += 1
                    continue

                views.append(project_parcel_view(parcel_key, parcel, distribution))

            result = sort_parcel_views(views)

            span.set_attributes({
                "resolver.distribution_count": len(distributions),
                "resolver.dropped_count": dropped,
                "resolver.hidden_count": hidden,
                "resolver.result_count": len(result)
            })
            logger.info(
                "Parcels resolved",
                extra={
                    "camp_id": camp_id,
                    "distributions": len(distributions),
                    "dropped": dropped,
                    "hidden": hidden,
                    "parcels": len(result)
                }
            )
            return result

    def find_distributions(self, camp_id: str, candidates: Sequence[Candidate]) -> List[Distribution]:
        """
        Distribution records of the first candidate that matches any.

        Candidates are tried in order and results are never merged across
        candidates.
        """
        for position, candidate in enumerate(candidates):
            with tracer.start_as_current_span("resolver.find_distributions") as span:
                span.set_attributes({
                    "camp.id": camp_id,
                    "resolver.candidate_position": position,
                    "resolver.candidate_type": type(candidate).__name__
                })

                documents = self.record_store.find_by_camp(
                    DISTRIBUTIONS, camp_id, {"beneficiary_id": candidate}
                )
                span.set_attribute("db.result_count", len(documents))

            if documents:
                logger.debug(
                    f"Matched {len(documents)} distributions on candidate {position}",
                    extra={"camp_id": camp_id, "candidate_type": type(candidate).__name__}
                )
                return [Distribution.model_validate(document) for document in documents]

        logger.debug("No distributions matched any candidate", extra={"camp_id": camp_id})
        return []

    def resolve_parcel(self, camp_id: str, distribution: Distribution) -> Tuple[str, Parcel]:
        """
        Parcel referenced by a distribution, with its store key.

        Raises:
            ParcelResolutionError: If no reference matches a parcel
            RecordStoreError: If a store operation fails
        """
        references = parcel_references(distribution.parcel_id)

        for reference in references:
            document = self._lookup(camp_id, reference)
            if document is not None:
                return document["_key"], Parcel.model_validate(document)

        raise ParcelResolutionError(camp_id, distribution.key, distribution.parcel_id, references)

    def _lookup(self, camp_id: str, reference: Reference) -> Optional[Dict]:
        with tracer.start_as_current_span("resolver.lookup_parcel") as span:
            span.set_attributes({
                "camp.id": camp_id,
                "resolver.reference": type(reference).__name__
            })

            if isinstance(reference, ByStoreKey):
                return self.record_store.find_one_by_key(PARCELS, camp_id, reference.key)

            documents = self.record_store.find_by_camp(
                PARCELS, camp_id, {reference.attribute: reference.value}
            )
            return documents[0] if documents else None
