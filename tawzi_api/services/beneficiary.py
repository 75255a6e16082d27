# SPDX-License-Identifier: Apache-2.0

"""
Beneficiary portal service.

Login, profile, parcels, complaints, password change and QR credential for
a signed-in beneficiary. Every operation after login takes the explicit
session context built at login.
"""

from typing import Any, Dict, List, Optional, Tuple
from pymongo import DESCENDING
from opentelemetry import trace
import logging

from ..domain.credentials import MIN_PASSWORD_LENGTH, hash_secret, validate_new_password, verify_credential
from ..domain.parcels import beneficiary_candidates
from ..domain.profile import build_profile_view, qr_text
from ..middleware.error_handler import NotFoundException, ValidationException
from ..models.entities import Beneficiary, Camp, Complaint, ComplaintCreate, SessionContext
from ..models.enums import CredentialMode
from ..models.responses import PLACEHOLDER, ComplaintResponse, ParcelView, ProfileView, QRCredential
from ..utils import messages
from .auth import BeneficiaryNotFoundError, InvalidCredentialError
from .mongodb import BENEFICIARIES, COMPLAINTS, MongoDBService
from .qr import QRCodeService, RenderedQR
from .resolver import DistributionResolver

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class BeneficiaryService:
    """Operations available to a beneficiary through the portal."""

    def __init__(
        self,
        record_store: MongoDBService,
        qr_service: Optional[QRCodeService] = None,
        min_password_length: int = MIN_PASSWORD_LENGTH
    ):
        self.record_store = record_store
        self.resolver = DistributionResolver(record_store)
        self.qr_service = qr_service or QRCodeService()
        self.min_password_length = min_password_length

    # Session

    def authenticate(self, national_id: str, credential: str) -> Tuple[SessionContext, ProfileView]:
        """
        Log a beneficiary in with a national id and the active credential.

        Raises:
            BeneficiaryNotFoundError: If no beneficiary carries the national id
            InvalidCredentialError: If the credential does not match
            RecordStoreError: If a store operation fails
        """
        with tracer.start_as_current_span("beneficiary.authenticate") as span:
            documents = self.record_store.find_across_camps(BENEFICIARIES, {"head_id_number": national_id})
            if not documents:
                span.set_attribute("auth.result", "not_found")
                raise BeneficiaryNotFoundError(national_id)

            if len(documents) > 1:
                logger.warning(
                    "National id registered in more than one record, using the first",
                    extra={"matches": len(documents)}
                )

            beneficiary = Beneficiary.model_validate(documents[0])
            camp_id = beneficiary.camp_id
            span.set_attributes({
                "camp.id": camp_id or "",
                "auth.credential_mode": beneficiary.credential_mode.value
            })

            if not verify_credential(beneficiary, credential):
                span.set_attribute("auth.result", "invalid_credential")
                raise InvalidCredentialError(beneficiary.has_password())

            camp = self._load_camp(camp_id)
            session = SessionContext.from_records(beneficiary, camp_id)

            span.set_attribute("auth.result", "success")
            logger.info(
                "Beneficiary logged in",
                extra={
                    "camp_id": camp_id,
                    "beneficiary_key": beneficiary.key,
                    "credential_mode": beneficiary.credential_mode.value
                }
            )
            return session, build_profile_view(beneficiary, camp_id, camp)

    def _load_camp(self, camp_id: str) -> Optional[Camp]:
        document = self.record_store.get_camp(camp_id)
        if document is None:
            logger.warning("Camp record missing", extra={"camp_id": camp_id})
            return None
        return Camp.model_validate(document)

    def load_beneficiary(self, session: SessionContext) -> Beneficiary:
        """
        Current beneficiary record of a session.

        Raises:
            NotFoundException: If the record no longer exists
        """
        document = self.record_store.find_one_by_key(BENEFICIARIES, session.camp_id, session.beneficiary_key)
        if document is None:
            raise NotFoundException(messages.BENEFICIARY_MISSING)
        return Beneficiary.model_validate(document)

    # Profile and parcels

    def get_profile(self, session: SessionContext) -> ProfileView:
        """Fresh profile of the signed-in beneficiary."""
        with tracer.start_as_current_span("beneficiary.get_profile") as span:
            span.set_attribute("camp.id", session.camp_id)
            beneficiary = self.load_beneficiary(session)
            return build_profile_view(beneficiary, session.camp_id, self._load_camp(session.camp_id))

    def get_parcels(self, session: SessionContext) -> List[ParcelView]:
        """Visible parcels of the signed-in beneficiary, newest first."""
        candidates = beneficiary_candidates(
            session.beneficiary_key,
            session.record_id,
            session.national_id
        )
        return self.resolver.resolve_parcels(session.camp_id, candidates)

    # Complaints

    def submit_complaint(self, session: SessionContext, complaint_text: str) -> ComplaintResponse:
        """
        File a complaint. Status starts as pending and the creation time is
        assigned by the store.

        Raises:
            ValidationException: If the text is empty after trimming
        """
        with tracer.start_as_current_span("beneficiary.submit_complaint") as span:
            span.set_attribute("camp.id", session.camp_id)

            text = (complaint_text or "").strip()
            if not text:
                raise ValidationException(messages.COMPLAINT_EMPTY, [
                    {"field": "complaint_text", "message": messages.COMPLAINT_EMPTY}
                ])

            complaint = ComplaintCreate(
                camp_id=session.camp_id,
                beneficiary_id=session.beneficiary_key,
                complaint_text=text
            )
            key = self.record_store.create(
                COMPLAINTS,
                session.camp_id,
                complaint.to_document(),
                server_timestamp_fields=("created_at",)
            )

            logger.info(
                "Complaint filed",
                extra={"camp_id": session.camp_id, "beneficiary_key": session.beneficiary_key, "complaint_key": key}
            )

            stored = self.record_store.find_one_by_key(COMPLAINTS, session.camp_id, key)
            if stored is None:
                # Written but not yet readable; report what was written
                return ComplaintResponse(id=key, complaint_text=text, status=complaint.status)
            return self._complaint_response(stored)

    def list_complaints(self, session: SessionContext) -> List[ComplaintResponse]:
        """Complaints filed by the signed-in beneficiary, newest first."""
        documents = self.record_store.find_by_camp(
            COMPLAINTS,
            session.camp_id,
            {"beneficiary_id": session.beneficiary_key},
            sort_by="created_at",
            sort_order=DESCENDING
        )
        return [self._complaint_response(document) for document in documents]

    @staticmethod
    def _complaint_response(document: Dict[str, Any]) -> ComplaintResponse:
        complaint = Complaint.model_validate(document)
        return ComplaintResponse(
            id=complaint.key,
            complaint_text=complaint.complaint_text or "",
            status=complaint.status or PLACEHOLDER,
            created_at=complaint.created_at
        )

    # Password

    def verify_current_credential(self, session: SessionContext, credential: str) -> CredentialMode:
        """
        First step of a password change: check the active credential.

        Returns:
            The credential mode that was verified

        Raises:
            InvalidCredentialError: If the credential does not match
        """
        with tracer.start_as_current_span("beneficiary.verify_credential") as span:
            beneficiary = self.load_beneficiary(session)
            mode = beneficiary.credential_mode
            span.set_attribute("auth.credential_mode", mode.value)

            if not verify_credential(beneficiary, credential):
                span.set_attribute("auth.result", "invalid_credential")
                raise InvalidCredentialError(beneficiary.has_password(), current=True)

            return mode

    def change_password(
        self,
        session: SessionContext,
        current_credential: str,
        new_password: str,
        confirm_password: str
    ) -> None:
        """
        Set a new portal password.

        Once a password is set, phone login is disabled for the beneficiary.
        Concurrent changes are last-write-wins.

        Raises:
            InvalidCredentialError: If the current credential does not match
            ValidationException: If the new password is too short or unconfirmed
        """
        with tracer.start_as_current_span("beneficiary.change_password") as span:
            span.set_attribute("camp.id", session.camp_id)

            self.verify_current_credential(session, current_credential)

            validation = validate_new_password(
                (new_password or "").strip(),
                (confirm_password or "").strip(),
                self.min_password_length
            )
            if not validation.is_valid:
                raise ValidationException(validation.errors[0], [
                    {"field": "new_password", "message": error} for error in validation.errors
                ])

            updated = self.record_store.update_by_key(
                BENEFICIARIES,
                session.camp_id,
                session.beneficiary_key,
                {"password_hash": hash_secret(new_password.strip())}
            )
            if not updated:
                raise NotFoundException(messages.BENEFICIARY_MISSING)

            logger.info(
                "Portal password changed",
                extra={"camp_id": session.camp_id, "beneficiary_key": session.beneficiary_key}
            )

    # QR credential

    def render_qr(self, session: SessionContext) -> Tuple[QRCredential, RenderedQR]:
        """QR credential of the signed-in beneficiary and its rendered image."""
        beneficiary = self.load_beneficiary(session)
        rendered = self.qr_service.render(
            qr_text(beneficiary, session.beneficiary_key),
            fallback_text=session.beneficiary_key
        )
        credential = QRCredential(
            text=rendered.text,
            name=beneficiary.head_name or PLACEHOLDER,
            national_id=beneficiary.head_id_number or PLACEHOLDER,
            image=rendered.data_uri,
            fallback=rendered.fallback
        )
        return credential, rendered
