# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Beneficiary portal endpoints: profile, parcels, complaints, password and
QR credential of the signed-in beneficiary.
"""

from flask import Response, request, jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from ..middleware.auth import require_session
from ..middleware.error_handler import ValidationException
from ..models.entities import SessionContext
from ..models.enums import CredentialMode
from ..models.requests import ChangePasswordRequest, ComplaintRequest, VerifyCredentialRequest
from ..models.responses import ErrorResponse, ProfileView, QRCredential
from ..services.mongodb import RecordStoreError
from ..utils import messages

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
portal_tag = Tag(name="Beneficiary", description="Signed-in beneficiary portal")
portal_bp = APIBlueprint(
    'portal',
    __name__,
    url_prefix='/api',
    abp_tags=[portal_tag]
)


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationException(messages.INVALID_REQUEST)
    return body


@portal_bp.get('/me', responses={200: ProfileView, 404: ErrorResponse})
@require_session
def get_profile(session: SessionContext):
    """
    Profile of the signed-in beneficiary: identity, camp, household
    composition and place of origin.
    """
    profile = current_app.beneficiary_service.get_profile(session)
    return jsonify(current_app.hal_formatter.format_profile(profile.model_dump())), 200


@portal_bp.get('/me/parcels', responses={503: ErrorResponse})
@require_session
def list_parcels(session: SessionContext):
    """
    Parcels allocated to the signed-in beneficiary, newest first.

    Closed parcels that were never received are not listed.
    """
    with tracer.start_as_current_span(
        "portal.list_parcels",
        attributes={"camp.id": session.camp_id}
    ) as span:
        try:
            parcels = current_app.beneficiary_service.get_parcels(session)
        except RecordStoreError as e:
            span.record_exception(e)
            logger.error("Parcel resolution failed", extra=e.scope)
            return jsonify(current_app.hal_formatter.format_service_unavailable_error(
                messages.PARCELS_LOAD_FAILED,
                request.path
            )), 503

        span.set_attribute("parcels.count", len(parcels))
        return jsonify(current_app.hal_formatter.format_parcel_collection(
            [parcel.model_dump() for parcel in parcels]
        )), 200


@portal_bp.post('/me/complaints', responses={400: ErrorResponse})
@require_session
def submit_complaint(session: SessionContext):
    """
    File a complaint. It is stored as pending with a server-assigned
    creation time.
    """
    body = _json_body()
    if not str(body.get("complaint_text") or "").strip():
        raise ValidationException(messages.COMPLAINT_EMPTY, [
            {"field": "complaint_text", "message": messages.COMPLAINT_EMPTY}
        ])
    complaint_request = ComplaintRequest.model_validate(body)

    try:
        complaint = current_app.beneficiary_service.submit_complaint(session, complaint_request.complaint_text)
    except RecordStoreError as e:
        logger.error("Complaint submission failed", extra=e.scope)
        return jsonify(current_app.hal_formatter.format_service_unavailable_error(
            messages.COMPLAINT_FAILED,
            request.path
        )), 503

    response = current_app.hal_formatter.format_complaint(complaint.model_dump(mode="json"))
    response["message"] = messages.COMPLAINT_SENT
    return jsonify(response), 201


@portal_bp.get('/me/complaints')
@require_session
def list_complaints(session: SessionContext):
    """
    Complaints filed by the signed-in beneficiary, newest first.
    """
    complaints = current_app.beneficiary_service.list_complaints(session)
    return jsonify(current_app.hal_formatter.format_complaint_collection(
        [complaint.model_dump(mode="json") for complaint in complaints]
    )), 200


@portal_bp.post('/me/password/verify', responses={401: ErrorResponse})
@require_session
def verify_credential(session: SessionContext):
    """
    First step of a password change: verify the current password, or the
    registered phone number when no password is set yet.
    """
    verify_request = VerifyCredentialRequest.model_validate(_json_body())
    mode = current_app.beneficiary_service.verify_current_credential(
        session,
        verify_request.current_credential
    )
    return jsonify({
        "verified": True,
        "credential_mode": mode.value,
        "message": messages.CREDENTIAL_VERIFIED
    }), 200


@portal_bp.put('/me/password', responses={400: ErrorResponse, 401: ErrorResponse})
@require_session
def change_password(session: SessionContext):
    """
    Set a new portal password (at least six characters, confirmed).

    Once set, the registered phone number no longer works for login.
    """
    change_request = ChangePasswordRequest.model_validate(_json_body())
    current_app.beneficiary_service.change_password(
        session,
        change_request.current_credential,
        change_request.new_password,
        change_request.confirm_password
    )
    return jsonify({
        "credential_mode": CredentialMode.PASSWORD.value,
        "message": messages.PASSWORD_CHANGED
    }), 200


@portal_bp.get('/me/qr', responses={200: QRCredential})
@require_session
def get_qr_credential(session: SessionContext):
    """
    QR-coded identity credential with the image as a PNG data URI.
    """
    credential, _ = current_app.beneficiary_service.render_qr(session)
    return jsonify(current_app.hal_formatter.format_qr_credential(credential.model_dump())), 200


@portal_bp.get('/me/qr.png')
@require_session
def get_qr_image(session: SessionContext):
    """
    QR-coded identity credential as a PNG image.
    """
    _, rendered = current_app.beneficiary_service.render_qr(session)
    return Response(
        rendered.png,
        mimetype="image/png",
        headers={"Cache-Control": "no-store"}
    )
