# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication endpoints for login, logout, and token refresh.
"""

from flask import request, jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from ..middleware.auth import require_session
from ..middleware.error_handler import ValidationException
from ..models.entities import SessionContext
from ..models.requests import LoginRequest, RefreshTokenRequest
from ..models.responses import AuthTokenResponse, ErrorResponse
from ..services.auth import AuthenticationError, TokenValidationError
from ..utils import messages

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
auth_tag = Tag(name="Authentication", description="Beneficiary login and session tokens")
auth_bp = APIBlueprint(
    'auth',
    __name__,
    url_prefix='/api/auth',
    abp_tags=[auth_tag]
)


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationException(messages.INVALID_REQUEST)
    return body


@auth_bp.post('/login', responses={200: AuthTokenResponse, 401: ErrorResponse})
def login():
    """
    Log a beneficiary in.

    Accepts the head of household national id and the active credential
    (portal password, or the registered phone number until a password is
    set). Returns session tokens and the beneficiary profile.
    """
    with tracer.start_as_current_span(
        "auth.login",
        attributes={
            "operation": "login",
            "ip_address": request.remote_addr or ""
        }
    ) as span:
        login_request = LoginRequest.model_validate(_json_body())

        try:
            session, profile = current_app.beneficiary_service.authenticate(
                login_request.national_id,
                login_request.credential
            )
        except AuthenticationError as e:
            span.set_status(Status(StatusCode.ERROR, e.__class__.__name__))
            logger.warning(
                "Login rejected",
                extra={"reason": e.__class__.__name__, "ip_address": request.remote_addr}
            )
            raise

        tokens = current_app.auth_service.generate_tokens(session)
        tokens["message"] = messages.LOGIN_SUCCEEDED

        span.set_attributes({
            "camp.id": session.camp_id,
            "beneficiary.key": session.beneficiary_key
        })

        return jsonify(current_app.hal_formatter.format_session(
            tokens,
            profile.model_dump()
        )), 200


@auth_bp.post('/refresh', responses={200: AuthTokenResponse, 401: ErrorResponse})
def refresh_token():
    """
    Issue a new access token from a refresh token.
    """
    with tracer.start_as_current_span("auth.refresh") as span:
        refresh_request = RefreshTokenRequest.model_validate(_json_body())

        try:
            payload = current_app.auth_service.validate_token(refresh_request.refresh_token, "refresh")
        except TokenValidationError as e:
            span.set_status(Status(StatusCode.ERROR, "Invalid refresh token"))
            logger.warning(f"Token refresh rejected: {str(e)}")
            return jsonify(current_app.hal_formatter.format_authentication_error(
                messages.SESSION_EXPIRED,
                request.path
            )), 401

        if current_app.session_middleware.is_token_blocked(payload):
            span.set_status(Status(StatusCode.ERROR, "Refresh token revoked"))
            return jsonify(current_app.hal_formatter.format_authentication_error(
                messages.SESSION_EXPIRED,
                request.path
            )), 401

        tokens = current_app.auth_service.refresh_access_token(refresh_request.refresh_token)
        return jsonify(tokens), 200


@auth_bp.post('/logout')
@require_session
def logout(session: SessionContext):
    """
    End the session.

    The access token, and the refresh token when supplied, are revoked for
    the rest of their lifetime.
    """
    with tracer.start_as_current_span(
        "auth.logout",
        attributes={"camp.id": session.camp_id, "beneficiary.key": session.beneficiary_key}
    ) as span:
        auth_service = current_app.auth_service
        redis_service = current_app.redis_service

        payloads = [session.token_payload]

        body = request.get_json(silent=True) or {}
        refresh = body.get("refresh_token") if isinstance(body, dict) else None
        if refresh:
            try:
                payloads.append(auth_service.validate_token(refresh, "refresh"))
            except TokenValidationError:
                logger.info("Ignoring invalid refresh token on logout")

        results = [
            redis_service.block_token(payload["jti"], auth_service.remaining_lifetime(payload))
            for payload in payloads
        ]
        revoked = all(results)
        span.set_attribute("auth.revoked", revoked)

        logger.info(
            "Beneficiary logged out",
            extra={"camp_id": session.camp_id, "beneficiary_key": session.beneficiary_key, "revoked": revoked}
        )

        return jsonify({"message": messages.LOGGED_OUT, "revoked": revoked}), 200
