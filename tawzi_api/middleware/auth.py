# SPDX-License-Identifier: Apache-2.0

"""
Session middleware for JWT token validation and session context extraction.

This module provides Flask middleware for validating session tokens,
checking the logout blocklist, and building the explicit session context
passed to every portal view.
"""

from functools import wraps
from flask import request, jsonify, g, current_app
from typing import Optional, Dict, Any, Callable
from opentelemetry import trace
import logging

from ..models.entities import SessionContext
from ..services.auth import TokenValidationError
from ..utils import messages

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class SessionMiddleware:
    """
    JWT session middleware for Flask applications.

    Handles token extraction, validation, blocklist checking, and session
    context building for protected endpoints.
    """

    def __init__(self, auth_service, redis_service):
        """
        Initialize the session middleware.

        Args:
            auth_service: JWT session service
            redis_service: Redis service for the token blocklist
        """
        self.auth_service = auth_service
        self.redis_service = redis_service

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '').strip()

        if not auth_header:
            return None

        # Handle "Bearer <token>" format
        scheme, _, credentials = auth_header.partition(' ')
        if scheme.lower() == 'bearer':
            return credentials.strip() or None

        return auth_header

    def is_token_blocked(self, token_payload: Dict[str, Any]) -> bool:
        """
        Check if a validated token was revoked by logout.

        Args:
            token_payload: Decoded JWT payload

        Returns:
            True if token is blocked, False otherwise
        """
        token_id = token_payload.get("jti")
        if not token_id:
            return True
        return self.redis_service.is_token_blocked(token_id)

    def get_request_info(self) -> Dict[str, Any]:
        """
        Extract request metadata for the session context.

        Returns:
            Dictionary with request information
        """
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get('User-Agent', '')
        }

    def build_session_context(self, token_payload: Dict[str, Any]) -> SessionContext:
        """
        Build the session context from a validated token payload and request information.

        Args:
            token_payload: Decoded JWT payload

        Returns:
            SessionContext for request processing
        """
        session = self.auth_service.session_from_payload(token_payload)
        request_info = self.get_request_info()
        session.ip_address = request_info.get("ip_address")
        session.user_agent = request_info.get("user_agent")
        return session


def _problem(error_type: str, title: str, detail: str):
    problem = current_app.hal_formatter.builder.build_error_response(
        error_type,
        title,
        401,
        detail,
        request.path
    )
    return jsonify(problem), 401


def require_session(f: Callable) -> Callable:
    """
    Decorator to require a beneficiary session for Flask routes.

    The session context is passed as the first argument of the view.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        session_middleware: SessionMiddleware = current_app.session_middleware

        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            span.set_attribute("auth.operation", "validate_request")

            token = session_middleware.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                logger.warning("Authentication failed: missing token")
                return _problem("authentication-required", "Authentication Required", messages.SESSION_REQUIRED)

            try:
                token_payload = session_middleware.auth_service.validate_token(token, "access")
            except TokenValidationError as e:
                span.set_attribute("auth.result", "invalid_token")
                logger.warning(f"Authentication failed: {str(e)}")
                return _problem("invalid-token", "Invalid Token", messages.SESSION_EXPIRED)

            if session_middleware.is_token_blocked(token_payload):
                span.set_attribute("auth.result", "token_blocked")
                logger.warning("Authentication failed: token is revoked")
                return _problem("token-revoked", "Token Revoked", messages.SESSION_EXPIRED)

            session = session_middleware.build_session_context(token_payload)
            g.session_context = session

            span.set_attributes({
                "auth.result": "success",
                "camp.id": session.camp_id,
                "beneficiary.key": session.beneficiary_key
            })

            logger.debug(
                "Authentication successful",
                extra={
                    "camp_id": session.camp_id,
                    "beneficiary_key": session.beneficiary_key,
                    "ip_address": session.ip_address
                }
            )

        return f(session, *args, **kwargs)

    return decorated_function
