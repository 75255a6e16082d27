# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for beneficiary session tokens.

This module provides JWT token generation, validation and refresh using
RS256 signing. Tokens carry the session claims (camp scope, beneficiary
store key, identifiers) so that every request rebuilds the same explicit
session context without server-side session storage.
"""

import os
import uuid
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from opentelemetry import trace
import logging

from ..models.entities import SessionContext
from ..utils import messages

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when authentication fails."""

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or message


class BeneficiaryNotFoundError(AuthenticationError):
    """Raised when no beneficiary carries the supplied national identifier."""

    def __init__(self, national_id: str):
        super().__init__(
            f"No beneficiary registered with national id {national_id!r}",
            messages.BENEFICIARY_NOT_FOUND
        )
        self.national_id = national_id


class InvalidCredentialError(AuthenticationError):
    """Raised when the supplied secret does not match the active credential."""

    def __init__(self, password_mode: bool, current: bool = False):
        super().__init__(
            "Credential mismatch ({} mode)".format("password" if password_mode else "phone"),
            messages.invalid_credential(password_mode, current)
        )
        self.password_mode = password_mode


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


_dev_key_pair: Optional[Tuple[str, str]] = None


def _generate_dev_key_pair() -> Tuple[str, str]:
    """Generate RSA key pair for development use, once per process."""
    global _dev_key_pair
    if _dev_key_pair is not None:
        return _dev_key_pair

    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048
    )

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode('utf-8')

    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')

    _dev_key_pair = (private_pem, public_pem)
    return _dev_key_pair


class AuthService:
    """
    JWT session service with RS256 signing.

    Issues access and refresh tokens for an authenticated beneficiary,
    validates them and rebuilds the session context from their claims.
    """

    def __init__(
        self,
        private_key: Optional[str] = None,
        public_key: Optional[str] = None,
        access_token_minutes: Optional[int] = None,
        refresh_token_days: Optional[int] = None
    ):
        """
        Initialize the authentication service.

        Args:
            private_key: RS256 private key for token signing (PEM format)
            public_key: RS256 public key for token verification (PEM format)
            access_token_minutes: Access token lifetime
            refresh_token_days: Refresh token lifetime
        """
        private_key = private_key or os.getenv("JWT_PRIVATE_KEY")
        public_key = public_key or os.getenv("JWT_PUBLIC_KEY")
        if not private_key or not public_key:
            # Both halves must come from the same pair
            logger.warning("No JWT key pair configured, using a generated development key pair")
            private_key, public_key = _generate_dev_key_pair()

        self.private_key = private_key
        self.public_key = public_key
        self.algorithm = "RS256"
        self.access_token_expire_minutes = access_token_minutes or int(os.getenv("ACCESS_TOKEN_MINUTES", "60"))
        self.refresh_token_expire_days = refresh_token_days or int(os.getenv("REFRESH_TOKEN_DAYS", "30"))

    def _encode(self, claims: Dict[str, Any], token_type: str, now: datetime, expires: datetime) -> str:
        payload = dict(claims)
        payload.update({
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": expires,
            "type": token_type
        })
        return jwt.encode(payload, self.private_key, algorithm=self.algorithm)

    def generate_tokens(self, session: SessionContext) -> Dict[str, Any]:
        """
        Generate access and refresh tokens for a session.

        Args:
            session: Session context of the authenticated beneficiary

        Returns:
            Dictionary containing access_token, refresh_token, and metadata
        """
        with tracer.start_as_current_span("auth.generate_tokens") as span:
            span.set_attributes({
                "auth.operation": "generate_tokens",
                "beneficiary.key": session.beneficiary_key,
                "camp.id": session.camp_id
            })

            now = datetime.now(timezone.utc)
            access_exp = now + timedelta(minutes=self.access_token_expire_minutes)
            refresh_exp = now + timedelta(days=self.refresh_token_expire_days)
            claims = session.to_claims()

            try:
                access_token = self._encode(claims, "access", now, access_exp)
                refresh_token = self._encode(claims, "refresh", now, refresh_exp)
            except (jwt.PyJWTError, ValueError, TypeError) as e:
                span.set_attribute("auth.tokens_generated", "error")
                logger.error(f"Token generation failed: {str(e)}")
                raise AuthenticationError(f"Failed to generate tokens: {str(e)}") from e

            span.set_attribute("auth.tokens_generated", "success")

            logger.info(
                "JWT tokens generated successfully",
                extra={
                    "beneficiary_key": session.beneficiary_key,
                    "camp_id": session.camp_id,
                    "access_expires_at": access_exp.isoformat(),
                    "refresh_expires_at": refresh_exp.isoformat()
                }
            )

            return {
                "access_token": access_token,
                "refresh_token": refresh_token,
                "token_type": "Bearer",
                "expires_in": self.access_token_expire_minutes * 60,
                "access_expires_at": access_exp.isoformat(),
                "refresh_expires_at": refresh_exp.isoformat()
            }

    def validate_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Validate and decode a JWT token.

        Args:
            token: JWT token string to validate
            token_type: Expected token type ("access" or "refresh")

        Returns:
            Decoded token payload

        Raises:
            TokenValidationError: If token is invalid or expired
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attributes({
                "auth.operation": "validate_token",
                "auth.token_type": token_type
            })

            try:
                payload = jwt.decode(
                    token,
                    self.public_key,
                    algorithms=[self.algorithm],
                    options={"verify_exp": True, "require": ["exp", "iat", "sub", "jti"]}
                )
            except jwt.ExpiredSignatureError as e:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenValidationError("Token has expired") from e
            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise TokenValidationError(f"Invalid token: {str(e)}") from e

            # Verify token type
            if payload.get("type") != token_type:
                span.set_attribute("auth.validation_result", "wrong_type")
                raise TokenValidationError(f"Invalid token type. Expected {token_type}")

            if not payload.get("camp_id"):
                span.set_attribute("auth.validation_result", "missing_scope")
                raise TokenValidationError("Token carries no camp scope")

            span.set_attributes({
                "auth.validation_result": "success",
                "beneficiary.key": payload.get("sub"),
                "camp.id": payload.get("camp_id")
            })

            logger.debug(
                "Token validated successfully",
                extra={
                    "beneficiary_key": payload.get("sub"),
                    "camp_id": payload.get("camp_id"),
                    "token_type": token_type
                }
            )

            return payload

    def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """
        Generate a new access token using a valid refresh token.

        Args:
            refresh_token: Valid refresh token

        Returns:
            New access token and metadata

        Raises:
            TokenValidationError: If refresh token is invalid
        """
        with tracer.start_as_current_span("auth.refresh_access_token") as span:
            span.set_attribute("auth.operation", "refresh_access_token")

            refresh_payload = self.validate_token(refresh_token, "refresh")
            session = self.session_from_payload(refresh_payload)

            now = datetime.now(timezone.utc)
            access_exp = now + timedelta(minutes=self.access_token_expire_minutes)

            try:
                access_token = self._encode(session.to_claims(), "access", now, access_exp)
            except (jwt.PyJWTError, ValueError, TypeError) as e:
                span.set_attribute("auth.refresh_result", "error")
                logger.error(f"Token refresh failed: {str(e)}")
                raise AuthenticationError(f"Failed to refresh token: {str(e)}") from e

            span.set_attribute("auth.refresh_result", "success")

            logger.info(
                "Access token refreshed successfully",
                extra={
                    "beneficiary_key": session.beneficiary_key,
                    "camp_id": session.camp_id,
                    "new_expires_at": access_exp.isoformat()
                }
            )

            return {
                "access_token": access_token,
                "token_type": "Bearer",
                "expires_in": self.access_token_expire_minutes * 60,
                "access_expires_at": access_exp.isoformat()
            }

    def session_from_payload(self, payload: Dict[str, Any]) -> SessionContext:
        """Rebuild the session context from validated token claims."""
        return SessionContext(
            camp_id=payload["camp_id"],
            beneficiary_key=payload["sub"],
            national_id=payload.get("national_id"),
            record_id=payload.get("record_id"),
            head_name=payload.get("name"),
            token_payload=payload
        )

    @staticmethod
    def remaining_lifetime(payload: Dict[str, Any]) -> int:
        """Seconds until the token expires, at least 1."""
        exp = int(payload.get("exp", 0))
        now = int(datetime.now(timezone.utc).timestamp())
        return max(exp - now, 1)
