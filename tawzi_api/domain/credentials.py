# SPDX-License-Identifier: Apache-2.0

"""
Credential domain logic.

A beneficiary has exactly one active credential: the portal password when
a ``password_hash`` is stored, otherwise the registered phone number.
Passwords are stored as the lowercase hex SHA-256 digest of the trimmed
plaintext, the format the administration backend already writes.
"""

from dataclasses import dataclass, field
from typing import List, Optional
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.constant_time import bytes_eq
from ..models.entities import Beneficiary
from ..models.enums import CredentialMode
from ..utils import messages

MIN_PASSWORD_LENGTH = 6


@dataclass
class PasswordValidationResult:
    """Result of new password validation."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def hash_secret(secret: str) -> str:
    """
    Hex SHA-256 digest of a secret.

    Args:
        secret: Plaintext secret (already trimmed by the caller)

    Returns:
        Lowercase hex digest
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(secret.encode("utf-8"))
    return digest.finalize().hex()


def _same(left: Optional[str], right: Optional[str]) -> bool:
    if left is None or right is None:
        return False
    return bytes_eq(left.encode("utf-8"), right.encode("utf-8"))


def verify_credential(beneficiary: Beneficiary, secret: Optional[str]) -> bool:
    """
    Check a supplied secret against the beneficiary's active credential.

    Password mode compares the digest of the secret with the stored digest;
    phone mode compares the secret with the stored phone number. Both
    comparisons run in constant time.
    """
    if not secret:
        return False

    if beneficiary.credential_mode == CredentialMode.PASSWORD:
        return _same(hash_secret(secret), beneficiary.password_hash.lower())

    return _same(secret, beneficiary.main_phone)


def validate_new_password(
    new_password: Optional[str],
    confirm_password: Optional[str],
    min_length: int = MIN_PASSWORD_LENGTH
) -> PasswordValidationResult:
    """Validate a new password and its confirmation, both already trimmed."""
    errors: List[str] = []

    if not new_password or len(new_password) < min_length:
        errors.append(messages.password_too_short(min_length))
    elif new_password != confirm_password:
        errors.append(messages.PASSWORD_MISMATCH)

    return PasswordValidationResult(is_valid=not errors, errors=errors)
