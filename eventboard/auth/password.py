from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError, VerifyMismatchError

from eventboard.core.config import settings
from eventboard.services.exceptions import ValidationError

_hasher = PasswordHasher()


def validate_password(plain: str | None) -> str:
    if not plain or not plain.strip():
        raise ValidationError("password is required", field="password")
    if len(plain) < settings.password_min_length:
        raise ValidationError(
            f"password must be at least {settings.password_min_length} characters long",
            field="password",
        )
    return plain


def hash_password(plain: str) -> str:
    validate_password(plain)
    try:
        return _hasher.hash(plain)
    except HashingError as exc:
        raise ValueError("failed to hash password") from exc


def verify_password(plain: str, hashed: str) -> bool:
    # argon2 compares digests in constant time
    if not plain or not hashed:
        return False
    try:
        return _hasher.verify(hashed, plain)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False
