from __future__ import annotations

import structlog
from email_validator import EmailNotValidError, validate_email
from sqlalchemy import select
from sqlalchemy.orm import Session

from eventboard.auth.password import verify_password
from eventboard.auth.principal import Principal
from eventboard.auth.roles import RoleRegistry
from eventboard.models import User
from eventboard.services.exceptions import (
    AccountDeactivatedError,
    MalformedEmailError,
    UnknownAccountError,
    WrongPasswordError,
)

logger = structlog.get_logger()


def normalize_email(email: str | None) -> str:
    """Syntactic check plus canonical lower-case form. Raises MalformedEmailError."""
    if not email or not email.strip():
        raise MalformedEmailError("email is required")
    try:
        result = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as exc:
        raise MalformedEmailError(str(exc)) from exc
    return result.normalized.lower()


def verify_credentials(db: Session, email: str, password: str) -> Principal:
    """Resolve an email/password pair to a Principal.

    Checks run in a fixed order and stop at the first failure: email shape,
    account lookup, active status, then the password itself.
    """
    normalized = normalize_email(email)

    user = db.scalar(select(User).where(User.email == normalized))
    if user is None:
        logger.info("login_rejected", reason="unknown_account")
        raise UnknownAccountError()

    if not user.is_active:
        logger.info("login_rejected", reason="deactivated", user_id=str(user.id))
        raise AccountDeactivatedError()

    if not verify_password(password, user.password_hash):
        logger.info("login_rejected", reason="wrong_password", user_id=str(user.id))
        raise WrongPasswordError()

    return RoleRegistry.load(db).principal_for(user)
