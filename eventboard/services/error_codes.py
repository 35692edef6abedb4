from enum import Enum


class ErrorCode(str, Enum):
    # 400
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ROLE = "INVALID_ROLE"

    # 401
    UNAUTHENTICATED = "UNAUTHENTICATED"
    TOKEN_MALFORMED = "TOKEN_MALFORMED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_BAD_SIGNATURE = "TOKEN_BAD_SIGNATURE"
    TOKEN_INVALID = "TOKEN_INVALID"
    ACCOUNT_DEACTIVATED = "ACCOUNT_DEACTIVATED"
    MALFORMED_EMAIL = "MALFORMED_EMAIL"
    UNKNOWN_ACCOUNT = "UNKNOWN_ACCOUNT"
    WRONG_PASSWORD = "WRONG_PASSWORD"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"

    # 403
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"

    # 404
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    ROLE_NOT_FOUND = "ROLE_NOT_FOUND"

    # 409
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    DUPLICATE_USERNAME = "DUPLICATE_USERNAME"
    DUPLICATE_ROLE = "DUPLICATE_ROLE"
    CONFLICT = "CONFLICT"
    ALREADY_APPROVED = "ALREADY_APPROVED"
    ALREADY_UNAPPROVED = "ALREADY_UNAPPROVED"
