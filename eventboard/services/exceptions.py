from eventboard.services.error_codes import ErrorCode


class ServiceError(Exception):
    def __init__(self, code: str | ErrorCode, message: str | None = None) -> None:
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message or self.code
        super().__init__(self.message)


class NotFoundError(ServiceError):
    pass


class PermissionDeniedError(ServiceError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorCode.INSUFFICIENT_PERMISSIONS, message or "insufficient permissions")


class ConflictError(ServiceError):
    pass


class ValidationError(ServiceError):
    def __init__(
        self,
        message: str,
        field: str | None = None,
        code: str | ErrorCode = ErrorCode.VALIDATION_ERROR,
    ) -> None:
        self.field = field
        super().__init__(code, message)


class AuthenticationError(ServiceError):
    """Anything that ends in a 401: bad header, bad token, bad credentials."""


class UnauthenticatedError(AuthenticationError):
    def __init__(self, message: str = "authorization header required") -> None:
        super().__init__(ErrorCode.UNAUTHENTICATED, message)


class AccountDeactivatedError(AuthenticationError):
    def __init__(self, message: str = "account is deactivated") -> None:
        super().__init__(ErrorCode.ACCOUNT_DEACTIVATED, message)


# Credential failures, in the order the verifier checks them


class MalformedEmailError(AuthenticationError):
    def __init__(self, message: str = "email address is malformed") -> None:
        super().__init__(ErrorCode.MALFORMED_EMAIL, message)


class UnknownAccountError(AuthenticationError):
    def __init__(self, message: str = "no account for this email") -> None:
        super().__init__(ErrorCode.UNKNOWN_ACCOUNT, message)


class WrongPasswordError(AuthenticationError):
    def __init__(self, message: str = "wrong password") -> None:
        super().__init__(ErrorCode.WRONG_PASSWORD, message)


# Token failures


class TokenError(AuthenticationError):
    pass


class TokenMalformedError(TokenError):
    def __init__(self, message: str = "malformed token") -> None:
        super().__init__(ErrorCode.TOKEN_MALFORMED, message)


class TokenExpiredError(TokenError):
    def __init__(self, message: str = "token expired") -> None:
        super().__init__(ErrorCode.TOKEN_EXPIRED, message)


class TokenSignatureError(TokenError):
    def __init__(self, message: str = "token signature is invalid") -> None:
        super().__init__(ErrorCode.TOKEN_BAD_SIGNATURE, message)


class TokenInvalidError(TokenError):
    def __init__(self, message: str = "token does not belong to a known account") -> None:
        super().__init__(ErrorCode.TOKEN_INVALID, message)
