from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from eventboard.services.error_codes import ErrorCode
from eventboard.services.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    ValidationError,
)


def http_error_from_service(err: ServiceError) -> HTTPException:
    headers = None
    if isinstance(err, NotFoundError):
        status = 404
    elif isinstance(err, AuthenticationError):
        status = 401
        headers = {"WWW-Authenticate": "Bearer"}
    elif isinstance(err, PermissionDeniedError):
        status = 403
    elif isinstance(err, ConflictError):
        status = 409
    elif isinstance(err, ValidationError):
        status = 400
    else:
        status = 500

    detail = {"code": err.code, "message": err.message}
    field = getattr(err, "field", None)
    if field:
        detail["field"] = field

    return HTTPException(status_code=status, detail=detail, headers=headers)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    http_exc = http_error_from_service(exc)
    return JSONResponse(
        status_code=http_exc.status_code,
        content={"detail": http_exc.detail},
        headers=http_exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies are plain invalid input here, not 422s
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    detail = {
        "code": ErrorCode.VALIDATION_ERROR.value,
        "message": first.get("msg", "invalid input"),
    }
    if loc:
        detail["field"] = ".".join(loc)
    return JSONResponse(status_code=400, content={"detail": detail})
