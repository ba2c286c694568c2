"""Exception handlers mapping GigFlow errors onto HTTP responses.

Business errors keep their message. Storage failures are logged and
reported as a generic server error.
"""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gigflow.errors import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    GigflowError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    ValidationError,
)

from .logging_config import get_logger

logger = get_logger("gigflow.errors")

STATUS_BY_ERROR: list[tuple[type[GigflowError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(error: GigflowError) -> int:
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def gigflow_error_handler(request: Request, exc: GigflowError) -> JSONResponse:
    code = status_for(exc)
    detail = exc.message
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} | {exc.kind}: {exc.message}")
        detail = "Server error"
    else:
        logger.info(f"{request.method} {request.url.path} | {code} {exc.kind}: {exc.message}")
    return JSONResponse(status_code=code, content={"detail": detail, "kind": exc.kind})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} | 400 invalid request body")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": "Validation error",
            "kind": ValidationError.kind,
            # Raw inputs are not echoed; NaN and Infinity are not valid JSON
            "errors": jsonable_encoder(
                [{k: e[k] for k in ("loc", "msg", "type") if k in e} for e in exc.errors()]
            ),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GigflowError, gigflow_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
