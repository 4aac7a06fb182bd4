"""
Annotool error taxonomy and the single place where it becomes HTTP.

The service layer raises ``AnnotationError`` subclasses; ``register_exception_handlers``
installs the translation on the FastAPI app. Only ``InternalError`` is logged at error
level — every other kind is an expected, client-facing condition.
"""
from __future__ import annotations

import enum
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class ErrorKind(str, enum.Enum):
    UNAUTHORIZED = "unauthorized"
    DUPLICATE = "duplicate"
    NOT_FOUND = "not_found"
    BAD_INPUT = "bad_input"
    FORBIDDEN = "forbidden"
    INTERNAL = "internal"


_STATUS_CODES = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.DUPLICATE: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.BAD_INPUT: 400,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.INTERNAL: 500,
}


def status_code_for(kind: ErrorKind) -> int:
    return _STATUS_CODES[kind]


class AnnotationError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.kind.value)
        self.detail = detail or self.kind.value

    @property
    def status_code(self) -> int:
        return status_code_for(self.kind)


class Unauthorized(AnnotationError):
    kind = ErrorKind.UNAUTHORIZED


class Duplicate(AnnotationError):
    kind = ErrorKind.DUPLICATE


class NotFound(AnnotationError):
    kind = ErrorKind.NOT_FOUND


class BadInput(AnnotationError):
    kind = ErrorKind.BAD_INPUT


class Forbidden(AnnotationError):
    kind = ErrorKind.FORBIDDEN


class InternalError(AnnotationError):
    kind = ErrorKind.INTERNAL


async def annotation_error_handler(request: Request, exc: AnnotationError) -> JSONResponse:
    if exc.kind is ErrorKind.INTERNAL:
        logger.error(
            "The annotation endpoint experienced an unexpected error",
            path=request.url.path,
            method=request.method,
            exc_info=exc,
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed path/query/form values are plain bad requests for this API
    return JSONResponse(
        status_code=status_code_for(ErrorKind.BAD_INPUT),
        content={"detail": "Malformed request parameter", "errors": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AnnotationError, annotation_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
