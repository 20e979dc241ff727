"""
Exception handlers - Map domain errors to HTTP responses.

Status by classification:
- validation -> 400
- not_found  -> 404
- internal   -> 500 (cause is logged, never returned)
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api.models import ErrorDetailModel, ErrorResponse
from src.domain.exceptions import ErrorCode, ErrorKind, RegistrationError

logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


async def registration_error_handler(request: Request, exc: RegistrationError) -> JSONResponse:
    status_code = _STATUS_BY_KIND[exc.kind]
    if exc.kind is ErrorKind.INTERNAL:
        logger.error(
            "Request failed: %s %s status=%d code=%s",
            request.method,
            request.url.path,
            status_code,
            exc.code,
            exc_info=exc,
        )
    else:
        logger.info(
            "Request rejected: %s %s status=%d code=%s",
            request.method,
            request.url.path,
            status_code,
            exc.code,
        )
    body = ErrorResponse(
        code=exc.code,
        message=exc.message,
        details=[
            ErrorDetailModel(field=d.field, code=d.code, message=d.message) for d in exc.details
        ],
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = []
    for error in exc.errors():
        if error.get("type") == "json_invalid":
            details.append(
                ErrorDetailModel(
                    field="body",
                    code=ErrorCode.INVALID_JSON.value,
                    message="Failed to parse JSON body",
                )
            )
            continue
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        details.append(
            ErrorDetailModel(
                field=".".join(loc) or "body",
                code=ErrorCode.INVALID_REQUEST.value,
                message=str(error.get("msg", "Invalid value")),
            )
        )
    body = ErrorResponse(
        code=ErrorCode.INVALID_REQUEST.value,
        message="Request format is invalid",
        details=details,
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RegistrationError, registration_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
