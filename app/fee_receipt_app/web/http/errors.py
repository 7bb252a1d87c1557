from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fee_receipt_app.core.env import FEERCPT_ERROR_INCLUDE_DETAILS, get_env_bool
from fee_receipt_app.receipts.errors import (
    HeaderValidationError,
    NoDataRowsError,
    ReceiptNotFoundError,
    StorageError,
    TemplateRenderError,
    UploadReadError,
)

ERROR_CODE_MISSING_REQUIRED_FIELDS = "MISSING_REQUIRED_FIELDS"
ERROR_CODE_NO_DATA_ROWS = "NO_DATA_ROWS"
ERROR_CODE_UPLOAD_READ = "UPLOAD_READ_ERROR"
ERROR_CODE_VALIDATION = "VALIDATION_ERROR"
ERROR_CODE_BAD_REQUEST = "BAD_REQUEST"
ERROR_CODE_NOT_FOUND = "NOT_FOUND"
ERROR_CODE_UNAUTHORIZED = "UNAUTHORIZED"
ERROR_CODE_FORBIDDEN = "FORBIDDEN"
ERROR_CODE_INTERNAL = "INTERNAL_SERVER_ERROR"

# Codes whose details are part of the user-facing message and are never suppressed.
ALWAYS_DETAILED_CODES = frozenset({ERROR_CODE_MISSING_REQUIRED_FIELDS})


@dataclass(frozen=True)
class ApiErrorSpec:
    status_code: int
    code: str
    message: str
    details: dict[str, Any] | None = None


class ApiError(RuntimeError):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = int(status_code)
        self.code = str(code)
        self.message = str(message)
        self.details = details


def is_api_request(request: Request) -> bool:
    path = str(getattr(request.url, "path", "") or "")
    return path.startswith("/api/")


def request_id_from_request(request: Request) -> str:
    try:
        request_id = str(getattr(request.state, "request_id", "") or "").strip()
    except AttributeError:
        request_id = ""
    if request_id:
        return request_id
    from_header = str(request.headers.get("x-request-id", "")).strip()
    return from_header or "-"


def _include_details(code: str) -> bool:
    if code in ALWAYS_DETAILED_CODES:
        return True
    return get_env_bool(FEERCPT_ERROR_INCLUDE_DETAILS, default=False)


def build_api_error_payload(
    *,
    code: str,
    message: str,
    request_id: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "ok": False,
        "error": {
            "code": str(code),
            "message": str(message),
        },
        "request_id": str(request_id or "-"),
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if details and _include_details(str(code)):
        payload["error"]["details"] = details
    return payload


def api_error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    request_id = request_id_from_request(request)
    payload = build_api_error_payload(
        code=code,
        message=message,
        request_id=request_id,
        details=details,
    )
    headers = {"X-Request-ID": request_id}
    return JSONResponse(payload, status_code=int(status_code), headers=headers)


# (exception, status, code, fallback message, echo exception text as details)
_RECEIPT_ERROR_MAP: tuple[tuple[type[Exception], int, str, str, bool], ...] = (
    (NoDataRowsError, 422, ERROR_CODE_NO_DATA_ROWS, "The data sheet has no data rows.", False),
    (UploadReadError, 400, ERROR_CODE_UPLOAD_READ, "The uploaded file could not be read.", False),
    (TemplateRenderError, 400, ERROR_CODE_BAD_REQUEST, "The template could not be opened.", True),
    (ReceiptNotFoundError, 404, ERROR_CODE_NOT_FOUND, "Receipt not found.", False),
)

_HTTP_STATUS_CODES = {
    400: ERROR_CODE_BAD_REQUEST,
    401: ERROR_CODE_UNAUTHORIZED,
    403: ERROR_CODE_FORBIDDEN,
    404: ERROR_CODE_NOT_FOUND,
    422: ERROR_CODE_VALIDATION,
}


def normalize_exception(exc: Exception) -> ApiErrorSpec:
    if isinstance(exc, ApiError):
        return ApiErrorSpec(exc.status_code, exc.code, exc.message, exc.details)

    if isinstance(exc, RequestValidationError):
        return ApiErrorSpec(
            422,
            ERROR_CODE_VALIDATION,
            "Request validation failed. Check field values and try again.",
            {"errors": exc.errors()},
        )

    if isinstance(exc, HeaderValidationError):
        return ApiErrorSpec(
            422,
            ERROR_CODE_MISSING_REQUIRED_FIELDS,
            str(exc),
            {"missing_fields": list(exc.missing_fields)},
        )

    for exc_type, status_code, code, fallback, echo_reason in _RECEIPT_ERROR_MAP:
        if isinstance(exc, exc_type):
            reason = str(exc)
            return ApiErrorSpec(status_code, code, reason or fallback, {"reason": reason} if echo_reason else None)

    if isinstance(exc, StorageError):
        return ApiErrorSpec(
            500,
            ERROR_CODE_INTERNAL,
            "The stored receipt document is unavailable.",
            {"reason": str(exc)},
        )

    if isinstance(exc, PermissionError):
        return ApiErrorSpec(
            403,
            ERROR_CODE_FORBIDDEN,
            "You do not have permission to perform this action.",
            {"reason": str(exc)},
        )

    if isinstance(exc, ValueError):
        reason = str(exc)
        return ApiErrorSpec(400, ERROR_CODE_BAD_REQUEST, reason or "Request parameters are invalid.", {"reason": reason})

    if isinstance(exc, StarletteHTTPException):
        detail = str(exc.detail or "")
        return ApiErrorSpec(
            int(exc.status_code),
            _HTTP_STATUS_CODES.get(int(exc.status_code), ERROR_CODE_INTERNAL),
            detail or "HTTP request failed.",
            {"reason": detail},
        )

    return ApiErrorSpec(
        500,
        ERROR_CODE_INTERNAL,
        "An unexpected error occurred. Please contact support if this continues.",
        {"reason": str(exc), "type": exc.__class__.__name__},
    )
