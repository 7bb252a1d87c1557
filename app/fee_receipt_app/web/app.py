from __future__ import annotations

import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from fee_receipt_app.core.env import (
    FEERCPT_REQUEST_ID_HEADER_ENABLED,
    FEERCPT_SECURITY_HEADERS_ENABLED,
    get_env_bool,
)
from fee_receipt_app.infrastructure.logging import setup_app_logging
from fee_receipt_app.receipts.errors import ReceiptError
from fee_receipt_app.web.core.runtime import get_config
from fee_receipt_app.web.http.errors import ApiError, api_error_response, normalize_exception
from fee_receipt_app.web.routers import router as web_router

LOGGER = logging.getLogger(__name__)


def _error_response(request: Request, exc: Exception):
    spec = normalize_exception(exc)
    log_fn = LOGGER.warning if spec.status_code < 500 else LOGGER.exception
    log_fn(
        "API request failed. code=%s status=%s path=%s method=%s",
        spec.code,
        spec.status_code,
        request.url.path,
        request.method,
        extra={
            "event": "api_error",
            "request_id": str(getattr(request.state, "request_id", "-")),
            "error_code": spec.code,
            "status_code": int(spec.status_code),
            "method": request.method,
            "path": str(request.url.path),
        },
    )
    return api_error_response(
        request,
        status_code=spec.status_code,
        code=spec.code,
        message=spec.message,
        details=spec.details,
    )


def create_app() -> FastAPI:
    setup_app_logging()
    config = get_config()
    security_headers_enabled = get_env_bool(FEERCPT_SECURITY_HEADERS_ENABLED, default=True)
    request_id_header_enabled = get_env_bool(FEERCPT_REQUEST_ID_HEADER_ENABLED, default=True)

    app = FastAPI(title="Fee Receipts")

    if security_headers_enabled:

        @app.middleware("http")
        async def _security_headers_middleware(request: Request, call_next):
            response = await call_next(request)
            response.headers.setdefault("X-Content-Type-Options", "nosniff")
            response.headers.setdefault("X-Frame-Options", "DENY")
            response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
            response.headers.setdefault("Permissions-Policy", "camera=(), microphone=(), geolocation=()")
            if not config.is_dev_env:
                response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
            return response

    @app.middleware("http")
    async def _request_id_middleware(request: Request, call_next):
        request_id = uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            response = _error_response(request, exc)
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        LOGGER.debug(
            "Request finished. method=%s path=%s status=%s total_ms=%.2f",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            extra={
                "event": "request_finished",
                "request_id": request_id,
                "status_code": int(response.status_code),
                "total_ms": round(float(elapsed_ms), 2),
            },
        )
        if request_id_header_enabled:
            response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(ApiError)
    async def _api_error_exception_handler(request: Request, exc: ApiError):
        return _error_response(request, exc)

    @app.exception_handler(ReceiptError)
    async def _receipt_error_exception_handler(request: Request, exc: ReceiptError):
        return _error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(request, exc)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        return _error_response(request, exc)

    app.include_router(web_router)
    LOGGER.info(
        "Fee receipt service ready. env=%s storage_root=%s",
        config.env,
        config.storage_root,
        extra={"event": "app_started", "env": config.env},
    )
    return app
