from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from fee_receipt_app.core.defaults import DEFAULT_FORWARDED_IDENTITY_HEADERS
from fee_receipt_app.core.env import FEERCPT_FORWARDED_IDENTITY_HEADERS, get_env_csv
from fee_receipt_app.web.core.runtime import get_config
from fee_receipt_app.web.http.errors import ERROR_CODE_FORBIDDEN, ERROR_CODE_UNAUTHORIZED, ApiError

ROLE_ADMIN = "admin"
ROLE_STUDENT = "student"


@dataclass(frozen=True)
class UserContext:
    principal: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def sanitize_header_identity_value(value: str) -> str:
    text = str(value or "").strip()
    if not text:
        return ""
    if any(ch in text for ch in ("\r", "\n", "\t", "\x00")):
        return ""
    if len(text) > 320:
        return ""
    return text


def _forwarded_identity_headers() -> list[str]:
    names: list[str] = []
    for raw_name in get_env_csv(FEERCPT_FORWARDED_IDENTITY_HEADERS, ",".join(DEFAULT_FORWARDED_IDENTITY_HEADERS)):
        name = sanitize_header_identity_value(raw_name).lower()
        if name and name not in names:
            names.append(name)
    return names or list(DEFAULT_FORWARDED_IDENTITY_HEADERS)


def _first_header(request: Request, names: list[str]) -> str:
    for name in names:
        raw = sanitize_header_identity_value(str(request.headers.get(name, "")))
        if raw:
            return raw
    return ""


def _email_from_value(value: str) -> str:
    text = sanitize_header_identity_value(value)
    if not text or "@" not in text:
        return ""
    return text.lower()


def resolve_request_principal(request: Request) -> str:
    principal = _first_header(request, _forwarded_identity_headers())
    if principal:
        return principal
    config = get_config()
    if config.is_dev_env and config.test_user:
        return config.test_user
    return ""


def get_user_context(request: Request) -> UserContext:
    principal = resolve_request_principal(request)
    if not principal:
        raise ApiError(
            status_code=401,
            code=ERROR_CODE_UNAUTHORIZED,
            message="No signed-in user was forwarded with this request.",
        )
    config = get_config()
    role = ROLE_ADMIN if config.is_admin(principal) else ROLE_STUDENT
    return UserContext(principal=principal, email=_email_from_value(principal), role=role)


def require_admin(request: Request) -> UserContext:
    user = get_user_context(request)
    if not user.is_admin:
        raise ApiError(
            status_code=403,
            code=ERROR_CODE_FORBIDDEN,
            message="Only administrators can manage fee receipts.",
            details={"principal": user.principal},
        )
    return user
