from __future__ import annotations

import os

TRUE_VALUES = {"1", "true", "yes", "y", "on"}

FEERCPT_ENV = "FEERCPT_ENV"
FEERCPT_STORAGE_ROOT = "FEERCPT_STORAGE_ROOT"
FEERCPT_ADMIN_PRINCIPALS = "FEERCPT_ADMIN_PRINCIPALS"
FEERCPT_TEST_USER = "FEERCPT_TEST_USER"
FEERCPT_STRICT_IDENTITY = "FEERCPT_STRICT_IDENTITY"
FEERCPT_MAX_UPLOAD_BYTES = "FEERCPT_MAX_UPLOAD_BYTES"
FEERCPT_UPLOAD_TTL_SEC = "FEERCPT_UPLOAD_TTL_SEC"
FEERCPT_LOG_LEVEL = "FEERCPT_LOG_LEVEL"
FEERCPT_LOG_JSON = "FEERCPT_LOG_JSON"
FEERCPT_LOG_CAPTURE_ROOT = "FEERCPT_LOG_CAPTURE_ROOT"
FEERCPT_ERROR_INCLUDE_DETAILS = "FEERCPT_ERROR_INCLUDE_DETAILS"
FEERCPT_SECURITY_HEADERS_ENABLED = "FEERCPT_SECURITY_HEADERS_ENABLED"
FEERCPT_REQUEST_ID_HEADER_ENABLED = "FEERCPT_REQUEST_ID_HEADER_ENABLED"
FEERCPT_FORWARDED_IDENTITY_HEADERS = "FEERCPT_FORWARDED_IDENTITY_HEADERS"


def get_env(name: str, default: str = "") -> str:
    return str(os.getenv(name, default) or "").strip()


def get_env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    return str(raw).strip().lower() in TRUE_VALUES


def get_env_int(name: str, default: int, *, min_value: int | None = None) -> int:
    raw = get_env(name)
    try:
        value = int(raw) if raw else int(default)
    except ValueError:
        value = int(default)
    if min_value is not None:
        value = max(int(min_value), value)
    return value


def get_env_csv(name: str, default: str = "") -> tuple[str, ...]:
    values = [token.strip() for token in get_env(name, default).split(",") if token.strip()]
    return tuple(dict.fromkeys(values))
