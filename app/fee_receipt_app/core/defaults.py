from __future__ import annotations

# Environment and config defaults
DEFAULT_ENV_NAME = "dev"
DEFAULT_DEV_ENV_NAMES = ("dev", "development", "local")
DEFAULT_STORAGE_ROOT = "var/receipts"
DEFAULT_DEV_ADMIN_PRINCIPALS = "admin@example.com"
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024
DEFAULT_UPLOAD_TTL_SEC = 1800
DEFAULT_UPLOAD_MAX_ITEMS = 64

# Upload extension filters
TEMPLATE_EXTENSIONS = (".docx",)
# .xlsx is accepted for parity with the admin upload zone but still read as delimited text.
DATASHEET_EXTENSIONS = (".csv", ".xlsx")

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# Security/header defaults
DEFAULT_FORWARDED_IDENTITY_HEADERS = (
    "x-forwarded-email",
    "x-forwarded-preferred-username",
    "x-forwarded-user",
)
