from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

from fastapi import Request
from fastapi.responses import Response

from fee_receipt_app.core.defaults import DOCX_MEDIA_TYPE
from fee_receipt_app.web.core.runtime import get_config
from fee_receipt_app.web.http.errors import ERROR_CODE_BAD_REQUEST, ApiError

TEMPLATE_UPLOAD_KIND = "template"
DATASHEET_UPLOAD_KIND = "datasheet"


def bad_request(message: str, **details: Any) -> ApiError:
    return ApiError(status_code=400, code=ERROR_CODE_BAD_REQUEST, message=message, details=details or None)


async def read_upload(request: Request, *, allowed_extensions: tuple[str, ...]) -> tuple[str, bytes]:
    form = await request.form()
    upload = form.get("file")
    if upload is None or not hasattr(upload, "filename") or not hasattr(upload, "read"):
        raise bad_request("Attach a file in the 'file' form field.")
    file_name = str(getattr(upload, "filename", "") or "").strip()
    if not file_name.lower().endswith(tuple(allowed_extensions)):
        raise bad_request(
            f"Unsupported file type. Allowed: {', '.join(allowed_extensions)}.",
            file_name=file_name,
        )
    raw_bytes = await upload.read()
    if not raw_bytes:
        raise bad_request("The uploaded file is empty.", file_name=file_name)
    max_bytes = get_config().max_upload_bytes
    if len(raw_bytes) > max_bytes:
        raise bad_request(f"Upload is too large. Maximum {max_bytes} bytes.", file_name=file_name)
    return file_name, raw_bytes


async def read_json_body(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise bad_request("Request body is not valid JSON.") from exc
    if not isinstance(payload, dict):
        raise bad_request("Request body must be a JSON object.")
    return payload


def required_text(payload: dict[str, Any], key: str) -> str:
    value = str(payload.get(key) or "").strip()
    if not value:
        raise bad_request(f"'{key}' is required.")
    return value


def docx_download(content: bytes, file_name: str) -> Response:
    return Response(
        content=content,
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(file_name)}"},
    )
