from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from fee_receipt_app.receipts.records import BatchReport, StudentRecord
from fee_receipt_app.web.core.identity import require_admin
from fee_receipt_app.web.core.runtime import get_services
from fee_receipt_app.web.http.errors import ERROR_CODE_NOT_FOUND, ApiError
from fee_receipt_app.web.routers.receipts.common import (
    DATASHEET_UPLOAD_KIND,
    TEMPLATE_UPLOAD_KIND,
    bad_request,
    read_json_body,
    required_text,
)

router = APIRouter(prefix="/api/receipts")


def _load_template(token: str) -> bytes:
    payload = get_services().uploads.load(TEMPLATE_UPLOAD_KIND, token)
    if payload is None:
        raise bad_request("Template upload expired or not found. Upload the template again.", template_token=token)
    return bytes(payload["content"])


def _load_records(token: str) -> list[StudentRecord]:
    payload = get_services().uploads.load(DATASHEET_UPLOAD_KIND, token)
    if payload is None:
        raise bad_request("Data sheet upload expired or not found. Upload the data sheet again.", data_token=token)
    return [StudentRecord.from_dict(item) for item in payload.get("records", [])]


def _report_payload(report: BatchReport) -> dict[str, Any]:
    unresolved: list[str] = []
    for receipt in report.receipts:
        for name in receipt.unresolved_placeholders:
            if name not in unresolved:
                unresolved.append(name)
    payload = report.to_dict()
    payload["ok"] = True
    payload["unresolved_placeholders"] = unresolved
    return payload


@router.post("/batches")
async def start_batch(request: Request):
    require_admin(request)
    body = await read_json_body(request)
    template_bytes = _load_template(required_text(body, "template_token"))
    records = _load_records(required_text(body, "data_token"))
    report = get_services().orchestrator().run(records, template_bytes)
    return JSONResponse(_report_payload(report))


@router.post("/batches/{batch_id}/retry")
async def retry_batch(request: Request, batch_id: str):
    require_admin(request)
    body = await read_json_body(request)
    template_bytes = _load_template(required_text(body, "template_token"))
    services = get_services()
    if not services.ledger.for_batch(batch_id):
        raise ApiError(status_code=404, code=ERROR_CODE_NOT_FOUND, message=f"Batch not found: {batch_id}")
    report = services.orchestrator().retry_failed(batch_id, template_bytes)
    return JSONResponse(_report_payload(report))
