from __future__ import annotations

from datetime import datetime, timezone
import io

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from fee_receipt_app.receipts.batch import delete_receipt, send_notices
from fee_receipt_app.receipts.errors import ReceiptNotFoundError
from fee_receipt_app.receipts.html import render_receipt_html
from fee_receipt_app.receipts.ledger import receipts_frame
from fee_receipt_app.receipts.records import ReceiptStatus
from fee_receipt_app.web.core.identity import require_admin
from fee_receipt_app.web.core.runtime import get_services
from fee_receipt_app.web.routers.receipts.common import bad_request, docx_download, read_json_body

router = APIRouter(prefix="/api/receipts")


@router.get("")
def list_receipts(request: Request, q: str = ""):
    require_admin(request)
    receipts = get_services().ledger.list(q)
    return JSONResponse({"items": [item.to_dict() for item in receipts], "count": len(receipts)})


@router.get("/stats")
def receipt_stats(request: Request):
    require_admin(request)
    return JSONResponse(get_services().ledger.stats())


@router.get("/export.csv")
def export_receipts(request: Request, q: str = ""):
    require_admin(request)
    frame = receipts_frame(get_services().ledger.list(q))
    stream = io.StringIO()
    frame.to_csv(stream, index=False)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return Response(
        content=stream.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="fee_receipts_{stamp}.csv"'},
    )


@router.post("/notices")
async def send_receipt_notices(request: Request):
    require_admin(request)
    body = await read_json_body(request)
    services = get_services()
    receipt_ids = body.get("receipt_ids")
    if receipt_ids is None:
        receipts = services.ledger.list()
    elif isinstance(receipt_ids, list):
        receipts = [services.ledger.get(str(item)) for item in receipt_ids]
    else:
        raise bad_request("'receipt_ids' must be a list of receipt ids.")
    report = send_notices(receipts, services.notifier)
    payload = report.to_dict()
    payload["ok"] = not report.failed
    return JSONResponse(payload)


@router.get("/{receipt_id}")
def get_receipt(request: Request, receipt_id: str):
    require_admin(request)
    return JSONResponse(get_services().ledger.get(receipt_id).to_dict())


@router.get("/{receipt_id}/document")
def download_receipt_document(request: Request, receipt_id: str):
    require_admin(request)
    services = get_services()
    receipt = services.ledger.get(receipt_id)
    if receipt.status != ReceiptStatus.COMPLETED or not receipt.document_handle:
        raise ReceiptNotFoundError(f"Receipt {receipt_id} has no generated document.")
    return docx_download(services.storage.download(receipt.document_handle), receipt.download_name())


@router.get("/{receipt_id}/preview", response_class=HTMLResponse)
def preview_receipt(request: Request, receipt_id: str):
    require_admin(request)
    receipt = get_services().ledger.get(receipt_id)
    if not receipt.context:
        raise ReceiptNotFoundError(f"Receipt {receipt_id} has no rendered context yet.")
    return HTMLResponse(render_receipt_html(receipt.context))


@router.delete("/{receipt_id}")
def remove_receipt(request: Request, receipt_id: str):
    require_admin(request)
    services = get_services()
    receipt = delete_receipt(services.ledger, services.storage, receipt_id)
    return JSONResponse({"ok": True, "receipt_id": receipt.receipt_id})
