from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from fee_receipt_app.receipts.errors import ReceiptNotFoundError
from fee_receipt_app.receipts.records import Receipt, ReceiptStatus
from fee_receipt_app.web.core.identity import get_user_context
from fee_receipt_app.web.core.runtime import get_services
from fee_receipt_app.web.routers.receipts.common import docx_download

router = APIRouter(prefix="/api/students/me")

PORTAL_AVAILABLE = "available"
PORTAL_GENERATING = "generating"
PORTAL_NOT_AVAILABLE = "not_available"


def portal_status(receipt: Receipt | None) -> str:
    if receipt is None or receipt.status == ReceiptStatus.FAILED:
        return PORTAL_NOT_AVAILABLE
    if receipt.status == ReceiptStatus.COMPLETED and receipt.document_handle:
        return PORTAL_AVAILABLE
    return PORTAL_GENERATING


def _account_profile(receipt: Receipt) -> dict[str, str]:
    if not receipt.account_id:
        return {}
    account = get_services().accounts.get_account(receipt.account_id)
    return dict(account.profile) if account is not None else {}


def _own_receipt(request: Request) -> Receipt | None:
    user = get_user_context(request)
    return get_services().ledger.latest_for_email(user.email or user.principal)


@router.get("/receipt")
def my_receipt(request: Request):
    receipt = _own_receipt(request)
    status = portal_status(receipt)
    payload = {"status": status, "receipt": None}
    if receipt is not None and status != PORTAL_NOT_AVAILABLE:
        payload["receipt"] = {
            "receipt_id": receipt.receipt_id,
            "student_name": receipt.student_name,
            "enrollment_id": receipt.record.enrollment_id,
            "course": receipt.record.year_and_course,
            "status": receipt.status.value,
            "download_name": receipt.download_name(),
            "updated_at": receipt.updated_at,
            "profile": _account_profile(receipt),
        }
    return JSONResponse(payload)


@router.get("/receipt/document")
def my_receipt_document(request: Request):
    receipt = _own_receipt(request)
    if receipt is None or portal_status(receipt) != PORTAL_AVAILABLE:
        raise ReceiptNotFoundError("Your fee receipt is not available yet.")
    return docx_download(get_services().storage.download(str(receipt.document_handle)), receipt.download_name())
