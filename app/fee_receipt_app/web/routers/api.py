from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from fee_receipt_app.web.core.identity import resolve_request_principal
from fee_receipt_app.web.core.runtime import get_config, get_services


router = APIRouter(prefix="/api")


@router.get("/health")
def api_health(request: Request):
    config = get_config()
    services = get_services()
    payload = {
        "ok": True,
        "env": config.env,
        "principal": resolve_request_principal(request) or None,
        "strict_identity": config.strict_identity,
        "receipts": services.ledger.stats()["total"],
    }
    return JSONResponse(payload, status_code=200)
