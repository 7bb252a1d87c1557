from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from fee_receipt_app.core.defaults import DATASHEET_EXTENSIONS, TEMPLATE_EXTENSIONS
from fee_receipt_app.receipts.parsing import read_datasheet, sample_datasheet_csv
from fee_receipt_app.receipts.rendering import list_placeholders
from fee_receipt_app.web.core.identity import require_admin
from fee_receipt_app.web.core.runtime import get_config, get_services
from fee_receipt_app.web.routers.receipts.common import DATASHEET_UPLOAD_KIND, TEMPLATE_UPLOAD_KIND, read_upload

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api/receipts")


@router.post("/template")
async def upload_template(request: Request):
    user = require_admin(request)
    file_name, raw_bytes = await read_upload(request, allowed_extensions=TEMPLATE_EXTENSIONS)
    placeholders = list_placeholders(raw_bytes)
    token = get_services().uploads.save(
        TEMPLATE_UPLOAD_KIND,
        {"file_name": file_name, "content": raw_bytes},
    )
    LOGGER.info(
        "Template uploaded. file=%s placeholders=%s by=%s",
        file_name,
        len(placeholders),
        user.principal,
        extra={"event": "template_uploaded", "file_name": file_name, "placeholders": placeholders},
    )
    return JSONResponse(
        {
            "ok": True,
            "template_token": token,
            "file_name": file_name,
            "placeholders": placeholders,
        }
    )


@router.post("/datasheet")
async def upload_datasheet(request: Request):
    user = require_admin(request)
    file_name, raw_bytes = await read_upload(request, allowed_extensions=DATASHEET_EXTENSIONS)
    result = read_datasheet(raw_bytes, strict_identity=get_config().strict_identity)
    token = get_services().uploads.save(
        DATASHEET_UPLOAD_KIND,
        {"file_name": file_name, "records": [record.to_dict() for record in result.records]},
    )
    LOGGER.info(
        "Data sheet parsed. file=%s rows=%s dropped=%s by=%s",
        file_name,
        len(result.records),
        len(result.dropped_rows),
        user.principal,
        extra={
            "event": "datasheet_parsed",
            "file_name": file_name,
            "row_count": len(result.records),
            "dropped_count": len(result.dropped_rows),
        },
    )
    return JSONResponse(
        {
            "ok": True,
            "data_token": token,
            "file_name": file_name,
            "row_count": len(result.records),
            "delimiter": result.delimiter,
            "dropped_rows": [item.to_dict() for item in result.dropped_rows],
            "ignored_columns": list(result.ignored_columns),
            "warnings": result.warnings,
        }
    )


@router.get("/datasheet/sample.csv")
def download_sample_datasheet(request: Request):
    require_admin(request)
    file_name, content = sample_datasheet_csv()
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )
