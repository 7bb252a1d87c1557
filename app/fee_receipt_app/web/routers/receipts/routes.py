from __future__ import annotations

from fastapi import APIRouter

from fee_receipt_app.web.routers.receipts.batches import router as batches_router
from fee_receipt_app.web.routers.receipts.manage import router as manage_router
from fee_receipt_app.web.routers.receipts.student import router as student_router
from fee_receipt_app.web.routers.receipts.uploads import router as uploads_router


router = APIRouter()
router.include_router(uploads_router)
router.include_router(batches_router)
router.include_router(manage_router)
router.include_router(student_router)
