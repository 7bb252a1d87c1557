from fastapi import APIRouter

from fee_receipt_app.web.routers.api import router as api_router
from fee_receipt_app.web.routers.receipts import router as receipts_router


router = APIRouter()
router.include_router(api_router)
router.include_router(receipts_router)
