from fee_receipt_app.web.routers.receipts.routes import router
