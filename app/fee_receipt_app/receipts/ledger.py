from __future__ import annotations

import threading
from typing import Any

import pandas as pd

from fee_receipt_app.receipts.errors import ReceiptNotFoundError
from fee_receipt_app.receipts.records import Receipt, ReceiptStatus

EXPORT_COLUMNS = (
    "receipt_id",
    "batch_id",
    "student_name",
    "email",
    "pay_order_no",
    "enrollment_id",
    "status",
    "sent",
    "failed_stage",
    "error",
    "updated_at",
)


class ReceiptLedger:
    """The session's receipt list, in insertion order.

    Writes come from the batch loop and admin actions; readers get snapshots between items.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._receipts: dict[str, Receipt] = {}

    def put(self, receipt: Receipt) -> Receipt | None:
        with self._lock:
            previous = self._receipts.pop(receipt.receipt_id, None)
            self._receipts[receipt.receipt_id] = receipt
            return previous

    def contains(self, receipt_id: str) -> bool:
        with self._lock:
            return str(receipt_id or "") in self._receipts

    def get(self, receipt_id: str) -> Receipt:
        with self._lock:
            receipt = self._receipts.get(str(receipt_id or "").strip())
        if receipt is None:
            raise ReceiptNotFoundError(f"Receipt not found: {receipt_id}")
        return receipt

    def remove(self, receipt_id: str) -> Receipt:
        with self._lock:
            receipt = self._receipts.pop(str(receipt_id or "").strip(), None)
        if receipt is None:
            raise ReceiptNotFoundError(f"Receipt not found: {receipt_id}")
        return receipt

    def list(self, q: str = "") -> list[Receipt]:
        needle = str(q or "").strip().lower()
        with self._lock:
            receipts = list(self._receipts.values())
        if not needle:
            return receipts
        return [
            item
            for item in receipts
            if needle in item.student_name.lower()
            or needle in item.email.lower()
            or needle in item.pay_order_no.lower()
        ]

    def for_batch(self, batch_id: str) -> list[Receipt]:
        return [item for item in self.list() if item.batch_id == batch_id]

    def latest_for_email(self, email: str) -> Receipt | None:
        key = str(email or "").strip().lower()
        if not key:
            return None
        matches = [
            item
            for item in self.list()
            if key in {item.email.strip().lower(), item.record.email_address.strip().lower()}
        ]
        if not matches:
            return None
        return max(matches, key=lambda item: item.updated_at)

    def stats(self) -> dict[str, int]:
        receipts = self.list()
        return {
            "total": len(receipts),
            "sent": sum(1 for item in receipts if item.sent),
            "pending": sum(1 for item in receipts if not item.sent),
            "completed": sum(1 for item in receipts if item.status == ReceiptStatus.COMPLETED),
            "failed": sum(1 for item in receipts if item.status == ReceiptStatus.FAILED),
            "in_progress": sum(1 for item in receipts if not item.status.is_terminal),
        }


def receipts_frame(receipts: list[Receipt]) -> pd.DataFrame:
    rows: list[dict[str, Any]] = []
    for receipt in receipts:
        payload = receipt.to_dict()
        rows.append({column: payload.get(column) for column in EXPORT_COLUMNS})
    return pd.DataFrame(rows, columns=list(EXPORT_COLUMNS))
