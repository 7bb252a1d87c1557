from __future__ import annotations

from fee_receipt_app.receipts.fields import (
    FEE_FIELDS,
    PLACEHOLDER_FIELDS,
    RECEIPT_NO_PLACEHOLDER,
    RECEIPT_NO_SOURCE_FIELD,
)
from fee_receipt_app.receipts.records import StudentRecord


def _context_value(field_name: str, raw_value: str) -> str:
    value = str(raw_value or "").strip()
    if not value and field_name in FEE_FIELDS:
        return "0"
    return value


def build_context(record: StudentRecord, position: int) -> dict[str, str]:
    """Flatten a record into the string-only placeholder context for rendering.

    ``position`` is the 1-based row position and becomes the receipt number when the record has
    no enrollment id.
    """
    context: dict[str, str] = {}
    receipt_no = record.value(RECEIPT_NO_SOURCE_FIELD).strip()
    context[RECEIPT_NO_PLACEHOLDER] = receipt_no or str(int(position))
    for placeholder, field_name in PLACEHOLDER_FIELDS.items():
        context[placeholder] = _context_value(field_name, record.value(field_name))
    context["email"] = str(record.email or record.email_address).strip()
    context["enrollment_id"] = record.enrollment_id.strip()
    return context
