from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from fee_receipt_app.receipts.errors import InvalidReceiptTransitionError
from fee_receipt_app.receipts.fields import FIELD_ATTRIBUTES


@dataclass(frozen=True)
class StudentRecord:
    """One accepted data-sheet row, keyed by the canonical columns.

    ``email_address`` holds the EMAIL column itself; ``email`` is resolved separately from the
    first header that looks like a mail column and is what notices and the student portal use.
    """

    student_name: str = ""
    date: str = ""
    category: str = ""
    amount_in_words: str = ""
    year_and_course: str = ""
    tuition_fee: str = ""
    development_fee: str = ""
    exam_fee: str = ""
    enrollment_fee: str = ""
    other_fee: str = ""
    total: str = ""
    bank_name: str = ""
    pay_order_no: str = ""
    email_address: str = ""
    enrollment_id: str = ""
    email: str = ""
    row_number: int = 0

    @classmethod
    def from_fields(cls, values: dict[str, str], *, email: str = "", row_number: int = 0) -> "StudentRecord":
        kwargs = {attr: str(values.get(name, "") or "") for name, attr in FIELD_ATTRIBUTES.items()}
        return cls(**kwargs, email=str(email or ""), row_number=int(row_number))

    def value(self, field_name: str) -> str:
        return str(getattr(self, FIELD_ATTRIBUTES[field_name]))

    def as_fields(self) -> dict[str, str]:
        return {name: self.value(name) for name in FIELD_ATTRIBUTES}

    def to_dict(self) -> dict[str, Any]:
        return {item.name: getattr(self, item.name) for item in fields(self)}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "StudentRecord":
        known = {item.name for item in fields(cls)}
        return cls(**{key: value for key, value in dict(payload or {}).items() if key in known})


class ReceiptStatus(str, Enum):
    PARSED = "parsed"
    GENERATING = "generating"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ReceiptStatus.COMPLETED, ReceiptStatus.FAILED)


_ALLOWED_TRANSITIONS: dict[ReceiptStatus, frozenset[ReceiptStatus]] = {
    ReceiptStatus.PARSED: frozenset({ReceiptStatus.GENERATING}),
    ReceiptStatus.GENERATING: frozenset({ReceiptStatus.UPLOADING, ReceiptStatus.FAILED}),
    ReceiptStatus.UPLOADING: frozenset({ReceiptStatus.COMPLETED, ReceiptStatus.FAILED}),
    ReceiptStatus.COMPLETED: frozenset(),
    ReceiptStatus.FAILED: frozenset(),
}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Receipt:
    receipt_id: str
    batch_id: str
    record: StudentRecord
    position: int
    status: ReceiptStatus = ReceiptStatus.PARSED
    document_handle: str | None = None
    error: str | None = None
    failed_stage: str | None = None
    account_id: str | None = None
    sent: bool = False
    context: dict[str, str] = field(default_factory=dict)
    unresolved_placeholders: tuple[str, ...] = ()
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    @property
    def student_name(self) -> str:
        return self.record.student_name

    @property
    def email(self) -> str:
        return self.record.email

    @property
    def pay_order_no(self) -> str:
        return self.record.pay_order_no

    def advance(self, status: ReceiptStatus) -> None:
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidReceiptTransitionError(
                f"Receipt {self.receipt_id} cannot move from {self.status.value} to {status.value}."
            )
        self.status = status
        self.updated_at = _utc_now()

    def complete(self, document_handle: str) -> None:
        self.advance(ReceiptStatus.COMPLETED)
        self.document_handle = document_handle
        self.error = None

    def fail(self, stage: str, message: str) -> None:
        self.advance(ReceiptStatus.FAILED)
        self.failed_stage = stage
        self.error = message or "Unknown error."
        self.document_handle = None

    def mark_sent(self) -> None:
        self.sent = True
        self.updated_at = _utc_now()

    def download_name(self) -> str:
        name = "_".join(self.student_name.split()) or "student"
        reference = self.record.enrollment_id or self.record.pay_order_no or str(self.position)
        return f"Receipt_{name}_{reference}.docx"

    def to_dict(self) -> dict[str, Any]:
        return {
            "receipt_id": self.receipt_id,
            "batch_id": self.batch_id,
            "position": self.position,
            "row_number": self.record.row_number,
            "student_name": self.student_name,
            "email": self.email,
            "pay_order_no": self.pay_order_no,
            "enrollment_id": self.record.enrollment_id,
            "status": self.status.value,
            "document_handle": self.document_handle,
            "error": self.error,
            "failed_stage": self.failed_stage,
            "account_id": self.account_id,
            "sent": self.sent,
            "context": dict(self.context),
            "unresolved_placeholders": list(self.unresolved_placeholders),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class BatchProgress:
    completed: int
    total: int

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 1.0
        return self.completed / self.total

    @property
    def percent(self) -> int:
        return int(round(self.fraction * 100))


@dataclass
class BatchReport:
    batch_id: str
    receipts: list[Receipt] = field(default_factory=list)
    progress: list[float] = field(default_factory=list)

    @property
    def total_attempted(self) -> int:
        return len(self.receipts)

    @property
    def total_succeeded(self) -> int:
        return sum(1 for item in self.receipts if item.status == ReceiptStatus.COMPLETED)

    @property
    def total_failed(self) -> int:
        return sum(1 for item in self.receipts if item.status == ReceiptStatus.FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "total_attempted": self.total_attempted,
            "total_succeeded": self.total_succeeded,
            "total_failed": self.total_failed,
            "progress": list(self.progress),
            "receipts": [item.to_dict() for item in self.receipts],
        }
