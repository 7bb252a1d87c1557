from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from fee_receipt_app.receipts.context import build_context
from fee_receipt_app.receipts.contracts import AccountDirectory, DocumentStorage, ReceiptNotifier
from fee_receipt_app.receipts.ledger import ReceiptLedger
from fee_receipt_app.receipts.records import BatchProgress, BatchReport, Receipt, ReceiptStatus, StudentRecord
from fee_receipt_app.receipts.rendering import RenderResult, render_template

LOGGER = logging.getLogger(__name__)

STAGE_ACCOUNT = "account"
STAGE_RENDER = "render"
STAGE_UPLOAD = "upload"

ProgressCallback = Callable[[BatchProgress], None]
Renderer = Callable[[bytes, Mapping[str, str]], RenderResult]
ContextBuilder = Callable[[StudentRecord, int], dict[str, str]]

_RECEIPT_ID_UNSAFE = re.compile(r"[^a-z0-9]+")


def new_batch_id() -> str:
    return f"batch-{uuid.uuid4().hex[:12]}"


def receipt_id_for(record: StudentRecord, position: int, taken: set[str], *, batch_id: str) -> str:
    """Slug of the pay order, else ``<batch_id>-row-<position>``; ids already in ``taken`` get ``-2``, ``-3``."""
    base = _RECEIPT_ID_UNSAFE.sub("-", record.pay_order_no.strip().lower()).strip("-")
    if not base:
        base = f"{batch_id}-row-{int(position)}"
    candidate = base
    suffix = 2
    while candidate in taken:
        candidate = f"{base}-{suffix}"
        suffix += 1
    taken.add(candidate)
    return candidate


def _error_message(exc: Exception) -> str:
    return str(exc).strip() or exc.__class__.__name__


@dataclass(frozen=True)
class _PlannedItem:
    receipt_id: str
    record: StudentRecord
    position: int
    account_id: str | None = None


class BatchOrchestrator:
    """Runs records through account provisioning, rendering and storage, one at a time.

    Every record yields exactly one Receipt that ends ``completed`` or ``failed``; an item
    failure is recorded on its Receipt and the loop moves on.
    """

    def __init__(
        self,
        *,
        storage: DocumentStorage,
        accounts: AccountDirectory | None = None,
        ledger: ReceiptLedger | None = None,
        renderer: Renderer = render_template,
        context_builder: ContextBuilder = build_context,
    ) -> None:
        self.storage = storage
        self.accounts = accounts
        self.ledger = ledger if ledger is not None else ReceiptLedger()
        self.renderer = renderer
        self.context_builder = context_builder

    def run(
        self,
        records: Iterable[StudentRecord],
        template_bytes: bytes,
        *,
        batch_id: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchReport:
        batch_id = batch_id or new_batch_id()
        taken: set[str] = set()
        plan = [
            _PlannedItem(
                receipt_id=receipt_id_for(record, position, taken, batch_id=batch_id),
                record=record,
                position=position,
            )
            for position, record in enumerate(records, start=1)
        ]
        return self._run_plan(plan, template_bytes, batch_id=batch_id, on_progress=on_progress)

    def retry_failed(
        self,
        batch_id: str,
        template_bytes: bytes,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> BatchReport:
        """Re-run the failed items of ``batch_id``; completed items are left alone."""
        plan = [
            _PlannedItem(
                receipt_id=receipt.receipt_id,
                record=receipt.record,
                position=receipt.position,
                account_id=receipt.account_id,
            )
            for receipt in self.ledger.for_batch(batch_id)
            if receipt.status == ReceiptStatus.FAILED
        ]
        return self._run_plan(plan, template_bytes, batch_id=batch_id, on_progress=on_progress)

    def _run_plan(
        self,
        plan: list[_PlannedItem],
        template_bytes: bytes,
        *,
        batch_id: str,
        on_progress: ProgressCallback | None,
    ) -> BatchReport:
        receipts = [
            Receipt(
                receipt_id=item.receipt_id,
                batch_id=batch_id,
                record=item.record,
                position=item.position,
                account_id=item.account_id,
            )
            for item in plan
        ]
        replaced: dict[str, Receipt] = {}
        for receipt in receipts:
            previous = self.ledger.put(receipt)
            if previous is not None:
                replaced[receipt.receipt_id] = previous

        report = BatchReport(batch_id=batch_id, receipts=receipts)
        total = len(receipts)
        LOGGER.info(
            "Batch started. batch_id=%s items=%s",
            batch_id,
            total,
            extra={"event": "batch_started", "batch_id": batch_id, "items": total},
        )
        for completed, receipt in enumerate(receipts, start=1):
            self._process(receipt, template_bytes)
            previous = replaced.get(receipt.receipt_id)
            if previous is not None:
                self._settle_replacement(previous, receipt)
            progress = BatchProgress(completed=completed, total=total)
            report.progress.append(progress.fraction)
            if on_progress is not None:
                on_progress(progress)
        if not receipts:
            report.progress.append(BatchProgress(completed=0, total=0).fraction)

        LOGGER.info(
            "Batch finished. batch_id=%s attempted=%s succeeded=%s failed=%s",
            batch_id,
            report.total_attempted,
            report.total_succeeded,
            report.total_failed,
            extra={
                "event": "batch_finished",
                "batch_id": batch_id,
                "attempted": report.total_attempted,
                "succeeded": report.total_succeeded,
                "failed": report.total_failed,
            },
        )
        return report

    def _ensure_account(self, receipt: Receipt) -> None:
        record = receipt.record
        email = record.email or record.email_address
        if self.accounts is None or not email.strip():
            return
        if not receipt.account_id:
            initial_secret = record.enrollment_id.strip() or record.pay_order_no.strip()
            receipt.account_id = self.accounts.find_or_create_account(email, initial_secret)
        self.accounts.upsert_profile(
            receipt.account_id,
            {
                "name": record.student_name,
                "enrollment_id": record.enrollment_id,
                "course": record.year_and_course,
            },
        )

    def _process(self, receipt: Receipt, template_bytes: bytes) -> None:
        receipt.advance(ReceiptStatus.GENERATING)
        stage = STAGE_ACCOUNT
        try:
            self._ensure_account(receipt)
            stage = STAGE_RENDER
            receipt.context = dict(self.context_builder(receipt.record, receipt.position))
            rendered = self.renderer(template_bytes, receipt.context)
            receipt.unresolved_placeholders = tuple(rendered.unresolved)
            receipt.advance(ReceiptStatus.UPLOADING)
            stage = STAGE_UPLOAD
            handle = self.storage.upload(f"receipts/{receipt.receipt_id}/{receipt.download_name()}", rendered.document)
        except Exception as exc:
            receipt.fail(stage, _error_message(exc))
            LOGGER.warning(
                "Receipt failed. receipt_id=%s stage=%s error=%s",
                receipt.receipt_id,
                stage,
                receipt.error,
                extra={
                    "event": "receipt_failed",
                    "receipt_id": receipt.receipt_id,
                    "batch_id": receipt.batch_id,
                    "stage": stage,
                },
            )
            return
        receipt.complete(handle)

    def _settle_replacement(self, previous: Receipt, receipt: Receipt) -> None:
        """Drop the earlier document once its replacement completed; keep the earlier receipt otherwise."""
        if receipt.status == ReceiptStatus.COMPLETED:
            if previous.document_handle and previous.document_handle != receipt.document_handle:
                self._discard_document(previous)
            return
        if previous.status == ReceiptStatus.COMPLETED:
            self.ledger.put(previous)
            LOGGER.warning(
                "Replacement failed, kept earlier receipt. receipt_id=%s kept_batch=%s failed_batch=%s",
                previous.receipt_id,
                previous.batch_id,
                receipt.batch_id,
                extra={
                    "event": "receipt_replacement_failed",
                    "receipt_id": previous.receipt_id,
                    "batch_id": receipt.batch_id,
                },
            )

    def _discard_document(self, receipt: Receipt) -> None:
        try:
            self.storage.delete(str(receipt.document_handle))
        except Exception as exc:
            LOGGER.warning(
                "Could not delete replaced document. receipt_id=%s error=%s",
                receipt.receipt_id,
                _error_message(exc),
                extra={"event": "receipt_document_orphaned", "receipt_id": receipt.receipt_id},
            )


@dataclass
class NoticeReport:
    sent: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sent": list(self.sent),
            "skipped": list(self.skipped),
            "failed": [{"receipt_id": key, "error": value} for key, value in self.failed.items()],
        }


def send_notices(receipts: Iterable[Receipt], notifier: ReceiptNotifier) -> NoticeReport:
    """Notify each completed, unsent receipt's student. A failed notice leaves ``sent`` unset."""
    report = NoticeReport()
    for receipt in receipts:
        if receipt.status != ReceiptStatus.COMPLETED or receipt.sent:
            report.skipped.append(receipt.receipt_id)
            continue
        try:
            notifier.send_receipt_notice(receipt.email or receipt.record.email_address, receipt.context)
        except Exception as exc:
            report.failed[receipt.receipt_id] = _error_message(exc)
            LOGGER.warning(
                "Receipt notice failed. receipt_id=%s error=%s",
                receipt.receipt_id,
                report.failed[receipt.receipt_id],
                extra={"event": "receipt_notice_failed", "receipt_id": receipt.receipt_id},
            )
            continue
        receipt.mark_sent()
        report.sent.append(receipt.receipt_id)
    return report


def delete_receipt(ledger: ReceiptLedger, storage: DocumentStorage, receipt_id: str) -> Receipt:
    """Delete the stored document first, then drop the receipt from the ledger."""
    receipt = ledger.get(receipt_id)
    if receipt.document_handle:
        storage.delete(receipt.document_handle)
    ledger.remove(receipt.receipt_id)
    LOGGER.info(
        "Receipt deleted. receipt_id=%s",
        receipt.receipt_id,
        extra={"event": "receipt_deleted", "receipt_id": receipt.receipt_id},
    )
    return receipt
