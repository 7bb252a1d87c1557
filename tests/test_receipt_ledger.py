from __future__ import annotations

import sys
from pathlib import Path

import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from fee_receipt_app.receipts import uploads as uploads_module
from fee_receipt_app.receipts.errors import InvalidReceiptTransitionError, ReceiptNotFoundError
from fee_receipt_app.receipts.ledger import EXPORT_COLUMNS, ReceiptLedger, receipts_frame
from fee_receipt_app.receipts.records import Receipt, ReceiptStatus, StudentRecord
from fee_receipt_app.receipts.uploads import UploadStore


def _receipt(receipt_id: str, name: str, email: str, *, status: ReceiptStatus = ReceiptStatus.PARSED) -> Receipt:
    record = StudentRecord(student_name=name, email=email, pay_order_no=receipt_id.upper(), enrollment_id="")
    receipt = Receipt(receipt_id=receipt_id, batch_id="batch-1", record=record, position=1)
    if status == ReceiptStatus.COMPLETED:
        receipt.advance(ReceiptStatus.GENERATING)
        receipt.advance(ReceiptStatus.UPLOADING)
        receipt.complete(f"receipts/{receipt_id}/doc.docx")
    elif status == ReceiptStatus.FAILED:
        receipt.advance(ReceiptStatus.GENERATING)
        receipt.fail("render", "boom")
    return receipt


def test_status_machine_rejects_skipped_states() -> None:
    receipt = _receipt("po-1", "Asha Rao", "asha@example.com")

    with pytest.raises(InvalidReceiptTransitionError):
        receipt.advance(ReceiptStatus.UPLOADING)
    with pytest.raises(InvalidReceiptTransitionError):
        receipt.complete("handle")

    receipt.advance(ReceiptStatus.GENERATING)
    receipt.fail("account", "")
    assert receipt.error == "Unknown error."
    with pytest.raises(InvalidReceiptTransitionError):
        receipt.advance(ReceiptStatus.GENERATING)


def test_download_name_replaces_whitespace_runs() -> None:
    record = StudentRecord(student_name="  Asha   Devi Rao ", enrollment_id="ENR-9", pay_order_no="PO-9")
    receipt = Receipt(receipt_id="po-9", batch_id="b", record=record, position=4)

    assert receipt.download_name() == "Receipt_Asha_Devi_Rao_ENR-9.docx"


def test_search_matches_name_email_and_pay_order() -> None:
    ledger = ReceiptLedger()
    ledger.put(_receipt("po-1", "Asha Rao", "asha@example.com"))
    ledger.put(_receipt("po-2", "Ravi Kumar", "ravi@example.com"))

    assert [item.receipt_id for item in ledger.list("ASHA")] == ["po-1"]
    assert [item.receipt_id for item in ledger.list("ravi@")] == ["po-2"]
    assert [item.receipt_id for item in ledger.list("po-2")] == ["po-2"]
    assert len(ledger.list("")) == 2


def test_stats_count_sent_pending_and_terminal_states() -> None:
    ledger = ReceiptLedger()
    done = _receipt("po-1", "Asha Rao", "asha@example.com", status=ReceiptStatus.COMPLETED)
    done.mark_sent()
    ledger.put(done)
    ledger.put(_receipt("po-2", "Ravi Kumar", "ravi@example.com", status=ReceiptStatus.FAILED))
    ledger.put(_receipt("po-3", "Meera Iyer", "meera@example.com", status=ReceiptStatus.COMPLETED))

    assert ledger.stats() == {
        "total": 3,
        "sent": 1,
        "pending": 2,
        "completed": 2,
        "failed": 1,
        "in_progress": 0,
    }


def test_get_and_remove_unknown_receipt_raise_not_found() -> None:
    ledger = ReceiptLedger()

    with pytest.raises(ReceiptNotFoundError):
        ledger.get("missing")
    with pytest.raises(LookupError):
        ledger.remove("missing")


def test_latest_for_email_is_case_insensitive() -> None:
    ledger = ReceiptLedger()
    ledger.put(_receipt("po-1", "Asha Rao", "Asha@Example.com", status=ReceiptStatus.COMPLETED))

    assert ledger.latest_for_email("asha@example.com").receipt_id == "po-1"
    assert ledger.latest_for_email("nobody@example.com") is None
    assert ledger.latest_for_email("") is None


def test_receipts_frame_has_export_columns() -> None:
    frame = receipts_frame([_receipt("po-1", "Asha Rao", "asha@example.com", status=ReceiptStatus.FAILED)])

    assert list(frame.columns) == list(EXPORT_COLUMNS)
    row = frame.to_dict("records")[0]
    assert row["student_name"] == "Asha Rao"
    assert row["status"] == "failed"
    assert row["failed_stage"] == "render"
    assert receipts_frame([]).empty


def test_upload_store_round_trip_is_isolated_by_kind_and_copy() -> None:
    store = UploadStore(ttl_sec=60)
    token = store.save("template", {"content": b"docx", "names": ["a"]})

    loaded = store.load("template", token)
    loaded["names"].append("b")

    assert store.load("template", token) == {"content": b"docx", "names": ["a"]}
    assert store.load("datasheet", token) is None
    store.discard(token)
    assert store.load("template", token) is None


def test_upload_store_expires_and_caps_entries(monkeypatch: pytest.MonkeyPatch) -> None:
    clock = {"now": 100.0}
    monkeypatch.setattr(uploads_module.time, "monotonic", lambda: clock["now"])
    store = UploadStore(ttl_sec=60, max_items=2)
    first = store.save("datasheet", {"n": 1})
    clock["now"] += 1
    second = store.save("datasheet", {"n": 2})
    clock["now"] += 1
    third = store.save("datasheet", {"n": 3})

    assert store.load("datasheet", first) is None
    assert store.load("datasheet", second) == {"n": 2}

    clock["now"] += 61
    assert store.load("datasheet", third) is None
