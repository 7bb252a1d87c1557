from __future__ import annotations

import logging
import threading
from typing import Any, Mapping

from fee_receipt_app.receipts.errors import NotificationError
from fee_receipt_app.receipts.html import notice_subject, render_notice_html

LOGGER = logging.getLogger(__name__)


class LoggingReceiptNotifier:
    """Builds the receipt notice e-mail and logs it instead of handing it to a mail relay.

    Sent messages are kept in ``outbox`` for the admin dashboard and tests.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.outbox: list[dict[str, Any]] = []

    def send_receipt_notice(self, email: str, context: Mapping[str, str]) -> None:
        recipient = str(email or "").strip()
        if not recipient or "@" not in recipient:
            raise NotificationError(f"Cannot send a receipt notice without a valid e-mail address: {email!r}")
        student_name = str(context.get("name") or "").strip() or "Student"
        message = {
            "to": recipient,
            "subject": notice_subject(student_name),
            "html": render_notice_html(student_name, context),
        }
        with self._lock:
            self.outbox.append(message)
        LOGGER.info(
            "Receipt notice sent. to=%s receipt_no=%s",
            recipient,
            context.get("receipt_no", ""),
            extra={"event": "receipt_notice_sent", "recipient": recipient},
        )
