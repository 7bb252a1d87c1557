from __future__ import annotations

from copy import deepcopy
import threading
import time
import uuid
from typing import Any

from fee_receipt_app.core.defaults import DEFAULT_UPLOAD_MAX_ITEMS, DEFAULT_UPLOAD_TTL_SEC


class UploadStore:
    """Short-lived uploads (templates, parsed data sheets) addressed by an opaque token.

    Each upload gets its own token; a batch names the template and data sheet it uses.
    """

    def __init__(self, *, ttl_sec: float = DEFAULT_UPLOAD_TTL_SEC, max_items: int = DEFAULT_UPLOAD_MAX_ITEMS) -> None:
        self.ttl_sec = float(ttl_sec)
        self.max_items = int(max_items)
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[float, str, dict[str, Any]]] = {}

    def _prune(self, now: float) -> None:
        expired = [token for token, (created, _, _) in self._entries.items() if (now - created) >= self.ttl_sec]
        for token in expired:
            self._entries.pop(token, None)
        while len(self._entries) > self.max_items:
            oldest_token = min(self._entries, key=lambda key: self._entries[key][0], default=None)
            if oldest_token is None:
                break
            self._entries.pop(oldest_token, None)

    def save(self, kind: str, payload: dict[str, Any]) -> str:
        token = uuid.uuid4().hex
        now = time.monotonic()
        with self._lock:
            self._entries[token] = (now, str(kind), deepcopy(payload))
            self._prune(now)
        return token

    def load(self, kind: str, token: str) -> dict[str, Any] | None:
        key = str(token or "").strip()
        if not key:
            return None
        now = time.monotonic()
        with self._lock:
            self._prune(now)
            entry = self._entries.get(key)
            if entry is None or entry[1] != kind:
                return None
            return deepcopy(entry[2])

    def discard(self, token: str) -> None:
        key = str(token or "").strip()
        if not key:
            return
        with self._lock:
            self._entries.pop(key, None)
