from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath

from fee_receipt_app.receipts.errors import StorageError

LOGGER = logging.getLogger(__name__)
_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._/-]")


def safe_storage_key(raw_key: str) -> str:
    cleaned = _UNSAFE_KEY_CHARS.sub("_", str(raw_key or "").strip().replace("\\", "/"))
    parts = [part for part in PurePosixPath(cleaned).parts if part not in {"", ".", "..", "/"}]
    if not parts:
        raise StorageError("Storage key is empty.")
    return "/".join(parts)


class LocalDocumentStorage:
    """Stores generated documents as files under ``root``; the handle is the relative key."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, handle: str) -> Path:
        key = safe_storage_key(handle)
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"Storage key escapes the storage root: {handle}")
        return path

    def upload(self, key: str, blob: bytes) -> str:
        handle = safe_storage_key(key)
        path = self._path(handle)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(bytes(blob))
        except OSError as exc:
            raise StorageError(f"Could not store {handle}: {exc}") from exc
        LOGGER.debug("Stored document. handle=%s bytes=%s", handle, len(blob))
        return handle

    def download(self, handle: str) -> bytes:
        path = self._path(handle)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise StorageError(f"Stored document not found: {handle}") from exc
        except OSError as exc:
            raise StorageError(f"Could not read {handle}: {exc}") from exc

    def delete(self, handle: str) -> None:
        path = self._path(handle)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Could not delete {handle}: {exc}") from exc
