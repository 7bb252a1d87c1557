from __future__ import annotations

from typing import Mapping, Protocol


class DocumentStorage(Protocol):
    def upload(self, key: str, blob: bytes) -> str:
        ...

    def download(self, handle: str) -> bytes:
        ...

    def delete(self, handle: str) -> None:
        ...


class AccountDirectory(Protocol):
    def find_or_create_account(self, email: str, initial_secret: str) -> str:
        ...

    def upsert_profile(self, account_id: str, fields: Mapping[str, str]) -> None:
        ...


class ReceiptNotifier(Protocol):
    def send_receipt_notice(self, email: str, context: Mapping[str, str]) -> None:
        ...
