from __future__ import annotations

import hashlib
import secrets
import threading
import uuid
from dataclasses import dataclass, field
from typing import Mapping

from fee_receipt_app.receipts.errors import IdentityError


def _normalize_email(value: str) -> str:
    return str(value or "").strip().lower()


def _hash_secret(secret: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac("sha256", secret.encode("utf-8"), salt.encode("utf-8"), 100_000).hex()


@dataclass
class StudentAccount:
    account_id: str
    email: str
    secret_salt: str
    secret_hash: str
    profile: dict[str, str] = field(default_factory=dict)


class InMemoryAccountDirectory:
    """Student accounts keyed by e-mail. Creating an account that exists returns the existing id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._accounts: dict[str, StudentAccount] = {}
        self._by_email: dict[str, str] = {}

    def find_or_create_account(self, email: str, initial_secret: str) -> str:
        key = _normalize_email(email)
        if not key or "@" not in key:
            raise IdentityError(f"Cannot create an account without a valid e-mail address: {email!r}")
        if not str(initial_secret or "").strip():
            raise IdentityError(f"Cannot create an account for {key} without an initial secret.")
        with self._lock:
            existing = self._by_email.get(key)
            if existing:
                return existing
            salt = secrets.token_hex(8)
            account = StudentAccount(
                account_id=f"acct-{uuid.uuid4().hex[:12]}",
                email=key,
                secret_salt=salt,
                secret_hash=_hash_secret(str(initial_secret), salt),
            )
            self._accounts[account.account_id] = account
            self._by_email[key] = account.account_id
            return account.account_id

    def upsert_profile(self, account_id: str, fields: Mapping[str, str]) -> None:
        with self._lock:
            account = self._accounts.get(str(account_id or ""))
            if account is None:
                raise IdentityError(f"Unknown account: {account_id}")
            account.profile.update({str(k): str(v or "") for k, v in dict(fields).items()})

    def get_account(self, account_id: str) -> StudentAccount | None:
        with self._lock:
            return self._accounts.get(str(account_id or ""))
