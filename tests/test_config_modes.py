from __future__ import annotations

import sys
from pathlib import Path

import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from fee_receipt_app.core.config import AppConfig


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "FEERCPT_ENV",
        "FEERCPT_STORAGE_ROOT",
        "FEERCPT_ADMIN_PRINCIPALS",
        "FEERCPT_TEST_USER",
        "FEERCPT_STRICT_IDENTITY",
        "FEERCPT_MAX_UPLOAD_BYTES",
        "FEERCPT_UPLOAD_TTL_SEC",
    ):
        monkeypatch.delenv(key, raising=False)


def test_dev_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)

    config = AppConfig.from_env()

    assert config.env == "dev"
    assert config.is_dev_env is True
    assert config.admin_principals == ("admin@example.com",)
    assert config.strict_identity is True
    assert config.max_upload_bytes == 5 * 1024 * 1024
    assert config.upload_ttl_sec == 1800
    assert Path(config.storage_root).is_absolute()
    assert config.storage_root.endswith(str(Path("var") / "receipts"))


def test_prod_has_no_default_admins(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("FEERCPT_ENV", "prod")

    config = AppConfig.from_env()

    assert config.is_dev_env is False
    assert config.admin_principals == ()


def test_prod_rejects_test_user(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("FEERCPT_ENV", "prod")
    monkeypatch.setenv("FEERCPT_TEST_USER", "admin@example.com")

    with pytest.raises(RuntimeError):
        AppConfig.from_env()


def test_env_overrides_and_clamping(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("FEERCPT_STORAGE_ROOT", str(tmp_path))
    monkeypatch.setenv("FEERCPT_ADMIN_PRINCIPALS", "Bursar@College.edu, admin@example.com ,bursar@college.edu")
    monkeypatch.setenv("FEERCPT_STRICT_IDENTITY", "off")
    monkeypatch.setenv("FEERCPT_MAX_UPLOAD_BYTES", "10")
    monkeypatch.setenv("FEERCPT_UPLOAD_TTL_SEC", "not-a-number")

    config = AppConfig.from_env()

    assert config.storage_root == str(tmp_path)
    assert config.is_admin("bursar@college.edu") is True
    assert config.is_admin("student@college.edu") is False
    assert config.is_admin("") is False
    assert config.strict_identity is False
    assert config.max_upload_bytes == 1024
    assert config.upload_ttl_sec == 1800
