from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from fee_receipt_app.core.defaults import (
    DEFAULT_DEV_ADMIN_PRINCIPALS,
    DEFAULT_DEV_ENV_NAMES,
    DEFAULT_ENV_NAME,
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_STORAGE_ROOT,
    DEFAULT_UPLOAD_TTL_SEC,
)
from fee_receipt_app.core.env import (
    FEERCPT_ADMIN_PRINCIPALS,
    FEERCPT_ENV,
    FEERCPT_MAX_UPLOAD_BYTES,
    FEERCPT_STORAGE_ROOT,
    FEERCPT_STRICT_IDENTITY,
    FEERCPT_TEST_USER,
    FEERCPT_UPLOAD_TTL_SEC,
    get_env,
    get_env_bool,
    get_env_csv,
    get_env_int,
)


DEV_ENV_NAMES = set(DEFAULT_DEV_ENV_NAMES)


def _repo_root() -> Path:
    # app/fee_receipt_app/core/config.py -> repo root
    # parents[0]=core, [1]=fee_receipt_app, [2]=app, [3]=repo root
    return Path(__file__).resolve().parents[3]


def _resolve_repo_relative_path(raw_path: str) -> str:
    value = str(raw_path or "").strip()
    if not value:
        return value
    path = Path(value)
    if path.is_absolute():
        return str(path)
    return str((_repo_root() / path).resolve())


@dataclass(frozen=True)
class AppConfig:
    env: str = DEFAULT_ENV_NAME
    storage_root: str = DEFAULT_STORAGE_ROOT
    admin_principals: tuple[str, ...] = ()
    test_user: str = ""
    strict_identity: bool = True
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    upload_ttl_sec: int = DEFAULT_UPLOAD_TTL_SEC

    @property
    def is_dev_env(self) -> bool:
        return self.env in DEV_ENV_NAMES

    def is_admin(self, principal: str) -> bool:
        cleaned = str(principal or "").strip().lower()
        if not cleaned:
            return False
        return cleaned in {item.strip().lower() for item in self.admin_principals}

    @staticmethod
    def from_env() -> "AppConfig":
        env_name = get_env(FEERCPT_ENV, DEFAULT_ENV_NAME).lower() or DEFAULT_ENV_NAME
        is_dev = env_name in DEV_ENV_NAMES
        test_user = get_env(FEERCPT_TEST_USER)
        if test_user and not is_dev:
            raise RuntimeError(
                "FEERCPT_TEST_USER is allowed only for dev/local environments. "
                "Set FEERCPT_ENV=dev (or local), or unset FEERCPT_TEST_USER."
            )
        return AppConfig(
            env=env_name,
            storage_root=_resolve_repo_relative_path(get_env(FEERCPT_STORAGE_ROOT, DEFAULT_STORAGE_ROOT)),
            admin_principals=get_env_csv(
                FEERCPT_ADMIN_PRINCIPALS,
                DEFAULT_DEV_ADMIN_PRINCIPALS if is_dev else "",
            ),
            test_user=test_user,
            strict_identity=get_env_bool(FEERCPT_STRICT_IDENTITY, default=True),
            max_upload_bytes=get_env_int(FEERCPT_MAX_UPLOAD_BYTES, DEFAULT_MAX_UPLOAD_BYTES, min_value=1024),
            upload_ttl_sec=get_env_int(FEERCPT_UPLOAD_TTL_SEC, DEFAULT_UPLOAD_TTL_SEC, min_value=60),
        )
