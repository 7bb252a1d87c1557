from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from fee_receipt_app.core.config import AppConfig
from fee_receipt_app.infrastructure.identity import InMemoryAccountDirectory
from fee_receipt_app.infrastructure.notifier import LoggingReceiptNotifier
from fee_receipt_app.infrastructure.storage import LocalDocumentStorage
from fee_receipt_app.receipts.batch import BatchOrchestrator
from fee_receipt_app.receipts.ledger import ReceiptLedger
from fee_receipt_app.receipts.uploads import UploadStore


@dataclass
class ReceiptServices:
    storage: LocalDocumentStorage
    accounts: InMemoryAccountDirectory
    notifier: LoggingReceiptNotifier
    ledger: ReceiptLedger
    uploads: UploadStore

    def orchestrator(self) -> BatchOrchestrator:
        return BatchOrchestrator(storage=self.storage, accounts=self.accounts, ledger=self.ledger)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return AppConfig.from_env()


@lru_cache(maxsize=1)
def get_services() -> ReceiptServices:
    config = get_config()
    return ReceiptServices(
        storage=LocalDocumentStorage(config.storage_root),
        accounts=InMemoryAccountDirectory(),
        notifier=LoggingReceiptNotifier(),
        ledger=ReceiptLedger(),
        uploads=UploadStore(ttl_sec=config.upload_ttl_sec),
    )
