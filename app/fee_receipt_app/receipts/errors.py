from __future__ import annotations


class ReceiptError(RuntimeError):
    """Base class for fee receipt processing failures."""


class UploadReadError(ReceiptError):
    """The uploaded data sheet could not be read as text."""


class HeaderValidationError(ReceiptError):
    def __init__(self, missing_fields: list[str] | tuple[str, ...]) -> None:
        self.missing_fields = tuple(missing_fields)
        super().__init__(f"Missing required columns: {', '.join(self.missing_fields)}")


class NoDataRowsError(ReceiptError):
    """The data sheet has a header row but nothing below it."""


class TemplateRenderError(ReceiptError):
    """The document template could not be opened or filled."""


class StorageError(ReceiptError):
    pass


class IdentityError(ReceiptError):
    pass


class NotificationError(ReceiptError):
    pass


class ReceiptNotFoundError(ReceiptError, LookupError):
    pass


class InvalidReceiptTransitionError(ReceiptError):
    pass
