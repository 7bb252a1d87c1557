from __future__ import annotations

from dataclasses import dataclass, field

from fee_receipt_app.receipts.errors import HeaderValidationError
from fee_receipt_app.receipts.fields import EMAIL_HEADER_HINTS, REQUIRED_FIELDS


@dataclass(frozen=True)
class HeaderMatch:
    column_index: dict[str, int] = field(default_factory=dict)
    missing_fields: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.missing_fields

    def require(self) -> "HeaderMatch":
        if self.missing_fields:
            raise HeaderValidationError(self.missing_fields)
        return self


def clean_header(raw_header: str) -> str:
    cleaned = str(raw_header or "").strip().lstrip("\ufeff").strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in {'"', "'"}:
        cleaned = cleaned[1:-1].strip()
    return cleaned


def _match_field(required_field: str, lowered_headers: list[str]) -> int | None:
    target = required_field.lower()
    for index, header in enumerate(lowered_headers):
        if header == target:
            return index
    for index, header in enumerate(lowered_headers):
        if target in header:
            return index
    return None


def match_headers(raw_headers: list[str], required_fields: tuple[str, ...] = REQUIRED_FIELDS) -> HeaderMatch:
    """Map each required field to a column of ``raw_headers``.

    Exact case-insensitive equality wins over substring containment (required field inside the
    header); within a rule the lowest column index wins. Columns that match nothing are ignored.
    """
    lowered = [clean_header(header).lower() for header in raw_headers]
    column_index: dict[str, int] = {}
    missing: list[str] = []
    for required_field in required_fields:
        index = _match_field(required_field, lowered)
        if index is None:
            missing.append(required_field)
        else:
            column_index[required_field] = index
    return HeaderMatch(column_index=column_index, missing_fields=tuple(missing))


def find_email_column(raw_headers: list[str]) -> int | None:
    for index, header in enumerate(raw_headers):
        lowered = clean_header(header).lower()
        if any(hint in lowered for hint in EMAIL_HEADER_HINTS):
            return index
    return None
