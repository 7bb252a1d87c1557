from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Any

from fee_receipt_app.receipts.errors import NoDataRowsError, UploadReadError
from fee_receipt_app.receipts.fields import (
    IDENTITY_FIELDS,
    REQUIRED_FIELDS,
    SAMPLE_ROW,
    STRICT_IDENTITY_FIELDS,
)
from fee_receipt_app.receipts.headers import HeaderMatch, clean_header, find_email_column, match_headers
from fee_receipt_app.receipts.records import StudentRecord

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DroppedRow:
    row_number: int
    missing_fields: tuple[str, ...]

    @property
    def reason(self) -> str:
        return f"missing {', '.join(self.missing_fields)}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "missing_fields": list(self.missing_fields),
            "reason": self.reason,
        }


@dataclass
class ParseResult:
    records: list[StudentRecord] = field(default_factory=list)
    dropped_rows: list[DroppedRow] = field(default_factory=list)
    headers: list[str] = field(default_factory=list)
    ignored_columns: list[str] = field(default_factory=list)
    delimiter: str = ","
    no_data_rows: bool = False

    @property
    def warnings(self) -> list[str]:
        out: list[str] = []
        if self.no_data_rows:
            out.append("The file has no data rows below the header.")
        if self.dropped_rows:
            lines = ", ".join(str(item.row_number) for item in self.dropped_rows)
            out.append(f"Skipped {len(self.dropped_rows)} row(s) with missing student details (lines {lines}).")
        if self.ignored_columns:
            out.append(f"Ignored columns: {', '.join(self.ignored_columns)}.")
        return out


def decode_upload_bytes(raw_bytes: bytes) -> str:
    if b"\x00" in raw_bytes:
        raise UploadReadError(
            "Could not read the data sheet as text. Binary spreadsheets are not supported; "
            "save the sheet as CSV and upload again."
        )
    for encoding in ("utf-8-sig", "utf-8"):
        try:
            return raw_bytes.decode(encoding)
        except UnicodeDecodeError:
            continue
    return raw_bytes.decode("latin-1")


def detect_delimiter(header_line: str) -> str:
    if ";" in header_line and "," not in header_line:
        return ";"
    if "\t" in header_line:
        return "\t"
    return ","


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def split_row(line: str, delimiter: str) -> list[str]:
    raw_fields = next(csv.reader([line], delimiter=delimiter, skipinitialspace=True), [])
    return [_strip_quotes(str(value).strip()) for value in raw_fields]


def _content_lines(content: str) -> list[tuple[int, str]]:
    out: list[tuple[int, str]] = []
    for line_number, raw_line in enumerate(str(content or "").split("\n"), start=1):
        line = raw_line.rstrip("\r")
        if line.strip():
            out.append((line_number, line))
    return out


def read_headers(content: str) -> tuple[list[str], str]:
    lines = _content_lines(content)
    if not lines:
        return [], ","
    header_line = lines[0][1]
    delimiter = detect_delimiter(header_line)
    return [clean_header(value) for value in split_row(header_line, delimiter)], delimiter


def parse_student_rows(
    content: str,
    header_match: HeaderMatch,
    *,
    strict_identity: bool = True,
) -> ParseResult:
    """Parse every data line into a ``StudentRecord`` using a validated header mapping.

    Rows missing an identity field are dropped and reported; rows shorter than the header get
    empty strings for the absent columns.
    """
    lines = _content_lines(content)
    if len(lines) < 2:
        headers, delimiter = read_headers(content)
        return ParseResult(headers=headers, delimiter=delimiter, no_data_rows=True)

    header_line = lines[0][1]
    delimiter = detect_delimiter(header_line)
    headers = [clean_header(value) for value in split_row(header_line, delimiter)]
    email_index = find_email_column(headers)
    mapped_indexes = set(header_match.column_index.values())
    if email_index is not None:
        mapped_indexes.add(email_index)
    ignored_columns = [header for index, header in enumerate(headers) if index not in mapped_indexes]
    identity_fields = STRICT_IDENTITY_FIELDS if strict_identity else IDENTITY_FIELDS

    result = ParseResult(headers=headers, ignored_columns=ignored_columns, delimiter=delimiter)
    for line_number, line in lines[1:]:
        values = split_row(line, delimiter)
        row: dict[str, str] = {}
        for field_name in REQUIRED_FIELDS:
            index = header_match.column_index.get(field_name)
            row[field_name] = values[index] if index is not None and index < len(values) else ""
        email = values[email_index] if email_index is not None and email_index < len(values) else ""

        missing = tuple(name for name in identity_fields if not row.get(name, "").strip())
        if missing:
            result.dropped_rows.append(DroppedRow(row_number=line_number, missing_fields=missing))
            LOGGER.info(
                "Dropped data sheet row. line=%s missing=%s",
                line_number,
                ",".join(missing),
                extra={"event": "datasheet_row_dropped", "line": line_number, "missing_fields": list(missing)},
            )
            continue
        result.records.append(StudentRecord.from_fields(row, email=email, row_number=line_number))
    return result


def read_datasheet(raw_bytes: bytes, *, strict_identity: bool = True) -> ParseResult:
    """Decode, header-validate and parse an uploaded data sheet.

    Raises ``UploadReadError`` for unreadable content, ``HeaderValidationError`` when required
    columns are missing and ``NoDataRowsError`` when only a header line is present.
    """
    content = decode_upload_bytes(raw_bytes)
    headers, _ = read_headers(content)
    if not headers:
        raise NoDataRowsError("The data sheet is empty.")
    header_match = match_headers(headers)
    if not header_match.ok:
        LOGGER.warning(
            "Data sheet header validation failed. missing=%s",
            ",".join(header_match.missing_fields),
            extra={"event": "datasheet_headers_missing", "missing_fields": list(header_match.missing_fields)},
        )
    header_match.require()
    result = parse_student_rows(content, header_match, strict_identity=strict_identity)
    if result.no_data_rows:
        raise NoDataRowsError("The data sheet needs a header row and at least one data row.")
    return result


def sample_datasheet_csv() -> tuple[str, str]:
    stream = io.StringIO()
    writer = csv.DictWriter(stream, fieldnames=list(REQUIRED_FIELDS), lineterminator="\n")
    writer.writeheader()
    writer.writerow({name: SAMPLE_ROW.get(name, "") for name in REQUIRED_FIELDS})
    return "fee_receipt_datasheet_template.csv", stream.getvalue()
