from __future__ import annotations

import sys
from pathlib import Path

import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from fee_receipt_app.receipts.errors import HeaderValidationError, NoDataRowsError, UploadReadError
from fee_receipt_app.receipts.fields import REQUIRED_FIELDS
from fee_receipt_app.receipts.headers import match_headers
from fee_receipt_app.receipts.parsing import (
    decode_upload_bytes,
    detect_delimiter,
    parse_student_rows,
    read_datasheet,
    read_headers,
    sample_datasheet_csv,
    split_row,
)

HEADER = ",".join(REQUIRED_FIELDS)
ASHA = "Asha Rao,2024-01-15,GEN,Five Thousand Only,FY-CS,3000,500,300,100,100,4000,SBI,PO-1001,asha@example.com,ENR-1001"


def _sheet(*rows: str, header: str = HEADER) -> bytes:
    return "\n".join((header,) + rows).encode("utf-8")


def test_detect_delimiter_prefers_semicolon_then_tab_then_comma() -> None:
    assert read_headers("a;b;c\n1;2;3")[1] == ";"
    assert read_headers("a,b,c\n1,2,3")[1] == ","
    assert detect_delimiter("a\tb\tc") == "\t"
    assert detect_delimiter("a;b,c") == ","
    assert detect_delimiter("abc") == ","


def test_split_row_trims_and_strips_one_quote_layer() -> None:
    assert split_row(' "Rao, Asha" , \'GEN\' ,  3000 ', ",") == ["Rao, Asha", "GEN", "3000"]
    assert split_row("a;b;;d", ";") == ["a", "b", "", "d"]


def test_quoted_name_after_space_keeps_columns_aligned() -> None:
    row = ' "Rao, Asha" ,' + ",".join(ASHA.split(",")[1:])
    result = read_datasheet(_sheet(row))

    record = result.records[0]
    assert record.student_name == "Rao, Asha"
    assert record.date == "2024-01-15"
    assert record.total == "4000"
    assert record.enrollment_id == "ENR-1001"


def test_read_datasheet_builds_complete_record() -> None:
    result = read_datasheet(_sheet(ASHA))

    assert result.delimiter == ","
    assert result.dropped_rows == []
    assert len(result.records) == 1
    record = result.records[0]
    fields = record.as_fields()
    assert set(fields) == set(REQUIRED_FIELDS)
    assert record.student_name == "Asha Rao"
    assert record.total == "4000"
    assert record.pay_order_no == "PO-1001"
    assert record.email == "asha@example.com"
    assert record.enrollment_id == "ENR-1001"
    assert record.row_number == 2


def test_rows_keep_file_order_and_skip_blank_lines() -> None:
    second = ASHA.replace("Asha Rao", "Ravi Kumar").replace("PO-1001", "PO-1002").replace("asha@", "ravi@")
    result = read_datasheet(_sheet(ASHA, "", "   ", second) + b"\r\n")

    assert [record.student_name for record in result.records] == ["Asha Rao", "Ravi Kumar"]
    assert [record.row_number for record in result.records] == [2, 5]


def test_row_with_empty_student_name_is_dropped() -> None:
    nameless = ASHA.replace("Asha Rao", "  ")
    result = read_datasheet(_sheet(ASHA, nameless))

    assert len(result.records) == 1
    assert len(result.dropped_rows) == 1
    dropped = result.dropped_rows[0]
    assert dropped.row_number == 3
    assert dropped.missing_fields == ("NAME OF THE STUDENT",)
    assert any("Skipped 1 row" in warning for warning in result.warnings)


def test_strict_identity_requires_email_and_pay_order() -> None:
    no_email = ASHA.replace("asha@example.com", "")

    no_pay_order = ASHA.replace("PO-1001", "")

    lenient = read_datasheet(_sheet(no_email, no_pay_order), strict_identity=False)
    assert len(lenient.records) == 2
    assert lenient.records[0].email == ""

    strict = read_datasheet(_sheet(no_email, no_pay_order, ASHA), strict_identity=True)
    assert [record.student_name for record in strict.records] == ["Asha Rao"]
    assert [item.missing_fields for item in strict.dropped_rows] == [("EMAIL",), ("PAY ORDER NO.",)]


def test_short_row_defaults_missing_columns_to_empty_string() -> None:
    short = "Asha Rao,2024-01-15,GEN"
    result = read_datasheet(_sheet(short), strict_identity=False)

    record = result.records[0]
    assert record.total == ""
    assert record.bank_name == ""
    assert record.enrollment_id == ""


def test_semicolon_sheet_with_bom_and_extra_column() -> None:
    header = "\ufeff" + ";".join(("Remarks",) + REQUIRED_FIELDS)
    row = ";".join(["late fee waived"] + ASHA.split(","))
    result = read_datasheet(f"{header}\n{row}\n".encode("utf-8"))

    assert result.delimiter == ";"
    assert result.records[0].student_name == "Asha Rao"
    assert result.ignored_columns == ["Remarks"]
    assert "Ignored columns: Remarks." in result.warnings


def test_missing_required_header_blocks_parsing() -> None:
    header = ",".join(field for field in REQUIRED_FIELDS if field != "TOTAL")

    with pytest.raises(HeaderValidationError) as exc_info:
        read_datasheet(_sheet(ASHA, header=header))

    assert exc_info.value.missing_fields == ("TOTAL",)


def test_header_only_sheet_reports_no_data_rows() -> None:
    with pytest.raises(NoDataRowsError):
        read_datasheet(f"{HEADER}\n\n".encode("utf-8"))
    with pytest.raises(NoDataRowsError):
        read_datasheet(b"   \n")


def test_parse_student_rows_flags_no_data_rows_without_raising() -> None:
    result = parse_student_rows(HEADER, match_headers(list(REQUIRED_FIELDS)))

    assert result.no_data_rows is True
    assert result.records == []
    assert result.warnings == ["The file has no data rows below the header."]


def test_binary_spreadsheet_is_a_read_error() -> None:
    xlsx_like = b"PK\x03\x04\x14\x00\x06\x00\x08\x00\x00\x00!\x00"

    with pytest.raises(UploadReadError):
        read_datasheet(xlsx_like)


def test_decode_upload_bytes_falls_back_to_latin1() -> None:
    assert decode_upload_bytes("José".encode("latin-1")) == "José"
    assert decode_upload_bytes("\ufeffDATE".encode("utf-8")) == "DATE"


def test_sample_datasheet_is_accepted_by_the_parser() -> None:
    file_name, content = sample_datasheet_csv()

    result = read_datasheet(content.encode("utf-8"))

    assert file_name.endswith(".csv")
    assert content.splitlines()[0] == HEADER
    assert len(result.records) == 1
