from __future__ import annotations

import io
import sys
import zipfile
from pathlib import Path
from typing import Callable
from xml.sax.saxutils import escape

import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

WORD_NAMESPACE = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
CONTENT_TYPES_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/word/document.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
    "</Types>"
)

DATASHEET_HEADER = (
    "NAME OF THE STUDENT,DATE,CAT,IN WORDS,YEAR & COURSE,TUITION FEE,DEV. FEE,EXAM FEE,"
    "ENROLLMENT FEE,OTHER FEE,TOTAL,BANK NAME,PAY ORDER NO.,EMAIL,STUDENT_ENROLLMENT_ID"
)
ASHA_ROW = "Asha Rao,2024-01-15,GEN,Five Thousand Only,FY-CS,3000,500,300,100,100,4000,SBI,PO-1001,asha@example.com,ENR-1001"
RECEIPT_TEMPLATE_LINES = (
    "Receipt No: {{receipt_no}}",
    "Date: {{date}}",
    "Name: {{name}}",
    "Category: {{caste}}",
    "Course: {{engineering}}",
    "Tuition: {{Tuition_Fee}} Development: {{Development}} Exam: {{Board_Exam}}",
    "Enrollment: {{Enrollment_Fee}} Others: {{Others_fee}}",
    "Total: {{TOTAL}} ({{In_words}})",
    "Paid via {{Bank_Name}} pay order {{Pay_Order}}",
)


def _run_xml(text: str) -> str:
    space = ' xml:space="preserve"' if text != text.strip() else ""
    return f"<w:r><w:t{space}>{escape(text)}</w:t></w:r>"


def build_docx(paragraphs, *, extra_parts: dict[str, bytes] | None = None, document_xml: str | None = None) -> bytes:
    """Minimal .docx: each paragraph is a string (one run) or a list of run texts."""
    if document_xml is None:
        body = []
        for paragraph in paragraphs:
            runs = [paragraph] if isinstance(paragraph, str) else list(paragraph)
            body.append("<w:p>" + "".join(_run_xml(text) for text in runs) + "</w:p>")
        document_xml = (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<w:document xmlns:w="{WORD_NAMESPACE}"><w:body>{"".join(body)}</w:body></w:document>'
        )
    stream = io.BytesIO()
    with zipfile.ZipFile(stream, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("[Content_Types].xml", CONTENT_TYPES_XML)
        archive.writestr("word/document.xml", document_xml)
        for name, blob in dict(extra_parts or {}).items():
            archive.writestr(name, blob)
    return stream.getvalue()


@pytest.fixture()
def make_docx() -> Callable[..., bytes]:
    return build_docx


@pytest.fixture()
def receipt_template() -> bytes:
    return build_docx(list(RECEIPT_TEMPLATE_LINES))


@pytest.fixture()
def asha_datasheet() -> bytes:
    return f"{DATASHEET_HEADER}\n{ASHA_ROW}\n".encode("utf-8")
