from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Mapping

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"

# Label, context key, is amount. Shared by the notice e-mail and the preview page.
RECEIPT_DETAIL_ROWS: tuple[tuple[str, str, bool], ...] = (
    ("Student Name", "name", False),
    ("Course", "engineering", False),
    ("Category", "caste", False),
    ("Tuition Fee", "Tuition_Fee", True),
    ("Development Fee", "Development", True),
    ("Exam Fee", "Board_Exam", True),
    ("Enrollment Fee", "Enrollment_Fee", True),
    ("Other Fee", "Others_fee", True),
)
RECEIPT_TRAILER_ROWS: tuple[tuple[str, str, bool], ...] = (
    ("Amount in Words", "In_words", False),
    ("Bank Name", "Bank_Name", False),
    ("Pay Order No", "Pay_Order", False),
)


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _render(template_name: str, **values) -> str:
    return _environment().get_template(template_name).render(
        detail_rows=RECEIPT_DETAIL_ROWS,
        trailer_rows=RECEIPT_TRAILER_ROWS,
        **values,
    )


def notice_subject(student_name: str) -> str:
    return f"Fee Receipt - {student_name}"


def render_notice_html(student_name: str, context: Mapping[str, str]) -> str:
    return _render("receipt_notice.html", student_name=student_name, context=dict(context))


def render_receipt_html(context: Mapping[str, str]) -> str:
    return _render("receipt_preview.html", context=dict(context))
