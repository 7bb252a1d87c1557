from __future__ import annotations

import html
import io
import re
import zipfile
from dataclasses import dataclass
from typing import Mapping
from xml.etree import ElementTree as ET
from xml.sax.saxutils import escape

from fee_receipt_app.receipts.errors import TemplateRenderError

PLACEHOLDER_START = "{{"
PLACEHOLDER_END = "}}"
MAIN_DOCUMENT_PART = "word/document.xml"

_PLACEHOLDER_PATTERN = re.compile(r"\{\{([^{}]*)\}\}")
# <w:t>, <w:t xml:space="preserve">...</w:t> and <w:t/>; never <w:tab/>, <w:tbl>, <w:tc> or <w:tr>.
_TEXT_RUN_PATTERN = re.compile(r"<w:t(?P<attrs>\s[^>]*?)?(?:/>|>(?P<text>.*?)</w:t>)", re.DOTALL)
_TEXT_PART_PATTERN = re.compile(r"^word/(document|header\d*|footer\d*|footnotes|endnotes)\.xml$")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class RenderResult:
    document: bytes
    unresolved: tuple[str, ...] = ()


def normalize_placeholder_name(name: str) -> str:
    return _NON_ALNUM.sub("", str(name or "").lower())


def _normalized_lookup(context: Mapping[str, object]) -> dict[str, str]:
    lookup: dict[str, str] = {}
    for key, value in context.items():
        normalized = normalize_placeholder_name(str(key))
        if normalized and normalized not in lookup:
            lookup[normalized] = "" if value is None else str(value)
    return lookup


def _text_element(attrs: str, text: str) -> str:
    if text != text.strip() and "xml:space" not in attrs:
        attrs = f'{attrs} xml:space="preserve"'
    return f"<w:t{attrs}>{escape(text)}</w:t>"


def _fill_part(xml_text: str, lookup: dict[str, str], unresolved: list[str]) -> str | None:
    runs = list(_TEXT_RUN_PATTERN.finditer(xml_text))
    if not runs:
        return None
    texts = [html.unescape(match.group("text") or "") for match in runs]
    joined = "".join(texts)
    if PLACEHOLDER_START not in joined:
        return None

    # A placeholder may be split over several runs; its value lands in the run holding "{{".
    owners: list[int] = []
    for index, text in enumerate(texts):
        owners.extend([index] * len(text))
    new_texts: list[list[str]] = [[] for _ in texts]
    cursor = 0
    for match in _PLACEHOLDER_PATTERN.finditer(joined):
        start, end = match.span()
        for pos in range(cursor, start):
            new_texts[owners[pos]].append(joined[pos])
        raw_name = match.group(1).strip()
        normalized = normalize_placeholder_name(raw_name)
        value = lookup.get(normalized) if normalized else None
        if value is None:
            if raw_name not in unresolved:
                unresolved.append(raw_name)
            value = ""
        new_texts[owners[start]].append(value)
        cursor = end
    for pos in range(cursor, len(joined)):
        new_texts[owners[pos]].append(joined[pos])

    pieces: list[str] = []
    last = 0
    changed = False
    for index, match in enumerate(runs):
        new_text = "".join(new_texts[index])
        if new_text == texts[index]:
            continue
        pieces.append(xml_text[last : match.start()])
        pieces.append(_text_element(match.group("attrs") or "", new_text))
        last = match.end()
        changed = True
    if not changed:
        return None
    pieces.append(xml_text[last:])
    return "".join(pieces)


def _read_part(archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> str:
    raw = archive.read(info)
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise TemplateRenderError(f"Template part {info.filename} is not UTF-8 XML.") from exc
    try:
        ET.fromstring(raw)
    except ET.ParseError as exc:
        raise TemplateRenderError(f"Template part {info.filename} has invalid markup: {exc}") from exc
    return text


def _open_template(template_bytes: bytes) -> zipfile.ZipFile:
    if not template_bytes:
        raise TemplateRenderError("Template is empty.")
    try:
        archive = zipfile.ZipFile(io.BytesIO(template_bytes), "r")
    except zipfile.BadZipFile as exc:
        raise TemplateRenderError("Template is not a valid .docx file (corrupt zip archive).") from exc
    if MAIN_DOCUMENT_PART not in archive.namelist():
        archive.close()
        raise TemplateRenderError(f"Template is missing {MAIN_DOCUMENT_PART}; upload a Word .docx file.")
    return archive


def render_template(template_bytes: bytes, context: Mapping[str, object]) -> RenderResult:
    """Fill every ``{{placeholder}}`` in a .docx template from ``context``.

    Names match case-insensitively and ignore punctuation and whitespace on both sides. A
    placeholder with no value renders empty and is reported in ``RenderResult.unresolved``.
    Parts without placeholders are copied unchanged.
    """
    lookup = _normalized_lookup(context)
    unresolved: list[str] = []
    output = io.BytesIO()
    try:
        with _open_template(template_bytes) as archive, zipfile.ZipFile(output, "w") as rendered:
            for info in archive.infolist():
                if _TEXT_PART_PATTERN.match(info.filename):
                    filled = _fill_part(_read_part(archive, info), lookup, unresolved)
                    if filled is not None:
                        rendered.writestr(info, filled.encode("utf-8"))
                        continue
                rendered.writestr(info, archive.read(info))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as exc:
        raise TemplateRenderError(f"Template could not be read: {exc}") from exc
    return RenderResult(document=output.getvalue(), unresolved=tuple(unresolved))


def list_placeholders(template_bytes: bytes) -> list[str]:
    names: list[str] = []
    with _open_template(template_bytes) as archive:
        for info in archive.infolist():
            if not _TEXT_PART_PATTERN.match(info.filename):
                continue
            xml_text = _read_part(archive, info)
            joined = "".join(
                html.unescape(match.group("text") or "") for match in _TEXT_RUN_PATTERN.finditer(xml_text)
            )
            for match in _PLACEHOLDER_PATTERN.finditer(joined):
                name = match.group(1).strip()
                if name not in names:
                    names.append(name)
    return names


def document_text(document_bytes: bytes) -> str:
    """Concatenated text of the main document part, one line per paragraph."""
    with _open_template(document_bytes) as archive:
        xml_text = archive.read(MAIN_DOCUMENT_PART).decode("utf-8")
    paragraphs = re.findall(r"<w:p[\s>].*?</w:p>", xml_text, flags=re.DOTALL)
    lines = []
    for paragraph in paragraphs:
        lines.append("".join(html.unescape(m.group("text") or "") for m in _TEXT_RUN_PATTERN.finditer(paragraph)))
    return "\n".join(lines)
