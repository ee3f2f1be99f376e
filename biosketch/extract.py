"""
Document bytes -> plain text for the compliance engine.

DOCX goes through python-docx in body order (paragraphs, then table rows joined
with tabs so column-style education rows survive). PDF uses the pdfminer text
layer and falls back to Tesseract OCR when the layer is missing or too thin. PDF
text is always flagged low-confidence.

Returns ParseResult on success, or {"error": CODE} for boundary failures.
"""
from __future__ import annotations

import os
import re
import time
import unicodedata
import warnings
from io import BytesIO
from pathlib import PurePath
from typing import Dict, List, Union

from docx import Document
from docx.table import Table
from docx.text.paragraph import Paragraph
from pdfminer.high_level import extract_text as pdfminer_extract_text

from . import ocr
from .contracts import ParseResult, error

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
MIN_TEXT_LAYER_CHARS = 30

# Typographic ligatures and quotes -> ASCII
_LIGS = {
    "ﬀ": "ff",
    "ﬁ": "fi",
    "ﬂ": "fl",
    "ﬃ": "ffi",
    "ﬄ": "ffl",
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
}

_RE_TRAILING_WS = re.compile(r"[ \t]+$", re.MULTILINE)
_RE_MANY_BLANKS = re.compile(r"\n{3,}")


def max_bytes() -> int:
    return int(float(os.getenv("BIOSKETCH_MAX_MB", "20")) * 1024 * 1024)


def normalize_text(s: str) -> str:
    if not s:
        return ""
    s = s.replace("\r\n", "\n").replace("\r", "\n").replace("\f", "\n")
    s = unicodedata.normalize("NFC", s)
    # soft hyphen out, nbsp to space
    s = s.translate({0x00AD: None, 0x00A0: " "})
    for src, dst in _LIGS.items():
        s = s.replace(src, dst)
    s = _RE_TRAILING_WS.sub("", s)
    return _RE_MANY_BLANKS.sub("\n\n", s).strip()


def _kind(mime: str, filename: str) -> str:
    suffix = PurePath(filename or "").suffix.lower()
    if mime == DOCX_MIME or suffix == ".docx":
        return "docx"
    if mime == PDF_MIME or suffix == ".pdf":
        return "pdf"
    return ""


# ---------- DOCX ----------
def _table_lines(table: Table) -> List[str]:
    lines = []
    for row in table.rows:
        cells: List[str] = []
        for cell in row.cells:
            # merged cells repeat across the grid
            text = " ".join(cell.text.split())
            if text and (not cells or cells[-1] != text):
                cells.append(text)
        if cells:
            lines.append("\t".join(cells))
    return lines


def docx_text(data: bytes) -> str:
    doc = Document(BytesIO(data))
    blocks: List[str] = []
    for child in doc.element.body.iterchildren():
        tag = child.tag.rsplit("}", 1)[-1]
        if tag == "p":
            text = Paragraph(child, doc).text.strip()
            if text:
                blocks.append(text)
        elif tag == "tbl":
            lines = _table_lines(Table(child, doc))
            if lines:
                blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _extract_docx(data: bytes) -> Union[ParseResult, Dict[str, str]]:
    t0 = time.time()
    try:
        raw = docx_text(data)
    except Exception:
        # python-docx surfaces zip, XML and package errors with unrelated types
        return error("UNSUPPORTED_DOCX")
    text = normalize_text(raw)
    if not text:
        return error("EMPTY_DOCUMENT")
    return ParseResult(text=text, low_confidence=False, meta={"engine": "python-docx", "t_ms": int((time.time() - t0) * 1000)})


# ---------- PDF ----------
def _extract_pdf(data: bytes) -> Union[ParseResult, Dict[str, str]]:
    t0 = time.time()
    try:
        raw = pdfminer_extract_text(BytesIO(data)) or ""
    except Exception:
        # pdfminer raises many unrelated parser error types
        return error("UNSUPPORTED_PDF")
    text = normalize_text(raw)
    meta: Dict[str, object] = {"engine": "pdfminer", "text_layer_chars": len(text)}

    if len(text) <= MIN_TEXT_LAYER_CHARS:
        if not ocr.ocr_enabled():
            meta["ocr"] = "disabled"
        else:
            result = ocr.ocr_pdf(data)
            if result is None:
                meta["ocr"] = "unavailable"
            else:
                warnings.warn("PDF has no usable text layer; using OCR text.", RuntimeWarning)
                text = normalize_text(result.text)
                meta.update({"engine": "tesseract", "ocr": result.meta})

    if not text:
        return error("EMPTY_DOCUMENT")
    meta["t_ms"] = int((time.time() - t0) * 1000)
    return ParseResult(text=text, low_confidence=True, meta=meta)


def extract_text(data: bytes, mime: str, filename: str = "") -> Union[ParseResult, Dict[str, str]]:
    if len(data) > max_bytes():
        return error("FILE_TOO_LARGE")
    kind = _kind(mime, filename)
    if kind == "docx":
        return _extract_docx(data)
    if kind == "pdf":
        return _extract_pdf(data)
    return error("BAD_MIME")
