"""
Extraction Service — best-effort text recovery from uploaded binaries.

Neither extractor is a real format parser. Both scan the latin-1 view of the
raw bytes with a handful of regular expressions and keep whatever looks like
text. That is enough for the evaluator, which only needs approximate prose
and cell strings, and it never needs a PDF or zip/XML library.

Does NOT:
  • Reconstruct page layout, fonts, or reading order
  • Inflate compressed PDF streams or unzip XLSX parts
  • Evaluate cell formulas
  • Raise on malformed input (a fixed fallback message is returned instead)
"""

from __future__ import annotations

import logging
import re
from typing import Protocol

from carbo_audit.models.enums import SourceKind

logger = logging.getLogger(__name__)

PDD_FALLBACK_TEXT = "Unable to extract text from PDF. The document may be image-based or encrypted."
CALCULATION_FALLBACK_TEXT = "Unable to extract data from spreadsheet."

# Whitespace of the latin-1 view: ASCII blanks plus NO-BREAK SPACE, not NEL or \x1c-\x1f
_SPACE_CHARS = "\t\n\x0b\x0c\r \xa0"
_SPACE = "[" + _SPACE_CHARS + "]"

# ── PDF patterns ─────────────────────────────────────────

_STREAM_RE = re.compile(r"stream" + _SPACE + r"*\n(.*?)endstream", re.DOTALL)
_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E\n\r\t]")
_WHITESPACE_RE = re.compile(_SPACE + "+")
_SHOW_TEXT_RE = re.compile(r"\(([^)]+)\)" + _SPACE + "*Tj")
_SHOW_ARRAY_RE = re.compile(r"\[([^\]]*)\]" + _SPACE + "*TJ")
_ARRAY_FRAGMENT_RE = re.compile(r"\(([^)]*)\)")
_PLAIN_RUN_RE = re.compile(r"[A-Za-z][A-Za-z0-9" + _SPACE_CHARS + r".,;:!?'\"()\-/%=+]{30,}")

_MIN_STREAM_CHARS = 20

# ── XLSX patterns ────────────────────────────────────────

_READABLE_RUN_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9" + _SPACE_CHARS + r".,;:!?'\"()\-/%=+<>]{5,}")
_TAG_CONTENT_RE = re.compile(r"<[a-z][^>]*>([^<]+)<", re.IGNORECASE | re.ASCII)
_NUMERIC_RE = re.compile(r"^\d+$", re.ASCII)

_MIN_RUN_CHARS = 5
_MIN_TAG_CHARS = 2


class TextExtractor(Protocol):
    """One extraction strategy per document family."""

    fallback_text: str

    def extract(self, data: bytes) -> str: ...


def _as_text(data: bytes | bytearray | memoryview | None) -> str:
    if not data:
        return ""
    return bytes(data).decode("latin-1")


class PddTextExtractor:
    """
    Scan a PDF byte buffer for text.

    Passes, in order, each appending its matches:
      1. content streams (non-printables blanked, whitespace collapsed)
      2. literal show-text operators ``(...) Tj``
      3. array show-text operators ``[(..) -120 (..)] TJ`` (offsets ignored)
      4. plain printable runs of 30+ characters not already captured
    """

    fallback_text = PDD_FALLBACK_TEXT

    def extract(self, data: bytes) -> str:
        text = _as_text(data)
        parts: list[str] = []

        for match in _STREAM_RE.finditer(text):
            readable = _NON_PRINTABLE_RE.sub(" ", match.group(1))
            readable = _WHITESPACE_RE.sub(" ", readable).strip(_SPACE_CHARS)
            if len(readable) > _MIN_STREAM_CHARS:
                parts.append(readable)

        for match in _SHOW_TEXT_RE.finditer(text):
            parts.append(match.group(1))

        for match in _SHOW_ARRAY_RE.finditer(text):
            fragments = _ARRAY_FRAGMENT_RE.findall(match.group(1))
            if fragments:
                parts.append("".join(fragments))

        seen = set(parts)
        for match in _PLAIN_RUN_RE.finditer(text):
            run = match.group(0)
            if run not in seen:
                parts.append(run)
                seen.add(run)

        result = "\n\n".join(parts)
        return result or self.fallback_text


class SpreadsheetTextExtractor:
    """
    Scan an XLSX byte buffer (still zipped) for cell strings.

    Collects printable runs of 6+ characters and the contents of XML-like
    tags (purely numeric contents skipped), de-duplicated in order of first
    occurrence. Structural XML fragments are accepted as noise.
    """

    fallback_text = CALCULATION_FALLBACK_TEXT

    def extract(self, data: bytes) -> str:
        text = _as_text(data)
        parts: list[str] = []

        for match in _READABLE_RUN_RE.finditer(text):
            cleaned = match.group(0).strip(_SPACE_CHARS)
            if len(cleaned) > _MIN_RUN_CHARS:
                parts.append(cleaned)

        for match in _TAG_CONTENT_RE.finditer(text):
            content = match.group(1).strip(_SPACE_CHARS)
            if len(content) > _MIN_TAG_CHARS and not _NUMERIC_RE.match(content):
                parts.append(content)

        unique = list(dict.fromkeys(parts))
        result = "\n".join(unique)
        return result or self.fallback_text


DEFAULT_EXTRACTORS: dict[SourceKind, TextExtractor] = {
    SourceKind.PDD: PddTextExtractor(),
    SourceKind.CALCULATION: SpreadsheetTextExtractor(),
}


def extract_text(
    data: bytes,
    kind: SourceKind,
    extractors: dict[SourceKind, TextExtractor] | None = None,
) -> str:
    """
    Dispatch to the extractor registered for ``kind``.
    Never raises for bad input: an extractor failure yields its fallback text.
    """
    registry = extractors or DEFAULT_EXTRACTORS
    extractor = registry[kind]
    try:
        text = extractor.extract(data)
    except Exception as exc:
        logger.warning(f"[EXTRACT] {kind.value} extractor failed: {exc} — using fallback text")
        return extractor.fallback_text
    logger.info(f"[EXTRACT] {kind.value}: {len(data or b'')} bytes → {len(text)} chars")
    return text
