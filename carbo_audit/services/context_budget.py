"""
Context Budget — hard character caps on extracted text before it is sent
to the reasoning service. Keeps the head of the document; no
sentence-aware cutting.
"""

from __future__ import annotations

import logging

from carbo_audit.models.enums import SourceKind
from carbo_audit.models.schemas import ExtractedText

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n[...TRUNCATED]"


def budget(text: str, max_chars: int) -> tuple[str, bool]:
    """Return ``(text, False)`` if it fits, else the first ``max_chars`` chars plus the marker."""
    if max_chars < 0:
        raise ValueError(f"max_chars must be non-negative, got {max_chars}")
    if len(text) <= max_chars:
        return text, False
    return text[:max_chars] + TRUNCATION_MARKER, True


def budget_extracted(text: str, kind: SourceKind, max_chars: int) -> ExtractedText:
    """Apply the budget and record whether truncation happened."""
    content, truncated = budget(text, max_chars)
    if truncated:
        logger.info(f"[BUDGET] {kind.value} text truncated: {len(text)} → {max_chars} chars")
    return ExtractedText(content=content, source_kind=kind, truncated=truncated)
