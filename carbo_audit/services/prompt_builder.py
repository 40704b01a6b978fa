"""
Prompt Builder — composes the evaluation request sent to the reasoning service.

The request is a pure function of (corpus, budgeted texts): identical inputs
give a byte-identical payload, so any variance between runs comes from the
reasoning service alone.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from carbo_audit.models.schemas import EvaluationRequest, ExtractedText, RuleCorpus

logger = logging.getLogger(__name__)

_PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"
_SYSTEM_PROMPT_PATH = _PROMPTS_DIR / "system_prompt.txt"
_EVALUATION_PROMPT_PATH = _PROMPTS_DIR / "evaluation_prompt.txt"


@lru_cache()
def _read_prompt(path: Path) -> str:
    return path.read_text(encoding="utf-8").strip()


def missing_calculation_notice(corpus: RuleCorpus) -> str:
    """Instruction used in place of the spreadsheet when none was uploaded."""
    rule = corpus.cross_document_rule
    if rule is None:
        return "NO CALCULATION SPREADSHEET PROVIDED."
    return (
        "NO CALCULATION SPREADSHEET PROVIDED - "
        f"mark Rule {rule.number} ({rule.title}) as NOT FOUND."
    )


def build_evaluation_request(
    corpus: RuleCorpus,
    pdd_text: ExtractedText,
    calculation_text: Optional[ExtractedText] = None,
) -> EvaluationRequest:
    """Assemble system instructions, rule corpus and document texts."""
    if calculation_text is not None and calculation_text.content:
        calculation_section = f"UPLOADED CALCULATION SPREADSHEET:\n{calculation_text.content}"
    else:
        calculation_section = missing_calculation_notice(corpus)
        calculation_text = None

    user_prompt = _read_prompt(_EVALUATION_PROMPT_PATH).format(
        rule_corpus=corpus.render(),
        pdd_text=pdd_text.content,
        calculation_section=calculation_section,
        rule_count=len(corpus.rules),
    )

    request = EvaluationRequest(
        instructions=_read_prompt(_SYSTEM_PROMPT_PATH),
        rules=corpus,
        pdd_text=pdd_text,
        calculation_text=calculation_text,
        user_prompt=user_prompt,
    )
    logger.debug(
        f"[PROMPT] Built request: system={len(request.instructions)} chars, "
        f"user={len(user_prompt)} chars, calculation={'yes' if calculation_text else 'no'}"
    )
    return request
