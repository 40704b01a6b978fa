"""
Rule Corpus — loads the methodology rule file evaluated on every request.

The corpus is a bundled JSON document (see ``rules/``) validated into frozen
models and cached for the life of the process. A different file can be
supplied through ``settings.rule_corpus_path``.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path

from carbo_audit.config import get_settings
from carbo_audit.models.schemas import RuleCorpus
from carbo_audit.utils.hashing import short_digest

logger = logging.getLogger(__name__)

BUNDLED_CORPUS_PATH = Path(__file__).resolve().parent.parent / "rules" / "jcm_ph_am004.json"


def load_rule_corpus(path: str | Path) -> RuleCorpus:
    """Read and validate a rule corpus file. Raises on missing or invalid files."""
    path = Path(path)
    raw = json.loads(path.read_text(encoding="utf-8"))
    corpus = RuleCorpus.model_validate(raw)
    logger.info(
        f"Loaded rule corpus {corpus.corpus_id} v{corpus.version} "
        f"({len(corpus.rules)} rules) from {path}"
    )
    return corpus


@lru_cache()
def get_rule_corpus() -> RuleCorpus:
    """Return the process-wide rule corpus (loaded once)."""
    override = get_settings().rule_corpus_path
    return load_rule_corpus(override or BUNDLED_CORPUS_PATH)


def corpus_fingerprint(corpus: RuleCorpus) -> str:
    """Version plus content hash, stored with each report for comparability."""
    return f"{corpus.version}:{short_digest(corpus.render())}"
