"""
Audit Pipeline — one linear pass per request:

    extract → budget → build request → call reasoning service
            → parse/validate → aggregate → persist → respond

No stage starts before the previous one finishes and nothing is shared
between requests except the read-only rule corpus. Collaborators are
injected so tests can replace the reasoning client or storage.
"""

from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Optional

from carbo_audit.config import Settings, get_settings
from carbo_audit.exceptions import InputMissingError
from carbo_audit.models.enums import SourceKind
from carbo_audit.models.schemas import AuditOutcome, ExtractedText, RuleCorpus, UploadedDocument
from carbo_audit.persistence.report_repository import ReportRepository
from carbo_audit.services.context_budget import budget_extracted
from carbo_audit.services.extraction_service import DEFAULT_EXTRACTORS, TextExtractor, extract_text
from carbo_audit.services.identity_service import IdentityService
from carbo_audit.services.llm_service import ReasoningClient
from carbo_audit.services.prompt_builder import build_evaluation_request
from carbo_audit.services.report_service import ReportService
from carbo_audit.services.response_parser import parse_evaluation
from carbo_audit.services.rule_corpus import corpus_fingerprint, get_rule_corpus

logger = logging.getLogger(__name__)


class AuditPipeline:

    def __init__(
        self,
        settings: Optional[Settings] = None,
        reasoning_client: Optional[ReasoningClient] = None,
        report_service: Optional[ReportService] = None,
        identity_service: Optional[IdentityService] = None,
        corpus: Optional[RuleCorpus] = None,
        extractors: Optional[dict[SourceKind, TextExtractor]] = None,
    ):
        self.settings = settings or get_settings()
        self.reasoning_client = reasoning_client or ReasoningClient(self.settings)
        self.report_service = report_service or ReportService(ReportRepository(self.settings))
        self.identity_service = identity_service or IdentityService(self.settings)
        self.corpus = corpus or get_rule_corpus()
        self.extractors = extractors or DEFAULT_EXTRACTORS

    def run(
        self,
        pdd: Optional[UploadedDocument],
        calculation: Optional[UploadedDocument] = None,
        authorization: Optional[str] = None,
    ) -> AuditOutcome:
        if pdd is None:
            raise InputMissingError("pdd")

        t0 = time.perf_counter()
        logger.info(f"Processing PDD: {pdd.declared_name} ({pdd.declared_size} bytes)")
        if calculation is not None:
            logger.info(f"Processing Calculation: {calculation.declared_name} ({calculation.declared_size} bytes)")

        # ── 1. Extract + budget ─────────────────────────────
        pdd_text = self._prepare(pdd, SourceKind.PDD, self.settings.max_pdd_chars)
        calculation_text: Optional[ExtractedText] = None
        if calculation is not None:
            calculation_text = self._prepare(
                calculation, SourceKind.CALCULATION, self.settings.max_calculation_chars
            )

        # ── 2. Build request ────────────────────────────────
        request = build_evaluation_request(self.corpus, pdd_text, calculation_text)

        # ── 3. Evaluate ─────────────────────────────────────
        raw_reply = self.reasoning_client.evaluate(request)

        # ── 4. Parse + aggregate ────────────────────────────
        report = parse_evaluation(raw_reply, self.corpus)
        summary = report.summary
        logger.info(
            f"Report '{report.project_name}': major={summary.major}, "
            f"minor={summary.minor}, compliant={summary.compliant}"
        )

        # ── 5. Persist (authenticated callers only) ─────────
        user_id = self.identity_service.resolve(authorization)
        report_id = self.report_service.persist(report, user_id, corpus_fingerprint(self.corpus))

        logger.info(f"Audit completed in {time.perf_counter() - t0:.2f}s (report_id={report_id})")
        return AuditOutcome(report_id=report_id, report=report)

    def _prepare(self, document: UploadedDocument, kind: SourceKind, max_chars: int) -> ExtractedText:
        text = extract_text(document.data, kind, self.extractors)
        return budget_extracted(text, kind, max_chars)


@lru_cache()
def get_report_service() -> ReportService:
    """Process-wide report service (the in-memory store must outlive requests)."""
    return ReportService(ReportRepository())


@lru_cache()
def get_pipeline() -> AuditPipeline:
    return AuditPipeline(report_service=get_report_service())
