"""
Carbo Audit — Main Entry Point

Audit local files directly (CLI, anonymous, nothing stored):
    python -m carbo_audit path/to/pdd.pdf [path/to/calculation.xlsx]

Run as an API server (for the frontend):
    python -m carbo_audit --serve
    # or: uvicorn carbo_audit.api:app --reload --port 8000

Or import and run programmatically:
    from carbo_audit.main import run
    outcome = run("path/to/pdd.pdf")
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from carbo_audit.config import get_settings
from carbo_audit.exceptions import AuditError
from carbo_audit.models.schemas import AuditOutcome, UploadedDocument
from carbo_audit.orchestration.audit_pipeline import AuditPipeline
from carbo_audit.utils.logger import setup_logging


def _load(path: str) -> UploadedDocument:
    file_path = Path(path)
    data = file_path.read_bytes()
    return UploadedDocument(data=data, declared_name=file_path.name, declared_size=len(data))


def run(pdd_path: str, calculation_path: Optional[str] = None) -> AuditOutcome:
    """Run the audit pipeline on local files and return the outcome."""
    setup_logging(get_settings().log_level)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("  CARBO AUDIT — JCM AWD COMPLIANCE CHECK")
    logger.info(f"  Started: {datetime.now(timezone.utc).isoformat()}")
    logger.info("=" * 60)

    pdd = _load(pdd_path)
    calculation = _load(calculation_path) if calculation_path else None
    outcome = AuditPipeline().run(pdd, calculation)

    _print_summary(outcome)
    return outcome


def _print_summary(outcome: AuditOutcome) -> None:
    """Print a human-readable summary of the audit result."""
    logger = logging.getLogger(__name__)
    report = outcome.report
    summary = report.summary

    logger.info("-" * 60)
    logger.info(f"  Project:        {report.project_name}")
    logger.info(f"  Major issues:   {summary.major}")
    logger.info(f"  Minor issues:   {summary.minor}")
    logger.info(f"  Compliant:      {summary.compliant}")
    logger.info("-" * 60)

    for group in report.categories:
        logger.info(f"  {group.name} ({group.major} major / {group.minor} minor)")
        for issue in group.issues:
            logger.info(f"    [{issue.severity.value.upper()}] {issue.title} — {issue.section or 'General'}")

    for rule in report.compliant_rules:
        logger.info(f"  ✔ Rule {rule.rule_number}: {rule.title}")

    if report.overall_summary:
        logger.info(f"\n  {report.overall_summary}")


def serve(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Start the FastAPI server."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)
    logger.info(f"Starting API server on {host}:{port}")
    uvicorn.run("carbo_audit.api:app", host=host, port=port, reload=settings.debug)


def cli(argv: list[str]) -> int:
    if "--serve" in argv:
        serve()
        return 0
    if not argv:
        print(__doc__)
        return 2
    try:
        run(argv[0], argv[1] if len(argv) > 1 else None)
    except AuditError as exc:
        logging.getLogger(__name__).error(f"Audit failed ({exc.code}): {exc.message}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(cli(sys.argv[1:]))
