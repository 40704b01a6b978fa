"""
Response Parser — turns the reasoning service's raw reply into a report.

The reply is untrusted text. Parsing steps:
  1. strip an optional ```json fence
  2. keep the span from the first "{" to the last "}"
  3. json-decode (failure → MalformedEvaluationError, never retried)
  4. repair/validate each issue and compliant rule against the schema,
     dropping entries that cannot be repaired
Counts are not read from the reply; AuditReport derives them.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from carbo_audit.exceptions import MalformedEvaluationError
from carbo_audit.models.enums import IssueCategory, RuleStatus, Severity
from carbo_audit.models.schemas import AuditReport, CompliantRule, Issue, RuleCorpus

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_RULE_NUMBER_RE = re.compile(r"\d+")

UNKNOWN_PROJECT = "Unknown Project"
_RAW_LOG_CHARS = 500


def extract_json_span(raw_text: str) -> str:
    """Strip a code fence if present, then bound by the first '{' and last '}'."""
    text = raw_text
    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1)
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1:
        text = text[start:end + 1]
    return text


def decode_payload(raw_text: str) -> dict[str, Any]:
    candidate = extract_json_span(raw_text)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as exc:
        logger.error(f"[PARSE] Failed to parse AI response: {raw_text[:_RAW_LOG_CHARS]}")
        raise MalformedEvaluationError(f"Invalid JSON in evaluation: {exc}", raw_reply=raw_text) from exc
    if not isinstance(data, dict):
        logger.error(f"[PARSE] AI response is not a JSON object: {raw_text[:_RAW_LOG_CHARS]}")
        raise MalformedEvaluationError("Evaluation payload is not a JSON object", raw_reply=raw_text)
    return data


def parse_evaluation(raw_text: str, corpus: RuleCorpus) -> AuditReport:
    """Decode, repair and validate a raw reply into an AuditReport."""
    data = decode_payload(raw_text)

    issues = _build_issues(_as_list(data.get("issues"), "issues"))
    compliant = _build_compliant_rules(_as_list(data.get("compliantRules"), "compliantRules"), corpus)

    report = AuditReport(
        project_name=_clean_str(data.get("projectName")) or UNKNOWN_PROJECT,
        issues=issues,
        compliant_rules=compliant,
        overall_summary=_clean_str(data.get("summary")) or "",
    )
    logger.info(
        f"[PARSE] Parsed report for '{report.project_name}': "
        f"{len(issues)} issues, {len(compliant)} compliant rules"
    )
    return report


# ── Repair helpers ───────────────────────────────────────


def _as_list(value: Any, field: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning(f"[PARSE] '{field}' is {type(value).__name__}, expected list — treating as empty")
        return []
    return value


def _clean_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _normalize_status(value: Any) -> RuleStatus | None:
    text = _clean_str(value)
    if not text:
        return None
    key = text.upper().replace("_", " ")
    if key == "FAIL":
        return RuleStatus.FAIL
    if key == "NOT FOUND":
        return RuleStatus.NOT_FOUND
    return None


def _normalize_severity(value: Any, status: RuleStatus | None) -> Severity:
    text = (_clean_str(value) or "").lower()
    if text in (Severity.MAJOR.value, Severity.MINOR.value):
        severity = Severity(text)
    elif status == RuleStatus.FAIL:
        severity = Severity.MAJOR
    else:
        severity = Severity.MINOR
    # A rule that was not found cannot be a demonstrated failure
    if severity == Severity.MAJOR and status == RuleStatus.NOT_FOUND:
        severity = Severity.MINOR
    return severity


def _normalize_category(value: Any) -> IssueCategory:
    text = (_clean_str(value) or "").lower()
    try:
        return IssueCategory(text)
    except ValueError:
        return IssueCategory.GENERAL


def _build_issues(raw_issues: list[Any]) -> list[Issue]:
    issues: list[Issue] = []
    for index, item in enumerate(raw_issues):
        if not isinstance(item, dict):
            logger.warning(f"[PARSE] Dropping issue #{index}: not an object")
            continue
        status = _normalize_status(item.get("status"))
        try:
            issues.append(
                Issue(
                    severity=_normalize_severity(item.get("severity"), status),
                    category=_normalize_category(item.get("category")),
                    title=_clean_str(item.get("title")) or "Untitled issue",
                    section=_clean_str(item.get("section")),
                    description=_clean_str(item.get("description")) or "",
                    suggested_fix=_clean_str(item.get("suggestedFix")),
                    status=status,
                )
            )
        except ValidationError as exc:
            logger.warning(f"[PARSE] Dropping issue #{index}: {exc.error_count()} validation errors")
    return issues


def _coerce_rule_number(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        match = _RULE_NUMBER_RE.search(value)
        if match:
            return int(match.group(0))
    return None


def _build_compliant_rules(raw_rules: list[Any], corpus: RuleCorpus) -> list[CompliantRule]:
    compliant: list[CompliantRule] = []
    for index, item in enumerate(raw_rules):
        if not isinstance(item, dict):
            logger.warning(f"[PARSE] Dropping compliant rule #{index}: not an object")
            continue
        number = _coerce_rule_number(item.get("ruleNumber"))
        rule = corpus.get(number) if number is not None else None
        if rule is None:
            logger.warning(f"[PARSE] Dropping compliant rule #{index}: unknown rule number {item.get('ruleNumber')!r}")
            continue
        try:
            compliant.append(
                CompliantRule(
                    rule_number=rule.number,
                    title=_clean_str(item.get("title")) or rule.title,
                    evidence=_clean_str(item.get("evidence")) or "",
                )
            )
        except ValidationError:
            logger.warning(f"[PARSE] Dropping compliant rule {rule.number}: no evidence quoted")
    return compliant
