"""
Data schemas for the audit pipeline.
Each schema represents a clearly-bounded data object produced by one stage:
upload → extracted text → evaluation request → report.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .enums import IssueCategory, RuleStatus, Severity, SourceKind


class CamelModel(BaseModel):
    """Base for client-facing objects: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Intake ───────────────────────────────────────────────


class UploadedDocument(BaseModel):
    """Raw upload as received by the request; discarded after extraction."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    declared_name: str = ""
    declared_size: int = 0


class ExtractedText(BaseModel):
    """Best-effort text recovered from one uploaded document."""
    model_config = ConfigDict(frozen=True)

    content: str
    source_kind: SourceKind
    truncated: bool = False


# ── Rule corpus ──────────────────────────────────────────


class Rule(BaseModel):
    model_config = ConfigDict(frozen=True)

    number: int = Field(ge=1)
    title: str = Field(min_length=1)
    statement: str = Field(min_length=1)
    requires_calculation: bool = False  # rule can only be checked against the spreadsheet


class RuleCorpus(BaseModel):
    """
    Immutable, versioned list of methodology rules.
    Changing any wording is a breaking change for report comparability,
    so the version travels with every stored report.
    """
    model_config = ConfigDict(frozen=True)

    corpus_id: str = Field(min_length=1)
    version: str = Field(min_length=1)
    title: str = ""
    rules: tuple[Rule, ...]

    @model_validator(mode="after")
    def _check_numbering(self) -> "RuleCorpus":
        numbers = [r.number for r in self.rules]
        if not numbers:
            raise ValueError("rule corpus is empty")
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError(f"rule numbers must run 1..{len(numbers)} in order, got {numbers}")
        if sum(1 for r in self.rules if r.requires_calculation) > 1:
            raise ValueError("at most one rule may require the calculation document")
        return self

    @property
    def rule_numbers(self) -> frozenset[int]:
        return frozenset(r.number for r in self.rules)

    def get(self, number: int) -> Optional[Rule]:
        if 1 <= number <= len(self.rules):
            return self.rules[number - 1]
        return None

    @property
    def cross_document_rule(self) -> Optional[Rule]:
        return next((r for r in self.rules if r.requires_calculation), None)

    def render(self) -> str:
        """Render the corpus as the METRIC FILE block sent to the reasoning service."""
        header = f"METRIC FILE: {self.corpus_id}"
        if self.title:
            header += f" — {self.title}"
        blocks = [header]
        for rule in self.rules:
            blocks.append(f"RULE {rule.number}: {rule.title}\n{rule.statement}")
        return "\n\n".join(blocks)


# ── Evaluation request ───────────────────────────────────


class EvaluationRequest(BaseModel):
    """Complete prompt payload for one evaluation; built fresh per request."""
    model_config = ConfigDict(frozen=True)

    instructions: str
    rules: RuleCorpus
    pdd_text: ExtractedText
    calculation_text: Optional[ExtractedText] = None
    user_prompt: str

    def messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.instructions},
            {"role": "user", "content": self.user_prompt},
        ]


# ── Report ───────────────────────────────────────────────


CATEGORY_LABELS: dict[IssueCategory, str] = {
    IssueCategory.CALCULATION: "Calculation Accuracy",
    IssueCategory.PARAMETERS: "Parameter Compliance",
    IssueCategory.ELIGIBILITY: "Eligibility Criteria",
    IssueCategory.MONITORING: "Monitoring Plan",
    IssueCategory.DOCUMENTATION: "Documentation",
    IssueCategory.GENERAL: "General",
}


class Issue(CamelModel):
    """A rule the evaluator flagged, either failed with evidence or not found."""
    severity: Severity
    category: IssueCategory = IssueCategory.GENERAL
    title: str = Field(min_length=1)
    section: Optional[str] = None
    description: str = ""
    suggested_fix: Optional[str] = None
    status: Optional[RuleStatus] = None

    @model_validator(mode="after")
    def _major_requires_failure(self) -> "Issue":
        if self.severity == Severity.MAJOR and self.status == RuleStatus.NOT_FOUND:
            raise ValueError("a major issue must be a demonstrated FAIL, not NOT FOUND")
        return self


class CompliantRule(CamelModel):
    rule_number: int = Field(ge=1)
    title: str = ""
    evidence: str

    @field_validator("evidence")
    @classmethod
    def _evidence_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("compliant rule requires literal evidence text")
        return value


class ReportSummary(BaseModel):
    major: int = 0
    minor: int = 0
    compliant: int = 0


class CategoryGroup(CamelModel):
    id: IssueCategory
    name: str
    issues: list[Issue] = []
    major: int = 0
    minor: int = 0


class AuditReport(CamelModel):
    """
    Validated compliance report.
    ``summary`` and ``categories`` are always derived from the issue and
    compliant-rule lists; they are never accepted as input.
    """
    project_name: str = "Unknown Project"
    issues: list[Issue] = []
    compliant_rules: list[CompliantRule] = []
    overall_summary: str = ""

    @computed_field
    @property
    def summary(self) -> ReportSummary:
        return ReportSummary(
            major=sum(1 for i in self.issues if i.severity == Severity.MAJOR),
            minor=sum(1 for i in self.issues if i.severity == Severity.MINOR),
            compliant=len(self.compliant_rules),
        )

    @computed_field
    @property
    def categories(self) -> list[CategoryGroup]:
        groups: list[CategoryGroup] = []
        for category, label in CATEGORY_LABELS.items():
            members = [i for i in self.issues if i.category == category]
            if not members:
                continue
            groups.append(
                CategoryGroup(
                    id=category,
                    name=label,
                    issues=members,
                    major=sum(1 for i in members if i.severity == Severity.MAJOR),
                    minor=sum(1 for i in members if i.severity == Severity.MINOR),
                )
            )
        return groups


class AuditOutcome(CamelModel):
    """Successful pipeline result returned to the HTTP layer."""
    report_id: Optional[str] = None
    report: AuditReport
