from enum import Enum


class SourceKind(str, Enum):
    PDD = "PDD"
    CALCULATION = "CALCULATION"


class Severity(str, Enum):
    MAJOR = "major"
    MINOR = "minor"


class IssueCategory(str, Enum):
    CALCULATION = "calculation"
    PARAMETERS = "parameters"
    ELIGIBILITY = "eligibility"
    MONITORING = "monitoring"
    DOCUMENTATION = "documentation"
    GENERAL = "general"


class RuleStatus(str, Enum):
    FAIL = "FAIL"
    NOT_FOUND = "NOT FOUND"


class ReportStatus(str, Enum):
    COMPLETED = "completed"
