"""
Risk scorer.

Classifies a pull request's changed files against a fixed rule table and
derives a four-level risk label from the number of warning findings. Each
rule is a name plus a function from the changed-file set to a finding, so new
rules are added as table entries.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Sequence

from repodeck.models.file_change import ChangedFileRecord
from repodeck.models.risk import FindingStatus, RiskFinding, RiskLevel, RiskSummary


SENSITIVE_PATH_PATTERN = re.compile(
    r"(\.env|auth|secret|token|key|\.github/workflows|dockerfile|nextauth|middleware"
    r"|package-lock\.json|pnpm-lock\.yaml|yarn\.lock)",
    re.IGNORECASE,
)

# Added or removed `key: value` line, key optionally quoted
PROPERTY_EDIT_PATTERN = re.compile(r'^[+-][ \t]*"?[A-Za-z0-9_.-]+"?[ \t]*:', re.MULTILINE)

ENV_PATTERN = re.compile(
    r"(?i:process\.env|NEXT_PUBLIC_)|^[+-][ \t]*[A-Z0-9_]+[ \t]*=",
    re.MULTILINE,
)

PROPERTY_EDIT_FILE_LIMIT = 3
CHURN_LIMIT = 600

# Indexed by warning count
RISK_LEVELS = (RiskLevel.MINIMAL, RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH)

NO_FILES_DETAIL = "No review files loaded."


def is_sensitive_path(filename: str) -> bool:
    return SENSITIVE_PATH_PATTERN.search(filename) is not None


def has_property_edits(record: ChangedFileRecord) -> bool:
    return PROPERTY_EDIT_PATTERN.search(record.patch or "") is not None


def has_env_changes(record: ChangedFileRecord) -> bool:
    return ENV_PATTERN.search(record.patch or "") is not None


def _status(is_warning: bool) -> FindingStatus:
    return FindingStatus.WARNING if is_warning else FindingStatus.PASSED


def check_sensitive_files(files: Sequence[ChangedFileRecord]) -> RiskFinding:
    sensitive = [record for record in files if is_sensitive_path(record.filename)]
    property_edits = [record for record in files if has_property_edits(record)]
    if sensitive:
        detail = (
            f"{len(sensitive)} sensitive file(s) changed; "
            f"{len(property_edits)} file(s) include property-like diff edits."
        )
    else:
        detail = "No sensitive file path changes detected."
    return RiskFinding(
        name="Sensitive files/properties",
        detail=detail,
        status=_status(bool(sensitive) or len(property_edits) > PROPERTY_EDIT_FILE_LIMIT),
    )


def check_environment_changes(files: Sequence[ChangedFileRecord]) -> RiskFinding:
    touched = [record for record in files if has_env_changes(record)]
    if touched:
        detail = f"{len(touched)} file(s) contain env-related additions/removals."
    else:
        detail = "No env additions/removals detected."
    return RiskFinding(name="Environment changes", detail=detail, status=_status(bool(touched)))


def check_churn(files: Sequence[ChangedFileRecord]) -> RiskFinding:
    added, deleted = _totals(files)
    return RiskFinding(
        name="Large diff / churn",
        detail=f"{added} additions, {deleted} deletions ({added + deleted} total).",
        status=_status(added + deleted > CHURN_LIMIT),
    )


@dataclass(frozen=True)
class RiskRule:
    """One named check over the whole changed-file set."""

    name: str
    evaluate: Callable[[Sequence[ChangedFileRecord]], RiskFinding]


RISK_RULES: List[RiskRule] = [
    RiskRule("Sensitive files/properties", check_sensitive_files),
    RiskRule("Environment changes", check_environment_changes),
    RiskRule("Large diff / churn", check_churn),
]


def _totals(files: Sequence[ChangedFileRecord]):
    added = sum(record.additions or 0 for record in files)
    deleted = sum(record.deletions or 0 for record in files)
    return added, deleted


def risk_level_for(warning_count: int) -> RiskLevel:
    return RISK_LEVELS[min(max(warning_count, 0), len(RISK_LEVELS) - 1)]


def score_changes(files: Sequence[ChangedFileRecord], rules: Sequence[RiskRule] = RISK_RULES) -> RiskSummary:
    """
    Score a pull request's changed files.

    Args:
        files: Changed-file records of the pull request
        rules: Rule table to apply

    Returns:
        RiskSummary with one finding per rule
    """
    added, deleted = _totals(files)
    findings = [rule.evaluate(files) for rule in rules]
    warning_count = sum(1 for finding in findings if finding.status == FindingStatus.WARNING)
    return RiskSummary(
        risk_level=risk_level_for(warning_count),
        total_added=added,
        total_deleted=deleted,
        total_changes=added + deleted,
        findings=findings,
    )


def empty_summary(rules: Sequence[RiskRule] = RISK_RULES) -> RiskSummary:
    """Summary shown when no review files are loaded."""
    return RiskSummary(
        risk_level=RiskLevel.MINIMAL,
        findings=[
            RiskFinding(name=rule.name, detail=NO_FILES_DETAIL, status=FindingStatus.PASSED)
            for rule in rules
        ],
    )
