"""Risk assessment data models."""

from enum import Enum
from typing import List

from pydantic import BaseModel


class FindingStatus(str, Enum):
    """Result of a single risk check."""

    PASSED = "passed"
    WARNING = "warning"


class RiskLevel(str, Enum):
    """Aggregate risk label, ordered by number of warnings."""

    MINIMAL = "Minimal"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class RiskFinding(BaseModel):
    """Named risk check outcome with a human-readable detail."""

    name: str
    detail: str
    status: FindingStatus


class RiskSummary(BaseModel):
    """Risk assessment of a pull request's changed files."""

    risk_level: RiskLevel
    total_added: int = 0
    total_deleted: int = 0
    total_changes: int = 0
    findings: List[RiskFinding] = []

    @property
    def warning_count(self) -> int:
        return sum(1 for finding in self.findings if finding.status == FindingStatus.WARNING)
