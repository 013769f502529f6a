"""
Unit tests for the risk scorer.
"""

import pytest

from repodeck.models.file_change import ChangedFileRecord
from repodeck.models.risk import FindingStatus, RiskFinding, RiskLevel
from repodeck.services.risk_scorer import (
    NO_FILES_DETAIL,
    RISK_RULES,
    RiskRule,
    check_churn,
    check_environment_changes,
    check_sensitive_files,
    empty_summary,
    has_env_changes,
    has_property_edits,
    is_sensitive_path,
    risk_level_for,
    score_changes,
)


def record(filename, patch=None, additions=0, deletions=0):
    return ChangedFileRecord(
        filename=filename,
        patch=patch,
        additions=additions,
        deletions=deletions,
        changes=additions + deletions,
    )


def statuses(summary):
    return [finding.status for finding in summary.findings]


@pytest.mark.parametrize("filename", [
    ".env.production",
    "src/auth/session.py",
    "config/SECRETS.yml",
    ".github/workflows/ci.yml",
    "Dockerfile",
    "yarn.lock",
    "web/middleware.ts",
])
def test_sensitive_paths(filename):
    """Test paths flagged as sensitive."""
    assert is_sensitive_path(filename)


@pytest.mark.parametrize("filename", ["README.md", "src/app.py", "docs/guide.md"])
def test_ordinary_paths(filename):
    """Test paths not flagged as sensitive."""
    assert not is_sensitive_path(filename)


def test_property_edit_detection():
    """Test added or removed `key: value` lines."""
    assert has_property_edits(record("a.json", '+  "name": "widgets"'))
    assert has_property_edits(record("a.yml", "-timeout: 30"))
    assert not has_property_edits(record("a.py", " context: unchanged"))
    assert not has_property_edits(record("a.bin"))


def test_env_change_detection():
    """Test env-like assignments and references."""
    assert has_env_changes(record("a.env", "+ API_KEY=xyz"))
    assert has_env_changes(record("a.js", "+const url = process.env.API_URL"))
    assert has_env_changes(record("a.ts", "+  const id = NEXT_PUBLIC_ID"))
    assert not has_env_changes(record("a.py", "+value = 1"))
    assert not has_env_changes(record("a.py", " API_KEY=unchanged"))


def test_lowercase_assignment_is_not_env_change():
    """Test that ordinary lowercase assignments are not flagged."""
    patch = "@@ -1,2 +1,3 @@\n+value = 1\n+retries=3\n-    timeout = 30"

    assert not has_env_changes(record("settings.py", patch))


def test_env_match_stays_on_one_line():
    """Test that an empty added line does not pair with a following context assignment."""
    patch = "@@ -1,2 +1,3 @@\n+\n API_KEY=unchanged"

    assert not has_env_changes(record("a.env", patch))


@pytest.mark.parametrize("count,level", [
    (0, RiskLevel.MINIMAL),
    (1, RiskLevel.LOW),
    (2, RiskLevel.MEDIUM),
    (3, RiskLevel.HIGH),
    (5, RiskLevel.HIGH),
])
def test_risk_level_for(count, level):
    """Test the warning count to label mapping."""
    assert risk_level_for(count) == level


def test_clean_change_is_minimal():
    """Test that an ordinary small change passes every rule."""
    summary = score_changes([record("README.md", "+Some docs", additions=1)])

    assert summary.risk_level == RiskLevel.MINIMAL
    assert statuses(summary) == [FindingStatus.PASSED] * 3
    assert summary.findings[0].detail == "No sensitive file path changes detected."
    assert summary.findings[1].detail == "No env additions/removals detected."


def test_env_production_scenario_is_medium():
    """Test the .env.production + README.md review scenario."""
    summary = score_changes([
        record(".env.production", "+ API_KEY=xyz", additions=1),
        record("README.md", "+Updated instructions", additions=3, deletions=1),
    ])

    assert statuses(summary) == [FindingStatus.WARNING, FindingStatus.WARNING, FindingStatus.PASSED]
    assert summary.risk_level == RiskLevel.MEDIUM
    assert summary.warning_count == 2
    assert summary.total_added == 4
    assert summary.total_deleted == 1
    assert summary.total_changes == 5


def test_churn_threshold():
    """Test that exactly 600 changed lines pass and 601 warn."""
    at_limit = check_churn([record("a.py", additions=400, deletions=200)])
    over_limit = check_churn([record("a.py", additions=400), record("b.py", deletions=201)])

    assert at_limit.status == FindingStatus.PASSED
    assert at_limit.detail == "400 additions, 200 deletions (600 total)."
    assert over_limit.status == FindingStatus.WARNING


def test_churn_alone_is_low():
    """Test a large but otherwise harmless change."""
    summary = score_changes([record("src/app.py", "+x = 1", additions=700)])

    assert summary.risk_level == RiskLevel.LOW


def test_all_rules_warning_is_high():
    """Test a change tripping every rule."""
    summary = score_changes([
        record("config/.env", "+SECRET_TOKEN=abc", additions=500),
        record("src/app.py", "-old", deletions=200),
    ])

    assert summary.risk_level == RiskLevel.HIGH
    assert summary.warning_count == 3


def test_property_edits_need_more_than_three_files():
    """Test the property-edit threshold on non-sensitive files."""
    files = [record(f"conf/app{i}.json", '+"port": 80') for i in range(3)]

    assert check_sensitive_files(files).status == FindingStatus.PASSED
    files.append(record("conf/app3.json", '+"port": 81'))
    assert check_sensitive_files(files).status == FindingStatus.WARNING


def test_sensitive_detail_counts_property_edits():
    """Test the sensitive-file detail text."""
    finding = check_sensitive_files([
        record("auth/config.yml", "+issuer: acme"),
        record("README.md", "+text"),
    ])

    assert finding.status == FindingStatus.WARNING
    assert finding.detail == "1 sensitive file(s) changed; 1 file(s) include property-like diff edits."


def test_environment_detail_counts_files():
    """Test the env finding detail text."""
    finding = check_environment_changes([record("a.js", "+process.env.X"), record("b.js", "+NEXT_PUBLIC_Y")])

    assert finding.detail == "2 file(s) contain env-related additions/removals."


def test_empty_summary():
    """Test the summary shown without review files."""
    summary = empty_summary()

    assert summary.risk_level == RiskLevel.MINIMAL
    assert summary.total_changes == 0
    assert [finding.name for finding in summary.findings] == [rule.name for rule in RISK_RULES]
    assert all(finding.detail == NO_FILES_DETAIL for finding in summary.findings)


def test_custom_rule_table():
    """Test that extra rules are additive table entries."""
    always_warn = RiskRule(
        "Always",
        lambda files: RiskFinding(name="Always", detail="", status=FindingStatus.WARNING),
    )

    summary = score_changes([record("README.md")], rules=[*RISK_RULES, always_warn])

    assert len(summary.findings) == 4
    assert summary.risk_level == RiskLevel.LOW
