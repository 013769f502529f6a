"""
Unit tests for workspace API endpoints.
"""

import base64

import pytest
from unittest.mock import AsyncMock

# Skip tests if fastapi is not installed
pytest.importorskip("fastapi")

from fastapi.testclient import TestClient
from repodeck.main import app
from repodeck.api.dependencies import get_gateway, get_registry
from repodeck.models.api_response import GatewayResult
from repodeck.models.file_change import ChangedFileRecord
from repodeck.models.pull_request import PullRequestComment, PullRequestState, RealPullRequest
from repodeck.models.repository import Branch, NodeKind, RepoNode
from repodeck.services.pr_manager import (
    COMMENT_ADDED_MESSAGE,
    PLACEHOLDER_DISABLED_MESSAGE,
    SAME_BRANCH_MESSAGE,
)
from repodeck.services.workspace import WorkspaceRegistry


PR_5 = RealPullRequest(id=50, number=5, title="Add gadgets", author="octocat")


@pytest.fixture
def mock_gateway():
    """Mock GitHub gateway with a small acme/widgets repository."""
    gateway = AsyncMock()
    gateway.list_branches.return_value = GatewayResult.ok([Branch(name="main"), Branch(name="dev")])
    gateway.list_pull_requests.return_value = GatewayResult.ok([PR_5])
    gateway.list_directory.return_value = GatewayResult.ok([
        RepoNode(name="src", path="src", kind=NodeKind.DIRECTORY),
        RepoNode(name="README.md", path="README.md", kind=NodeKind.FILE),
    ])
    gateway.get_file_content.return_value = GatewayResult.ok(base64.b64encode(b"# Widgets").decode())
    gateway.list_issue_comments.return_value = GatewayResult.ok([])
    gateway.list_review_comments.return_value = GatewayResult.ok([])
    gateway.list_pull_request_files.return_value = GatewayResult.ok([
        ChangedFileRecord(filename="src/app.py", patch="@@ -1 +1 @@\n-a\n+b", additions=1, deletions=1),
    ])
    return gateway


@pytest.fixture
def registry():
    return WorkspaceRegistry()


@pytest.fixture
def client(mock_gateway, registry, monkeypatch):
    """Create test client with the gateway and registry overridden."""
    monkeypatch.setattr("repodeck.config.settings.review_min_loading_seconds", 0.0)
    app.dependency_overrides[get_gateway] = lambda: mock_gateway
    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def session_id(client):
    """Open a workspace on acme/widgets."""
    response = client.post(
        "/api/workspaces",
        json={"owner": "acme", "repo": "widgets"},
        headers={"Authorization": "Bearer gho_test"},
    )
    assert response.status_code == 200
    yield response.json()["session_id"]
    client.delete(f"/api/workspaces/{response.json()['session_id']}")


def test_open_workspace(client, session_id, registry):
    """Test opening a workspace loads branches and pull requests."""
    response = client.get(f"/api/workspaces/{session_id}")

    data = response.json()
    assert response.status_code == 200
    assert data["owner"] == "acme"
    assert data["branch"] == "main"
    assert data["signed_in"] is True
    assert data["branches"] == ["main", "dev"]
    assert data["pull_requests"]["items"][0]["number"] == 5
    assert len(registry) == 1


def test_open_workspace_without_token(client, mock_gateway):
    """Test that a signed-out workspace opens with the placeholder PR."""
    mock_gateway.list_pull_requests.return_value = GatewayResult.failed("Missing GitHub access token")

    response = client.post("/api/workspaces", json={"owner": "acme", "repo": "widgets"})

    data = response.json()
    assert response.status_code == 200
    assert data["signed_in"] is False
    assert data["pull_requests"]["items"][0]["kind"] == "placeholder"
    mock_gateway.list_pull_requests.assert_awaited_once_with(None, "acme", "widgets")


def test_unknown_session(client):
    """Test that unknown sessions are 404."""
    response = client.get("/api/workspaces/missing")

    assert response.status_code == 404


def test_tree_and_branch_switch(client, session_id, mock_gateway):
    """Test listing the tree, then switching branch."""
    tree = client.get(f"/api/workspaces/{session_id}/tree")
    assert [node["path"] for node in tree.json()] == ["src", "README.md"]

    switched = client.put(f"/api/workspaces/{session_id}/branch", json={"branch": "dev"})
    assert switched.json()["branch"] == "dev"

    client.get(f"/api/workspaces/{session_id}/tree", params={"path": "src"})
    mock_gateway.list_directory.assert_awaited_with("gho_test", "acme", "widgets", "src", "dev")


def test_branch_switch_reloads_branches(client, session_id, mock_gateway):
    """Test that switching branch refreshes the branch list and the compose head."""
    mock_gateway.list_branches.return_value = GatewayResult.ok(
        [Branch(name="main"), Branch(name="dev"), Branch(name="release")]
    )

    switched = client.put(f"/api/workspaces/{session_id}/branch", json={"branch": "dev"})

    data = switched.json()
    assert mock_gateway.list_branches.await_count == 2
    assert data["branches"] == ["main", "dev", "release"]
    assert data["pull_requests"]["draft"]["head"] == "dev"


def test_switch_to_same_branch_skips_reload(client, session_id, mock_gateway):
    """Test that re-selecting the active branch makes no extra call."""
    client.put(f"/api/workspaces/{session_id}/branch", json={"branch": "main"})

    assert mock_gateway.list_branches.await_count == 1


def test_open_file(client, session_id):
    """Test opening a markdown file."""
    response = client.post(f"/api/workspaces/{session_id}/files", json={"path": "README.md"})

    data = response.json()
    assert data["selected_path"] == "README.md"
    assert data["selected_file"]["view_kind"] == "markdown"
    assert data["selected_file"]["text"] == "# Widgets"


def test_create_pull_request_validation(client, session_id, mock_gateway):
    """Test that validation failures answer 200 with the message."""
    response = client.post(
        f"/api/workspaces/{session_id}/pulls",
        json={"title": "Same", "head": "main", "base": "main"},
    )

    data = response.json()
    assert response.status_code == 200
    assert data["success"] is False
    assert data["message"] == SAME_BRANCH_MESSAGE
    mock_gateway.create_pull_request.assert_not_awaited()


def test_compose_and_create_from_draft(client, session_id, mock_gateway):
    """Test filling the compose form and creating from its values."""
    mock_gateway.create_pull_request.return_value = GatewayResult.ok(PR_5)

    opened = client.post(f"/api/workspaces/{session_id}/pulls/compose")
    assert opened.json()["pull_requests"]["composing"] is True

    draft = client.put(
        f"/api/workspaces/{session_id}/pulls/draft",
        json={"title": "Add gadgets", "head": "dev"},
    )
    assert draft.json() == {"title": "Add gadgets", "body": "", "head": "dev", "base": "main"}

    created = client.post(f"/api/workspaces/{session_id}/pulls", json={"body": "Details"})

    data = created.json()
    assert data["success"] is True
    assert data["workspace"]["pull_requests"]["composing"] is False
    assert data["workspace"]["pull_requests"]["draft"]["title"] == ""
    mock_gateway.create_pull_request.assert_awaited_once_with(
        "gho_test", "acme", "widgets", "Add gadgets", "Details", "dev", "main"
    )


def test_compose_toggles_closed(client, session_id):
    """Test that a second toggle hides the compose form."""
    client.post(f"/api/workspaces/{session_id}/pulls/compose")
    closed = client.post(f"/api/workspaces/{session_id}/pulls/compose")

    assert closed.json()["pull_requests"]["composing"] is False


def test_begin_and_cancel_edit(client, session_id):
    """Test entering and leaving edit mode for a pull request."""
    began = client.post(f"/api/workspaces/{session_id}/pulls/5/edit")
    assert began.json()["success"] is True
    assert began.json()["workspace"]["pull_requests"]["editing_number"] == 5

    cancelled = client.delete(f"/api/workspaces/{session_id}/pulls/5/edit")
    assert cancelled.json()["pull_requests"]["editing_number"] is None


def test_begin_edit_unknown_pull_request(client, session_id):
    """Test that editing a PR number not in the list is 404."""
    response = client.post(f"/api/workspaces/{session_id}/pulls/42/edit")

    assert response.status_code == 404


def test_placeholder_edit_is_refused(client, mock_gateway):
    """Test that the placeholder cannot enter edit mode."""
    mock_gateway.list_pull_requests.return_value = GatewayResult.ok([])
    opened = client.post(
        "/api/workspaces",
        json={"owner": "acme", "repo": "widgets"},
        headers={"Authorization": "Bearer gho_test"},
    )
    session_id = opened.json()["session_id"]

    response = client.post(f"/api/workspaces/{session_id}/pulls/0/edit")

    data = response.json()
    assert data["success"] is False
    assert data["message"] == PLACEHOLDER_DISABLED_MESSAGE
    assert data["workspace"]["pull_requests"]["editing_number"] is None


def test_close_pull_request(client, session_id, mock_gateway):
    """Test closing a pull request."""
    mock_gateway.update_pull_request.return_value = GatewayResult.ok(PR_5)

    response = client.put(f"/api/workspaces/{session_id}/pulls/5/state", json={"state": "closed"})

    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Pull request closed."
    mock_gateway.update_pull_request.assert_awaited_once_with(
        "gho_test", "acme", "widgets", 5, state=PullRequestState.CLOSED
    )


def test_comments_toggle_and_add(client, session_id, mock_gateway):
    """Test expanding a comment panel and posting a comment."""
    mock_gateway.create_issue_comment.return_value = GatewayResult.ok(
        PullRequestComment(id="issue-1", body="Nice")
    )

    toggled = client.post(f"/api/workspaces/{session_id}/pulls/5/comments/toggle")
    assert toggled.json()["pull_requests"]["expanded"] == [5]

    added = client.post(f"/api/workspaces/{session_id}/pulls/5/comments", json={"body": "Nice"})
    assert added.json()["success"] is True
    assert added.json()["message"] == COMMENT_ADDED_MESSAGE
    mock_gateway.create_issue_comment.assert_awaited_once_with("gho_test", "acme", "widgets", 5, "Nice")

    collapsed = client.post(f"/api/workspaces/{session_id}/pulls/5/comments/toggle")
    assert collapsed.json()["pull_requests"]["expanded"] == []


def test_comments_for_unknown_pull_request(client, session_id):
    """Test that a PR number not in the list is 404."""
    response = client.get(f"/api/workspaces/{session_id}/pulls/42/comments")

    assert response.status_code == 404


def test_placeholder_update_is_refused(client, mock_gateway):
    """Test that placeholder edits answer with the disabled message."""
    mock_gateway.list_pull_requests.return_value = GatewayResult.ok([])
    opened = client.post(
        "/api/workspaces",
        json={"owner": "acme", "repo": "widgets"},
        headers={"Authorization": "Bearer gho_test"},
    )
    session_id = opened.json()["session_id"]

    response = client.patch(f"/api/workspaces/{session_id}/pulls/0", json={"title": "New"})

    assert response.json()["success"] is False
    assert response.json()["message"] == PLACEHOLDER_DISABLED_MESSAGE
    mock_gateway.update_pull_request.assert_not_awaited()


def test_review_flow(client, session_id, mock_gateway):
    """Test entering a review, reading a diff and submitting."""
    mock_gateway.submit_review.return_value = GatewayResult.ok({"id": 1})

    entered = client.post(f"/api/workspaces/{session_id}/pulls/5/review")
    review = entered.json()["workspace"]["review"]
    assert entered.json()["success"] is True
    assert review["status"] == "ready"
    assert review["risk"]["risk_level"] == "Minimal"

    diff = client.get(f"/api/workspaces/{session_id}/review/diff", params={"filename": "src/app.py"})
    assert [line["kind"] for line in diff.json()] == ["header", "deletion", "addition"]

    submitted = client.post(
        f"/api/workspaces/{session_id}/review/submit",
        json={"body": "LGTM", "event": "APPROVE"},
    )
    assert submitted.json()["message"] == "Review submitted successfully."

    exited = client.delete(f"/api/workspaces/{session_id}/review")
    assert exited.json()["review"]["status"] == "inactive"


def test_close_workspace(client, session_id, registry):
    """Test closing a session."""
    response = client.delete(f"/api/workspaces/{session_id}")

    assert response.status_code == 200
    assert len(registry) == 0
