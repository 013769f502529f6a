"""Data models for the repository workspace service."""

from .api_response import ActionResult, GatewayResult, OperationState, OperationStatus
from .file_change import ChangedFileRecord, DiffLine, DiffLineKind
from .file_view import FileViewKind, SelectedFile
from .pull_request import (
    PLACEHOLDER_PR_ID,
    PLACEHOLDER_PR_NUMBER,
    CommentOrigin,
    ListStatus,
    PlaceholderPullRequest,
    PullRequestAction,
    PullRequestComment,
    PullRequestDraft,
    PullRequestItem,
    PullRequestState,
    RealPullRequest,
    ReviewEvent,
)
from .repository import (
    ROOT_PATH,
    Branch,
    NodeKind,
    RepoNode,
    RepositoryContext,
    RepositorySummary,
)
from .review import ReviewStatus
from .risk import FindingStatus, RiskFinding, RiskLevel, RiskSummary
from .workspace import (
    ActionResponse,
    OperationEntry,
    PullRequestPanelSnapshot,
    ReviewSnapshot,
    WorkspaceSnapshot,
)

__all__ = [
    # Repository models
    "ROOT_PATH",
    "Branch",
    "NodeKind",
    "RepoNode",
    "RepositoryContext",
    "RepositorySummary",
    # File viewer models
    "FileViewKind",
    "SelectedFile",
    # Pull request models
    "PLACEHOLDER_PR_ID",
    "PLACEHOLDER_PR_NUMBER",
    "CommentOrigin",
    "ListStatus",
    "PlaceholderPullRequest",
    "PullRequestAction",
    "PullRequestComment",
    "PullRequestDraft",
    "PullRequestItem",
    "PullRequestState",
    "RealPullRequest",
    "ReviewEvent",
    # File change models
    "ChangedFileRecord",
    "DiffLine",
    "DiffLineKind",
    # Review models
    "ReviewStatus",
    # Risk models
    "FindingStatus",
    "RiskFinding",
    "RiskLevel",
    "RiskSummary",
    # Outcome models
    "ActionResult",
    "GatewayResult",
    "OperationState",
    "OperationStatus",
    # Snapshot models
    "ActionResponse",
    "OperationEntry",
    "PullRequestPanelSnapshot",
    "ReviewSnapshot",
    "WorkspaceSnapshot",
]
