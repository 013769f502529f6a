"""Business logic services package."""

from repodeck.services.github_gateway import (
    GitHubGateway,
    get_github_gateway,
    close_github_gateway,
)
from repodeck.services.tree_loader import TreeCache, TreeLoader
from repodeck.services.file_viewer import FileViewer
from repodeck.services.pr_manager import CommentRefresher, PullRequestManager
from repodeck.services.risk_scorer import RISK_RULES, RiskRule, score_changes
from repodeck.services.review_controller import ReviewController
from repodeck.services.workspace import (
    RepositoryWorkspace,
    WorkspaceNotFoundError,
    WorkspaceRegistry,
    get_workspace_registry,
)

__all__ = [
    'GitHubGateway',
    'get_github_gateway',
    'close_github_gateway',
    'TreeCache',
    'TreeLoader',
    'FileViewer',
    'CommentRefresher',
    'PullRequestManager',
    'RISK_RULES',
    'RiskRule',
    'score_changes',
    'ReviewController',
    'RepositoryWorkspace',
    'WorkspaceNotFoundError',
    'WorkspaceRegistry',
    'get_workspace_registry',
]
