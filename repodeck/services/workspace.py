"""
Repository workspace.

One workspace holds the tree loader, file viewer, pull request manager and
review controller of a single (token, owner, repo) for a single client
session, together with the active branch.
"""

import asyncio
import uuid
from typing import Dict, List, Optional

from repodeck.models.api_response import ActionResult
from repodeck.models.file_view import SelectedFile
from repodeck.models.pull_request import PLACEHOLDER_PR_NUMBER
from repodeck.models.repository import ROOT_PATH, RepoNode, RepositoryContext
from repodeck.models.workspace import (
    OperationEntry,
    PullRequestPanelSnapshot,
    ReviewSnapshot,
    WorkspaceSnapshot,
)
from repodeck.services.file_viewer import FileViewer
from repodeck.services.github_gateway import GitHubGateway
from repodeck.services.pr_manager import PLACEHOLDER_DISABLED_MESSAGE, PullRequestManager
from repodeck.services.review_controller import ReviewController
from repodeck.services.tree_loader import TreeLoader
from repodeck.utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_BASE_CANDIDATES = ("main", "master")


def pick_default_head(branches: List[str], current_head: str, active_branch: str) -> str:
    """Keep the chosen head branch when it exists, else fall back to the active branch."""
    return current_head if current_head in branches else active_branch


def pick_default_base(branches: List[str], current_base: str) -> str:
    """
    Choose the base branch for the compose form.

    Keeps the current choice when it exists, then prefers main, then master,
    then the first branch listed.
    """
    if current_base in branches:
        return current_base
    for candidate in DEFAULT_BASE_CANDIDATES:
        if candidate in branches:
            return candidate
    return branches[0] if branches else DEFAULT_BASE_CANDIDATES[0]


class RepositoryWorkspace:
    """Session aggregate for one repository."""

    def __init__(
        self,
        gateway: GitHubGateway,
        context: RepositoryContext,
        branch: str = "main",
        refresh_interval_seconds: Optional[float] = None,
        min_review_loading_seconds: Optional[float] = None,
    ):
        """
        Initialize the workspace.

        Args:
            gateway: GitHub gateway shared by all components
            context: Token and repository coordinates
            branch: Initially active branch
            refresh_interval_seconds: Silent comment refresh period
            min_review_loading_seconds: Review loading floor
        """
        self.gateway = gateway
        self.context = context
        self.tree = TreeLoader(gateway, context, branch)
        self.file_viewer = FileViewer(gateway)
        self.pull_requests = PullRequestManager(gateway, context, refresh_interval_seconds)
        self.review = ReviewController(
            gateway, self.file_viewer, self.pull_requests, min_review_loading_seconds
        )
        self.branches: List[str] = []
        self.pull_requests.draft.head = branch
        self.logger = logger.with_context(owner=context.owner, repo=context.repo)

    @property
    def branch(self) -> str:
        return self.tree.branch

    async def start(self) -> None:
        """Initial load: branch list and pull request list."""
        await asyncio.gather(self.load_branches(), self.pull_requests.refresh())

    async def close(self) -> None:
        await self.pull_requests.close()

    def switch_branch(self, branch: str) -> bool:
        """
        Make `branch` active.

        Flushes the tree cache, clears the file selection, leaves review mode
        and points the compose form's head at the new branch.

        Returns:
            True when the branch changed
        """
        if not self.tree.switch_branch(branch):
            return False
        self.file_viewer.clear()
        self.review.exit()
        self.pull_requests.draft.head = branch
        self.logger.info(f"Active branch is now {branch}", extra={"branch": branch})
        return True

    async def set_context(self, context: RepositoryContext) -> None:
        """Rebind every component to another token/repository and reload."""
        self.context = context
        self.logger = logger.with_context(owner=context.owner, repo=context.repo)
        self.file_viewer.clear()
        self.review.exit()
        self.tree.set_context(context)
        self.pull_requests.set_context(context)
        self.branches = []
        await self.start()

    async def load_branches(self) -> List[str]:
        """
        Load the branch list and settle the compose form's head and base.

        A failed load leaves the list empty.
        """
        result = await self.gateway.list_branches(self.context.token, self.context.owner, self.context.repo)
        if not result.success:
            self.branches = []
            return self.branches

        self.branches = [branch.name for branch in result.data if branch.name]
        draft = self.pull_requests.draft
        draft.head = pick_default_head(self.branches, draft.head, self.branch)
        draft.base = pick_default_base(self.branches, draft.base)
        return self.branches

    async def expand(self, path: str = ROOT_PATH) -> List[RepoNode]:
        """List a directory on the active branch."""
        return await self.tree.list_children(self.branch, path)

    async def open_file(self, path: str) -> SelectedFile:
        return await self.review.open_file(self.branch, path)

    async def enter_review(self, number: int) -> ActionResult:
        pr = self.pull_requests.find(number)
        if pr is None:
            if number == PLACEHOLDER_PR_NUMBER:
                return ActionResult(success=False, message=PLACEHOLDER_DISABLED_MESSAGE)
            return ActionResult(success=False, message=f"Pull request #{number} is not in the list.")
        return await self.review.enter(pr)

    def snapshot(self, session_id: Optional[str] = None) -> WorkspaceSnapshot:
        manager = self.pull_requests
        review = self.review
        return WorkspaceSnapshot(
            session_id=session_id,
            owner=self.context.owner,
            repo=self.context.repo,
            branch=self.branch,
            signed_in=bool(self.context.token),
            branches=list(self.branches),
            selected_path=self.file_viewer.selected_path,
            selected_file=self.file_viewer.selected,
            file_loading=self.file_viewer.loading,
            pull_requests=PullRequestPanelSnapshot(
                items=manager.displayed_items,
                list_status=manager.list_status,
                operations=[
                    OperationEntry(action=action, number=number, status=state.status, message=state.message)
                    for (action, number), state in manager.operations.items()
                ],
                message=manager.message,
                draft=manager.draft,
                composing=manager.composing,
                editing_number=manager.editing_number,
                expanded=sorted(manager.expanded),
                comments=manager.comments,
            ),
            review=ReviewSnapshot(
                status=review.status,
                pr_number=review.pr_number,
                pr_title=review.pr_title,
                files=review.files,
                message=review.message,
                body=review.body,
                event=review.event,
                submitting=review.submitting,
                risk=review.risk_summary,
            ),
        )


class WorkspaceNotFoundError(Exception):
    """Raised when a workspace session id is unknown."""
    pass


class WorkspaceRegistry:
    """In-memory workspace sessions, one per client tab."""

    def __init__(self):
        self._workspaces: Dict[str, RepositoryWorkspace] = {}

    def add(self, workspace: RepositoryWorkspace) -> str:
        session_id = uuid.uuid4().hex
        self._workspaces[session_id] = workspace
        logger.info(
            f"Workspace opened for {workspace.context.full_name}",
            extra={"session_id": session_id, "branch": workspace.branch},
        )
        return session_id

    def get(self, session_id: str) -> RepositoryWorkspace:
        try:
            return self._workspaces[session_id]
        except KeyError:
            raise WorkspaceNotFoundError(f"Workspace {session_id} not found") from None

    async def remove(self, session_id: str) -> None:
        workspace = self.get(session_id)
        del self._workspaces[session_id]
        await workspace.close()
        logger.info("Workspace closed", extra={"session_id": session_id})

    async def close_all(self) -> None:
        workspaces = list(self._workspaces.values())
        self._workspaces.clear()
        for workspace in workspaces:
            await workspace.close()

    def __len__(self) -> int:
        return len(self._workspaces)


# Global registry instance
_workspace_registry: Optional[WorkspaceRegistry] = None


def get_workspace_registry() -> WorkspaceRegistry:
    """
    Get or create the global WorkspaceRegistry instance.

    Returns:
        WorkspaceRegistry instance
    """
    global _workspace_registry
    if _workspace_registry is None:
        _workspace_registry = WorkspaceRegistry()
    return _workspace_registry
