"""
Pull Request Manager component.

Holds the pull request list of one repository and runs the create, edit,
open/close and comment operations against it. Per-PR operation status lives
in a map keyed by (action, PR number) so concurrent operations on different
PRs never share a loading flag.

While at least one comment panel is expanded, a background task silently
reloads the comments of every expanded PR on a fixed interval.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple

from repodeck.config import settings
from repodeck.models.api_response import ActionResult, OperationState, OperationStatus
from repodeck.models.pull_request import (
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
)
from repodeck.models.repository import RepositoryContext
from repodeck.services.github_gateway import GitHubGateway
from repodeck.utils.logging import get_logger, log_error_with_context, log_pr_action


logger = get_logger(__name__)

# Operation map key for PR creation, which has no number yet
CREATE_OPERATION_NUMBER = -1

OperationKey = Tuple[PullRequestAction, int]

MISSING_FIELDS_MESSAGE = "Title, head branch, and base branch are required."
SAME_BRANCH_MESSAGE = "Head and base branches must be different."
CREATE_NOT_FOUND_MESSAGE = (
    "Repository not found or missing write permission. "
    "Sign out/in again to refresh GitHub scopes."
)
TITLE_REQUIRED_MESSAGE = "PR title is required."
EMPTY_COMMENT_MESSAGE = "Comment cannot be empty."
COMMENT_ADDED_MESSAGE = "Comment added."
PLACEHOLDER_DISABLED_MESSAGE = "Actions are disabled for the placeholder pull request."

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def demo_comment() -> PullRequestComment:
    return PullRequestComment(
        id="demo-1",
        body="This is a temporary demo comment.",
        author_login="demo-user",
        origin=CommentOrigin.ISSUE,
    )


def _comment_sort_key(comment: PullRequestComment) -> datetime:
    created_at = comment.created_at
    if created_at is None:
        return _EPOCH
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=timezone.utc)
    return created_at


def merge_comments(
    issue_comments: List[PullRequestComment],
    review_comments: List[PullRequestComment],
) -> List[PullRequestComment]:
    """
    Merge the two upstream comment collections chronologically.

    Comments without a timestamp sort first; ties keep issue comments ahead
    of review comments.
    """
    return sorted([*issue_comments, *review_comments], key=_comment_sort_key)


class CommentRefresher:
    """
    Repeating task that silently reloads comments for a fixed set of PRs.

    The task is torn down and recreated by `rearm` whenever the expanded set
    or the repository context changes; with nothing to refresh it stays off.
    """

    def __init__(
        self,
        refresh: Callable[[RealPullRequest], Awaitable[None]],
        interval_seconds: float,
    ):
        self._refresh = refresh
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self.targets: List[RealPullRequest] = []

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def rearm(self, targets: List[RealPullRequest]) -> None:
        """Cancel the running task and start a new one for `targets`, if any."""
        self.stop()
        self.targets = list(targets)
        if not self.targets:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(self.targets))

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self.targets = []

    async def _run(self, targets: List[RealPullRequest]) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await asyncio.gather(*(self._refresh(pr) for pr in targets))
            except Exception as e:
                log_error_with_context(logger, "Silent comment refresh failed", e)


class PullRequestManager:
    """Pull request list, per-PR operations and comment panels."""

    def __init__(
        self,
        gateway: GitHubGateway,
        context: RepositoryContext,
        refresh_interval_seconds: Optional[float] = None,
    ):
        """
        Initialize the manager.

        Args:
            gateway: GitHub gateway
            context: Token and repository coordinates
            refresh_interval_seconds: Silent comment refresh period
        """
        self.gateway = gateway
        self.context = context
        self.logger = logger.with_context(owner=context.owner, repo=context.repo)

        self.items: List[RealPullRequest] = []
        self.list_status = ListStatus.IDLE
        self.operations: Dict[OperationKey, OperationState] = {}
        self.message: Optional[str] = None

        self.draft = PullRequestDraft()
        self.composing = False
        self.editing_number: Optional[int] = None

        self.comments: Dict[int, List[PullRequestComment]] = {}
        self.expanded: Set[int] = set()

        self._context_generation = 0
        self._list_request_seq = 0
        self.refresher = CommentRefresher(
            self._silent_reload,
            refresh_interval_seconds
            if refresh_interval_seconds is not None
            else settings.comment_refresh_interval_seconds,
        )

    # State accessors

    @property
    def displayed_items(self) -> List[PullRequestItem]:
        """The list as rendered: a single placeholder stands in for an empty list."""
        if not self.items and self.list_status in (ListStatus.LOADED, ListStatus.ERRORED):
            return [PlaceholderPullRequest()]
        return list(self.items)

    def find(self, number: int) -> Optional[PullRequestItem]:
        for pr in self.displayed_items:
            if pr.number == number:
                return pr
        return None

    def operation(self, action: PullRequestAction, number: int = CREATE_OPERATION_NUMBER) -> OperationState:
        return self.operations.get((action, number), OperationState())

    def is_loading(self, action: PullRequestAction, number: int = CREATE_OPERATION_NUMBER) -> bool:
        return self.operation(action, number).status == OperationStatus.LOADING

    def _begin(self, action: PullRequestAction, number: int) -> None:
        self.operations[(action, number)] = OperationState(status=OperationStatus.LOADING)

    def _finish(self, action: PullRequestAction, number: int, result: ActionResult) -> ActionResult:
        self.operations[(action, number)] = OperationState(
            status=OperationStatus.SUCCEEDED if result.success else OperationStatus.FAILED,
            message=result.message,
        )
        if result.message is not None:
            self.message = result.message
        log_pr_action(
            self.logger,
            action=action.value,
            pr_number=None if number == CREATE_OPERATION_NUMBER else number,
            success=result.success,
            message=result.message,
        )
        return result

    def _is_placeholder(self, number: int) -> bool:
        return number == PLACEHOLDER_PR_NUMBER or isinstance(self.find(number), PlaceholderPullRequest)

    def _expanded_real_prs(self) -> List[RealPullRequest]:
        return [pr for pr in self.items if pr.number in self.expanded]

    def _rearm_refresher(self) -> None:
        if not self.context.token:
            self.refresher.stop()
            return
        self.refresher.rearm(self._expanded_real_prs())

    # Context

    def set_context(self, context: RepositoryContext) -> None:
        """
        Rebind to another token/repository.

        Comment panels, comments, operation state and the list are dropped
        and the refresher is re-armed (which stops it, since nothing is expanded any more).
        """
        self.context = context
        self.logger = logger.with_context(owner=context.owner, repo=context.repo)
        self._context_generation += 1
        self.items = []
        self.list_status = ListStatus.IDLE
        self.comments = {}
        self.expanded = set()
        self.editing_number = None
        self.operations = {}
        self.message = None
        self.composing = False
        self._rearm_refresher()

    async def close(self) -> None:
        self.refresher.stop()

    # List

    async def refresh(self) -> List[PullRequestItem]:
        """
        Reload the pull request list, replacing it wholesale.

        A failed load empties the list so stale data is never shown. A load
        overtaken by a newer one is dropped.
        """
        generation = self._context_generation
        self._list_request_seq += 1
        request_seq = self._list_request_seq
        self.list_status = ListStatus.LOADING
        result = await self.gateway.list_pull_requests(
            self.context.token, self.context.owner, self.context.repo
        )
        if generation != self._context_generation or request_seq != self._list_request_seq:
            self.logger.debug("Discarding superseded pull request list")
            return self.displayed_items

        if result.success:
            self.items = result.data
            self.list_status = ListStatus.LOADED
        else:
            self.logger.warning(
                "Pull request list failed to load",
                extra={"status_code": result.status_code},
            )
            self.items = []
            self.list_status = ListStatus.ERRORED

        self._rearm_refresher()
        return self.displayed_items

    # Create / edit / state

    def toggle_compose(self) -> bool:
        self.composing = not self.composing
        return self.composing

    def update_draft(
        self,
        title: Optional[str] = None,
        body: Optional[str] = None,
        head: Optional[str] = None,
        base: Optional[str] = None,
    ) -> PullRequestDraft:
        """Change the compose form; omitted fields keep their value."""
        changes = {
            key: value
            for key, value in (("title", title), ("body", body), ("head", head), ("base", base))
            if value is not None
        }
        self.draft = self.draft.model_copy(update=changes)
        return self.draft

    async def create(self, title: str, body: str, head: str, base: str) -> ActionResult:
        """
        Open a new pull request.

        Blank title/head/base or identical head and base fail before any
        network call. On success the compose form is cleared and the list
        reloaded.
        """
        action = PullRequestAction.CREATE
        number = CREATE_OPERATION_NUMBER

        title, head, base = title.strip(), head.strip(), base.strip()
        if not title or not head or not base:
            return self._finish(action, number, ActionResult(success=False, message=MISSING_FIELDS_MESSAGE))
        if head == base:
            return self._finish(action, number, ActionResult(success=False, message=SAME_BRANCH_MESSAGE))

        self._begin(action, number)
        self.message = None
        result = await self.gateway.create_pull_request(
            self.context.token, self.context.owner, self.context.repo, title, body, head, base
        )
        if not result.success:
            if result.status_code == 404:
                message = CREATE_NOT_FOUND_MESSAGE
            else:
                message = result.error_message or "Failed to create pull request."
            return self._finish(action, number, ActionResult(success=False, message=message))

        self.composing = False
        self.draft = PullRequestDraft(head=self.draft.head, base=self.draft.base)
        outcome = self._finish(action, number, ActionResult(success=True, message="Pull request created."))
        await self.refresh()
        return outcome

    def begin_edit(self, number: int) -> bool:
        """Enter edit mode for a PR; refused for the placeholder."""
        if self._is_placeholder(number):
            return False
        self.editing_number = number
        return True

    def cancel_edit(self) -> None:
        self.editing_number = None

    async def update(self, number: int, title: str, body: str) -> ActionResult:
        """Change a pull request's title and body, then reload the list."""
        action = PullRequestAction.UPDATE
        if self._is_placeholder(number):
            return ActionResult(success=False, message=PLACEHOLDER_DISABLED_MESSAGE)

        title = title.strip()
        if not title:
            return self._finish(action, number, ActionResult(success=False, message=TITLE_REQUIRED_MESSAGE))

        self._begin(action, number)
        self.message = None
        result = await self.gateway.update_pull_request(
            self.context.token, self.context.owner, self.context.repo, number, title=title, body=body
        )
        if not result.success:
            message = result.error_message or "Failed to update pull request."
            return self._finish(action, number, ActionResult(success=False, message=message))

        self.editing_number = None
        outcome = self._finish(action, number, ActionResult(success=True, message="Pull request updated."))
        await self.refresh()
        return outcome

    async def set_state(self, number: int, state: PullRequestState) -> ActionResult:
        """Close or reopen a pull request, then reload the list."""
        action = PullRequestAction.SET_STATE
        if self._is_placeholder(number):
            return ActionResult(success=False, message=PLACEHOLDER_DISABLED_MESSAGE)

        state = PullRequestState(state)
        verb = "close" if state == PullRequestState.CLOSED else "reopen"

        self._begin(action, number)
        self.message = None
        result = await self.gateway.update_pull_request(
            self.context.token, self.context.owner, self.context.repo, number, state=state
        )
        if not result.success:
            message = result.error_message or f"Failed to {verb} pull request."
            return self._finish(action, number, ActionResult(success=False, message=message))

        message = "Pull request closed." if state == PullRequestState.CLOSED else "Pull request reopened."
        outcome = self._finish(action, number, ActionResult(success=True, message=message))
        await self.refresh()
        return outcome

    # Comments

    async def load_comments(self, pr: PullRequestItem, silent: bool = False) -> List[PullRequestComment]:
        """
        Load the merged issue and review comments of a pull request.

        Args:
            pr: Pull request to load
            silent: Leave the visible loading state untouched

        Returns:
            The comments now held for the pull request
        """
        if isinstance(pr, PlaceholderPullRequest):
            self.comments.setdefault(pr.number, [demo_comment()])
            return self.comments[pr.number]

        action = PullRequestAction.LOAD_COMMENTS
        generation = self._context_generation
        if not silent:
            self._begin(action, pr.number)

        issue_result, review_result = await asyncio.gather(
            self.gateway.list_issue_comments(self.context.token, self.context.owner, self.context.repo, pr.number),
            self.gateway.list_review_comments(self.context.token, self.context.owner, self.context.repo, pr.number),
        )
        if generation != self._context_generation:
            if not silent:
                self.operations.pop((action, pr.number), None)
            return []

        issue_comments = issue_result.data if issue_result.success else []
        review_comments = review_result.data if review_result.success else []
        merged = merge_comments(issue_comments, review_comments)
        self.comments[pr.number] = merged

        if not silent:
            self.operations[(action, pr.number)] = OperationState(status=OperationStatus.SUCCEEDED)
        return merged

    async def _silent_reload(self, pr: RealPullRequest) -> None:
        await self.load_comments(pr, silent=True)

    async def toggle_comments(self, pr: PullRequestItem) -> bool:
        """
        Expand or collapse a PR's comment panel.

        Expanding loads the comments. Either way the silent refresher is
        re-armed for the new expanded set.

        Returns:
            True when the panel is now expanded
        """
        will_expand = pr.number not in self.expanded
        if will_expand:
            self.expanded.add(pr.number)
        else:
            self.expanded.discard(pr.number)
        self._rearm_refresher()

        if will_expand:
            await self.load_comments(pr)
        return will_expand

    async def add_comment(self, pr: PullRequestItem, text: str) -> ActionResult:
        """
        Post an issue comment on a pull request.

        On the placeholder the comment is only appended locally.
        """
        action = PullRequestAction.ADD_COMMENT
        text = text.strip()
        if not text:
            return self._finish(action, pr.number, ActionResult(success=False, message=EMPTY_COMMENT_MESSAGE))

        if isinstance(pr, PlaceholderPullRequest):
            local_comment = PullRequestComment(
                id=f"demo-{uuid.uuid4().hex[:12]}",
                body=text,
                author_login="you",
                origin=CommentOrigin.ISSUE,
            )
            self.comments.setdefault(pr.number, []).append(local_comment)
            return self._finish(action, pr.number, ActionResult(success=True, message=COMMENT_ADDED_MESSAGE))

        self._begin(action, pr.number)
        result = await self.gateway.create_issue_comment(
            self.context.token, self.context.owner, self.context.repo, pr.number, text
        )
        if not result.success:
            message = result.error_message or "Failed to add comment."
            return self._finish(action, pr.number, ActionResult(success=False, message=message))

        outcome = self._finish(action, pr.number, ActionResult(success=True, message=COMMENT_ADDED_MESSAGE))
        await self.load_comments(pr)
        return outcome
