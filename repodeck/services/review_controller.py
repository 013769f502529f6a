"""
Review Workspace Controller.

Loads a pull request's changed files for review, scores them with the risk
scorer and submits reviews. Viewing a file and reviewing a pull request are
mutually exclusive: entering a review clears the file selection and opening a
file exits the review.
"""

import asyncio
from typing import List, Optional

from repodeck.config import settings
from repodeck.models.api_response import ActionResult
from repodeck.models.file_change import ChangedFileRecord, DiffLine, DiffLineKind
from repodeck.models.file_view import SelectedFile
from repodeck.models.pull_request import (
    PlaceholderPullRequest,
    PullRequestItem,
    RealPullRequest,
    ReviewEvent,
)
from repodeck.models.review import ReviewStatus
from repodeck.models.risk import RiskSummary
from repodeck.services.file_viewer import FileViewer
from repodeck.services.github_gateway import GitHubGateway
from repodeck.services.pr_manager import PLACEHOLDER_DISABLED_MESSAGE, PullRequestManager
from repodeck.services.risk_scorer import empty_summary, score_changes
from repodeck.utils.logging import get_logger, log_review_transition


logger = get_logger(__name__)

LOAD_FAILED_MESSAGE = "Failed to load pull request changes."
SUBMIT_FAILED_MESSAGE = "Failed to submit review."
SUBMITTED_MESSAGE = "Review submitted successfully."
NO_REVIEW_MESSAGE = "No pull request is under review."
SIGN_IN_MESSAGE = "Sign in to GitHub to review pull requests."


def classify_diff_line(line: str) -> DiffLineKind:
    if line.startswith("+++ ") or line.startswith("--- ") or line.startswith("@@"):
        return DiffLineKind.HEADER
    if line.startswith("+"):
        return DiffLineKind.ADDITION
    if line.startswith("-"):
        return DiffLineKind.DELETION
    return DiffLineKind.CONTEXT


def diff_lines(record: ChangedFileRecord) -> List[DiffLine]:
    """Split a file patch into classified lines; no patch yields no lines."""
    if not record.patch:
        return []
    return [DiffLine(text=line, kind=classify_diff_line(line)) for line in record.patch.split("\n")]


class ReviewController:
    """
    Review session for one pull request at a time.

    The visible loading state of `enter` lasts at least
    `min_loading_seconds`, whatever the actual fetch latency.
    """

    def __init__(
        self,
        gateway: GitHubGateway,
        file_viewer: FileViewer,
        pr_manager: PullRequestManager,
        min_loading_seconds: Optional[float] = None,
    ):
        self.gateway = gateway
        self.file_viewer = file_viewer
        self.pr_manager = pr_manager
        self.min_loading_seconds = (
            min_loading_seconds if min_loading_seconds is not None else settings.review_min_loading_seconds
        )

        self.status = ReviewStatus.INACTIVE
        self.pr_number: Optional[int] = None
        self.pr_title = ""
        self.files: List[ChangedFileRecord] = []
        self.message: Optional[str] = None
        self.body = ""
        self.event = ReviewEvent.COMMENT
        self.submitting = False
        self._session = 0

    @property
    def context(self):
        return self.pr_manager.context

    @property
    def active(self) -> bool:
        return self.status != ReviewStatus.INACTIVE

    @property
    def loading(self) -> bool:
        return self.status == ReviewStatus.LOADING_FILES

    @property
    def risk_summary(self) -> RiskSummary:
        if self.pr_number is None or not self.files:
            return empty_summary()
        return score_changes(self.files)

    def _transition(self, status: ReviewStatus) -> None:
        log_review_transition(logger, self.pr_number, self.status.value, status.value)
        self.status = status

    async def enter(self, pr: PullRequestItem) -> ActionResult:
        """
        Start reviewing a pull request.

        Clears any file selection, then loads the changed files. A load that
        is superseded by `exit` or another `enter` is discarded.
        """
        if isinstance(pr, PlaceholderPullRequest):
            return ActionResult(success=False, message=PLACEHOLDER_DISABLED_MESSAGE)
        if not self.context.token:
            return ActionResult(success=False, message=SIGN_IN_MESSAGE)

        self.file_viewer.clear()
        self._session += 1
        session = self._session

        self.pr_number = pr.number
        self.pr_title = pr.title
        self.files = []
        self.message = None
        self._transition(ReviewStatus.LOADING_FILES)

        result, _ = await asyncio.gather(
            self.gateway.list_pull_request_files(
                self.context.token, self.context.owner, self.context.repo, pr.number
            ),
            asyncio.sleep(self.min_loading_seconds),
        )

        if session != self._session:
            logger.debug(f"Discarding superseded review load for PR #{pr.number}")
            return ActionResult(success=False, message=None)

        if not result.success:
            self.message = result.error_message or LOAD_FAILED_MESSAGE
            self._transition(ReviewStatus.ERRORED)
            return ActionResult(success=False, message=self.message)

        self.files = result.data
        self._transition(ReviewStatus.READY)
        return ActionResult(success=True)

    def exit(self) -> None:
        """Leave review mode, dropping the loaded files and status message."""
        self._session += 1
        if self.status != ReviewStatus.INACTIVE:
            self._transition(ReviewStatus.INACTIVE)
        self.pr_number = None
        self.pr_title = ""
        self.files = []
        self.message = None

    async def open_file(self, branch: str, path: str) -> SelectedFile:
        """Open a file in the viewer, leaving review mode first."""
        self.exit()
        return await self.file_viewer.open_file(self.context, branch, path)

    async def submit(self, body: Optional[str] = None, event: Optional[ReviewEvent] = None) -> ActionResult:
        """
        Submit a review for the pull request under review.

        On success the compose body is cleared and the PR's comments are
        silently reloaded so the review shows up without a manual refresh.
        """
        if self.pr_number is None:
            return ActionResult(success=False, message=NO_REVIEW_MESSAGE)
        if body is not None:
            self.body = body
        if event is not None:
            self.event = ReviewEvent(event)

        pr_number = self.pr_number
        self.submitting = True
        self.message = None
        try:
            result = await self.gateway.submit_review(
                self.context.token, self.context.owner, self.context.repo, pr_number, self.body, self.event
            )
        finally:
            self.submitting = False

        if not result.success:
            self.message = result.error_message or SUBMIT_FAILED_MESSAGE
            logger.warning(f"Review submission failed for PR #{pr_number}", extra={"pr_number": pr_number})
            return ActionResult(success=False, message=self.message)

        self.body = ""
        self.message = SUBMITTED_MESSAGE
        logger.info(
            f"Review submitted for PR #{pr_number}",
            extra={"pr_number": pr_number, "event": self.event.value},
        )

        reviewed = self.pr_manager.find(pr_number)
        if isinstance(reviewed, RealPullRequest):
            await self.pr_manager.load_comments(reviewed, silent=True)
        return ActionResult(success=True, message=SUBMITTED_MESSAGE)
