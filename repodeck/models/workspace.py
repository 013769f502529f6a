"""Workspace state snapshot models."""

from typing import Dict, List, Optional

from pydantic import BaseModel

from .api_response import OperationStatus
from .file_change import ChangedFileRecord
from .file_view import SelectedFile
from .pull_request import (
    ListStatus,
    PullRequestAction,
    PullRequestComment,
    PullRequestDraft,
    PullRequestItem,
    ReviewEvent,
)
from .review import ReviewStatus
from .risk import RiskSummary


class OperationEntry(BaseModel):
    """One entry of the per-PR operation map."""

    action: PullRequestAction
    number: int
    status: OperationStatus
    message: Optional[str] = None


class PullRequestPanelSnapshot(BaseModel):
    """Pull request list state."""

    items: List[PullRequestItem] = []
    list_status: ListStatus = ListStatus.IDLE
    operations: List[OperationEntry] = []
    message: Optional[str] = None
    draft: PullRequestDraft = PullRequestDraft()
    composing: bool = False
    editing_number: Optional[int] = None
    expanded: List[int] = []
    comments: Dict[int, List[PullRequestComment]] = {}


class ReviewSnapshot(BaseModel):
    """Review session state."""

    status: ReviewStatus = ReviewStatus.INACTIVE
    pr_number: Optional[int] = None
    pr_title: str = ""
    files: List[ChangedFileRecord] = []
    message: Optional[str] = None
    body: str = ""
    event: ReviewEvent = ReviewEvent.COMMENT
    submitting: bool = False
    risk: RiskSummary


class WorkspaceSnapshot(BaseModel):
    """Everything a rendering layer needs to draw one repository workspace."""

    session_id: Optional[str] = None
    owner: str
    repo: str
    branch: str
    signed_in: bool
    branches: List[str] = []
    selected_path: Optional[str] = None
    selected_file: Optional[SelectedFile] = None
    file_loading: bool = False
    pull_requests: PullRequestPanelSnapshot
    review: ReviewSnapshot


class ActionResponse(BaseModel):
    """Outcome of a workspace operation plus the resulting state."""

    success: bool
    message: Optional[str] = None
    workspace: WorkspaceSnapshot
