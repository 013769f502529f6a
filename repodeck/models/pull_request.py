"""Pull request data models."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


PLACEHOLDER_PR_ID = -1
PLACEHOLDER_PR_NUMBER = 0


class PullRequestState(str, Enum):
    """State of a pull request on GitHub."""

    OPEN = "open"
    CLOSED = "closed"


class RealPullRequest(BaseModel):
    """Pull request fetched from GitHub."""

    kind: Literal["real"] = "real"
    id: int
    number: int
    title: str
    body: Optional[str] = None
    state: PullRequestState = PullRequestState.OPEN
    author: str = "unknown"
    external_url: str = ""


class PlaceholderPullRequest(BaseModel):
    """Locally synthesized pull request shown when the real list is empty."""

    kind: Literal["placeholder"] = "placeholder"
    id: int = PLACEHOLDER_PR_ID
    number: int = PLACEHOLDER_PR_NUMBER
    title: str = "Temp Pull Request (Demo)"
    body: Optional[str] = "This is a temporary placeholder PR shown when no pull requests are found."
    state: PullRequestState = PullRequestState.OPEN
    author: str = "demo-user"
    external_url: str = "#"


PullRequestItem = Annotated[
    Union[RealPullRequest, PlaceholderPullRequest],
    Field(discriminator="kind"),
]


class CommentOrigin(str, Enum):
    """Upstream collection a comment was read from."""

    ISSUE = "issue"
    REVIEW = "review"


class PullRequestComment(BaseModel):
    """Issue-level or review-level comment on a pull request."""

    id: str  # namespaced by origin, e.g. "issue-12" / "review-12"
    body: str = ""
    author_login: str = "unknown"
    created_at: Optional[datetime] = None
    origin: CommentOrigin = CommentOrigin.ISSUE


class ReviewEvent(str, Enum):
    """Review verdict submitted to GitHub."""

    COMMENT = "COMMENT"
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"


class PullRequestDraft(BaseModel):
    """Compose form for a new pull request."""

    title: str = ""
    body: str = ""
    head: str = ""
    base: str = "main"


class ListStatus(str, Enum):
    """Lifecycle of the pull request list."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


class PullRequestAction(str, Enum):
    """Operations tracked in the per-PR operation map."""

    CREATE = "create"
    UPDATE = "update"
    SET_STATE = "set_state"
    LOAD_COMMENTS = "load_comments"
    ADD_COMMENT = "add_comment"
