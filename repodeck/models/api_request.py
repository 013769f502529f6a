"""API request data models."""

from typing import Optional

from pydantic import BaseModel, Field

from .pull_request import PullRequestState, ReviewEvent


class WorkspaceCreate(BaseModel):
    """Open a workspace session on a repository."""

    owner: str = Field(..., description="GitHub user or organization")
    repo: str = Field(..., description="Repository name")
    branch: str = Field(default="main", description="Initially active branch")


class BranchSwitch(BaseModel):
    branch: str


class FileOpen(BaseModel):
    path: str


class PullRequestDraftUpdate(BaseModel):
    """Partial change to the compose form; omitted fields are left alone."""

    title: Optional[str] = None
    body: Optional[str] = None
    head: Optional[str] = None
    base: Optional[str] = None


class PullRequestCreate(BaseModel):
    """Fields left out are taken from the compose form."""

    title: Optional[str] = None
    body: Optional[str] = None
    head: Optional[str] = None
    base: Optional[str] = None


class PullRequestUpdate(BaseModel):
    title: str = ""
    body: str = ""


class PullRequestStateChange(BaseModel):
    state: PullRequestState


class CommentCreate(BaseModel):
    body: str = ""


class ReviewSubmit(BaseModel):
    body: str = ""
    event: ReviewEvent = ReviewEvent.COMMENT

