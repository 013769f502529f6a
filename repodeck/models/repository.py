"""Repository browsing data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


# Sentinel path for the repository root, distinct from a path of ""
ROOT_PATH = "__root__"


class NodeKind(str, Enum):
    """Kind of a repository tree node."""

    FILE = "file"
    DIRECTORY = "directory"


class RepoNode(BaseModel):
    """Single entry of a directory listing. Identity is the path."""

    name: str
    path: str
    kind: NodeKind
    view_url: str = ""

    @property
    def is_directory(self) -> bool:
        return self.kind == NodeKind.DIRECTORY


class RepositoryContext(BaseModel):
    """Credential and coordinates every workspace call is made against."""

    token: Optional[str] = None
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class Branch(BaseModel):
    """Repository branch."""

    name: str


class RepositorySummary(BaseModel):
    """Repository entry from the signed-in user's repository list."""

    id: int
    name: str
    full_name: str
    owner_login: str
    language: Optional[str] = None
    updated_at: Optional[datetime] = None
    html_url: str = ""
