"""Pull request file change data models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ChangedFileRecord(BaseModel):
    """One file in a pull request diff, as reported by GitHub."""

    sha: str = ""
    filename: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: Optional[str] = None  # absent for binary or very large files
    blob_url: Optional[str] = None


class DiffLineKind(str, Enum):
    """Rendering class of a single patch line."""

    HEADER = "header"
    ADDITION = "addition"
    DELETION = "deletion"
    CONTEXT = "context"


class DiffLine(BaseModel):
    """Classified patch line."""

    text: str
    kind: DiffLineKind
