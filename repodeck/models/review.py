"""Review session data models."""

from enum import Enum


class ReviewStatus(str, Enum):
    """Review session lifecycle."""

    INACTIVE = "inactive"
    LOADING_FILES = "loading_files"
    READY = "ready"
    ERRORED = "errored"
