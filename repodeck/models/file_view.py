"""File viewer data models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class FileViewKind(str, Enum):
    """How a selected file is rendered."""

    TEXT = "text"
    MARKDOWN = "markdown"
    IMAGE = "image"


class SelectedFile(BaseModel):
    """The file currently shown in the content pane."""

    path: str
    branch: str
    view_kind: FileViewKind = FileViewKind.TEXT
    text: Optional[str] = None
    image_data_uri: Optional[str] = None

    @property
    def content(self) -> Optional[str]:
        """Renderable payload: data URI for images, decoded text otherwise."""
        if self.view_kind == FileViewKind.IMAGE:
            return self.image_data_uri
        return self.text
