"""
File viewer component.

Fetches a selected file, decodes its base64 payload and classifies it as
image, markdown or plain text by suffix. Only one file is selected at a time;
a response for a superseded selection is dropped instead of overwriting the
newer state.
"""

import base64
import binascii
import re
from typing import Optional

from repodeck.models.file_view import FileViewKind, SelectedFile
from repodeck.models.repository import RepositoryContext
from repodeck.services.github_gateway import GitHubGateway
from repodeck.utils.logging import get_logger


logger = get_logger(__name__)

IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".svg": "image/svg+xml",
}
MARKDOWN_SUFFIXES = (".md", ".markdown")
FALLBACK_MIME_TYPE = "application/octet-stream"

EMPTY_CONTENT_MESSAGE = "(Binary or empty file - cannot display)"
LOAD_ERROR_MESSAGE = "Error loading file content."

_WHITESPACE = re.compile(r"\s")


def get_file_view_kind(path: str) -> FileViewKind:
    """Classify a path by suffix, case-insensitively."""
    normalized = path.lower()
    if normalized.endswith(tuple(IMAGE_MIME_TYPES)):
        return FileViewKind.IMAGE
    if normalized.endswith(MARKDOWN_SUFFIXES):
        return FileViewKind.MARKDOWN
    return FileViewKind.TEXT


def get_image_mime_type(path: str) -> str:
    normalized = path.lower()
    for suffix, mime_type in IMAGE_MIME_TYPES.items():
        if normalized.endswith(suffix):
            return mime_type
    return FALLBACK_MIME_TYPE


def decode_base64_utf8(encoded: str) -> str:
    """
    Decode a base64 payload as UTF-8 text.

    Raises:
        binascii.Error: Malformed base64
        UnicodeDecodeError: Payload is not UTF-8
    """
    return base64.b64decode(encoded, validate=True).decode("utf-8")


def build_selected_file(path: str, branch: str, encoded: Optional[str]) -> SelectedFile:
    """
    Turn a raw contents payload into a renderable selection.

    Missing content becomes a fixed placeholder; undecodable content becomes
    the load-error message.
    """
    if not encoded:
        return SelectedFile(path=path, branch=branch, view_kind=FileViewKind.TEXT, text=EMPTY_CONTENT_MESSAGE)

    sanitized = _WHITESPACE.sub("", encoded)
    view_kind = get_file_view_kind(path)

    if view_kind == FileViewKind.IMAGE:
        return SelectedFile(
            path=path,
            branch=branch,
            view_kind=view_kind,
            image_data_uri=f"data:{get_image_mime_type(path)};base64,{sanitized}",
        )

    try:
        text = decode_base64_utf8(sanitized)
    except (binascii.Error, UnicodeDecodeError) as e:
        logger.warning(f"Failed to decode {path}: {e}")
        return SelectedFile(path=path, branch=branch, view_kind=FileViewKind.TEXT, text=LOAD_ERROR_MESSAGE)

    return SelectedFile(path=path, branch=branch, view_kind=view_kind, text=text)


class FileViewer:
    """Holds the single selected file and its loading flag."""

    def __init__(self, gateway: GitHubGateway):
        self.gateway = gateway
        self.selected: Optional[SelectedFile] = None
        self.selected_path: Optional[str] = None
        self.loading = False
        self._request_seq = 0

    def clear(self) -> None:
        """Drop the selection; any in-flight fetch becomes stale."""
        self._request_seq += 1
        self.selected = None
        self.selected_path = None
        self.loading = False

    async def open_file(self, context: RepositoryContext, branch: str, path: str) -> SelectedFile:
        """
        Select and load a file.

        Args:
            context: Token and repository coordinates
            branch: Branch to read from
            path: File path

        Returns:
            The loaded selection. When a newer selection was made while this
            one was loading, the result is returned but not committed.
        """
        self._request_seq += 1
        request_seq = self._request_seq
        self.selected_path = path
        self.selected = None
        self.loading = True

        result = await self.gateway.get_file_content(context.token, context.owner, context.repo, path, branch)
        if result.success:
            selected = build_selected_file(path, branch, result.data)
        else:
            selected = SelectedFile(path=path, branch=branch, view_kind=FileViewKind.TEXT, text=LOAD_ERROR_MESSAGE)

        if request_seq != self._request_seq:
            logger.debug(f"Discarding stale content for {path}", extra={"branch": branch})
            return selected

        self.selected = selected
        self.loading = False
        return selected
