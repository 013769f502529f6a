"""
Shared API dependencies.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from repodeck.services.github_gateway import GitHubGateway, get_github_gateway
from repodeck.services.workspace import (
    RepositoryWorkspace,
    WorkspaceNotFoundError,
    WorkspaceRegistry,
    get_workspace_registry,
)


async def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """
    Extract the GitHub access token from the Authorization header.

    A missing header yields None; downstream components degrade to an empty
    state instead of rejecting the request.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() not in ("bearer", "token") or not token.strip():
        raise HTTPException(status_code=401, detail="Malformed Authorization header")
    return token.strip()


def get_gateway() -> GitHubGateway:
    return get_github_gateway()


def get_registry() -> WorkspaceRegistry:
    return get_workspace_registry()


def get_workspace(
    session_id: str,
    registry: WorkspaceRegistry = Depends(get_registry),
) -> RepositoryWorkspace:
    """
    Resolve a workspace session.

    Raises:
        HTTPException: 404 if the session does not exist
    """
    try:
        return registry.get(session_id)
    except WorkspaceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
