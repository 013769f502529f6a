"""
Repository listing REST API endpoints.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from repodeck.api.dependencies import get_bearer_token, get_gateway
from repodeck.models.repository import RepositorySummary
from repodeck.services.github_gateway import GitHubGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/repositories", tags=["repositories"])


@router.get("", response_model=List[RepositorySummary])
async def list_repositories(
    token: Optional[str] = Depends(get_bearer_token),
    gateway: GitHubGateway = Depends(get_gateway),
) -> List[RepositorySummary]:
    """
    List the signed-in user's repositories, most recently updated first.

    Returns:
        Repository summaries

    Raises:
        HTTPException: 401 without a token, 502 if GitHub rejects the call
    """
    if not token:
        raise HTTPException(status_code=401, detail="GitHub access token required")

    result = await gateway.list_user_repositories(token)
    if not result.success:
        logger.warning(f"Listing repositories failed with status {result.status_code}")
        raise HTTPException(status_code=502, detail=result.error_message or "Failed to list repositories")

    logger.info(f"Found {len(result.data)} repositories")
    return result.data
