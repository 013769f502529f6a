"""
Repository workspace REST API endpoints.

Each client tab opens one workspace session and drives the tree, file viewer,
pull request list and review session through it. Mutating operations answer
with their status message and the resulting workspace state.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from repodeck.api.dependencies import get_bearer_token, get_gateway, get_registry, get_workspace
from repodeck.models.api_request import (
    BranchSwitch,
    CommentCreate,
    FileOpen,
    PullRequestCreate,
    PullRequestDraftUpdate,
    PullRequestStateChange,
    PullRequestUpdate,
    ReviewSubmit,
    WorkspaceCreate,
)
from repodeck.models.api_response import ActionResult
from repodeck.models.file_change import DiffLine
from repodeck.models.pull_request import PullRequestComment, PullRequestDraft, PullRequestItem
from repodeck.models.repository import ROOT_PATH, RepoNode, RepositoryContext
from repodeck.models.workspace import ActionResponse, WorkspaceSnapshot
from repodeck.services.github_gateway import GitHubGateway
from repodeck.services.pr_manager import PLACEHOLDER_DISABLED_MESSAGE
from repodeck.services.review_controller import diff_lines
from repodeck.services.workspace import RepositoryWorkspace, WorkspaceRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workspaces", tags=["workspaces"])


def _respond(session_id: str, workspace: RepositoryWorkspace, result: ActionResult) -> ActionResponse:
    return ActionResponse(
        success=result.success,
        message=result.message,
        workspace=workspace.snapshot(session_id),
    )


def _require_pull_request(workspace: RepositoryWorkspace, number: int) -> PullRequestItem:
    pr = workspace.pull_requests.find(number)
    if pr is None:
        raise HTTPException(status_code=404, detail=f"Pull request #{number} not found")
    return pr


# Sessions

@router.post("", response_model=WorkspaceSnapshot)
async def open_workspace(
    request: WorkspaceCreate,
    token: Optional[str] = Depends(get_bearer_token),
    gateway: GitHubGateway = Depends(get_gateway),
    registry: WorkspaceRegistry = Depends(get_registry),
) -> WorkspaceSnapshot:
    """
    Open a workspace on a repository and load its branches and pull requests.

    Without a token the workspace still opens, with every panel empty.
    """
    context = RepositoryContext(token=token, owner=request.owner, repo=request.repo)
    workspace = RepositoryWorkspace(gateway, context, request.branch)
    session_id = registry.add(workspace)
    try:
        await workspace.start()
    except Exception as e:
        logger.error(f"Error opening workspace for {context.full_name}: {e}", exc_info=True)
        await registry.remove(session_id)
        raise HTTPException(status_code=500, detail="Internal server error")
    return workspace.snapshot(session_id)


@router.get("/{session_id}", response_model=WorkspaceSnapshot)
async def get_snapshot(
    session_id: str,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> WorkspaceSnapshot:
    return workspace.snapshot(session_id)


@router.delete("/{session_id}")
async def close_workspace(
    session_id: str,
    workspace: RepositoryWorkspace = Depends(get_workspace),
    registry: WorkspaceRegistry = Depends(get_registry),
) -> dict:
    await registry.remove(session_id)
    return {"status": "success", "message": f"Workspace {session_id} closed"}


# Branches and tree

@router.get("/{session_id}/branches", response_model=List[str])
async def list_branches(
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> List[str]:
    return await workspace.load_branches()


@router.put("/{session_id}/branch", response_model=WorkspaceSnapshot)
async def switch_branch(
    session_id: str,
    request: BranchSwitch,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> WorkspaceSnapshot:
    """Switch the active branch; the tree cache, file selection and review are reset."""
    if workspace.switch_branch(request.branch):
        await workspace.load_branches()
    return workspace.snapshot(session_id)


@router.get("/{session_id}/tree", response_model=List[RepoNode])
async def list_tree(
    path: str = Query(ROOT_PATH),
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> List[RepoNode]:
    """List a directory on the active branch; failures render as an empty folder."""
    return await workspace.expand(path)


@router.post("/{session_id}/files", response_model=WorkspaceSnapshot)
async def open_file(
    session_id: str,
    request: FileOpen,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> WorkspaceSnapshot:
    await workspace.open_file(request.path)
    return workspace.snapshot(session_id)


# Pull requests

@router.post("/{session_id}/pulls/refresh", response_model=WorkspaceSnapshot)
async def refresh_pull_requests(
    session_id: str,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> WorkspaceSnapshot:
    await workspace.pull_requests.refresh()
    return workspace.snapshot(session_id)


@router.post("/{session_id}/pulls/compose", response_model=WorkspaceSnapshot)
async def toggle_compose(
    session_id: str,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> WorkspaceSnapshot:
    """Show or hide the compose form."""
    workspace.pull_requests.toggle_compose()
    return workspace.snapshot(session_id)


@router.put("/{session_id}/pulls/draft", response_model=PullRequestDraft)
async def update_draft(
    request: PullRequestDraftUpdate,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> PullRequestDraft:
    return workspace.pull_requests.update_draft(request.title, request.body, request.head, request.base)


@router.post("/{session_id}/pulls", response_model=ActionResponse)
async def create_pull_request(
    session_id: str,
    request: PullRequestCreate,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> ActionResponse:
    """Open a pull request; fields left out of the request come from the compose form."""
    draft = workspace.pull_requests.draft
    result = await workspace.pull_requests.create(
        draft.title if request.title is None else request.title,
        draft.body if request.body is None else request.body,
        draft.head if request.head is None else request.head,
        draft.base if request.base is None else request.base,
    )
    return _respond(session_id, workspace, result)


@router.post("/{session_id}/pulls/{number}/edit", response_model=ActionResponse)
async def begin_edit(
    session_id: str,
    number: int,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> ActionResponse:
    """Put a pull request into edit mode; the placeholder is refused."""
    _require_pull_request(workspace, number)
    if workspace.pull_requests.begin_edit(number):
        result = ActionResult(success=True)
    else:
        result = ActionResult(success=False, message=PLACEHOLDER_DISABLED_MESSAGE)
    return _respond(session_id, workspace, result)


@router.delete("/{session_id}/pulls/{number}/edit", response_model=WorkspaceSnapshot)
async def cancel_edit(
    session_id: str,
    number: int,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> WorkspaceSnapshot:
    if workspace.pull_requests.editing_number == number:
        workspace.pull_requests.cancel_edit()
    return workspace.snapshot(session_id)


@router.patch("/{session_id}/pulls/{number}", response_model=ActionResponse)
async def update_pull_request(
    session_id: str,
    number: int,
    request: PullRequestUpdate,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> ActionResponse:
    result = await workspace.pull_requests.update(number, request.title, request.body)
    return _respond(session_id, workspace, result)


@router.put("/{session_id}/pulls/{number}/state", response_model=ActionResponse)
async def set_pull_request_state(
    session_id: str,
    number: int,
    request: PullRequestStateChange,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> ActionResponse:
    result = await workspace.pull_requests.set_state(number, request.state)
    return _respond(session_id, workspace, result)


@router.post("/{session_id}/pulls/{number}/comments/toggle", response_model=WorkspaceSnapshot)
async def toggle_comments(
    session_id: str,
    number: int,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> WorkspaceSnapshot:
    """Expand or collapse a comment panel; expanded panels refresh in the background."""
    pr = _require_pull_request(workspace, number)
    await workspace.pull_requests.toggle_comments(pr)
    return workspace.snapshot(session_id)


@router.get("/{session_id}/pulls/{number}/comments", response_model=List[PullRequestComment])
async def load_comments(
    number: int,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> List[PullRequestComment]:
    pr = _require_pull_request(workspace, number)
    return await workspace.pull_requests.load_comments(pr)


@router.post("/{session_id}/pulls/{number}/comments", response_model=ActionResponse)
async def add_comment(
    session_id: str,
    number: int,
    request: CommentCreate,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> ActionResponse:
    pr = _require_pull_request(workspace, number)
    result = await workspace.pull_requests.add_comment(pr, request.body)
    return _respond(session_id, workspace, result)


# Review

@router.post("/{session_id}/pulls/{number}/review", response_model=ActionResponse)
async def enter_review(
    session_id: str,
    number: int,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> ActionResponse:
    """Load a pull request's changed files and risk summary; the file selection is cleared."""
    result = await workspace.enter_review(number)
    return _respond(session_id, workspace, result)


@router.delete("/{session_id}/review", response_model=WorkspaceSnapshot)
async def exit_review(
    session_id: str,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> WorkspaceSnapshot:
    workspace.review.exit()
    return workspace.snapshot(session_id)


@router.post("/{session_id}/review/submit", response_model=ActionResponse)
async def submit_review(
    session_id: str,
    request: ReviewSubmit,
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> ActionResponse:
    result = await workspace.review.submit(request.body, request.event)
    return _respond(session_id, workspace, result)


@router.get("/{session_id}/review/diff", response_model=List[DiffLine])
async def review_diff(
    filename: str = Query(...),
    workspace: RepositoryWorkspace = Depends(get_workspace),
) -> List[DiffLine]:
    """Classified patch lines of one file in the active review."""
    for record in workspace.review.files:
        if record.filename == filename:
            return diff_lines(record)
    raise HTTPException(status_code=404, detail=f"{filename} is not part of the active review")
