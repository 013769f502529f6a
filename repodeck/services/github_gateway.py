"""
GitHub gateway component.

This module wraps the GitHub REST API calls the workspace needs: directory
contents, file contents, branches, pull requests, pull request files, issue
and review comments, and review submission.

Every method takes the bearer token explicitly and returns a GatewayResult
instead of raising, so callers decide how a failure is surfaced.
"""

import time
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from repodeck.config import settings
from repodeck.models.api_response import GatewayResult
from repodeck.models.file_change import ChangedFileRecord
from repodeck.models.pull_request import (
    CommentOrigin,
    PullRequestComment,
    PullRequestState,
    RealPullRequest,
    ReviewEvent,
)
from repodeck.models.repository import (
    ROOT_PATH,
    Branch,
    NodeKind,
    RepoNode,
    RepositorySummary,
)
from repodeck.utils.logging import get_logger, log_api_call


logger = get_logger(__name__)

MISSING_TOKEN_MESSAGE = "Missing GitHub access token"


def _upstream_message(response: httpx.Response) -> Optional[str]:
    """Extract GitHub's `message` field from an error body, if any."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        message = payload.get("message")
        return message if isinstance(message, str) else None
    return None


def _parse_node(item: Dict[str, Any]) -> RepoNode:
    return RepoNode(
        name=item.get("name", ""),
        path=item.get("path", ""),
        kind=NodeKind.DIRECTORY if item.get("type") == "dir" else NodeKind.FILE,
        view_url=item.get("html_url") or "",
    )


def _parse_pull_request(item: Dict[str, Any]) -> RealPullRequest:
    return RealPullRequest(
        id=item["id"],
        number=item["number"],
        title=item.get("title") or "",
        body=item.get("body"),
        state=PullRequestState.CLOSED if item.get("state") == "closed" else PullRequestState.OPEN,
        author=(item.get("user") or {}).get("login") or "unknown",
        external_url=item.get("html_url") or "",
    )


def _parse_comment(item: Dict[str, Any], origin: CommentOrigin) -> PullRequestComment:
    return PullRequestComment(
        id=f"{origin.value}-{item.get('id')}",
        body=item.get("body") or "",
        author_login=(item.get("user") or {}).get("login") or "unknown",
        created_at=item.get("created_at"),
        origin=origin,
    )


def _parse_changed_file(item: Dict[str, Any]) -> ChangedFileRecord:
    return ChangedFileRecord(
        sha=item.get("sha") or "",
        filename=item.get("filename") or "",
        status=item.get("status") or "modified",
        additions=item.get("additions") or 0,
        deletions=item.get("deletions") or 0,
        changes=item.get("changes") or 0,
        patch=item.get("patch"),
        blob_url=item.get("blob_url"),
    )


def _parse_repository(item: Dict[str, Any]) -> RepositorySummary:
    return RepositorySummary(
        id=item["id"],
        name=item.get("name") or "",
        full_name=item.get("full_name") or "",
        owner_login=(item.get("owner") or {}).get("login") or "",
        language=item.get("language"),
        updated_at=item.get("updated_at"),
        html_url=item.get("html_url") or "",
    )


class GitHubGateway:
    """
    Async client for the GitHub REST API.

    No retries are performed; transport errors and non-2xx responses are
    returned as failed GatewayResults carrying the HTTP status and GitHub's
    error message when one is present.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the gateway.

        Args:
            base_url: GitHub API root, defaults to settings.github_api_url
            api_version: Value for the X-GitHub-Api-Version header
            timeout: Transport timeout in seconds
            client: Pre-built httpx client (tests inject a MockTransport here)
        """
        self.base_url = (base_url or settings.github_api_url).rstrip("/")
        self.api_version = api_version or settings.github_api_version
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.http_timeout_seconds,
        )

        logger.info(f"GitHubGateway initialized for {self.base_url}")

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.api_version,
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        token: Optional[str],
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> GatewayResult:
        """
        Perform one GitHub REST call.

        Args:
            method: HTTP method
            endpoint: Path relative to the API root, starting with '/'
            token: Bearer token; a missing token skips the call entirely
            params: Query parameters
            json: JSON request body

        Returns:
            GatewayResult with the decoded JSON payload on success
        """
        if not token:
            return GatewayResult.failed(MISSING_TOKEN_MESSAGE)

        start_time = time.time()
        try:
            response = await self._client.request(
                method,
                f"{self.base_url}{endpoint}",
                headers=self._headers(token),
                params=params,
                json=json,
            )
        except httpx.HTTPError as e:
            log_api_call(
                logger,
                service="github",
                endpoint=endpoint,
                method=method,
                duration_ms=(time.time() - start_time) * 1000,
                error=str(e) or type(e).__name__,
            )
            return GatewayResult.failed()

        duration_ms = (time.time() - start_time) * 1000

        if not response.is_success:
            message = _upstream_message(response)
            log_api_call(
                logger,
                service="github",
                endpoint=endpoint,
                method=method,
                status_code=response.status_code,
                duration_ms=duration_ms,
                error=message or f"HTTP {response.status_code}",
            )
            return GatewayResult.failed(message, status_code=response.status_code)

        log_api_call(
            logger,
            service="github",
            endpoint=endpoint,
            method=method,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

        if response.status_code == 204 or not response.content:
            return GatewayResult.ok(None, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError:
            logger.warning(f"Non-JSON response from {method} {endpoint}")
            return GatewayResult.failed("Invalid JSON response", status_code=response.status_code)

        return GatewayResult.ok(payload, status_code=response.status_code)

    async def _request_list(self, endpoint: str, token: Optional[str], params: Dict[str, Any], parse) -> GatewayResult:
        """GET a JSON array and parse each element; a non-array payload is a failure."""
        result = await self._request("GET", endpoint, token, params=params)
        if not result.success:
            return result
        if not isinstance(result.data, list):
            return GatewayResult.failed("Unexpected response shape", status_code=result.status_code)
        try:
            items = [parse(item) for item in result.data]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed item in response from GET {endpoint}: {e}")
            return GatewayResult.failed("Unexpected response shape", status_code=result.status_code)
        return GatewayResult.ok(items, status_code=result.status_code)

    @staticmethod
    def _parse_object(result: GatewayResult, parse) -> GatewayResult:
        """Parse a successful single-object payload in place."""
        if not result.success or not isinstance(result.data, dict):
            return result
        try:
            result.data = parse(result.data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed object in response: {e}")
            return GatewayResult.failed("Unexpected response shape", status_code=result.status_code)
        return result

    @staticmethod
    def _repo_path(owner: str, repo: str) -> str:
        return f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    # Repositories and branches

    async def list_user_repositories(self, token: Optional[str]) -> GatewayResult:
        """List the signed-in user's repositories, most recently updated first."""
        return await self._request_list(
            "/user/repos",
            token,
            {"sort": "updated", "per_page": settings.repositories_per_page},
            _parse_repository,
        )

    async def list_branches(self, token: Optional[str], owner: str, repo: str) -> GatewayResult:
        """List repository branches."""
        return await self._request_list(
            f"{self._repo_path(owner, repo)}/branches",
            token,
            {"per_page": settings.branches_per_page},
            lambda item: Branch(name=item["name"]),
        )

    # Contents

    def _contents_endpoint(self, owner: str, repo: str, path: str) -> str:
        suffix = "" if path == ROOT_PATH else f"/{quote(path, safe='/')}"
        return f"{self._repo_path(owner, repo)}/contents{suffix}"

    async def list_directory(
        self, token: Optional[str], owner: str, repo: str, path: str, ref: str
    ) -> GatewayResult:
        """
        List a directory at a branch.

        Args:
            token: Bearer token
            owner: Repository owner
            repo: Repository name
            path: Directory path, or ROOT_PATH for the repository root
            ref: Branch name

        Returns:
            GatewayResult whose data is a list of RepoNode
        """
        return await self._request_list(
            self._contents_endpoint(owner, repo, path),
            token,
            {"ref": ref},
            _parse_node,
        )

    async def get_file_content(
        self, token: Optional[str], owner: str, repo: str, path: str, ref: str
    ) -> GatewayResult:
        """
        Fetch a single file at a branch.

        Returns:
            GatewayResult whose data is the raw base64 `content` string, or
            None when GitHub returned no inline content
        """
        result = await self._request("GET", self._contents_endpoint(owner, repo, path), token, params={"ref": ref})
        if not result.success:
            return result
        content = result.data.get("content") if isinstance(result.data, dict) else None
        return GatewayResult.ok(content or None, status_code=result.status_code)

    # Pull requests

    async def list_pull_requests(self, token: Optional[str], owner: str, repo: str) -> GatewayResult:
        """List open and closed pull requests."""
        return await self._request_list(
            f"{self._repo_path(owner, repo)}/pulls",
            token,
            {"state": "all", "per_page": settings.pulls_per_page},
            _parse_pull_request,
        )

    async def create_pull_request(
        self,
        token: Optional[str],
        owner: str,
        repo: str,
        title: str,
        body: str,
        head: str,
        base: str,
    ) -> GatewayResult:
        """Open a pull request from head into base."""
        result = await self._request(
            "POST",
            f"{self._repo_path(owner, repo)}/pulls",
            token,
            json={"title": title, "body": body, "head": head, "base": base},
        )
        return self._parse_object(result, _parse_pull_request)

    async def update_pull_request(
        self, token: Optional[str], owner: str, repo: str, number: int, **fields: Any
    ) -> GatewayResult:
        """
        Patch a pull request.

        Args:
            number: Pull request number
            **fields: Any subset of title, body and state
        """
        payload = {
            key: (value.value if isinstance(value, PullRequestState) else value)
            for key, value in fields.items()
            if key in ("title", "body", "state")
        }
        result = await self._request(
            "PATCH", f"{self._repo_path(owner, repo)}/pulls/{number}", token, json=payload
        )
        return self._parse_object(result, _parse_pull_request)

    async def list_pull_request_files(
        self, token: Optional[str], owner: str, repo: str, number: int
    ) -> GatewayResult:
        """List the changed files of a pull request."""
        return await self._request_list(
            f"{self._repo_path(owner, repo)}/pulls/{number}/files",
            token,
            {"per_page": settings.files_per_page},
            _parse_changed_file,
        )

    # Comments and reviews

    async def list_issue_comments(
        self, token: Optional[str], owner: str, repo: str, number: int
    ) -> GatewayResult:
        return await self._request_list(
            f"{self._repo_path(owner, repo)}/issues/{number}/comments",
            token,
            {"per_page": settings.comments_per_page},
            lambda item: _parse_comment(item, CommentOrigin.ISSUE),
        )

    async def list_review_comments(
        self, token: Optional[str], owner: str, repo: str, number: int
    ) -> GatewayResult:
        return await self._request_list(
            f"{self._repo_path(owner, repo)}/pulls/{number}/comments",
            token,
            {"per_page": settings.comments_per_page},
            lambda item: _parse_comment(item, CommentOrigin.REVIEW),
        )

    async def create_issue_comment(
        self, token: Optional[str], owner: str, repo: str, number: int, body: str
    ) -> GatewayResult:
        result = await self._request(
            "POST",
            f"{self._repo_path(owner, repo)}/issues/{number}/comments",
            token,
            json={"body": body},
        )
        return self._parse_object(result, lambda item: _parse_comment(item, CommentOrigin.ISSUE))

    async def submit_review(
        self,
        token: Optional[str],
        owner: str,
        repo: str,
        number: int,
        body: str,
        event: ReviewEvent,
    ) -> GatewayResult:
        """Submit a COMMENT, APPROVE or REQUEST_CHANGES review."""
        return await self._request(
            "POST",
            f"{self._repo_path(owner, repo)}/pulls/{number}/reviews",
            token,
            json={"body": body, "event": ReviewEvent(event).value},
        )


# Global gateway instance
_github_gateway: Optional[GitHubGateway] = None


def get_github_gateway() -> GitHubGateway:
    """
    Get or create the global GitHubGateway instance.

    Returns:
        GitHubGateway instance
    """
    global _github_gateway
    if _github_gateway is None:
        _github_gateway = GitHubGateway()
    return _github_gateway


async def close_github_gateway() -> None:
    """Close the global gateway's HTTP client, if one was created."""
    global _github_gateway
    if _github_gateway is not None:
        await _github_gateway.aclose()
        _github_gateway = None
