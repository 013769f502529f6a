"""
Tree cache and lazy loader.

Directory listings are fetched on demand and memoized per (branch, path).
Switching branches flushes the whole cache rather than invalidating entries
selectively, so one branch's nodes can never be served under another's key.
"""

from typing import Dict, List, Optional, Tuple

from repodeck.models.repository import ROOT_PATH, NodeKind, RepoNode, RepositoryContext
from repodeck.services.github_gateway import GitHubGateway
from repodeck.utils.logging import get_logger


logger = get_logger(__name__)

CacheKey = Tuple[str, str]


class TreeCache:
    """(branch, path) -> ordered directory entries."""

    def __init__(self):
        self._entries: Dict[CacheKey, List[RepoNode]] = {}

    def get(self, branch: str, path: str) -> Optional[List[RepoNode]]:
        return self._entries.get((branch, path))

    def put(self, branch: str, path: str, nodes: List[RepoNode]) -> None:
        # Concurrent expansions of the same path write equivalent values
        self._entries[(branch, path)] = list(nodes)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> List[CacheKey]:
        return list(self._entries)

    def nodes(self):
        for nodes in self._entries.values():
            yield from nodes

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class TreeLoader:
    """
    Lazily expanding file tree for one repository.

    A failed listing yields an empty folder and is not cached, so expanding
    the folder again retries the fetch.
    """

    def __init__(self, gateway: GitHubGateway, context: RepositoryContext, branch: str):
        self.gateway = gateway
        self.context = context
        self.branch = branch
        self.cache = TreeCache()
        self._generation = 0
        self.logger = logger.with_context(owner=context.owner, repo=context.repo)

    def switch_branch(self, branch: str) -> bool:
        """
        Make `branch` the active branch, flushing the cache if it changed.

        Returns:
            True when the branch actually changed
        """
        if branch == self.branch:
            return False
        self.logger.info(
            f"Branch switched from {self.branch} to {branch}, clearing {len(self.cache)} cached listings",
            extra={"branch": branch},
        )
        self.branch = branch
        self._generation += 1
        self.cache.clear()
        return True

    def set_context(self, context: RepositoryContext) -> None:
        """Rebind to another token/repository; cached listings are dropped."""
        self.context = context
        self._generation += 1
        self.cache.clear()
        self.logger = logger.with_context(owner=context.owner, repo=context.repo)

    def cached_children(self, branch: str, path: str = ROOT_PATH) -> Optional[List[RepoNode]]:
        """Synchronous cache read; None when the listing was never loaded."""
        return self.cache.get(branch, path)

    async def list_children(self, branch: str, path: str = ROOT_PATH) -> List[RepoNode]:
        """
        List the children of `path` on `branch`.

        Args:
            branch: Branch to list; a branch other than the active one is a switch
            path: Directory path, or ROOT_PATH for the repository root

        Returns:
            Directory entries in upstream order, empty on failure
        """
        self.switch_branch(branch)

        cached = self.cache.get(branch, path)
        if cached is not None:
            return cached

        generation = self._generation
        result = await self.gateway.list_directory(
            self.context.token, self.context.owner, self.context.repo, path, branch
        )
        if not result.success:
            self.logger.warning(
                f"Listing {path} failed, showing empty folder",
                extra={"branch": branch, "status_code": result.status_code},
            )
            return []

        nodes: List[RepoNode] = result.data
        if generation != self._generation:
            # Branch or repository switched while the listing was in flight
            self.logger.debug(f"Discarding stale listing of {path} for {branch}")
            return nodes

        self.cache.put(branch, path, nodes)
        return nodes

    def get_node(self, path: str) -> RepoNode:
        """
        Resolve a node by path from any cached listing.

        The root resolves to a directory named after the repository; an
        unknown path resolves to a file named after its last segment.
        """
        if path == ROOT_PATH:
            return RepoNode(name=self.context.repo, path=ROOT_PATH, kind=NodeKind.DIRECTORY)
        for node in self.cache.nodes():
            if node.path == path:
                return node
        return RepoNode(name=path.split("/")[-1] or path, path=path, kind=NodeKind.FILE)
