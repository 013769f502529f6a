"""
Unit tests for the tree cache and loader.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from repodeck.models.api_response import GatewayResult
from repodeck.models.repository import ROOT_PATH, NodeKind, RepoNode, RepositoryContext
from repodeck.services.tree_loader import TreeCache, TreeLoader


def node(path, kind=NodeKind.FILE):
    return RepoNode(name=path.split("/")[-1], path=path, kind=kind)


@pytest.fixture
def context():
    return RepositoryContext(token="tok", owner="acme", repo="widgets")


@pytest.fixture
def gateway():
    mock = MagicMock()
    mock.list_directory = AsyncMock()
    return mock


def test_tree_cache_keys_by_branch_and_path():
    """Test that the same path on different branches is cached separately."""
    cache = TreeCache()
    cache.put("main", ROOT_PATH, [node("a")])
    cache.put("dev", ROOT_PATH, [node("b")])

    assert cache.get("main", ROOT_PATH)[0].path == "a"
    assert cache.get("dev", ROOT_PATH)[0].path == "b"
    assert ("main", ROOT_PATH) in cache
    assert len(cache) == 2

    cache.clear()
    assert cache.get("main", ROOT_PATH) is None
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_list_children_fetches_once(gateway, context):
    """Test that repeated listings of a path hit the network once."""
    gateway.list_directory.return_value = GatewayResult.ok([node("src", NodeKind.DIRECTORY), node("README.md")])
    loader = TreeLoader(gateway, context, "main")

    first = await loader.list_children("main")
    second = await loader.list_children("main")

    assert [n.path for n in first] == ["src", "README.md"]
    assert second == first
    gateway.list_directory.assert_awaited_once_with("tok", "acme", "widgets", ROOT_PATH, "main")


@pytest.mark.asyncio
async def test_failed_listing_is_empty_and_not_cached(gateway, context):
    """Test that a failure renders as an empty folder and is retried next time."""
    gateway.list_directory.side_effect = [
        GatewayResult.failed("Server Error", status_code=500),
        GatewayResult.ok([node("src/app.py")]),
    ]
    loader = TreeLoader(gateway, context, "main")

    failed = await loader.list_children("main", "src")
    assert failed == []
    assert loader.cached_children("main", "src") is None

    retried = await loader.list_children("main", "src")
    assert [n.path for n in retried] == ["src/app.py"]
    assert gateway.list_directory.await_count == 2


@pytest.mark.asyncio
async def test_branch_switch_flushes_cache(gateway, context):
    """Test the acme/widgets main -> dev branch switch."""
    main_root = [node("src", NodeKind.DIRECTORY), node("README.md")]
    dev_root = [node("src", NodeKind.DIRECTORY), node("CHANGELOG.md"), node("README.md")]
    gateway.list_directory.side_effect = [
        GatewayResult.ok(main_root),
        GatewayResult.ok(dev_root),
    ]
    loader = TreeLoader(gateway, context, "main")

    await loader.list_children("main")
    assert loader.switch_branch("dev") is True
    assert loader.cached_children("main") is None
    assert len(loader.cache) == 0

    dev_listing = await loader.list_children("dev")

    assert [n.path for n in dev_listing] == ["src", "CHANGELOG.md", "README.md"]
    assert loader.cache.keys() == [("dev", ROOT_PATH)]


@pytest.mark.asyncio
async def test_subdirectory_reloaded_after_branch_switch(gateway, context):
    """Test that src is fetched again for dev after being cached for main."""
    listings = {
        (ROOT_PATH, "main"): [node("src", NodeKind.DIRECTORY), node("README.md")],
        ("src", "main"): [node("src/app.py")],
        (ROOT_PATH, "dev"): [node("src", NodeKind.DIRECTORY), node("CHANGELOG.md"), node("README.md")],
        ("src", "dev"): [node("src/app.py"), node("src/gadgets.py")],
    }

    async def list_directory(token, owner, repo, path, branch):
        return GatewayResult.ok(listings[(path, branch)])

    gateway.list_directory.side_effect = list_directory
    loader = TreeLoader(gateway, context, "main")

    await loader.list_children("main")
    main_src = await loader.list_children("main", "src")
    loader.switch_branch("dev")
    await loader.list_children("dev")
    dev_src = await loader.list_children("dev", "src")

    assert [n.path for n in main_src] == ["src/app.py"]
    assert [n.path for n in dev_src] == ["src/app.py", "src/gadgets.py"]
    calls = [call.args[3:] for call in gateway.list_directory.await_args_list]
    assert calls.count(("src", "main")) == 1
    assert calls.count(("src", "dev")) == 1
    assert loader.cached_children("dev", "src") == dev_src
    assert loader.cached_children("main", "src") is None


def test_switch_to_same_branch_keeps_cache(gateway, context):
    """Test that re-selecting the active branch is a no-op."""
    loader = TreeLoader(gateway, context, "main")
    loader.cache.put("main", ROOT_PATH, [node("a")])

    assert loader.switch_branch("main") is False
    assert loader.cached_children("main") is not None


@pytest.mark.asyncio
async def test_listing_for_other_branch_switches(gateway, context):
    """Test that listing a different branch makes it active."""
    gateway.list_directory.return_value = GatewayResult.ok([])
    loader = TreeLoader(gateway, context, "main")
    loader.cache.put("main", ROOT_PATH, [node("a")])

    await loader.list_children("dev")

    assert loader.branch == "dev"
    assert ("main", ROOT_PATH) not in loader.cache


@pytest.mark.asyncio
async def test_stale_listing_is_not_cached(gateway, context):
    """Test that a listing returning after a branch switch is discarded."""
    release = asyncio.Event()

    async def slow_listing(*args):
        await release.wait()
        return GatewayResult.ok([node("old.txt")])

    gateway.list_directory.side_effect = slow_listing
    loader = TreeLoader(gateway, context, "main")

    pending = asyncio.ensure_future(loader.list_children("main"))
    await asyncio.sleep(0)
    loader.switch_branch("dev")
    release.set()
    nodes = await pending

    assert [n.path for n in nodes] == ["old.txt"]
    assert len(loader.cache) == 0


def test_get_node(gateway, context):
    """Test node resolution for root, cached and unknown paths."""
    loader = TreeLoader(gateway, context, "main")
    loader.cache.put("main", "src", [node("src/app.py")])

    root = loader.get_node(ROOT_PATH)
    cached = loader.get_node("src/app.py")
    unknown = loader.get_node("docs/guide.md")

    assert root.name == "widgets"
    assert root.is_directory
    assert cached.path == "src/app.py"
    assert unknown.name == "guide.md"
    assert unknown.kind == NodeKind.FILE
