# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for DependencyResolver

Tests traversal order, memoization, cycle handling, conflict policies,
demo expansion and failure behavior against an in-memory store.
"""

import logging

import pytest
from unittest.mock import AsyncMock

from marketplace.core.errors import (
    CycleWarning,
    DanglingReferenceWarning,
    DepthLimitWarning,
    DuplicatePathWarning,
    MissingSeedWarning,
    NothingResolvedError,
    StoreError,
)
from marketplace.core.logging import JSONFormatter, TextFormatter
from marketplace.models.registry_models import NodeKind, RegistryNode
from marketplace.services.registry import resolver as resolver_module
from marketplace.services.registry.resolver import DependencyResolver, file_path_for
from marketplace.services.registry.store import InMemoryRegistryStore, RegistryStore


def make_store(*nodes):
    """Build an in-memory store from compact node records"""
    records = []
    for index, node in enumerate(nodes, start=1):
        record = {"id": index, "code": f"// {node['owner']}/{node['slug']}"}
        record.update(node)
        records.append(record)
    return InMemoryRegistryStore.from_records({"nodes": records})


def warnings_of(result, warning_type):
    return [w for w in result.warnings if isinstance(w, warning_type)]


@pytest.fixture
def button_store():
    """alice/button -> alice/icon-set, shadcn/utils"""
    return make_store(
        {
            "owner": "alice",
            "slug": "button",
            "registry": "ui",
            "dependencies": {"react": "^18"},
            "registry_dependencies": ["alice/icon-set", "shadcn/utils"],
        },
        {
            "owner": "alice",
            "slug": "icon-set",
            "registry": "icons",
            "dependencies": {"lucide-react": "^0.400"},
        },
        {
            "owner": "shadcn",
            "slug": "utils",
            "registry": "lib",
            "dependencies": {"clsx": "^2"},
        },
    )


@pytest.fixture
def diamond_store():
    """x/a -> x/b, x/c; x/b -> x/d; x/c -> x/d"""
    return make_store(
        {"owner": "x", "slug": "a", "registry_dependencies": ["x/b", "x/c"]},
        {"owner": "x", "slug": "b", "registry_dependencies": ["x/d"]},
        {"owner": "x", "slug": "c", "registry_dependencies": ["x/d"]},
        {"owner": "x", "slug": "d"},
    )


class TestFilePathFor:
    """Test deterministic install paths"""

    def _node(self, registry, kind=NodeKind.COMPONENT):
        return RegistryNode(id=1, user_id="u", owner="o", slug="thing", registry=registry, kind=kind)

    def test_lib(self):
        assert file_path_for(self._node("lib")) == "/lib/thing.tsx"

    def test_hooks(self):
        assert file_path_for(self._node("hooks")) == "/hooks/thing.tsx"
        assert file_path_for(self._node("hook")) == "/hooks/thing.tsx"

    def test_category(self):
        assert file_path_for(self._node("blocks")) == "/components/blocks/thing.tsx"

    def test_demo(self):
        assert file_path_for(self._node("demo", kind=NodeKind.DEMO)) == "/demos/thing.tsx"

    def test_custom_extension(self):
        assert file_path_for(self._node("ui"), ".jsx") == "/components/ui/thing.jsx"


class TestResolve:
    """Test the dependency walk"""

    @pytest.mark.asyncio
    async def test_button_example(self, button_store):
        """Root, its icon set and the shared utils all land in the result"""
        resolver = DependencyResolver(button_store)

        result = await resolver.resolve(["alice/button"])

        assert set(result.files) == {
            "/components/ui/button.tsx",
            "/components/icons/icon-set.tsx",
            "/lib/utils.tsx",
        }
        assert result.files["/lib/utils.tsx"].code == "// shadcn/utils"
        assert result.files["/lib/utils.tsx"].registry == "lib"
        assert result.npm_dependencies == {
            "react": "^18",
            "lucide-react": "^0.400",
            "clsx": "^2",
        }
        assert result.error is None
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_depth_first_order(self, diamond_store):
        resolver = DependencyResolver(diamond_store)

        result = await resolver.resolve(["x/a"])

        assert result.resolved == ["x/a", "x/b", "x/d", "x/c"]

    @pytest.mark.asyncio
    async def test_diamond_is_deduplicated(self, diamond_store):
        """A shared dependency is fetched and emitted once"""
        resolver = DependencyResolver(diamond_store)

        result = await resolver.resolve(["x/a"])

        assert len(result.files) == 4
        assert diamond_store.lookups.count("x/d") == 1
        assert warnings_of(result, CycleWarning) == []

    @pytest.mark.asyncio
    async def test_cycle_terminates(self):
        """x/a -> x/b -> x/a resolves both nodes and reports the back edge"""
        store = make_store(
            {"owner": "x", "slug": "a", "registry_dependencies": ["x/b"]},
            {"owner": "x", "slug": "b", "registry_dependencies": ["x/a"]},
        )
        resolver = DependencyResolver(store)

        result = await resolver.resolve(["x/a"])

        assert result.resolved == ["x/a", "x/b"]
        cycles = warnings_of(result, CycleWarning)
        assert len(cycles) == 1
        assert cycles[0].reference == "x/a"
        assert cycles[0].parent == "x/b"

    @pytest.mark.asyncio
    async def test_self_dependency(self):
        store = make_store({"owner": "x", "slug": "a", "registry_dependencies": ["x/a"]})
        resolver = DependencyResolver(store)

        result = await resolver.resolve(["x/a"])

        assert len(result.files) == 1
        assert len(warnings_of(result, CycleWarning)) == 1

    @pytest.mark.asyncio
    async def test_first_seen_version_wins(self):
        store = make_store(
            {"owner": "x", "slug": "a", "dependencies": {"react": "^18"},
             "registry_dependencies": ["x/b"]},
            {"owner": "x", "slug": "b", "dependencies": {"react": "^17", "motion": "^11"}},
        )
        resolver = DependencyResolver(store)

        result = await resolver.resolve(["x/a"])

        assert result.npm_dependencies == {"react": "^18", "motion": "^11"}

    @pytest.mark.asyncio
    async def test_seed_order_decides_version(self):
        store = make_store(
            {"owner": "x", "slug": "a", "dependencies": {"react": "^18"}},
            {"owner": "x", "slug": "b", "dependencies": {"react": "^17"}},
        )
        resolver = DependencyResolver(store)

        result = await resolver.resolve(["x/b", "x/a"])

        assert result.npm_dependencies == {"react": "^17"}

    @pytest.mark.asyncio
    async def test_dangling_reference_is_tolerated(self):
        store = make_store(
            {"owner": "x", "slug": "a", "registry_dependencies": ["x/ghost", "x/b"]},
            {"owner": "x", "slug": "b", "registry_dependencies": ["x/ghost"]},
        )
        resolver = DependencyResolver(store)

        result = await resolver.resolve(["x/a"])

        assert result.resolved == ["x/a", "x/b"]
        dangling = warnings_of(result, DanglingReferenceWarning)
        assert len(dangling) == 1
        assert dangling[0].reference == "x/ghost"
        assert dangling[0].parent == "x/a"
        assert store.lookups.count("x/ghost") == 1

    @pytest.mark.asyncio
    async def test_orphaned_dependency_is_dangling(self, button_store):
        """Nodes of a deleted user are invisible"""
        button_store.delete_user("shadcn")
        resolver = DependencyResolver(button_store)

        result = await resolver.resolve(["alice/button"])

        assert "/lib/utils.tsx" not in result.files
        assert [w.reference for w in warnings_of(result, DanglingReferenceWarning)] == ["shadcn/utils"]

    @pytest.mark.asyncio
    async def test_all_seeds_missing(self, button_store):
        resolver = DependencyResolver(button_store)

        with pytest.raises(NothingResolvedError) as exc_info:
            await resolver.resolve(["nobody/nothing", "alice/ghost"])

        assert exc_info.value.status_code == 404
        assert exc_info.value.seeds == ["nobody/nothing", "alice/ghost"]

    @pytest.mark.asyncio
    async def test_some_seeds_missing(self, button_store):
        resolver = DependencyResolver(button_store)

        result = await resolver.resolve(["nobody/nothing", "shadcn/utils"])

        assert list(result.files) == ["/lib/utils.tsx"]
        missing = warnings_of(result, MissingSeedWarning)
        assert [w.reference for w in missing] == ["nobody/nothing"]

    @pytest.mark.asyncio
    async def test_path_collision_keeps_first_writer(self):
        store = make_store(
            {"owner": "alice", "slug": "button", "code": "alice"},
            {"owner": "bob", "slug": "button", "code": "bob"},
        )
        resolver = DependencyResolver(store)

        result = await resolver.resolve(["alice/button", "bob/button"])

        assert result.files["/components/ui/button.tsx"].code == "alice"
        duplicates = warnings_of(result, DuplicatePathWarning)
        assert [w.reference for w in duplicates] == ["bob/button"]

    @pytest.mark.asyncio
    async def test_depth_limit(self):
        store = make_store(
            {"owner": "x", "slug": "a", "registry_dependencies": ["x/b"]},
            {"owner": "x", "slug": "b", "registry_dependencies": ["x/c"]},
            {"owner": "x", "slug": "c"},
        )
        resolver = DependencyResolver(store, max_depth=1)

        result = await resolver.resolve(["x/a"])

        assert result.resolved == ["x/a", "x/b"]
        limited = warnings_of(result, DepthLimitWarning)
        assert [(w.reference, w.parent) for w in limited] == [("x/c", "x/b")]
        assert "x/c" not in store.lookups

    @pytest.mark.asyncio
    async def test_known_nodes_skip_lookup(self, button_store):
        root = await button_store.lookup_node("alice", "button")
        button_store.lookups.clear()
        resolver = DependencyResolver(button_store)

        result = await resolver.resolve(["alice/button"], known_nodes={"alice/button": root})

        assert "alice/button" not in button_store.lookups
        assert len(result.files) == 3


class TestDemoDependencies:
    """Test demo-only edge expansion"""

    @pytest.fixture
    def store(self):
        return make_store(
            {"owner": "x", "slug": "a", "registry_dependencies": [
                "x/b",
                {"reference": "x/frame", "demo_only": True},
            ]},
            {"owner": "x", "slug": "b", "registry_dependencies": [
                {"reference": "x/b-frame", "demo_only": True},
            ]},
            {"owner": "x", "slug": "frame"},
            {"owner": "x", "slug": "b-frame"},
        )

    @pytest.mark.asyncio
    async def test_demo_edges_skipped_by_default(self, store):
        result = await DependencyResolver(store).resolve(["x/a"])

        assert result.resolved == ["x/a", "x/b"]

    @pytest.mark.asyncio
    async def test_seed_demo_edges_followed_when_requested(self, store):
        result = await DependencyResolver(store).resolve(["x/a"], include_demo_dependencies=True)

        assert result.resolved == ["x/a", "x/b", "x/frame"]

    @pytest.mark.asyncio
    async def test_seed_reached_as_dependency_keeps_demo_edges(self, store):
        """x/b is a seed even though x/a reaches it first"""
        result = await DependencyResolver(store).resolve(
            ["x/a", "x/b"], include_demo_dependencies=True
        )

        assert "x/b-frame" in result.resolved


class TestStoreFailures:
    """Test store error behavior"""

    @pytest.mark.asyncio
    async def test_store_error_propagates(self):
        store = AsyncMock(spec=RegistryStore)
        store.lookup_node.side_effect = StoreError("connection refused", operation="lookup_node")
        resolver = DependencyResolver(store)

        with pytest.raises(StoreError):
            await resolver.resolve(["x/a"])

    @pytest.mark.asyncio
    async def test_store_error_mid_walk_propagates(self):
        """No partial result when a dependency lookup fails"""
        root = RegistryNode(id=1, user_id="u", owner="x", slug="a", registry_dependencies=[
            {"reference": "x/b"},
        ])
        store = AsyncMock(spec=RegistryStore)
        store.lookup_node.side_effect = [root, StoreError("timeout", operation="lookup_node")]
        resolver = DependencyResolver(store)

        with pytest.raises(StoreError):
            await resolver.resolve(["x/a"])

        assert store.lookup_node.await_count == 2


class TestWarningLogging:
    """Test that warnings go through the configured service logger"""

    @pytest.fixture
    def captured(self):
        records = []
        handler = logging.Handler()
        handler.emit = records.append
        resolver_module.logger.addHandler(handler)
        yield records
        resolver_module.logger.removeHandler(handler)

    def test_service_logger_is_configured(self):
        logger = resolver_module.logger

        assert logger.name == "marketplace.service.resolver"
        assert any(
            isinstance(h.formatter, (JSONFormatter, TextFormatter)) for h in logger.handlers
        )

    @pytest.mark.asyncio
    async def test_dangling_reference_is_logged_with_fields(self, captured):
        store = make_store({"owner": "x", "slug": "a", "registry_dependencies": ["x/ghost"]})

        await DependencyResolver(store).resolve(["x/a"])

        record = next(r for r in captured if getattr(r, "kind", None) == "dangling_reference")
        assert record.levelno == logging.WARNING
        assert record.name == "marketplace.service.resolver"
        assert record.reference == "x/ghost"
        assert record.parent == "x/a"
        assert record.getMessage() == "Dependency not found: x/ghost"
