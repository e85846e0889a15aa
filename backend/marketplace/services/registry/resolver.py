# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency Resolver

Single responsibility: Walk the registry dependency graph from a seed set
and accumulate one file per node plus a merged external-package map.

Traversal is depth-first over an explicit stack. Two separate guards:
- on_path: nodes currently being expanded (an edge back into it is a cycle)
- visited: nodes fully expanded (an edge into it is a plain diamond)
"""

from typing import Dict, List, Optional, Tuple

from marketplace.core.errors import (
    CycleWarning,
    DanglingReferenceWarning,
    DepthLimitWarning,
    DuplicatePathWarning,
    MissingSeedWarning,
    NothingResolvedError,
    ResolutionWarning,
)
from marketplace.core.logging import get_service_logger, log_event
from marketplace.models.registry_models import (
    NodeKind,
    RegistryNode,
    ResolutionResult,
    ResolvedFile,
)
from .graph import dependency_edges
from .store import RegistryStore

logger = get_service_logger("resolver")

_ENTER = "enter"
_EXIT = "exit"

# (action, reference, depth, parent)
Frame = Tuple[str, str, int, Optional[str]]


def file_path_for(node: RegistryNode, extension: str = ".tsx") -> str:
    """
    Deterministic install path of a node's source file.

    Example:
        lib   -> /lib/utils.tsx
        hooks -> /hooks/use-media.tsx
        demo  -> /demos/button-default.tsx
        ui    -> /components/ui/button.tsx
    """
    if node.kind == NodeKind.DEMO:
        return f"/demos/{node.slug}{extension}"
    if node.registry == "lib":
        return f"/lib/{node.slug}{extension}"
    if node.registry in ("hooks", "hook"):
        return f"/hooks/{node.slug}{extension}"
    return f"/components/{node.registry}/{node.slug}{extension}"


class DependencyResolver:
    """Resolves registry dependency trees (first writer / first seen wins)"""

    def __init__(
        self,
        store: RegistryStore,
        file_extension: str = ".tsx",
        max_depth: Optional[int] = None
    ):
        """
        Initialize dependency resolver.

        Args:
            store: Registry store used for node lookups
            file_extension: Extension appended to generated file paths
            max_depth: Maximum edge depth below a seed (None for unlimited)
        """
        self.store = store
        self.file_extension = file_extension
        self.max_depth = max_depth

    async def resolve(
        self,
        seeds: List[str],
        include_demo_dependencies: bool = False,
        known_nodes: Optional[Dict[str, RegistryNode]] = None
    ) -> ResolutionResult:
        """
        Resolve every node reachable from the seeds.

        Args:
            seeds: Canonical `owner/slug` references (see build_seed_set)
            include_demo_dependencies: Follow the seeds' demo-only dependencies
            known_nodes: Already fetched nodes keyed by reference

        Returns:
            ResolutionResult with files and merged npm dependencies

        Raises:
            NothingResolvedError: If no seed exists
            StoreError: If a lookup fails (never retried)
        """
        known_nodes = known_nodes or {}
        seed_set = set(seeds)
        result = ResolutionResult()
        visited = set()
        on_path = set()
        missing = set()

        stack: List[Frame] = [
            (_ENTER, seed, 0, None) for seed in reversed(seeds)
        ]

        while stack:
            action, reference, depth, parent = stack.pop()
            is_seed = reference in seed_set

            if action == _EXIT:
                on_path.discard(reference)
                visited.add(reference)
                continue

            if reference in visited or reference in missing:
                continue
            if reference in on_path:
                self._warn(result, CycleWarning(
                    reference, f"Circular dependency detected: {reference}", parent
                ))
                continue

            node = known_nodes.get(reference)
            if node is None:
                owner, slug = reference.split("/", 1)
                node = await self.store.lookup_node(owner, slug)

            if node is None:
                missing.add(reference)
                if is_seed:
                    self._warn(result, MissingSeedWarning(
                        reference, f"Seed not found: {reference}"
                    ))
                else:
                    self._warn(result, DanglingReferenceWarning(
                        reference, f"Dependency not found: {reference}", parent
                    ))
                continue

            on_path.add(reference)
            result.resolved.append(reference)
            self._add_file(result, node, reference, parent)
            self._merge_dependencies(result, node)

            stack.append((_EXIT, reference, depth, parent))
            children = dependency_edges(node, is_seed, include_demo_dependencies)
            for child in reversed(children):
                if child in on_path:
                    self._warn(result, CycleWarning(
                        child, f"Circular dependency detected: {reference} -> {child}", reference
                    ))
                    continue
                if child in visited:
                    continue
                if self.max_depth is not None and depth + 1 > self.max_depth:
                    self._warn(result, DepthLimitWarning(
                        child, f"Maximum dependency depth reached for: {child}", reference
                    ))
                    continue
                stack.append((_ENTER, child, depth + 1, reference))

        if not result.resolved:
            raise NothingResolvedError(seeds)

        logger.info(
            f"Resolved {len(result.resolved)} registry nodes "
            f"({len(result.files)} files, {len(result.npm_dependencies)} packages, "
            f"{len(result.warnings)} warnings)"
        )
        return result

    def _add_file(
        self,
        result: ResolutionResult,
        node: RegistryNode,
        reference: str,
        parent: Optional[str]
    ):
        path = file_path_for(node, self.file_extension)
        if path in result.files:
            self._warn(result, DuplicatePathWarning(
                reference, f"File path {path} already produced, keeping first definition", parent
            ))
            return
        result.files[path] = ResolvedFile(code=node.code, registry=node.registry)

    def _merge_dependencies(self, result: ResolutionResult, node: RegistryNode):
        for package, version in node.dependencies.items():
            existing = result.npm_dependencies.get(package)
            if existing is None:
                result.npm_dependencies[package] = version
            elif existing != version:
                logger.debug(
                    f"Keeping {package}@{existing}, ignoring {package}@{version} "
                    f"from {node.reference}"
                )

    def _warn(self, result: ResolutionResult, warning: ResolutionWarning):
        result.warnings.append(warning)
        fields = warning.to_dict()
        log_event(logger, fields.pop("message"), level="WARNING", **fields)
