# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registry Store Access

Single responsibility: Read registry nodes by (owner, slug) or by id, and
apply the two usage writes (download counter, analytics event).

Orphaned records (owner missing or deleted) are invisible: they look
exactly like a missing node. Nothing here retries; any transport or query
failure surfaces as StoreError.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Any

import httpx

from marketplace.core.errors import StoreError
from marketplace.models.registry_models import (
    AnalyticsEvent,
    DependencyReference,
    NodeKind,
    RegistryNode,
    make_reference,
)

logger = logging.getLogger(__name__)


class RegistryStore(ABC):
    """Read access to registry nodes plus the usage write interface"""

    @abstractmethod
    async def lookup_node(self, owner: str, slug: str) -> Optional[RegistryNode]:
        """Find a node by owner username (or display username) and slug."""

    @abstractmethod
    async def lookup_node_by_id(self, node_id: int) -> Optional[RegistryNode]:
        """Find a node by numeric id."""

    @abstractmethod
    async def increment_download_count(self, node_id: int, current_count: int) -> None:
        """Bump the download counter of a node."""

    @abstractmethod
    async def append_analytics_event(self, event: AnalyticsEvent) -> None:
        """Append a usage analytics event."""


def parse_json_field(value: Any, expected: type, field_name: str) -> Any:
    """
    Tolerantly decode a JSON column that may arrive as text.

    Returns an empty instance of `expected` when the value is missing or
    malformed.
    """
    if value is None:
        return expected()
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing {field_name}: {e}")
            return expected()
    if not isinstance(value, expected):
        logger.warning(f"Unexpected {field_name} structure: {type(value).__name__}")
        return expected()
    return value


def parse_references(value: Any, field_name: str, demo_only: bool = False) -> List[DependencyReference]:
    """Decode a list of `owner/slug` strings into dependency references"""
    references = []
    for item in parse_json_field(value, list, field_name):
        if not isinstance(item, str) or "/" not in item:
            logger.warning(f"Skipping malformed {field_name} entry: {item!r}")
            continue
        owner, slug = item.strip().split("/", 1)
        references.append(
            DependencyReference(reference=make_reference(owner, slug), demo_only=demo_only)
        )
    return references


def _ilike_literal(value: str) -> str:
    """Escape a value for an exact case-insensitive match inside a quoted PostgREST filter."""
    pattern = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return pattern.replace("\\", "\\\\").replace('"', '\\"')


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

class InMemoryRegistryStore(RegistryStore):
    """
    Fixture-backed registry store.

    Used for local development (store.backend: memory) and tests. Users are
    tracked separately from nodes so a node can be orphaned by removing its
    owner.
    """

    def __init__(
        self,
        nodes: Iterable[RegistryNode] = (),
        users: Optional[Iterable[str]] = None,
        display_names: Optional[Dict[str, str]] = None
    ):
        """
        Initialize in-memory store.

        Args:
            nodes: Registry nodes to serve
            users: Known usernames (defaults to every node owner)
            display_names: Display username -> username aliases
        """
        self.nodes: Dict[int, RegistryNode] = {}
        self.users = set()
        self.display_names = {
            alias.lower(): name.lower() for alias, name in (display_names or {}).items()
        }
        self.download_counts: Dict[int, int] = {}
        self.analytics_events: List[AnalyticsEvent] = []
        self.lookups: List[str] = []

        for node in nodes:
            self.add_node(node, register_owner=users is None)
        for user in users or ():
            self.users.add(user.lower())

    @classmethod
    def from_records(cls, data: Dict[str, Any]) -> "InMemoryRegistryStore":
        """
        Build a store from a fixture document.

        Format:
            {"users": [{"username": "alice", "display_username": "Alice"}],
             "nodes": [{"id": 1, "owner": "alice", "slug": "button", ...}]}
        """
        users = data.get("users")
        display_names = {}
        usernames = None
        if users is not None:
            usernames = []
            for user in users:
                usernames.append(user["username"])
                if user.get("display_username"):
                    display_names[user["display_username"]] = user["username"]

        nodes = []
        for record in data.get("nodes", []):
            record = dict(record)
            record.setdefault("user_id", record["owner"].lower())
            record["registry_dependencies"] = [
                dep if isinstance(dep, dict) else {"reference": dep}
                for dep in record.get("registry_dependencies", [])
            ]
            nodes.append(RegistryNode(**record))

        return cls(nodes, users=usernames, display_names=display_names)

    @classmethod
    def from_json_file(cls, path: Path) -> "InMemoryRegistryStore":
        """Load a fixture document from disk"""
        try:
            data = json.loads(Path(path).read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Failed to load registry fixture {path}: {e}", operation="load")
        store = cls.from_records(data)
        logger.info(f"Loaded {len(store.nodes)} registry nodes from {path}")
        return store

    def add_node(self, node: RegistryNode, register_owner: bool = True):
        self.nodes[node.id] = node
        if register_owner:
            self.users.add(node.owner.lower())

    def delete_user(self, username: str):
        """Remove a user, orphaning every node it owns"""
        self.users.discard(username.lower())

    def _resolve_owner(self, owner: str) -> Optional[str]:
        owner = owner.lower()
        if owner in self.users:
            return owner
        alias = self.display_names.get(owner)
        if alias in self.users:
            return alias
        return None

    async def lookup_node(self, owner: str, slug: str) -> Optional[RegistryNode]:
        self.lookups.append(make_reference(owner, slug))
        username = self._resolve_owner(owner)
        if username is None:
            return None
        for node in self.nodes.values():
            if node.owner.lower() == username and node.slug == slug:
                return node
        return None

    async def lookup_node_by_id(self, node_id: int) -> Optional[RegistryNode]:
        node = self.nodes.get(node_id)
        if node is None or node.owner.lower() not in self.users:
            return None
        return node

    async def increment_download_count(self, node_id: int, current_count: int) -> None:
        self.download_counts[node_id] = current_count + 1

    async def append_analytics_event(self, event: AnalyticsEvent) -> None:
        self.analytics_events.append(event)


# =============================================================================
# HTTP (PostgREST) STORE
# =============================================================================

class HttpRegistryStore(RegistryStore):
    """
    Registry store backed by a PostgREST-style REST API.

    Components are read from the components table, demos from the demos
    table (by id). Source code columns hold asset URLs which are downloaded
    with the same client.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        users_table: str = "users",
        components_table: str = "components",
        demos_table: str = "demos",
        analytics_table: str = "component_analytics"
    ):
        """
        Initialize HTTP registry store.

        Args:
            client: Shared HTTP client
            base_url: REST endpoint root (e.g. https://db.example.com/rest/v1)
            api_key: Service API key, sent as apikey and bearer token
            timeout: Per-request timeout in seconds
            users_table: Users table name
            components_table: Components table name
            demos_table: Demos table name
            analytics_table: Analytics events table name
        """
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.users_table = users_table
        self.components_table = components_table
        self.demos_table = demos_table
        self.analytics_table = analytics_table
        self.headers = {"Accept": "application/json"}
        if api_key:
            self.headers["apikey"] = api_key
            self.headers["Authorization"] = f"Bearer {api_key}"

    async def _request(
        self,
        method: str,
        table: str,
        operation: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None
    ) -> Any:
        url = f"{self.base_url}/{table}"
        try:
            response = await self.client.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self.headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(
                f"Store query failed ({operation}): HTTP {e.response.status_code}",
                operation=operation,
                details={"table": table},
            )
        except httpx.HTTPError as e:
            raise StoreError(f"Store unreachable ({operation}): {e}", operation=operation)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(f"Store returned invalid JSON ({operation}): {e}", operation=operation)

    async def _find_user(self, owner: str) -> Optional[Dict[str, Any]]:
        # PostgREST reads "*" as a wildcard and offers no escape for it
        if "*" in owner:
            return None
        quoted = _ilike_literal(owner)
        rows = await self._request(
            "GET",
            self.users_table,
            "lookup_user",
            params={
                "select": "id,username,display_username",
                "or": f'(username.ilike."{quoted}",display_username.ilike."{quoted}")',
                "limit": "1",
            },
        )
        return rows[0] if rows else None

    async def _download_code(self, location: Optional[str], reference: str) -> str:
        if not location:
            return ""
        if not location.startswith(("http://", "https://")):
            return location

        try:
            response = await self.client.get(location, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise StoreError(
                f"Error downloading file for {reference}: {e}", operation="download_code"
            )
        if response.status_code != 200:
            raise StoreError(
                f"Error downloading file for {reference}: HTTP {response.status_code}",
                operation="download_code",
            )
        if not response.text:
            raise StoreError(
                f"Error loading dependency {reference}: no code returned",
                operation="download_code",
            )
        return response.text

    async def lookup_node(self, owner: str, slug: str) -> Optional[RegistryNode]:
        user = await self._find_user(owner)
        if not user or not user.get("id"):
            return None

        rows = await self._request(
            "GET",
            self.components_table,
            "lookup_node",
            params={
                "select": "*,user:users!user_id(id,username,display_username)",
                "user_id": f"eq.{user['id']}",
                "component_slug": f"eq.{slug}",
                "limit": "1",
            },
        )
        if not rows or not rows[0].get("user"):
            return None
        return await self._component_from_row(rows[0])

    async def lookup_node_by_id(self, node_id: int) -> Optional[RegistryNode]:
        rows = await self._request(
            "GET",
            self.demos_table,
            "lookup_node_by_id",
            params={
                "select": (
                    "*,user:users!user_id(id,username,display_username),"
                    "component:components!component_id(component_slug,"
                    "user:users!user_id(username))"
                ),
                "id": f"eq.{node_id}",
                "limit": "1",
            },
        )
        if not rows or not rows[0].get("user"):
            return None
        return await self._demo_from_row(rows[0])

    async def _component_from_row(self, row: Dict[str, Any]) -> RegistryNode:
        owner = row["user"]["username"]
        reference = make_reference(owner, row["component_slug"])
        return RegistryNode(
            id=row["id"],
            user_id=str(row["user_id"]),
            owner=owner,
            slug=row["component_slug"],
            kind=NodeKind.COMPONENT,
            code=await self._download_code(row.get("code"), reference),
            registry=row.get("registry") or "ui",
            dependencies=parse_json_field(row.get("dependencies"), dict, "dependencies"),
            registry_dependencies=(
                parse_references(
                    row.get("direct_registry_dependencies"), "direct_registry_dependencies"
                )
                + parse_references(
                    row.get("demo_direct_registry_dependencies"),
                    "demo_direct_registry_dependencies",
                    demo_only=True,
                )
            ),
            tailwind_config_extension=row.get("tailwind_config_extension"),
            global_css_extension=row.get("global_css_extension"),
            downloads_count=row.get("downloads_count") or 0,
            sandbox_id=row.get("sandbox_id"),
            registry_url=row.get("registry_url"),
        )

    async def _demo_from_row(self, row: Dict[str, Any]) -> RegistryNode:
        owner = row["user"]["username"]
        component = row.get("component") or {}
        component_slug = component.get("component_slug") or "component"
        slug = f"{component_slug}-{row.get('demo_slug') or 'default'}"

        references = []
        component_owner = (component.get("user") or {}).get("username")
        if component_owner and component.get("component_slug"):
            references.append(DependencyReference(
                reference=make_reference(component_owner, component["component_slug"])
            ))
        references.extend(parse_references(
            row.get("demo_direct_registry_dependencies"), "demo_direct_registry_dependencies"
        ))

        return RegistryNode(
            id=row["id"],
            user_id=str(row["user_id"]),
            owner=owner,
            slug=slug,
            kind=NodeKind.DEMO,
            code=await self._download_code(row.get("demo_code"), make_reference(owner, slug)),
            registry="demo",
            dependencies=parse_json_field(row.get("demo_dependencies"), dict, "demo_dependencies"),
            registry_dependencies=references,
        )

    async def increment_download_count(self, node_id: int, current_count: int) -> None:
        await self._request(
            "PATCH",
            self.components_table,
            "increment_download_count",
            params={"id": f"eq.{node_id}"},
            json_body={"downloads_count": current_count + 1},
        )

    async def append_analytics_event(self, event: AnalyticsEvent) -> None:
        await self._request(
            "POST",
            self.analytics_table,
            "append_analytics_event",
            json_body=event.model_dump(mode="json"),
        )
