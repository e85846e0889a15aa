# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registry Service - Orchestrates per-request registry flows.

Composes the store, resolver, style extractor, assembler and usage recorder
for the three entry points exposed over HTTP:
- component bundle download (CLI / package managers)
- dependency tree resolution for arbitrary seeds
- demo preview dependencies
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from marketplace.core.config import Config, get_store_api_key
from marketplace.core.errors import (
    ConfigurationError,
    MarketplaceError,
    NotFoundError,
    sanitize_error_for_user,
)
from marketplace.core.logging import get_service_logger
from marketplace.models.registry_models import (
    ErrorInfo,
    ResolutionRequest,
    ResolutionResult,
)
from marketplace.services.registry import (
    BundleAssembler,
    DependencyResolver,
    DetachedTaskRunner,
    HttpRegistryStore,
    InMemoryRegistryStore,
    RegistryStore,
    StyleAssetExtractor,
    UsageRecorder,
    build_seed_set,
)

logger = get_service_logger("registry")


def build_store(config: Config, client: httpx.AsyncClient) -> RegistryStore:
    """
    Create the registry store selected by configuration.

    Raises:
        ConfigurationError: If the backend is unknown or its settings are missing
    """
    if config.store_backend == "memory":
        if not config.store_fixture_path:
            logger.info("Memory store without fixture, starting empty")
            return InMemoryRegistryStore()
        return InMemoryRegistryStore.from_json_file(Path(config.store_fixture_path))

    if config.store_backend == "http":
        if not config.store_url:
            raise ConfigurationError("store.url is required for the http store backend")
        return HttpRegistryStore(
            client,
            config.store_url,
            api_key=get_store_api_key(),
            timeout=config.store_timeout,
            users_table=config.store_users_table,
            components_table=config.store_components_table,
            demos_table=config.store_demos_table,
            analytics_table=config.store_analytics_table,
        )

    raise ConfigurationError(f"Unknown store backend: {config.store_backend}")


class RegistryService:
    """Service for registry resolution and bundle downloads"""

    def __init__(
        self,
        store: RegistryStore,
        client: httpx.AsyncClient,
        config: Config,
        runner: Optional[DetachedTaskRunner] = None
    ):
        """
        Initialize RegistryService.

        Args:
            store: Registry store
            client: Shared HTTP client (style assets, prebuilt registry JSON)
            config: Application configuration
            runner: Detached task runner for usage writes
        """
        self.store = store
        self.client = client
        self.config = config
        self.runner = runner or DetachedTaskRunner()
        self.resolver = DependencyResolver(
            store,
            file_extension=config.file_extension,
            max_depth=config.max_dependency_depth,
        )
        self.styles = StyleAssetExtractor(client, timeout=config.style_fetch_timeout)
        self.assembler = BundleAssembler(config.registry_item_url_pattern)
        self.usage = UsageRecorder(store, self.runner, config.package_manager_pattern)

    async def get_component_bundle(
        self,
        username: str,
        component_slug: str,
        user_agent: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Build the packaging response of one component.

        Args:
            username: Owner username or display username
            component_slug: Component slug
            user_agent: Request User-Agent (drives usage recording)

        Returns:
            Serialized bundle (or the prebuilt registry JSON when available)

        Raises:
            NotFoundError: If the component does not exist
            StoreError: If the store fails during resolution
        """
        root = await self.store.lookup_node(username, component_slug)
        if root is None:
            raise NotFoundError("Component", f"{username}/{component_slug}")

        if self.usage.record_usage(root, user_agent):
            logger.info(f"Recording package manager download of {root.reference}")

        if root.sandbox_id and root.registry_url:
            prebuilt = await self._fetch_prebuilt(root.registry_url)
            if prebuilt is not None:
                return prebuilt

        reference = root.reference
        style_task = asyncio.ensure_future(self.styles.extract_styles(root))
        try:
            result = await self.resolver.resolve(
                [reference],
                include_demo_dependencies=False,
                known_nodes={reference: root},
            )
        except BaseException:
            style_task.cancel()
            raise

        styles = await style_task
        return self.assembler.assemble(result, root, styles).to_response()

    async def _fetch_prebuilt(self, url: str) -> Optional[Dict[str, Any]]:
        """Fetch a prebuilt registry JSON; None on any failure"""
        try:
            response = await self.client.get(url, timeout=self.config.registry_url_timeout)
        except httpx.HTTPError as e:
            logger.warning(f"Prebuilt registry fetch failed for {url}: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"Prebuilt registry returned HTTP {response.status_code}: {url}")
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"Prebuilt registry is not valid JSON ({url}): {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Prebuilt registry is not an object: {url}")
            return None
        return data

    async def resolve_dependency_tree(self, request: ResolutionRequest) -> ResolutionResult:
        """
        Resolve the dependency tree of the requested seeds.

        Failures are reported in-band through `error`; this never raises
        a MarketplaceError.
        """
        try:
            seeds = build_seed_set(request.seed_references)
            return await self.resolver.resolve(
                seeds,
                include_demo_dependencies=request.include_demo_dependencies,
            )
        except MarketplaceError as e:
            return self._error_result(e)

    async def get_demo_dependencies(self, demo_id: int) -> ResolutionResult:
        """
        Resolve everything a demo preview needs.

        The demo itself is the seed, so its own demo-only dependencies are
        followed along with the parent component's tree.
        """
        try:
            demo = await self.store.lookup_node_by_id(demo_id)
            if demo is None:
                raise NotFoundError("Demo", str(demo_id))

            reference = demo.reference
            return await self.resolver.resolve(
                [reference],
                include_demo_dependencies=True,
                known_nodes={reference: demo},
            )
        except MarketplaceError as e:
            return self._error_result(e)

    def _error_result(self, error: MarketplaceError) -> ResolutionResult:
        if error.status_code >= 500:
            logger.error(f"Registry resolution failed: {error.message}")
            message = sanitize_error_for_user(error, include_type=False)
        else:
            logger.warning(f"Registry resolution rejected: {error.message}")
            message = error.message

        return ResolutionResult(
            error=ErrorInfo(
                error=error.__class__.__name__,
                message=message,
                status_code=error.status_code,
                details=error.details,
            )
        )
