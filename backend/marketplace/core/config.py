# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Marketplace Configuration - Single source of truth.
YAML is king. Env vars ONLY for secrets (and the log level override).

Everything the resolver, style extractor and HTTP layer tune lives here,
inspectable with `cat configs/marketplace.yaml`.
"""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_CONFIG_PATH = "configs/marketplace.yaml"
DEFAULT_PACKAGE_MANAGER_PATTERN = r"node-fetch|npm|yarn|pnpm|bun"


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable application configuration.
    All values from YAML. No hidden state.
    """

    # -- Service --
    service_host: str = "0.0.0.0"
    service_port: int = 8000

    # -- Registry store --
    store_backend: str = "http"  # "http" or "memory"
    store_url: str = "http://localhost:54321/rest/v1"
    store_components_table: str = "components"
    store_demos_table: str = "demos"
    store_users_table: str = "users"
    store_analytics_table: str = "component_analytics"
    store_fixture_path: Optional[str] = None

    # -- HTTP timeouts (seconds) --
    store_timeout: float = 10.0
    style_fetch_timeout: float = 3.0
    registry_url_timeout: float = 5.0

    # -- Resolver --
    max_dependency_depth: Optional[int] = None
    file_extension: str = ".tsx"

    # -- Bundle --
    public_base_url: str = "https://21st.dev"

    # -- Usage --
    package_manager_pattern: str = DEFAULT_PACKAGE_MANAGER_PATTERN

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def registry_item_url_pattern(self) -> str:
        """Returns pattern with {reference} placeholder"""
        return f"{self.public_base_url.rstrip('/')}/r/{{reference}}"

    def get_store_api_key(self) -> Optional[str]:
        """Get registry store API key from environment"""
        return get_store_api_key()


# =============================================================================
# SECRETS - The ONLY thing from environment variables
# =============================================================================

def get_store_api_key() -> Optional[str]:
    """API keys cannot be in version control."""
    return os.getenv("REGISTRY_STORE_API_KEY")


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = DEFAULT_CONFIG_PATH) -> Config:
    """
    Load configuration from YAML.
    Returns defaults if file doesn't exist.
    """
    if not Path(path).exists():
        return Config(log_level=os.getenv("LOG_LEVEL", "INFO"))

    with open(path) as f:
        y = yaml.safe_load(f) or {}

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    max_depth = get(y, "resolver", "max_depth")

    return Config(
        # Service
        service_host=get(y, "service", "host") or "0.0.0.0",
        service_port=get(y, "service", "port") or 8000,

        # Store
        store_backend=get(y, "store", "backend") or "http",
        store_url=get(y, "store", "url") or "http://localhost:54321/rest/v1",
        store_components_table=get(y, "store", "tables", "components") or "components",
        store_demos_table=get(y, "store", "tables", "demos") or "demos",
        store_users_table=get(y, "store", "tables", "users") or "users",
        store_analytics_table=get(y, "store", "tables", "analytics") or "component_analytics",
        store_fixture_path=get(y, "store", "fixture_path"),

        # HTTP
        store_timeout=get(y, "http", "timeouts", "store") or 10.0,
        style_fetch_timeout=get(y, "http", "timeouts", "style_fetch") or 3.0,
        registry_url_timeout=get(y, "http", "timeouts", "registry_url") or 5.0,

        # Resolver
        max_dependency_depth=int(max_depth) if max_depth else None,
        file_extension=get(y, "resolver", "file_extension") or ".tsx",

        # Bundle
        public_base_url=get(y, "bundle", "public_base_url") or "https://21st.dev",

        # Usage
        package_manager_pattern=get(y, "usage", "package_manager_pattern")
        or DEFAULT_PACKAGE_MANAGER_PATTERN,

        # Logging
        log_level=os.getenv("LOG_LEVEL") or get(y, "logging", "level") or "INFO",
        log_format=get(y, "logging", "format") or "json",
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("MARKETPLACE_CONFIG_PATH", DEFAULT_CONFIG_PATH)
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
