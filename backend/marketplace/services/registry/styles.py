# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Style Asset Extractor

Single responsibility: Best-effort enrichment of a bundle with the node's
theme extension (Tailwind config fragment) and global stylesheet variables.

Both assets are optional. A missing URL, a network error or a non-200
response all degrade to "absent"; extract_styles never raises.
"""

import asyncio
import logging
import re
from typing import Any, Dict, Optional

import httpx

from marketplace.core.errors import StyleFetchError
from marketplace.models.registry_models import RegistryNode, StyleBundle
from .theme_parser import extract_theme_extension

logger = logging.getLogger(__name__)

_CSS_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
# innermost `selector { declarations }` blocks
_CSS_BLOCK_RE = re.compile(r"([^{};]+)\{([^{}]*)\}")
_CSS_VAR_RE = re.compile(r"--([\w-]+)\s*:\s*([^;]+?)\s*(?:;|$)")

_LIGHT_SELECTORS = {":root", "html", ":host"}
_DARK_SELECTORS = {".dark", ":root.dark", ".dark:root", "html.dark", ":is(.dark *)"}


def extract_css_vars(css: Optional[str]) -> Dict[str, Dict[str, str]]:
    """
    Extract CSS custom properties from a stylesheet.

    Variables declared under :root are returned as "light", those under
    .dark as "dark". Blocks nested in @layer are included; other selectors
    are ignored.

    Example:
        >>> extract_css_vars(":root { --radius: 0.5rem; } .dark { --radius: 1rem; }")
        {'light': {'radius': '0.5rem'}, 'dark': {'radius': '1rem'}}
    """
    if not css:
        return {}

    css = _CSS_COMMENT_RE.sub("", css)
    scopes: Dict[str, Dict[str, str]] = {}

    for selector_text, body in _CSS_BLOCK_RE.findall(css):
        selectors = {s.strip() for s in selector_text.split(",") if s.strip()}
        if selectors & _DARK_SELECTORS:
            scope = "dark"
        elif selectors & _LIGHT_SELECTORS:
            scope = "light"
        else:
            continue

        for name, value in _CSS_VAR_RE.findall(body):
            scopes.setdefault(scope, {})[name] = value.strip()

    return scopes


def generate_css_data(tailwind_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Derive theme CSS variables and keyframe rules from a theme extension.

    animation entries become cssVars.theme["animate-<name>"]; keyframes
    become css["@keyframes <name>"].
    """
    extend = (tailwind_config.get("theme") or {}).get("extend")
    if not isinstance(extend, dict):
        return {}

    theme_vars: Dict[str, str] = {}
    css: Dict[str, Any] = {}

    animation = extend.get("animation")
    if isinstance(animation, dict):
        for name, value in animation.items():
            if isinstance(value, str):
                theme_vars[f"animate-{name}"] = value

    keyframes = extend.get("keyframes")
    if isinstance(keyframes, dict):
        for name, frames in keyframes.items():
            css[f"@keyframes {name}"] = frames

    data: Dict[str, Any] = {}
    if theme_vars:
        data["css_vars"] = {"theme": theme_vars}
    if css:
        data["css"] = css
    return data


class StyleAssetExtractor:
    """Fetches and normalizes a node's optional style assets"""

    def __init__(self, client: httpx.AsyncClient, timeout: float = 3.0):
        """
        Initialize style extractor.

        Args:
            client: Shared HTTP client
            timeout: Per-asset fetch timeout, independent of resolution
        """
        self.client = client
        self.timeout = timeout

    async def fetch_text(self, url: Optional[str]) -> Optional[str]:
        """
        Fetch a style asset as text.

        Returns None when the URL is absent or the fetch fails.
        """
        if not url:
            return None

        try:
            try:
                response = await self.client.get(url, timeout=self.timeout)
            except httpx.HTTPError as e:
                raise StyleFetchError(f"Style asset unreachable: {e}", url=url)
            if response.status_code != 200:
                raise StyleFetchError(
                    f"Style asset returned HTTP {response.status_code}", url=url
                )
            return response.text
        except StyleFetchError as e:
            logger.warning(f"{e.message} ({url})")
            return None

    async def extract_styles(self, node: RegistryNode) -> StyleBundle:
        """
        Build the style bundle of a node.

        Args:
            node: Registry node carrying optional style asset URLs

        Returns:
            StyleBundle (empty when no asset is available)
        """
        tailwind_text, global_css = await asyncio.gather(
            self.fetch_text(node.tailwind_config_extension),
            self.fetch_text(node.global_css_extension),
        )

        css_vars: Dict[str, Dict[str, str]] = extract_css_vars(global_css)
        tailwind = extract_theme_extension(tailwind_text)
        derived = generate_css_data(tailwind)

        theme_vars = derived.get("css_vars", {}).get("theme")
        if theme_vars:
            css_vars["theme"] = {**css_vars.get("theme", {}), **theme_vars}

        return StyleBundle(
            css_vars=css_vars or None,
            css=derived.get("css") or None,
            tailwind=tailwind or None,
        )
