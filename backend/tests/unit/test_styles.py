# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for StyleAssetExtractor

Tests CSS variable extraction, keyframe derivation and best-effort fetching.
"""

import httpx
import pytest

from marketplace.models.registry_models import RegistryNode
from marketplace.services.registry.styles import (
    StyleAssetExtractor,
    extract_css_vars,
    generate_css_data,
)

TAILWIND_URL = "https://cdn.example.com/button/tailwind.config.js"
CSS_URL = "https://cdn.example.com/button/globals.css"

TAILWIND_TEXT = """
module.exports = {
  theme: {
    extend: {
      animation: { shine: "shine 2s linear infinite" },
      keyframes: { shine: { "0%": { backgroundPosition: "0% 0%" }, "100%": { backgroundPosition: "100% 100%" } } },
    },
  },
}
"""

CSS_TEXT = """
@tailwind base;

@layer base {
  :root {
    --background: 0 0% 100%;
    --radius: 0.5rem; /* corners */
  }
  .dark {
    --background: 240 10% 3.9%;
  }
}

.button { color: red; --ignored: 1px; }
"""


def make_node(**kwargs):
    return RegistryNode(id=1, user_id="u1", owner="alice", slug="button", **kwargs)


def make_extractor(handler):
    """Extractor whose client is served by an httpx.MockTransport handler"""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return StyleAssetExtractor(client, timeout=1.0)


class TestExtractCssVars:
    """Test CSS custom property extraction"""

    def test_light_and_dark_inside_layer(self):
        assert extract_css_vars(CSS_TEXT) == {
            "light": {"background": "0 0% 100%", "radius": "0.5rem"},
            "dark": {"background": "240 10% 3.9%"},
        }

    def test_empty_input(self):
        assert extract_css_vars(None) == {}
        assert extract_css_vars("") == {}

    def test_other_selectors_ignored(self):
        assert extract_css_vars(".card { --shadow: none; }") == {}


class TestGenerateCssData:
    """Test animation and keyframe derivation"""

    def test_animation_and_keyframes(self):
        data = generate_css_data({
            "theme": {"extend": {
                "animation": {"spin-slow": "spin 3s linear infinite"},
                "keyframes": {"spin-slow": {"to": {"transform": "rotate(360deg)"}}},
            }}
        })

        assert data == {
            "css_vars": {"theme": {"animate-spin-slow": "spin 3s linear infinite"}},
            "css": {"@keyframes spin-slow": {"to": {"transform": "rotate(360deg)"}}},
        }

    def test_without_extend(self):
        assert generate_css_data({}) == {}
        assert generate_css_data({"theme": {"colors": {}}}) == {}


class TestExtractStyles:
    """Test best-effort style fetching"""

    @pytest.mark.asyncio
    async def test_full_bundle(self):
        def handler(request):
            if str(request.url) == TAILWIND_URL:
                return httpx.Response(200, text=TAILWIND_TEXT)
            if str(request.url) == CSS_URL:
                return httpx.Response(200, text=CSS_TEXT)
            return httpx.Response(404)

        extractor = make_extractor(handler)
        node = make_node(tailwind_config_extension=TAILWIND_URL, global_css_extension=CSS_URL)

        bundle = await extractor.extract_styles(node)

        assert bundle.css_vars["light"]["radius"] == "0.5rem"
        assert bundle.css_vars["dark"] == {"background": "240 10% 3.9%"}
        assert bundle.css_vars["theme"] == {"animate-shine": "shine 2s linear infinite"}
        assert "@keyframes shine" in bundle.css
        assert bundle.tailwind["theme"]["extend"]["animation"] == {
            "shine": "shine 2s linear infinite"
        }

    @pytest.mark.asyncio
    async def test_no_urls(self):
        """Nodes without style assets never hit the network"""
        def handler(request):
            raise AssertionError(f"unexpected request to {request.url}")

        bundle = await make_extractor(handler).extract_styles(make_node())

        assert bundle.is_empty

    @pytest.mark.asyncio
    async def test_network_error_is_absence(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        node = make_node(tailwind_config_extension=TAILWIND_URL, global_css_extension=CSS_URL)

        bundle = await make_extractor(handler).extract_styles(node)

        assert bundle.is_empty

    @pytest.mark.asyncio
    async def test_one_asset_failing_keeps_the_other(self):
        def handler(request):
            if str(request.url) == CSS_URL:
                return httpx.Response(200, text=CSS_TEXT)
            return httpx.Response(500)

        node = make_node(tailwind_config_extension=TAILWIND_URL, global_css_extension=CSS_URL)

        bundle = await make_extractor(handler).extract_styles(node)

        assert bundle.tailwind is None
        assert bundle.css is None
        assert set(bundle.css_vars) == {"light", "dark"}
