# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Bundle Assembler

Single responsibility: Turn a resolution result (plus optional styles) into
the packaging response consumed by CLIs and package managers.
"""

from typing import Iterable, List, Optional

from marketplace.models.registry_models import (
    BundleFile,
    BundleResponse,
    RegistryNode,
    ResolutionResult,
    StyleBundle,
    TailwindExtension,
)

# Internal registry category -> consumer packaging type
REGISTRY_TYPE_MAP = {
    "hooks": "registry:hook",
    "blocks": "registry:block",
    "icons": "registry:ui",
}


def registry_type_for(category: str) -> str:
    """
    Map an internal registry category to the consumer's packaging type.

    Example:
        >>> registry_type_for("hooks")
        'registry:hook'
        >>> registry_type_for("ui")
        'registry:ui'
    """
    return REGISTRY_TYPE_MAP.get(category, f"registry:{category}")


def _unique(names: Iterable[str]) -> List[str]:
    seen = set()
    unique = []
    for name in names:
        if name not in seen:
            seen.add(name)
            unique.append(name)
    return unique


class BundleAssembler:
    """Builds BundleResponse objects"""

    def __init__(self, registry_item_url_pattern: str = "https://21st.dev/r/{reference}"):
        """
        Initialize bundle assembler.

        Args:
            registry_item_url_pattern: Public URL of a registry item, with a
                {reference} placeholder for `owner/slug`
        """
        self.registry_item_url_pattern = registry_item_url_pattern

    def assemble(
        self,
        result: ResolutionResult,
        root: RegistryNode,
        styles: Optional[StyleBundle] = None
    ) -> BundleResponse:
        """
        Assemble the packaging response of a root node.

        Args:
            result: Resolution result of the root
            root: Requested node (name, type and declared packages)
            styles: Optional style bundle

        Returns:
            BundleResponse with files sorted by path
        """
        files = [
            BundleFile(
                path=path,
                content=resolved.code,
                type=registry_type_for(resolved.registry),
                target="",
            )
            for path, resolved in sorted(result.files.items())
        ]

        dependencies = _unique(
            list(root.dependencies.keys()) + list(result.npm_dependencies.keys())
        )
        registry_dependencies = [
            self.registry_item_url_pattern.format(reference=reference)
            for reference in root.direct_dependencies
        ]

        response = BundleResponse(
            name=root.slug,
            type=registry_type_for(root.registry),
            dependencies=dependencies or None,
            registry_dependencies=registry_dependencies or None,
            files=files,
        )

        if styles is not None and not styles.is_empty:
            response.css_vars = styles.css_vars or None
            response.css = styles.css or None
            if styles.tailwind:
                response.tailwind = TailwindExtension(config=styles.tailwind)

        return response
