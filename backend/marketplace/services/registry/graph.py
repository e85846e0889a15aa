# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency Graph Builder

Single responsibility: Normalize seed references and decide which edges of
a node the resolver follows.
"""

import logging
from typing import Iterable, List, Optional

from marketplace.core.errors import ValidationError
from marketplace.models.registry_models import RegistryNode, make_reference

logger = logging.getLogger(__name__)


def normalize_reference(reference: str) -> Optional[str]:
    """
    Normalize an `owner/slug` reference.

    Trims whitespace, drops a leading "@" and surrounding slashes, and
    lower-cases the owner. Returns None for malformed references.

    Example:
        >>> normalize_reference(" @Alice/button ")
        'alice/button'
    """
    if not isinstance(reference, str):
        return None

    cleaned = reference.strip().lstrip("@").strip("/")
    parts = cleaned.split("/")
    if len(parts) != 2:
        return None

    owner, slug = (part.strip() for part in parts)
    if not owner or not slug:
        return None

    return make_reference(owner, slug)


def build_seed_set(references: Iterable[str]) -> List[str]:
    """
    Build the ordered, de-duplicated seed list for one resolution.

    Args:
        references: Caller-supplied `owner/slug` references

    Returns:
        Canonical references in first-seen order

    Raises:
        ValidationError: If no reference is well formed
    """
    seeds: List[str] = []
    for reference in references:
        normalized = normalize_reference(reference)
        if normalized is None:
            logger.warning(f"Invalid registry reference format: {reference!r}")
            continue
        if normalized not in seeds:
            seeds.append(normalized)

    if not seeds:
        raise ValidationError(
            "At least one seed reference in owner/slug format is required",
            field="seedReferences",
        )
    return seeds


def dependency_edges(
    node: RegistryNode,
    is_seed: bool,
    include_demo_dependencies: bool
) -> List[str]:
    """
    Internal references the resolver should follow from a node.

    Demo-only dependencies are followed for seeds only, and only when the
    caller asked for them. Beyond the seed, demos are leaves.
    """
    edges = list(node.direct_dependencies)
    if include_demo_dependencies and is_seed:
        edges.extend(ref for ref in node.demo_dependencies if ref not in edges)
    return edges
