# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registry Data Models

Defines data structures for component registry resolution: registry nodes
and their dependency references, resolution requests and results, style
bundles, the packaging response consumed by CLIs, and usage events.
"""

from typing import List, Dict, Optional, Any
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


class NodeKind(str, Enum):
    """Kind of registry node"""
    COMPONENT = "component"
    DEMO = "demo"


class AnalyticsActivityType(str, Enum):
    """Analytics activity recorded for a node"""
    COMPONENT_CLI_DOWNLOAD = "component_cli_download"


def make_reference(owner: str, slug: str) -> str:
    """Canonical `owner/slug` reference (owner compared case-insensitively)."""
    return f"{owner.strip().lower()}/{slug.strip()}"


class DependencyReference(BaseModel):
    """
    Internal dependency edge of a registry node.

    Example: {"reference": "alice/icon-set", "demo_only": false}
    """
    reference: str  # "owner/slug"
    demo_only: bool = False


class RegistryNode(BaseModel):
    """
    A publishable artifact (component or demo).

    Created by the publish flow; read-only during resolution.
    """
    id: int
    user_id: str
    owner: str
    slug: str
    kind: NodeKind = NodeKind.COMPONENT
    code: str = ""
    registry: str = "ui"
    dependencies: Dict[str, str] = Field(default_factory=dict)
    registry_dependencies: List[DependencyReference] = Field(default_factory=list)
    tailwind_config_extension: Optional[str] = None
    global_css_extension: Optional[str] = None
    downloads_count: int = 0
    sandbox_id: Optional[str] = None
    registry_url: Optional[str] = None

    @property
    def reference(self) -> str:
        return make_reference(self.owner, self.slug)

    @property
    def direct_dependencies(self) -> List[str]:
        """Internal dependencies needed by the node itself"""
        return [dep.reference for dep in self.registry_dependencies if not dep.demo_only]

    @property
    def demo_dependencies(self) -> List[str]:
        """Internal dependencies needed only by the node's demos"""
        return [dep.reference for dep in self.registry_dependencies if dep.demo_only]


class ResolutionRequest(BaseModel):
    """Request to resolve one or more seeds"""
    model_config = ConfigDict(populate_by_name=True)

    seed_references: List[str] = Field(alias="seedReferences", min_length=1)
    include_demo_dependencies: bool = Field(default=False, alias="includeDemoDependencies")


class ResolvedFile(BaseModel):
    """Source file of a resolved node"""
    code: str
    registry: str


class ErrorInfo(BaseModel):
    """Top-level error carried in-band by a resolution result"""
    error: str
    message: str
    status_code: int = 500
    details: Dict[str, Any] = Field(default_factory=dict)


class ResolutionResult(BaseModel):
    """
    Output of the resolver.

    Warnings are kept for inspection and logging only; they are excluded
    from serialization so consumers see either a success or one error.
    """
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    files: Dict[str, ResolvedFile] = Field(default_factory=dict)
    npm_dependencies: Dict[str, str] = Field(default_factory=dict, alias="npmDependencies")
    error: Optional[ErrorInfo] = None
    resolved: List[str] = Field(default_factory=list, exclude=True)
    warnings: List[Any] = Field(default_factory=list, exclude=True)

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class StyleBundle(BaseModel):
    """Optional style enrichment of a bundle"""
    css_vars: Optional[Dict[str, Dict[str, str]]] = None
    css: Optional[Dict[str, Any]] = None
    tailwind: Optional[Dict[str, Any]] = None

    @property
    def is_empty(self) -> bool:
        return not (self.css_vars or self.css or self.tailwind)


class BundleFile(BaseModel):
    """File entry of a packaging response"""
    path: str
    content: str
    type: str
    target: str = ""


class TailwindExtension(BaseModel):
    """Tailwind section of a packaging response"""
    config: Dict[str, Any]


class BundleResponse(BaseModel):
    """Packaging response consumed by CLIs and package managers"""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: str
    dependencies: Optional[List[str]] = None
    registry_dependencies: Optional[List[str]] = Field(default=None, alias="registryDependencies")
    files: List[BundleFile] = Field(default_factory=list)
    css_vars: Optional[Dict[str, Dict[str, str]]] = Field(default=None, alias="cssVars")
    css: Optional[Dict[str, Any]] = None
    tailwind: Optional[TailwindExtension] = None

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AnalyticsEvent(BaseModel):
    """Usage event appended for each package-manager download"""
    component_id: int
    activity_type: AnalyticsActivityType = AnalyticsActivityType.COMPONENT_CLI_DOWNLOAD
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
