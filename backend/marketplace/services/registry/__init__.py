# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registry Module - Component Dependency Resolution

Modular resolution pipeline, one concern per module:
- store: node lookups and usage writes
- graph: seed normalization and edge selection
- resolver: depth-first dependency walk
- styles / theme_parser: best-effort style enrichment
- assembler: packaging response
- usage: detached download recording
"""

from .store import RegistryStore, InMemoryRegistryStore, HttpRegistryStore
from .graph import build_seed_set, dependency_edges, normalize_reference
from .resolver import DependencyResolver, file_path_for
from .styles import StyleAssetExtractor, extract_css_vars, generate_css_data
from .theme_parser import extract_theme_extension
from .assembler import BundleAssembler, registry_type_for
from .usage import DetachedTaskRunner, UsageRecorder

__all__ = [
    "RegistryStore",
    "InMemoryRegistryStore",
    "HttpRegistryStore",
    "build_seed_set",
    "dependency_edges",
    "normalize_reference",
    "DependencyResolver",
    "file_path_for",
    "StyleAssetExtractor",
    "extract_css_vars",
    "generate_css_data",
    "extract_theme_extension",
    "BundleAssembler",
    "registry_type_for",
    "DetachedTaskRunner",
    "UsageRecorder",
]
