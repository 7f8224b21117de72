"""
Metadata registry package.

The registry is built once at startup by ``build_registry`` and frozen.
"""

from .discovery import build_registry, discover_models
from .registry import MetadataRegistry

__all__ = [
    "MetadataRegistry",
    "build_registry",
    "discover_models",
]
