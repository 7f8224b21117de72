"""
Public test utilities for zoun-admin.
"""

from .harness import (
    AdminGraphQLTestClient,
    build_memory_engine,
    build_request,
    override_zoun_settings,
)

__all__ = [
    "AdminGraphQLTestClient",
    "build_memory_engine",
    "build_request",
    "override_zoun_settings",
]
