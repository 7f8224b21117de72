"""
Generic CRUD execution and relationship resolution.
"""

from .access import AccessGate, load_access_hook
from .executor import CrudExecutor
from .instance import (
    EntityInstance,
    OperationContext,
    Page,
    RelationshipHandle,
    build_instance,
)
from .resolver import RelationshipResolver
from .validation import NON_FIELD_ERRORS, InputValidator

__all__ = [
    "CrudExecutor",
    "RelationshipResolver",
    "InputValidator",
    "AccessGate",
    "load_access_hook",
    "EntityInstance",
    "RelationshipHandle",
    "Page",
    "OperationContext",
    "build_instance",
    "NON_FIELD_ERRORS",
]
