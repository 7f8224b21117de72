"""
Core engine components: settings, registry, errors and the engine facade.
"""

from .exceptions import (
    AdminEngineError,
    ConcurrentModificationError,
    ForbiddenError,
    ImmutableStateError,
    IntegrityError,
    InvalidQueryError,
    NotFoundError,
    SchemaError,
    StoreError,
    ValidationError,
)

__all__ = [
    "AdminEngineError",
    "SchemaError",
    "NotFoundError",
    "InvalidQueryError",
    "ValidationError",
    "ConcurrentModificationError",
    "IntegrityError",
    "ForbiddenError",
    "ImmutableStateError",
    "StoreError",
]
