"""
Exception types for the admin engine.

Every failure path of the engine raises one of these classes. ``SchemaError``
is fatal during startup; everything else is caught at the request boundary
and mapped to a structured failure payload (see ``zoun_admin.graphql.errors``).
"""

from typing import Any, Dict, List, Mapping, Optional


class AdminEngineError(Exception):
    """Base exception for admin engine errors."""

    code = "ADMIN_ERROR"

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        field: Optional[str] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.entity = entity
        self.field = field
        if code:
            self.code = code

    def __str__(self) -> str:
        return self.message


class SchemaError(AdminEngineError):
    """Raised when entity metadata cannot be built or is inconsistent."""

    code = "SCHEMA_ERROR"


class NotFoundError(AdminEngineError):
    """Raised when an entity or a record does not exist."""

    code = "NOT_FOUND"

    def __init__(self, message: str, entity: Optional[str] = None, pk: Any = None):
        super().__init__(message, entity=entity)
        self.pk = pk


class InvalidQueryError(AdminEngineError):
    """Raised when a list request references unknown fields or bad operators."""

    code = "INVALID_QUERY"


class ValidationError(AdminEngineError):
    """
    Raised when input values fail validation.

    ``errors`` maps each offending field to every message collected for it,
    so callers can report all problems in a single round trip.
    """

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        errors: Mapping[str, Any],
        entity: Optional[str] = None,
        message: Optional[str] = None,
    ):
        normalized: Dict[str, List[str]] = {}
        for field_name, messages in errors.items():
            if isinstance(messages, (list, tuple)):
                normalized[field_name] = [str(m) for m in messages]
            else:
                normalized[field_name] = [str(messages)]
        self.errors = normalized
        if message is None:
            fields = ", ".join(sorted(normalized)) or "input"
            message = f"Validation failed for {fields}"
        super().__init__(message, entity=entity)


class ConcurrentModificationError(AdminEngineError):
    """Raised when a record changed since the caller last read it."""

    code = "CONCURRENT_MODIFICATION"

    def __init__(
        self,
        entity: str,
        pk: Any,
        expected_version: Any = None,
        current_version: Any = None,
    ):
        super().__init__(
            f"{entity} {pk!r} was modified by another request "
            f"(expected version {expected_version!r}, found {current_version!r})",
            entity=entity,
        )
        self.pk = pk
        self.expected_version = expected_version
        self.current_version = current_version


class IntegrityError(AdminEngineError):
    """Raised when a destructive operation would orphan dependent records."""

    code = "INTEGRITY_ERROR"

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        dependents: Optional[Dict[str, int]] = None,
    ):
        super().__init__(message, entity=entity)
        self.dependents = dependents or {}


class ForbiddenError(AdminEngineError):
    """Raised when the access pre-check denies an operation."""

    code = "FORBIDDEN"

    def __init__(self, entity: str, operation: str):
        super().__init__(
            f"Operation '{operation}' on {entity} is not allowed", entity=entity
        )
        self.operation = operation


class ImmutableStateError(AdminEngineError):
    """Raised when frozen metadata is modified after startup."""

    code = "IMMUTABLE_STATE"


class StoreError(AdminEngineError):
    """Raised when the persistence store fails in a way the engine cannot map."""

    code = "STORE_ERROR"
