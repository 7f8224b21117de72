"""
Mapping of engine errors to GraphQL payload entries.
"""

import logging
from typing import List, Optional

import graphene

from ..core.exceptions import AdminEngineError, ValidationError
from ..crud.validation import NON_FIELD_ERRORS

logger = logging.getLogger(__name__)


class EngineErrorType(graphene.ObjectType):
    """
    Structured error returned by every query and mutation payload.

    Attributes:
        code: Machine-readable error code (e.g. VALIDATION_ERROR)
        field: The member the error refers to, when there is one
        message: Human-readable description
    """

    code = graphene.String(required=True)
    field = graphene.String()
    message = graphene.String(required=True)


def build_engine_errors(exc: AdminEngineError) -> List[EngineErrorType]:
    """One entry per message; validation errors yield one per field message."""
    if isinstance(exc, ValidationError):
        errors = []
        for field_name, messages in exc.errors.items():
            field = None if field_name == NON_FIELD_ERRORS else field_name
            for message in messages:
                errors.append(EngineErrorType(code=exc.code, field=field, message=message))
        return errors
    return [EngineErrorType(code=exc.code, field=exc.field, message=exc.message)]


def build_unexpected_error(message: str, field: Optional[str] = None) -> List[EngineErrorType]:
    return [EngineErrorType(code="INTERNAL_ERROR", field=field, message=message)]
