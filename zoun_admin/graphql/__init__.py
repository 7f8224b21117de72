"""
GraphQL boundary of the admin engine.
"""

from .errors import EngineErrorType, build_engine_errors, build_unexpected_error
from .schema import Mutation, Query, schema

__all__ = [
    "schema",
    "Query",
    "Mutation",
    "EngineErrorType",
    "build_engine_errors",
    "build_unexpected_error",
]
