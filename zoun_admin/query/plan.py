"""
Store-agnostic query plan produced by the QueryBuilder.
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from ..introspector.types import RelationshipMetadata
from .spec import Operator


@dataclass(frozen=True)
class Predicate:
    """
    A validated, type-coerced predicate.

    ``relationship`` is set when ``name`` refers to a relationship; the value
    is then a key (or keys) of the relationship's target entity.
    """

    name: str
    operator: Operator
    value: Any = None
    relationship: Optional[RelationshipMetadata] = None

    @property
    def is_relationship(self) -> bool:
        return self.relationship is not None

    @property
    def spans_many(self) -> bool:
        """True when matching may join several rows per record."""
        rel = self.relationship
        return rel is not None and not rel.is_foreign_key


@dataclass(frozen=True)
class SortKey:
    name: str
    descending: bool = False
    relationship: Optional[RelationshipMetadata] = None


@dataclass(frozen=True)
class QueryPlan:
    """
    Everything a store needs to run one query.

    ``limit`` is None only for internal unbounded plans (cascade walks).
    """

    entity: str
    columns: Tuple[str, ...]
    predicates: Tuple[Predicate, ...] = ()
    sort: Tuple[SortKey, ...] = ()
    offset: int = 0
    limit: Optional[int] = None
