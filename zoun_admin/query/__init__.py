"""
Query building: caller specs, validated plans and the builder between them.
"""

from .builder import OPERATORS_BY_TYPE, QueryBuilder
from .plan import Predicate, QueryPlan, SortKey
from .spec import FilterPredicate, Operator, QuerySpec, SortDirection, SortOrder

__all__ = [
    "QueryBuilder",
    "QuerySpec",
    "FilterPredicate",
    "SortOrder",
    "SortDirection",
    "Operator",
    "QueryPlan",
    "Predicate",
    "SortKey",
    "OPERATORS_BY_TYPE",
]
