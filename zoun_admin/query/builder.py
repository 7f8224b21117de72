"""
QueryBuilder implementation.

Turns a caller's QuerySpec into a QueryPlan after checking every referenced
member against the entity metadata.
"""

import logging
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from ..core.exceptions import InvalidQueryError
from ..core.registry import MetadataRegistry
from ..core.settings import QuerySettings
from ..introspector.types import (
    EntityMetadata,
    FieldMetadata,
    FieldType,
    RelationshipMetadata,
)
from ..utils.coercion import CoercionError, coerce_bool, coerce_value
from .plan import Predicate, QueryPlan, SortKey
from .spec import FilterPredicate, Operator, QuerySpec

logger = logging.getLogger(__name__)

_ORDERED = frozenset(
    {
        Operator.EQ,
        Operator.NEQ,
        Operator.LT,
        Operator.LTE,
        Operator.GT,
        Operator.GTE,
        Operator.IN,
        Operator.NOT_IN,
        Operator.ISNULL,
    }
)

OPERATORS_BY_TYPE = {
    FieldType.STRING: _ORDERED
    | {Operator.CONTAINS, Operator.ICONTAINS, Operator.STARTSWITH},
    FieldType.NUMBER: _ORDERED,
    FieldType.DATE: _ORDERED,
    FieldType.BOOLEAN: frozenset({Operator.EQ, Operator.NEQ, Operator.ISNULL}),
    FieldType.ENUM: frozenset(
        {Operator.EQ, Operator.NEQ, Operator.IN, Operator.NOT_IN, Operator.ISNULL}
    ),
    FieldType.BINARY: frozenset({Operator.ISNULL}),
}

RELATIONSHIP_OPERATORS = frozenset(
    {Operator.EQ, Operator.NEQ, Operator.IN, Operator.NOT_IN, Operator.ISNULL}
)

# Anchors on inverse or to-many relationships ask "is linked to key X".
ANCHOR_OPERATORS = frozenset({Operator.EQ, Operator.IN, Operator.ISNULL})

# Internal field anchors (uniqueness, version checks) compare by equality
# whatever the field type, binary included.
FIELD_ANCHOR_OPERATORS = frozenset({Operator.EQ, Operator.NEQ, Operator.IN, Operator.ISNULL})


class QueryBuilder:
    """Validates list requests and produces store-agnostic plans."""

    def __init__(self, registry: MetadataRegistry, settings: Optional[QuerySettings] = None):
        self.registry = registry
        self.settings = settings or QuerySettings.from_settings()

    def build(
        self,
        entity: str,
        spec: Optional[QuerySpec] = None,
        anchors: Sequence[FilterPredicate] = (),
    ) -> QueryPlan:
        """
        Build a plan for ``entity``.

        ``anchors`` are extra predicates added by internal callers; unlike
        caller filters they may name any relationship of the entity.
        """
        metadata = self.registry.get(entity)
        spec = spec or QuerySpec()
        predicates = self.build_predicates(metadata, spec.filters, anchors)
        offset, limit = self._window(spec.offset, spec.limit)
        return QueryPlan(
            entity=metadata.name,
            columns=metadata.columns,
            predicates=predicates,
            sort=self._sort_keys(metadata, spec),
            offset=offset,
            limit=limit,
        )

    def build_unbounded(
        self, entity: str, anchors: Sequence[FilterPredicate]
    ) -> QueryPlan:
        """Plan returning every matching row, for integrity walks."""
        metadata = self.registry.get(entity)
        return QueryPlan(
            entity=metadata.name,
            columns=metadata.columns,
            predicates=self.build_predicates(metadata, (), anchors),
            sort=(SortKey(metadata.primary_key),),
            offset=0,
            limit=None,
        )

    def build_predicates(
        self,
        metadata: EntityMetadata,
        filters: Iterable[FilterPredicate] = (),
        anchors: Iterable[FilterPredicate] = (),
    ) -> Tuple[Predicate, ...]:
        predicates: List[Predicate] = [
            self._predicate(metadata, item, internal=False) for item in filters
        ]
        predicates.extend(self._predicate(metadata, item, internal=True) for item in anchors)
        return tuple(predicates)

    def _window(self, offset: Any, limit: Any) -> Tuple[int, int]:
        if offset is None:
            offset = 0
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise InvalidQueryError(f"Offset must be an integer, got {offset!r}")
        if offset < 0:
            raise InvalidQueryError(f"Offset must be zero or positive, got {offset}")
        if limit is None:
            limit = self.settings.default_page_size
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise InvalidQueryError(f"Limit must be an integer, got {limit!r}")
        if limit < 1:
            raise InvalidQueryError(f"Limit must be at least 1, got {limit}")
        if limit > self.settings.max_page_size:
            logger.debug("Clamping limit %d to %d", limit, self.settings.max_page_size)
            limit = self.settings.max_page_size
        return offset, limit

    def _predicate(
        self, metadata: EntityMetadata, item: FilterPredicate, internal: bool
    ) -> Predicate:
        operator = item.operator
        field = metadata.get_field(item.field)
        if field is not None:
            allowed = OPERATORS_BY_TYPE[field.field_type]
            if internal:
                allowed = allowed | FIELD_ANCHOR_OPERATORS
            if operator not in allowed:
                raise InvalidQueryError(
                    f"Operator '{operator.value}' is not supported for "
                    f"{field.field_type.value} field {metadata.name}.{field.name}",
                    entity=metadata.name,
                    field=field.name,
                )
            return Predicate(
                name=field.name,
                operator=operator,
                value=self._coerce(metadata, field, operator, item.value, item.field),
            )

        rel = metadata.get_relationship(item.field)
        if rel is None or (not internal and not rel.is_foreign_key):
            raise InvalidQueryError(
                f"{metadata.name} has no filterable field '{item.field}'",
                entity=metadata.name,
                field=item.field,
            )
        allowed = RELATIONSHIP_OPERATORS if rel.is_foreign_key else ANCHOR_OPERATORS
        if operator not in allowed:
            raise InvalidQueryError(
                f"Operator '{operator.value}' is not supported for relationship "
                f"{metadata.name}.{rel.name}",
                entity=metadata.name,
                field=rel.name,
            )
        target_pk = self.registry.get(rel.target).pk_field
        return Predicate(
            name=rel.name,
            operator=operator,
            value=self._coerce(metadata, target_pk, operator, item.value, rel.name),
            relationship=rel,
        )

    def _coerce(
        self,
        metadata: EntityMetadata,
        field: FieldMetadata,
        operator: Operator,
        value: Any,
        member: str,
    ) -> Any:
        try:
            if operator is Operator.ISNULL:
                return True if value is None else coerce_bool(value)
            if operator.takes_list:
                if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
                    raise CoercionError("Expected a list of values.")
                return tuple(self._coerce_scalar(field, operator, v) for v in value)
            return self._coerce_scalar(field, operator, value)
        except CoercionError as exc:
            raise InvalidQueryError(
                f"Invalid value for {metadata.name}.{member}: {exc}",
                entity=metadata.name,
                field=member,
            ) from None

    def _coerce_scalar(self, field: FieldMetadata, operator: Operator, value: Any) -> Any:
        if value is None:
            raise CoercionError(
                f"'{operator.value}' needs a value; use 'isnull' to match missing values."
            )
        if operator in (Operator.CONTAINS, Operator.ICONTAINS, Operator.STARTSWITH):
            if not isinstance(value, str):
                raise CoercionError("Expected a text value.")
            return value
        coerced = coerce_value(field, value)
        if coerced is None:
            raise CoercionError("Expected a value.")
        return coerced

    def _sort_keys(self, metadata: EntityMetadata, spec: QuerySpec) -> Tuple[SortKey, ...]:
        keys: List[SortKey] = []
        seen = set()
        for order in spec.sort:
            if order.field in seen:
                continue
            field = metadata.get_field(order.field)
            rel: Optional[RelationshipMetadata] = None
            if field is None:
                rel = metadata.get_relationship(order.field)
                if rel is None or not rel.is_foreign_key:
                    raise InvalidQueryError(
                        f"{metadata.name} has no sortable field '{order.field}'",
                        entity=metadata.name,
                        field=order.field,
                    )
            elif field.field_type is FieldType.BINARY:
                raise InvalidQueryError(
                    f"Binary field {metadata.name}.{field.name} cannot be sorted",
                    entity=metadata.name,
                    field=field.name,
                )
            seen.add(order.field)
            keys.append(SortKey(order.field, order.descending, rel))
        if metadata.primary_key not in seen:
            keys.append(SortKey(metadata.primary_key))
        return tuple(keys)
