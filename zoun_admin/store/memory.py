"""
In-memory persistence store.

Keeps rows in dictionaries guarded by a lock. Used by the unit tests and for
prototyping without a database; it evaluates the same plans as DjangoStore.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from django.utils import timezone

from ..core.exceptions import StoreError
from ..core.registry import MetadataRegistry
from ..introspector.types import (
    EntityMetadata,
    FieldType,
    RelationshipKind,
    RelationshipMetadata,
)
from ..query.plan import Predicate, QueryPlan
from ..query.spec import Operator

logger = logging.getLogger(__name__)


def _compare(operator: Operator, actual: Any, expected: Any) -> bool:
    if operator is Operator.ISNULL:
        return (actual is None) == bool(expected)
    if operator is Operator.EQ:
        return actual is not None and actual == expected
    if operator is Operator.NEQ:
        return actual is None or actual != expected
    if operator is Operator.IN:
        return actual is not None and actual in expected
    if operator is Operator.NOT_IN:
        return actual is None or actual not in expected
    if actual is None:
        return False
    try:
        if operator is Operator.LT:
            return actual < expected
        if operator is Operator.LTE:
            return actual <= expected
        if operator is Operator.GT:
            return actual > expected
        if operator is Operator.GTE:
            return actual >= expected
    except TypeError:
        return False
    if not isinstance(actual, str):
        return False
    if operator is Operator.CONTAINS:
        return expected in actual
    if operator is Operator.ICONTAINS:
        return expected.lower() in actual.lower()
    if operator is Operator.STARTSWITH:
        return actual.startswith(expected)
    return False


class MemoryStore:
    """Dictionary-backed implementation of the PersistenceStore protocol."""

    def __init__(self, registry: MetadataRegistry):
        self.registry = registry
        self._lock = threading.RLock()
        self._tables: Dict[str, Dict[Any, Dict[str, Any]]] = {}
        # (entity, owning many-to-many name) -> {(source key, target key)}
        self._links: Dict[Tuple[str, str], Set[Tuple[Any, Any]]] = {}
        # Last generated key per entity; keys are never handed out twice.
        self._sequences: Dict[str, int] = {}

    def _table(self, entity: str) -> Dict[Any, Dict[str, Any]]:
        return self._tables.setdefault(entity, {})

    def _link_set(self, entity: str, name: str) -> Set[Tuple[Any, Any]]:
        return self._links.setdefault((entity, name), set())

    def reset(self) -> None:
        with self._lock:
            self._tables.clear()
            self._links.clear()
            self._sequences.clear()

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #
    def execute_query(
        self, plan: QueryPlan, *, timeout: Optional[float] = None
    ) -> List[Dict[str, Any]]:
        with self._lock:
            metadata = self.registry.get(plan.entity)
            rows = self._filter(metadata, plan.predicates)
            for key in reversed(plan.sort):
                rows.sort(
                    key=lambda row, name=key.name: (row.get(name) is not None, row.get(name)),
                    reverse=key.descending,
                )
            end = None if plan.limit is None else plan.offset + plan.limit
            return [
                {column: row.get(column) for column in plan.columns}
                for row in rows[plan.offset:end]
            ]

    def count(
        self,
        entity: str,
        predicates: Iterable[Predicate] = (),
        *,
        timeout: Optional[float] = None,
    ) -> int:
        with self._lock:
            return len(self._filter(self.registry.get(entity), tuple(predicates)))

    def _filter(
        self, metadata: EntityMetadata, predicates: Tuple[Predicate, ...]
    ) -> List[Dict[str, Any]]:
        return [
            row
            for pk, row in self._table(metadata.name).items()
            if all(self._matches(metadata, pk, row, p) for p in predicates)
        ]

    def _matches(
        self, metadata: EntityMetadata, pk: Any, row: Dict[str, Any], predicate: Predicate
    ) -> bool:
        rel = predicate.relationship
        if rel is None or rel.is_foreign_key:
            return _compare(predicate.operator, row.get(predicate.name), predicate.value)
        linked = self._linked_keys(metadata, rel, pk)
        if predicate.operator is Operator.ISNULL:
            return (not linked) == bool(predicate.value)
        if predicate.operator is Operator.IN:
            return any(value in linked for value in predicate.value)
        return predicate.value in linked

    def _linked_keys(
        self, metadata: EntityMetadata, rel: RelationshipMetadata, pk: Any
    ) -> Set[Any]:
        if rel.kind is RelationshipKind.MANY_TO_MANY:
            if rel.owning:
                return {t for s, t in self._link_set(metadata.name, rel.name) if s == pk}
            return {s for s, t in self._link_set(rel.target, rel.remote_name) if t == pk}
        # Inverse side of a foreign key: rows of the target pointing at pk.
        target = self.registry.get(rel.target)
        return {
            target_pk
            for target_pk, row in self._table(target.name).items()
            if row.get(rel.remote_name) == pk
        }

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #
    def insert(
        self, entity: str, values: Mapping[str, Any], *, timeout: Optional[float] = None
    ) -> Any:
        with self._lock:
            metadata = self.registry.get(entity)
            table = self._table(entity)
            row = {column: None for column in metadata.columns}
            row.update(self._generated_values(metadata))
            row.update(self._column_values(metadata, values))
            pk = row[metadata.primary_key]
            if pk is None:
                raise StoreError(f"{entity} requires a primary key value", entity=entity)
            if pk in table:
                raise StoreError(f"{entity} {pk!r} already exists", entity=entity)
            table[pk] = row
            if isinstance(pk, int):
                self._sequences[entity] = max(self._sequences.get(entity, 0), pk)
            self._write_links(metadata, pk, values)
            logger.debug("Inserted %s %r", entity, pk)
            return pk

    def update(
        self,
        entity: str,
        pk: Any,
        values: Mapping[str, Any],
        *,
        where: Iterable[Predicate] = (),
        timeout: Optional[float] = None,
    ) -> int:
        with self._lock:
            metadata = self.registry.get(entity)
            row = self._table(entity).get(pk)
            if row is None:
                return 0
            if not all(self._matches(metadata, pk, row, p) for p in where):
                return 0
            row.update(self._column_values(metadata, values))
            self._write_links(metadata, pk, values)
            return 1

    def delete(self, entity: str, pk: Any, *, timeout: Optional[float] = None) -> int:
        with self._lock:
            if self._table(entity).pop(pk, None) is None:
                return 0
            for (source, name), links in self._links.items():
                target = self.registry.get(source).get_relationship(name).target
                stale = {
                    link
                    for link in links
                    if (source == entity and link[0] == pk)
                    or (target == entity and link[1] == pk)
                }
                links.difference_update(stale)
            return 1

    def _column_values(
        self, metadata: EntityMetadata, values: Mapping[str, Any]
    ) -> Dict[str, Any]:
        columns = set(metadata.columns)
        return {name: value for name, value in values.items() if name in columns}

    def _write_links(
        self, metadata: EntityMetadata, pk: Any, values: Mapping[str, Any]
    ) -> None:
        for rel in metadata.relationships:
            if rel.kind is not RelationshipKind.MANY_TO_MANY or not rel.owning:
                continue
            if rel.name not in values:
                continue
            links = self._link_set(metadata.name, rel.name)
            links.difference_update({link for link in links if link[0] == pk})
            links.update((pk, target_pk) for target_pk in values[rel.name] or ())

    def _generated_values(self, metadata: EntityMetadata) -> Dict[str, Any]:
        generated: Dict[str, Any] = {}
        for field in metadata.fields:
            if not field.generated:
                continue
            if field.primary_key and field.field_type is FieldType.NUMBER:
                next_key = self._sequences.get(metadata.name, 0) + 1
                self._sequences[metadata.name] = next_key
                generated[field.name] = next_key
            elif field.field_type is FieldType.DATE:
                now = timezone.now()
                generated[field.name] = {"date": now.date(), "time": now.time()}.get(
                    field.subtype, now
                )
        return generated
