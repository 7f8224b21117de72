"""
CrudExecutor implementation.

Generic list, create, read, update and delete over any registered entity.
Each operation runs the access pre-check first and performs every check
before its first write, so a failed call leaves the store untouched.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from django.utils import timezone

from ..core.exceptions import (
    ConcurrentModificationError,
    IntegrityError,
    NotFoundError,
    ValidationError,
)
from ..core.registry import MetadataRegistry
from ..core.settings import CrudSettings, QuerySettings
from ..introspector.types import (
    CascadePolicy,
    EntityMetadata,
    FetchPolicy,
    FieldMetadata,
    FieldType,
    RelationshipKind,
    RelationshipMetadata,
)
from ..query.builder import QueryBuilder
from ..query.plan import Predicate
from ..query.spec import FilterPredicate, Operator, QuerySpec
from ..store.base import PersistenceStore
from ..utils.coercion import CoercionError, coerce_value
from .access import AccessGate
from .instance import EntityInstance, OperationContext, Page, build_instance
from .resolver import RelationshipResolver
from .validation import InputValidator

logger = logging.getLogger(__name__)


class CrudExecutor:
    """Schema-driven CRUD over a PersistenceStore."""

    def __init__(
        self,
        registry: MetadataRegistry,
        store: PersistenceStore,
        builder: Optional[QueryBuilder] = None,
        settings: Optional[CrudSettings] = None,
        query_settings: Optional[QuerySettings] = None,
    ):
        self.registry = registry
        self.store = store
        self.settings = settings or CrudSettings.from_settings()
        self.builder = builder or QueryBuilder(registry, query_settings)
        self.query_settings = query_settings or self.builder.settings
        self.access = AccessGate(self.settings.access_hook)
        self.validator = InputValidator(registry, store, self.builder, self.settings)
        self.resolver = RelationshipResolver(
            registry, store, self.builder, self.access, self.query_settings
        )

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #
    def list(
        self,
        entity: str,
        spec: Optional[QuerySpec] = None,
        context: Optional[OperationContext] = None,
    ) -> Page:
        self.access.check(entity, "list", context)
        metadata = self.registry.get(entity)
        timeout = self._timeout(context)
        plan = self.builder.build(entity, spec)
        rows = self.store.execute_query(plan, timeout=timeout)
        total = self.store.count(entity, plan.predicates, timeout=timeout)
        return Page(
            items=[build_instance(metadata, row) for row in rows],
            total=total,
            offset=plan.offset,
            limit=plan.limit,
        )

    def create(
        self,
        entity: str,
        data: Mapping[str, Any],
        context: Optional[OperationContext] = None,
    ) -> EntityInstance:
        self.access.check(entity, "create", context)
        metadata = self.registry.get(entity)
        timeout = self._timeout(context)
        values = self.validator.clean_create(metadata, data, timeout=timeout)
        pk = self.store.insert(entity, values, timeout=timeout)
        logger.info("Created %s %r", entity, pk)
        return self._read(metadata, pk, context)

    def read(
        self, entity: str, pk: Any, context: Optional[OperationContext] = None
    ) -> EntityInstance:
        self.access.check(entity, "read", context)
        metadata = self.registry.get(entity)
        return self._read(metadata, self._coerce_pk(metadata, pk), context)

    def update(
        self,
        entity: str,
        pk: Any,
        data: Mapping[str, Any],
        expected_version: Any = None,
        context: Optional[OperationContext] = None,
    ) -> EntityInstance:
        """
        Apply ``data`` to an existing record.

        Versioned entities need the version the caller last read, either as
        ``expected_version`` or under the version field's name in ``data``.
        """
        self.access.check(entity, "update", context)
        metadata = self.registry.get(entity)
        timeout = self._timeout(context)
        pk = self._coerce_pk(metadata, pk)
        current = self._fetch(metadata, pk, timeout)
        if current is None:
            raise NotFoundError(f"{metadata.name} {pk!r} does not exist", entity=entity, pk=pk)

        data = dict(data)
        version_field = metadata.get_field(metadata.version_field) if metadata.version_field else None
        if version_field is not None:
            supplied = data.pop(version_field.name, None)
            if expected_version is None:
                expected_version = supplied
            self._check_version(metadata, version_field, pk, current, expected_version)

        values = self.validator.clean_update(metadata, current, data, timeout=timeout)
        if values or version_field is not None:
            where: Tuple[Predicate, ...] = ()
            if version_field is not None:
                seen = current[version_field.name]
                values[version_field.name] = self._next_version(version_field, seen)
                where = self.builder.build_predicates(
                    metadata, anchors=[self._version_anchor(version_field, seen)]
                )
            if not self.store.update(entity, pk, values, where=where, timeout=timeout):
                self._raise_lost_update(metadata, version_field, pk, expected_version, timeout)
            logger.info("Updated %s %r", entity, pk)
        return self._read(metadata, pk, context)

    def delete(
        self, entity: str, pk: Any, context: Optional[OperationContext] = None
    ) -> int:
        """
        Delete a record and apply the cascade policy of every relationship
        pointing at it. Returns the number of records removed.
        """
        self.access.check(entity, "delete", context)
        metadata = self.registry.get(entity)
        timeout = self._timeout(context)
        pk = self._coerce_pk(metadata, pk)
        if self._fetch(metadata, pk, timeout) is None:
            raise NotFoundError(f"{metadata.name} {pk!r} does not exist", entity=entity, pk=pk)

        deletions, resets, blocked = self._collect_cascade(metadata, pk, timeout)
        if blocked:
            details = ", ".join(f"{count} {name}" for name, count in sorted(blocked.items()))
            logger.warning("Refused to delete %s %r: referenced by %s", entity, pk, details)
            raise IntegrityError(
                f"Cannot delete {metadata.display_label} {pk!r}: it is referenced by {details}",
                entity=entity,
                dependents=dict(blocked),
            )

        doomed = {(meta.name, key) for meta, key in deletions}
        for dependent, key, rel in resets:
            if (dependent.name, key) in doomed:
                continue
            self.store.update(dependent.name, key, {rel.name: rel.reset_value}, timeout=timeout)
        removed = 0
        for target, key in deletions:
            removed += self.store.delete(target.name, key, timeout=timeout)
        logger.info("Deleted %s %r (%d records)", entity, pk, removed)
        return removed

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _timeout(self, context: Optional[OperationContext]) -> Optional[float]:
        if context is not None and context.timeout is not None:
            return context.timeout
        return self.query_settings.statement_timeout

    def _coerce_pk(self, metadata: EntityMetadata, pk: Any) -> Any:
        try:
            key = coerce_value(metadata.pk_field, pk)
        except CoercionError:
            key = None
        if key is None:
            raise NotFoundError(f"{metadata.name} {pk!r} does not exist", entity=metadata.name, pk=pk)
        return key

    def _fetch(
        self, metadata: EntityMetadata, pk: Any, timeout: Optional[float]
    ) -> Optional[Dict[str, Any]]:
        plan = self.builder.build_unbounded(
            metadata.name, [FilterPredicate(metadata.primary_key, Operator.EQ, pk)]
        )
        rows = self.store.execute_query(plan, timeout=timeout)
        return rows[0] if rows else None

    def _read(
        self, metadata: EntityMetadata, pk: Any, context: Optional[OperationContext]
    ) -> EntityInstance:
        row = self._fetch(metadata, pk, self._timeout(context))
        if row is None:
            raise NotFoundError(f"{metadata.name} {pk!r} does not exist", entity=metadata.name, pk=pk)
        instance = build_instance(metadata, row)
        for rel in metadata.relationships:
            if rel.fetch is not FetchPolicy.EAGER or rel.is_to_many:
                continue
            if not self.access.allows(rel.target, "read", context):
                logger.debug("Skipping eager %s.%s: read denied", metadata.name, rel.name)
                continue
            instance.related[rel.name] = self.resolver.resolve(instance, rel.name, context=context)
        return instance

    def _check_version(
        self,
        metadata: EntityMetadata,
        field: FieldMetadata,
        pk: Any,
        current: Mapping[str, Any],
        expected: Any,
    ) -> None:
        if expected is None:
            raise ValidationError(
                {field.name: "The current version is required to update this record."},
                entity=metadata.name,
            )
        try:
            expected = coerce_value(field, expected)
        except CoercionError as exc:
            raise ValidationError({field.name: str(exc)}, entity=metadata.name) from None
        if expected != current[field.name]:
            logger.warning(
                "Version conflict on %s %r: expected %r, found %r",
                metadata.name,
                pk,
                expected,
                current[field.name],
            )
            raise ConcurrentModificationError(
                metadata.name, pk, expected_version=expected, current_version=current[field.name]
            )

    def _version_anchor(self, field: FieldMetadata, seen: Any) -> FilterPredicate:
        if seen is None:
            return FilterPredicate(field.name, Operator.ISNULL, True)
        return FilterPredicate(field.name, Operator.EQ, seen)

    def _raise_lost_update(
        self,
        metadata: EntityMetadata,
        version_field: Optional[FieldMetadata],
        pk: Any,
        expected: Any,
        timeout: Optional[float],
    ) -> None:
        """Explain why a conditional write changed nothing."""
        current = self._fetch(metadata, pk, timeout)
        if current is None or version_field is None:
            raise NotFoundError(f"{metadata.name} {pk!r} does not exist", entity=metadata.name, pk=pk)
        logger.warning(
            "Version conflict on %s %r: changed by another writer before the update",
            metadata.name,
            pk,
        )
        raise ConcurrentModificationError(
            metadata.name,
            pk,
            expected_version=coerce_value(version_field, expected),
            current_version=current[version_field.name],
        )

    def _next_version(self, field: FieldMetadata, current: Any) -> Any:
        if field.field_type is FieldType.DATE:
            now = timezone.now()
            if field.subtype == "date":
                return now.date()
            # JSON encodes datetimes with millisecond precision; keep versions
            # comparable after a round trip.
            return now.replace(microsecond=now.microsecond // 1000 * 1000)
        return (current or 0) + 1

    def _collect_cascade(
        self, metadata: EntityMetadata, pk: Any, timeout: Optional[float]
    ) -> Tuple[
        List[Tuple[EntityMetadata, Any]],
        List[Tuple[EntityMetadata, Any, RelationshipMetadata]],
        Counter,
    ]:
        """
        Walk the records that point at ``metadata``/``pk``.

        Returns deletions ordered dependents first, foreign keys to reset, and
        the count of blocking references per ``Entity.relationship``.
        """
        deletions: List[Tuple[EntityMetadata, Any]] = []
        resets: List[Tuple[EntityMetadata, Any, RelationshipMetadata]] = []
        blocked: Counter = Counter()
        visited: Set[Tuple[str, Any]] = set()

        def visit(current: EntityMetadata, key: Any) -> None:
            if (current.name, key) in visited:
                return
            visited.add((current.name, key))
            for dependent, rel in self.registry.dependents_of(current.name):
                plan = self.builder.build_unbounded(
                    dependent.name, [FilterPredicate(rel.name, Operator.EQ, key)]
                )
                rows = self.store.execute_query(plan, timeout=timeout)
                keys = [row[dependent.primary_key] for row in rows]
                if not keys:
                    continue
                label = f"{dependent.name}.{rel.name}"
                if rel.cascade is CascadePolicy.NONE:
                    blocked[label] += len(keys)
                elif rel.kind is RelationshipKind.MANY_TO_MANY:
                    # Link rows go away with the record itself.
                    continue
                elif rel.cascade is CascadePolicy.DELETE:
                    for dependent_key in keys:
                        visit(dependent, dependent_key)
                elif rel.required and rel.reset_value is None:
                    blocked[label] += len(keys)
                else:
                    resets.extend((dependent, dependent_key, rel) for dependent_key in keys)
            deletions.append((current, key))

        visit(metadata, pk)
        return deletions, resets, blocked
