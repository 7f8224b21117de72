"""
RelationshipResolver implementation.

Resolution never mutates the instance it starts from: the same instance and
relationship name always produce a fresh, equal result.
"""

import logging
from typing import Any, Optional, Union

from ..core.exceptions import InvalidQueryError
from ..core.registry import MetadataRegistry
from ..core.settings import QuerySettings
from ..introspector.types import EntityMetadata, RelationshipMetadata
from ..query.builder import QueryBuilder
from ..query.spec import FilterPredicate, Operator, QuerySpec
from ..store.base import PersistenceStore
from .access import AccessGate
from .instance import EntityInstance, OperationContext, Page, RelationshipHandle, build_instance

logger = logging.getLogger(__name__)


class RelationshipResolver:
    """Loads the records on the far side of a relationship on demand."""

    def __init__(
        self,
        registry: MetadataRegistry,
        store: PersistenceStore,
        builder: QueryBuilder,
        access: Optional[AccessGate] = None,
        settings: Optional[QuerySettings] = None,
    ):
        self.registry = registry
        self.store = store
        self.builder = builder
        self.access = access or AccessGate()
        self.settings = settings or builder.settings

    def resolve(
        self,
        instance: EntityInstance,
        name: str,
        spec: Optional[QuerySpec] = None,
        context: Optional[OperationContext] = None,
    ) -> Union[EntityInstance, Page, None]:
        """
        To-one relationships give the related instance or None; to-many
        relationships give a Page windowed by ``spec``.
        """
        metadata = self.registry.get(instance.entity)
        rel = self._relationship(metadata, name)
        target_pk = instance.values.get(name) if rel.is_foreign_key else None
        return self._resolve(metadata, rel, instance.pk, target_pk, spec, context)

    def resolve_handle(
        self,
        handle: RelationshipHandle,
        spec: Optional[QuerySpec] = None,
        context: Optional[OperationContext] = None,
    ) -> Union[EntityInstance, Page, None]:
        metadata = self.registry.get(handle.entity)
        rel = self._relationship(metadata, handle.name)
        return self._resolve(metadata, rel, handle.pk, handle.target_pk, spec, context)

    def options(
        self,
        entity: str,
        name: str,
        spec: Optional[QuerySpec] = None,
        context: Optional[OperationContext] = None,
    ) -> Page:
        """Candidate targets a form may offer for an owning relationship."""
        metadata = self.registry.get(entity)
        rel = self._relationship(metadata, name)
        if not rel.owning:
            raise InvalidQueryError(
                f"{entity}.{name} is set from the other side and has no options",
                entity=entity,
                field=name,
            )
        self.access.check(rel.target, "list", context)
        return self._page(self.builder.build(rel.target, spec), context)

    def _relationship(self, metadata: EntityMetadata, name: str) -> RelationshipMetadata:
        rel = metadata.get_relationship(name)
        if rel is None:
            raise InvalidQueryError(
                f"{metadata.name} has no relationship '{name}'",
                entity=metadata.name,
                field=name,
            )
        return rel

    def _timeout(self, context: Optional[OperationContext]) -> Optional[float]:
        if context is not None and context.timeout is not None:
            return context.timeout
        return self.settings.statement_timeout

    def _resolve(
        self,
        metadata: EntityMetadata,
        rel: RelationshipMetadata,
        pk: Any,
        target_pk: Any,
        spec: Optional[QuerySpec],
        context: Optional[OperationContext],
    ) -> Union[EntityInstance, Page, None]:
        self.access.check(rel.target, "read", context)
        target = self.registry.get(rel.target)

        if rel.is_foreign_key:
            if target_pk is None:
                return None
            plan = self.builder.build_unbounded(
                target.name, [FilterPredicate(target.primary_key, Operator.EQ, target_pk)]
            )
            return self._first(target, plan, context)

        anchor = self._anchor(metadata, rel, target, pk)
        if rel.is_to_one:
            plan = self.builder.build(target.name, QuerySpec(limit=1), anchors=[anchor])
            return self._first(target, plan, context)
        return self._page(self.builder.build(target.name, spec, anchors=[anchor]), context)

    def _anchor(
        self,
        metadata: EntityMetadata,
        rel: RelationshipMetadata,
        target: EntityMetadata,
        pk: Any,
    ) -> FilterPredicate:
        if not rel.remote_name or target.get_relationship(rel.remote_name) is None:
            raise InvalidQueryError(
                f"{metadata.name}.{rel.name} cannot be resolved: {target.name} "
                "exposes no inverse relationship",
                entity=metadata.name,
                field=rel.name,
            )
        return FilterPredicate(rel.remote_name, Operator.EQ, pk)

    def _first(self, target: EntityMetadata, plan, context) -> Optional[EntityInstance]:
        rows = self.store.execute_query(plan, timeout=self._timeout(context))
        return build_instance(target, rows[0]) if rows else None

    def _page(self, plan, context) -> Page:
        timeout = self._timeout(context)
        target = self.registry.get(plan.entity)
        rows = self.store.execute_query(plan, timeout=timeout)
        total = self.store.count(plan.entity, plan.predicates, timeout=timeout)
        return Page(
            items=[build_instance(target, row) for row in rows],
            total=total,
            offset=plan.offset,
            limit=plan.limit,
        )
