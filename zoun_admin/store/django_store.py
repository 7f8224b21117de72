"""
Django ORM persistence store.

Translates query plans into QuerySets built from Q objects, the same way the
filter applicators build ``Q`` trees from GraphQL filter input.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from django.db import DEFAULT_DB_ALIAS, DatabaseError, connections, models, transaction
from django.db.models import Q
from django.db.models.deletion import ProtectedError, RestrictedError

from ..core.exceptions import IntegrityError, StoreError
from ..core.registry import MetadataRegistry
from ..introspector.relationships import is_hidden_relation
from ..introspector.types import EntityMetadata, RelationshipKind, RelationshipMetadata
from ..query.plan import Predicate, QueryPlan
from ..query.spec import Operator

logger = logging.getLogger(__name__)

LOOKUPS = {
    Operator.EQ: "exact",
    Operator.LT: "lt",
    Operator.LTE: "lte",
    Operator.GT: "gt",
    Operator.GTE: "gte",
    Operator.IN: "in",
    Operator.CONTAINS: "contains",
    Operator.ICONTAINS: "icontains",
    Operator.STARTSWITH: "startswith",
    Operator.ISNULL: "isnull",
}


class DjangoStore:
    """PersistenceStore backed by the models the entities were described from."""

    def __init__(self, registry: MetadataRegistry, using: str = DEFAULT_DB_ALIAS):
        self.registry = registry
        self.using = using
        self._query_names: Dict[type, Dict[str, str]] = {}

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _model(self, metadata: EntityMetadata) -> type[models.Model]:
        model = metadata.source
        if not (isinstance(model, type) and issubclass(model, models.Model)):
            raise StoreError(f"{metadata.name} is not backed by a Django model", entity=metadata.name)
        return model

    def _manager(self, metadata: EntityMetadata):
        return self._model(metadata)._default_manager.using(self.using)

    def _lookup_name(self, model: type[models.Model], rel: RelationshipMetadata) -> str:
        """ORM lookup name of a relationship; inverse sides use the query name."""
        if rel.owning:
            return rel.name
        names = self._query_names.get(model)
        if names is None:
            names = {}
            for field in model._meta.get_fields():
                if field.auto_created and not field.concrete and field.is_relation:
                    if not is_hidden_relation(field):
                        names[field.get_accessor_name()] = field.name
            self._query_names[model] = names
        try:
            return names[rel.name]
        except KeyError:
            raise StoreError(
                f"{model.__name__} has no reverse relation '{rel.name}'"
            ) from None

    def _q(self, model: type[models.Model], predicate: Predicate) -> Q:
        path = predicate.name
        if predicate.relationship is not None:
            path = self._lookup_name(model, predicate.relationship)
        operator = predicate.operator
        if operator is Operator.NEQ:
            return ~Q(**{f"{path}__exact": predicate.value})
        if operator is Operator.NOT_IN:
            return ~Q(**{f"{path}__in": list(predicate.value)})
        value = predicate.value
        if operator is Operator.IN:
            value = list(value)
        return Q(**{f"{path}__{LOOKUPS[operator]}": value})

    def _queryset(self, metadata: EntityMetadata, predicates: Tuple[Predicate, ...]):
        model = self._model(metadata)
        queryset = self._manager(metadata)
        condition = Q()
        for predicate in predicates:
            condition &= self._q(model, predicate)
        queryset = queryset.filter(condition)
        if any(predicate.spans_many for predicate in predicates):
            queryset = queryset.distinct()
        return queryset

    def _order_by(self, metadata: EntityMetadata, plan: QueryPlan) -> List[str]:
        ordering = []
        for key in plan.sort:
            name = key.name
            if key.relationship is not None and key.relationship.fk_field:
                # Order by the stored key, not the target's Meta.ordering.
                name = key.relationship.fk_field
            ordering.append(f"-{name}" if key.descending else name)
        return ordering

    def _split_values(
        self, metadata: EntityMetadata, values: Mapping[str, Any]
    ) -> Tuple[Dict[str, Any], Dict[str, List[Any]]]:
        attributes: Dict[str, Any] = {}
        links: Dict[str, List[Any]] = {}
        for name, value in values.items():
            if metadata.get_field(name) is not None:
                attributes[name] = value
                continue
            rel = metadata.get_relationship(name)
            if rel is None or not rel.owning:
                continue
            if rel.kind is RelationshipKind.MANY_TO_MANY:
                links[name] = list(value or ())
            else:
                attributes[rel.fk_field or f"{name}_id"] = value
        return attributes, links

    @staticmethod
    def _row(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            key: bytes(value) if isinstance(value, memoryview) else value
            for key, value in data.items()
        }

    def _apply_timeout(self, timeout: Optional[float]) -> None:
        connection = connections[self.using]
        if not timeout or connection.vendor != "postgresql":
            return
        with connection.cursor() as cursor:
            cursor.execute("SET LOCAL statement_timeout = %s", [int(timeout * 1000)])

    @contextmanager
    def _guard(self, entity: str, timeout: Optional[float]):
        """Run one store call in a savepoint and map database errors."""
        try:
            with transaction.atomic(using=self.using):
                self._apply_timeout(timeout)
                yield
        except (ProtectedError, RestrictedError) as exc:
            raise IntegrityError(str(exc.args[0]), entity=entity) from exc
        except DatabaseError as exc:
            logger.warning("Database error on %s: %s", entity, exc)
            raise StoreError(f"Database error on {entity}: {exc}", entity=entity) from exc

    # ------------------------------------------------------------------ #
    # PersistenceStore
    # ------------------------------------------------------------------ #
    def execute_query(
        self, plan: QueryPlan, *, timeout: Optional[float] = None
    ) -> List[Dict[str, Any]]:
        metadata = self.registry.get(plan.entity)
        with self._guard(plan.entity, timeout):
            queryset = self._queryset(metadata, plan.predicates)
            queryset = queryset.order_by(*self._order_by(metadata, plan))
            end = None if plan.limit is None else plan.offset + plan.limit
            rows = list(queryset.values(*plan.columns)[plan.offset:end])
        return [self._row(row) for row in rows]

    def count(
        self,
        entity: str,
        predicates: Iterable[Predicate] = (),
        *,
        timeout: Optional[float] = None,
    ) -> int:
        metadata = self.registry.get(entity)
        with self._guard(entity, timeout):
            return self._queryset(metadata, tuple(predicates)).count()

    def insert(
        self, entity: str, values: Mapping[str, Any], *, timeout: Optional[float] = None
    ) -> Any:
        metadata = self.registry.get(entity)
        model = self._model(metadata)
        attributes, links = self._split_values(metadata, values)
        with self._guard(entity, timeout):
            instance = model(**attributes)
            instance.save(force_insert=True, using=self.using)
            for name, keys in links.items():
                getattr(instance, name).set(keys)
        logger.debug("Inserted %s %r", entity, instance.pk)
        return instance.pk

    def update(
        self,
        entity: str,
        pk: Any,
        values: Mapping[str, Any],
        *,
        where: Iterable[Predicate] = (),
        timeout: Optional[float] = None,
    ) -> int:
        metadata = self.registry.get(entity)
        attributes, links = self._split_values(metadata, values)
        with self._guard(entity, timeout):
            # The row stays locked until the surrounding transaction ends, so
            # the ``where`` check and the save cannot interleave with another
            # writer.
            queryset = self._queryset(metadata, tuple(where)).filter(pk=pk)
            instance = queryset.select_for_update().first()
            if instance is None:
                return 0
            for name, value in attributes.items():
                setattr(instance, name, value)
            # A full save lets auto_now fields refresh.
            instance.save(using=self.using)
            for name, keys in links.items():
                getattr(instance, name).set(keys)
        return 1

    def delete(self, entity: str, pk: Any, *, timeout: Optional[float] = None) -> int:
        metadata = self.registry.get(entity)
        model = self._model(metadata)
        with self._guard(entity, timeout):
            _, per_model = self._manager(metadata).filter(pk=pk).delete()
        return per_model.get(model._meta.label, 0)
