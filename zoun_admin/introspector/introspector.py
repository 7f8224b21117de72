"""
SchemaIntrospector implementation.
"""

import logging
from dataclasses import replace
from typing import Any, Iterable, List, Optional, Sequence

from ..core.exceptions import SchemaError
from .describable import Describable, EntityDescriptor, RelationshipDeclaration
from .types import EntityMetadata, FieldMetadata, FieldType, RelationshipMetadata

logger = logging.getLogger(__name__)


def _field_sort_key(indexed: tuple[int, FieldMetadata]) -> tuple[int, int]:
    index, field = indexed
    order = field.hints.order
    return (order if order is not None else 1 << 30, index)


class SchemaIntrospector:
    """
    Builds EntityMetadata from entity descriptors.

    The introspector has no state of its own: calling ``introspect`` twice with
    the same descriptors yields equal metadata.
    """

    def introspect(self, candidates: Iterable[Any]) -> List[EntityMetadata]:
        descriptors = [self._descriptor_for(candidate) for candidate in candidates]
        targets = self._target_index(descriptors)
        entities = [self._build_entity(descriptor, targets) for descriptor in descriptors]
        logger.debug("Introspected %d entities", len(entities))
        return entities

    def _descriptor_for(self, candidate: Any) -> EntityDescriptor:
        if isinstance(candidate, EntityDescriptor):
            return candidate
        if isinstance(candidate, Describable):
            return candidate.describe()
        # Bare Django model classes are the common case for host apps.
        if hasattr(candidate, "_meta"):
            from .django_adapter import DjangoModelAdapter

            return DjangoModelAdapter.for_model(candidate).describe()
        raise SchemaError(f"{candidate!r} does not describe an entity")

    def _target_index(self, descriptors: Sequence[EntityDescriptor]) -> dict[Any, str]:
        """Map every way a relationship may name its target to the entity name."""
        index: dict[Any, str] = {}
        for descriptor in descriptors:
            if descriptor.name in index:
                raise SchemaError(
                    f"Entity '{descriptor.name}' is declared more than once",
                    entity=descriptor.name,
                )
            index[descriptor.name] = descriptor.name
            if descriptor.source is not None:
                index[descriptor.source] = descriptor.name
        return index

    def _build_entity(
        self, descriptor: EntityDescriptor, targets: dict[Any, str]
    ) -> EntityMetadata:
        name = descriptor.name
        fields = [f for _, f in sorted(enumerate(descriptor.fields), key=_field_sort_key)]

        seen: set[str] = set()
        for member in [f.name for f in fields] + [r.name for r in descriptor.relationships]:
            if member in seen:
                raise SchemaError(
                    f"{name} declares '{member}' more than once", entity=name, field=member
                )
            seen.add(member)

        fields = self._resolve_primary_key(name, fields)
        relationships = tuple(
            rel
            for rel in (
                self._resolve_relationship(name, declaration, targets)
                for declaration in descriptor.relationships
            )
            if rel is not None
        )
        primary_key = next(f.name for f in fields if f.primary_key)
        self._check_version_field(name, descriptor.version_field, fields)
        for group in descriptor.unique_together:
            for member in group:
                if member not in seen:
                    raise SchemaError(
                        f"{name} unique group {group!r} references unknown '{member}'",
                        entity=name,
                        field=member,
                    )

        return EntityMetadata(
            name=name,
            fields=tuple(fields),
            relationships=relationships,
            primary_key=primary_key,
            label=descriptor.label,
            plural_label=descriptor.plural_label,
            version_field=descriptor.version_field,
            unique_together=tuple(tuple(group) for group in descriptor.unique_together),
            source=descriptor.source,
        )

    def _resolve_primary_key(
        self, entity: str, fields: List[FieldMetadata]
    ) -> List[FieldMetadata]:
        candidates = [f for f in fields if f.primary_key]
        if len(candidates) != 1:
            raise SchemaError(
                f"{entity} must declare exactly one primary key field, "
                f"found {len(candidates)}",
                entity=entity,
            )
        key = candidates[0]
        if key.nullable:
            raise SchemaError(
                f"Primary key {entity}.{key.name} cannot be nullable",
                entity=entity,
                field=key.name,
            )
        if key.field_type is FieldType.BINARY:
            raise SchemaError(
                f"Primary key {entity}.{key.name} cannot be binary",
                entity=entity,
                field=key.name,
            )
        if key.unique:
            return fields
        return [
            replace(f, unique=True) if f is key else f
            for f in fields
        ]

    def _resolve_relationship(
        self,
        entity: str,
        declaration: RelationshipDeclaration,
        targets: dict[Any, str],
    ) -> Optional[RelationshipMetadata]:
        target = self._lookup_target(declaration.target, targets)
        if target is None:
            if declaration.implicit:
                logger.debug(
                    "Skipping inverse relationship %s.%s: source is not registered",
                    entity,
                    declaration.name,
                )
                return None
            raise SchemaError(
                f"Relationship {entity}.{declaration.name} targets "
                f"{self._target_label(declaration.target)}, which is not a registered entity",
                entity=entity,
                field=declaration.name,
            )
        return RelationshipMetadata(
            name=declaration.name,
            kind=declaration.kind,
            target=target,
            owning=declaration.owning,
            cascade=declaration.cascade,
            fetch=declaration.fetch,
            remote_name=declaration.remote_name,
            required=declaration.required if declaration.owning else False,
            fk_field=declaration.fk_field,
            reset_value=declaration.reset_value,
            label=declaration.label,
        )

    def _lookup_target(self, target: Any, targets: dict[Any, str]):
        try:
            return targets.get(target)
        except TypeError:  # unhashable target reference
            return None

    def _target_label(self, target: Any) -> str:
        return getattr(target, "__name__", None) or repr(target)

    def _check_version_field(
        self, entity: str, version_field: Optional[str], fields: List[FieldMetadata]
    ) -> None:
        if not version_field:
            return
        field = next((f for f in fields if f.name == version_field), None)
        if field is None or field.field_type not in (FieldType.NUMBER, FieldType.DATE):
            raise SchemaError(
                f"Version field {entity}.{version_field} must be a number or date field",
                entity=entity,
                field=version_field,
            )
