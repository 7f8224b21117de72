"""
MetadataRegistry implementation.
"""

import logging
import threading
from types import MappingProxyType
from typing import Iterable, Iterator, List, Optional, Tuple

from ...introspector.types import EntityMetadata, FieldType, RelationshipMetadata
from ..exceptions import ImmutableStateError, NotFoundError, SchemaError

logger = logging.getLogger(__name__)


class MetadataRegistry:
    """
    Registry of entity metadata keyed by entity name.

    Populated once during startup, then frozen. Reads after ``freeze()`` take
    no lock because nothing can change any more.
    """

    def __init__(self, entities: Optional[Iterable[EntityMetadata]] = None):
        self._entities: dict[str, EntityMetadata] = {}
        self._dependents: dict[str, Tuple[Tuple[EntityMetadata, RelationshipMetadata], ...]] = {}
        self._lock = threading.Lock()
        self._frozen = False
        for metadata in entities or ():
            self.register(metadata)

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def _ensure_mutable(self, action: str) -> None:
        if self._frozen:
            raise ImmutableStateError(f"Cannot {action}: the metadata registry is frozen")

    def register(self, metadata: EntityMetadata) -> EntityMetadata:
        """Register an entity. Only allowed before ``freeze()``."""
        with self._lock:
            self._ensure_mutable(f"register '{metadata.name}'")
            if metadata.name in self._entities:
                raise SchemaError(
                    f"Entity '{metadata.name}' is already registered", entity=metadata.name
                )
            self._entities[metadata.name] = metadata
            logger.debug("Registered entity: %s", metadata.name)
            return metadata

    def unregister(self, name: str) -> None:
        with self._lock:
            self._ensure_mutable(f"unregister '{name}'")
            self._entities.pop(name, None)

    def clear(self) -> None:
        with self._lock:
            self._ensure_mutable("clear")
            self._entities.clear()

    def freeze(self) -> "MetadataRegistry":
        """Validate cross-entity references and make the registry read-only."""
        with self._lock:
            if self._frozen:
                return self
            for metadata in self._entities.values():
                self._validate_entity(metadata)
            self._dependents = self._build_dependents_index()
            self._entities = MappingProxyType(dict(self._entities))
            self._frozen = True
        logger.info(
            "Registered %d entities: %s", len(self._entities), ", ".join(self._entities)
        )
        return self

    def _validate_entity(self, metadata: EntityMetadata) -> None:
        name = metadata.name
        pk = metadata.get_field(metadata.primary_key)
        if pk is None or not pk.primary_key or pk.nullable or not pk.unique:
            raise SchemaError(
                f"{name} primary key '{metadata.primary_key}' must be a unique, "
                "non-null declared field",
                entity=name,
            )
        for rel in metadata.relationships:
            target = self._entities.get(rel.target)
            if target is None:
                raise SchemaError(
                    f"Relationship {name}.{rel.name} targets unregistered entity "
                    f"'{rel.target}'",
                    entity=name,
                    field=rel.name,
                )
            if rel.remote_name and target.get_relationship(rel.remote_name) is None:
                # Inverse sides may be excluded from the target on purpose.
                logger.debug(
                    "Relationship %s.%s has no inverse '%s' on %s",
                    name,
                    rel.name,
                    rel.remote_name,
                    target.name,
                )
            if rel.is_foreign_key and rel.fk_field:
                shadow = metadata.get_field(rel.fk_field)
                target_pk = target.pk_field
                if shadow is not None and (
                    shadow.field_type is not target_pk.field_type
                    or shadow.field_type is FieldType.BINARY
                ):
                    raise SchemaError(
                        f"{name}.{shadow.name} is both the foreign key of '{rel.name}' "
                        f"and a plain {shadow.field_type.value} field, but "
                        f"{target.name}.{target_pk.name} is {target_pk.field_type.value}",
                        entity=name,
                        field=shadow.name,
                    )

    def _build_dependents_index(self):
        index: dict[str, list] = {name: [] for name in self._entities}
        for metadata in self._entities.values():
            for rel in metadata.relationships:
                if rel.owning:
                    index.setdefault(rel.target, []).append((metadata, rel))
        return {name: tuple(pairs) for name, pairs in index.items()}

    def get(self, name: str) -> EntityMetadata:
        """Return metadata for ``name`` or raise NotFoundError."""
        try:
            return self._entities[name]
        except KeyError:
            raise NotFoundError(f"Unknown entity '{name}'", entity=name) from None

    def names(self) -> List[str]:
        """Entity names in registration order."""
        return list(self._entities)

    def entities(self) -> List[EntityMetadata]:
        return list(self._entities.values())

    def dependents_of(self, name: str) -> Tuple[Tuple[EntityMetadata, RelationshipMetadata], ...]:
        """Owning relationships of other entities that point at ``name``."""
        if not self._frozen:
            return tuple(self._build_dependents_index().get(name, ()))
        return self._dependents.get(name, ())

    def __contains__(self, name: object) -> bool:
        return name in self._entities

    def __iter__(self) -> Iterator[EntityMetadata]:
        return iter(list(self._entities.values()))

    def __len__(self) -> int:
        return len(self._entities)
