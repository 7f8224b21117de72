"""
Capability interface implemented by entity-type adapters.

An adapter turns whatever the host platform uses to declare entities into an
``EntityDescriptor``. The introspector only ever talks to this interface, so
Django models, hand-written descriptors and test fixtures are handled alike.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Tuple, Union, runtime_checkable

from .types import (
    CascadePolicy,
    FetchPolicy,
    FieldMetadata,
    RelationshipKind,
)


@dataclass(frozen=True)
class RelationshipDeclaration:
    """
    A relationship as declared on the entity type, before its target is resolved.

    ``target`` is either an entity name or the host type the target entity was
    described from (e.g. a Django model class). ``implicit`` marks inverse
    relationships the platform derives from the other side; those are dropped
    instead of failing when their source is not registered.
    """

    name: str
    kind: RelationshipKind
    target: Union[str, Any]
    owning: bool = True
    cascade: CascadePolicy = CascadePolicy.NONE
    fetch: FetchPolicy = FetchPolicy.LAZY
    remote_name: Optional[str] = None
    required: bool = False
    fk_field: Optional[str] = None
    reset_value: Any = None
    label: Optional[str] = None
    implicit: bool = False


@dataclass(frozen=True)
class EntityDescriptor:
    """Raw declarations of one entity type."""

    name: str
    fields: Tuple[FieldMetadata, ...]
    relationships: Tuple[RelationshipDeclaration, ...] = ()
    source: Any = None
    label: Optional[str] = None
    plural_label: Optional[str] = None
    version_field: Optional[str] = None
    unique_together: Tuple[Tuple[str, ...], ...] = field(default_factory=tuple)

    def describe(self) -> "EntityDescriptor":
        return self


@runtime_checkable
class Describable(Protocol):
    def describe(self) -> EntityDescriptor:
        ...
