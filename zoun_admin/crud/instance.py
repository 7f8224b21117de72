"""
Runtime values returned by the CRUD executor and relationship resolver.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..introspector.types import EntityMetadata, RelationshipKind


@dataclass
class OperationContext:
    """
    Per-call context handed to the access hook and the store.

    ``timeout`` is in seconds and is passed through to every store call.
    """

    user: Any = None
    timeout: Optional[float] = None
    request: Any = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_request(cls, request: Any, timeout: Optional[float] = None) -> "OperationContext":
        return cls(user=getattr(request, "user", None), timeout=timeout, request=request)


@dataclass(frozen=True)
class RelationshipHandle:
    """A lazy reference to the records on the far side of a relationship."""

    entity: str
    pk: Any
    name: str
    kind: RelationshipKind
    target: str
    # Target key of an owning to-one relationship, read with the record.
    target_pk: Any = None

    @property
    def is_to_many(self) -> bool:
        return self.kind in (RelationshipKind.ONE_TO_MANY, RelationshipKind.MANY_TO_MANY)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "target": self.target,
            "targetPk": self.target_pk,
        }


@dataclass
class EntityInstance:
    """
    One record of an entity.

    ``values`` holds plain fields plus the key of every owning to-one
    relationship under the relationship name. ``related`` is filled with the
    instances of eagerly fetched relationships on read.
    """

    entity: str
    pk: Any
    values: Dict[str, Any]
    handles: Dict[str, RelationshipHandle] = field(default_factory=dict)
    related: Dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Any:
        return self.values[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def handle(self, name: str) -> RelationshipHandle:
        return self.handles[name]

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "entity": self.entity,
            "pk": self.pk,
            "values": dict(self.values),
            "relationships": {name: h.as_dict() for name, h in self.handles.items()},
        }
        if self.related:
            data["related"] = {
                name: value.as_dict() if value is not None else None
                for name, value in self.related.items()
            }
        return data


@dataclass
class Page:
    """A window of list results and the total number of matches."""

    items: List[EntityInstance]
    total: int
    offset: int
    limit: int

    @property
    def has_next(self) -> bool:
        return self.offset + len(self.items) < self.total

    @property
    def has_previous(self) -> bool:
        return self.offset > 0

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.as_dict() for item in self.items],
            "total": self.total,
            "offset": self.offset,
            "limit": self.limit,
            "hasNext": self.has_next,
            "hasPrevious": self.has_previous,
        }


def build_instance(metadata: EntityMetadata, row: Dict[str, Any]) -> EntityInstance:
    """Wrap a store row and attach a handle for every relationship."""
    pk = row[metadata.primary_key]
    handles = {
        rel.name: RelationshipHandle(
            entity=metadata.name,
            pk=pk,
            name=rel.name,
            kind=rel.kind,
            target=rel.target,
            target_pk=row.get(rel.name) if rel.is_foreign_key else None,
        )
        for rel in metadata.relationships
    }
    return EntityInstance(entity=metadata.name, pk=pk, values=dict(row), handles=handles)
