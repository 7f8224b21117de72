"""
Data structures for introspection results.

All metadata objects are frozen dataclasses holding tuples, so a registry
built at startup can be shared by every request without locking.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class _NotProvided:
    """Marker for a field without a declared default."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_PROVIDED"

    def __bool__(self) -> bool:
        return False


NOT_PROVIDED = _NotProvided()


class FieldType(str, Enum):
    """Semantic type of a plain field."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ENUM = "enum"
    BINARY = "binary"


class RelationshipKind(str, Enum):
    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"


class CascadePolicy(str, Enum):
    """What happens to dependent records when their target is deleted."""

    NONE = "none"
    DELETE = "delete"
    UPDATE = "update"


class FetchPolicy(str, Enum):
    EAGER = "eager"
    LAZY = "lazy"


def humanize(name: str) -> str:
    """Turn ``createdAt`` or ``created_at`` into ``Created at``."""
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", name).replace("_", " ").strip()
    if not spaced:
        return name
    return spaced[0].upper() + spaced[1:].lower()


@dataclass(frozen=True)
class DisplayHints:
    """Presentation hints consumed by form and list builders."""

    label: Optional[str] = None
    help_text: str = ""
    widget: str = "text"
    hidden: bool = False
    read_only: bool = False
    order: Optional[int] = None
    lob: bool = False


@dataclass(frozen=True)
class FieldMetadata:
    """Stores metadata about a plain (non-relationship) entity field."""

    name: str
    field_type: FieldType
    nullable: bool = False
    max_length: Optional[int] = None
    unique: bool = False
    default: Any = NOT_PROVIDED
    hints: DisplayHints = field(default_factory=DisplayHints)
    primary_key: bool = False
    generated: bool = False
    subtype: Optional[str] = None
    choices: Tuple[Tuple[Any, str], ...] = ()
    min_length: Optional[int] = None
    min_value: Any = None
    max_value: Any = None
    pattern: Optional[str] = None
    allow_blank: bool = True

    @property
    def has_default(self) -> bool:
        return self.default is not NOT_PROVIDED

    def get_default(self) -> Any:
        if not self.has_default:
            return None
        if callable(self.default):
            return self.default()
        return self.default

    @property
    def is_required(self) -> bool:
        """A value must be supplied on create."""
        return not (self.nullable or self.has_default or self.generated)

    @property
    def is_editable(self) -> bool:
        return not (self.generated or self.hints.hidden or self.hints.read_only)

    @property
    def is_visible(self) -> bool:
        return not self.hints.hidden

    @property
    def display_label(self) -> str:
        return self.hints.label or humanize(self.name)

    def choice_values(self) -> Tuple[Any, ...]:
        return tuple(value for value, _ in self.choices)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.field_type.value,
            "subtype": self.subtype,
            "nullable": self.nullable,
            "maxLength": self.max_length,
            "unique": self.unique,
            "primaryKey": self.primary_key,
            "generated": self.generated,
            "required": self.is_required,
            "editable": self.is_editable,
            "label": self.display_label,
            "helpText": self.hints.help_text,
            "widget": self.hints.widget,
            "hidden": self.hints.hidden,
            "readOnly": self.hints.read_only,
            "choices": [
                {"value": value, "label": label} for value, label in self.choices
            ],
        }


@dataclass(frozen=True)
class RelationshipMetadata:
    """Stores metadata about a relationship to another entity."""

    name: str
    kind: RelationshipKind
    target: str
    owning: bool = True
    cascade: CascadePolicy = CascadePolicy.NONE
    fetch: FetchPolicy = FetchPolicy.LAZY
    remote_name: Optional[str] = None
    required: bool = False
    fk_field: Optional[str] = None
    reset_value: Any = None
    label: Optional[str] = None

    @property
    def is_to_many(self) -> bool:
        return self.kind in (RelationshipKind.ONE_TO_MANY, RelationshipKind.MANY_TO_MANY)

    @property
    def is_to_one(self) -> bool:
        return not self.is_to_many

    @property
    def is_foreign_key(self) -> bool:
        """Owning to-one relationships store the target key on this entity."""
        return self.owning and self.is_to_one

    @property
    def display_label(self) -> str:
        return self.label or humanize(self.name)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "target": self.target,
            "owning": self.owning,
            "cascade": self.cascade.value,
            "fetch": self.fetch.value,
            "required": self.required,
            "remoteName": self.remote_name,
            "label": self.display_label,
        }


@dataclass(frozen=True)
class EntityMetadata:
    """Resolved metadata for one entity type."""

    name: str
    fields: Tuple[FieldMetadata, ...]
    relationships: Tuple[RelationshipMetadata, ...]
    primary_key: str
    label: Optional[str] = None
    plural_label: Optional[str] = None
    version_field: Optional[str] = None
    unique_together: Tuple[Tuple[str, ...], ...] = ()
    # Host type the entity was described from, e.g. a Django model class.
    source: Any = field(default=None, compare=False, repr=False)

    def get_field(self, name: str) -> Optional[FieldMetadata]:
        for item in self.fields:
            if item.name == name:
                return item
        return None

    def get_relationship(self, name: str) -> Optional[RelationshipMetadata]:
        for item in self.relationships:
            if item.name == name:
                return item
        return None

    def has_member(self, name: str) -> bool:
        return self.get_field(name) is not None or self.get_relationship(name) is not None

    @property
    def pk_field(self) -> FieldMetadata:
        return self.get_field(self.primary_key)

    @property
    def foreign_keys(self) -> Tuple[RelationshipMetadata, ...]:
        return tuple(rel for rel in self.relationships if rel.is_foreign_key)

    @property
    def columns(self) -> Tuple[str, ...]:
        """Names fetched for every row: plain fields then foreign keys."""
        return tuple(f.name for f in self.fields) + tuple(
            rel.name for rel in self.foreign_keys
        )

    def visible_fields(self) -> Tuple[FieldMetadata, ...]:
        return tuple(f for f in self.fields if f.is_visible)

    def editable_fields(self) -> Tuple[FieldMetadata, ...]:
        return tuple(f for f in self.fields if f.is_editable)

    @property
    def display_label(self) -> str:
        return self.label or humanize(self.name)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "label": self.display_label,
            "pluralLabel": self.plural_label or f"{self.display_label}s",
            "primaryKey": self.primary_key,
            "versionField": self.version_field,
            "fields": [f.as_dict() for f in self.fields],
            "relationships": [r.as_dict() for r in self.relationships],
        }
