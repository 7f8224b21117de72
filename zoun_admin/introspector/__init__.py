"""
Entity Introspection System Package.
"""

from .describable import Describable, EntityDescriptor, RelationshipDeclaration
from .django_adapter import DjangoModelAdapter
from .introspector import SchemaIntrospector
from .meta import AdminMeta, AdminMetaConfig, get_model_admin_meta
from .types import (
    NOT_PROVIDED,
    CascadePolicy,
    DisplayHints,
    EntityMetadata,
    FetchPolicy,
    FieldMetadata,
    FieldType,
    RelationshipKind,
    RelationshipMetadata,
)

__all__ = [
    "SchemaIntrospector",
    "DjangoModelAdapter",
    "AdminMeta",
    "AdminMetaConfig",
    "get_model_admin_meta",
    "Describable",
    "EntityDescriptor",
    "RelationshipDeclaration",
    "EntityMetadata",
    "FieldMetadata",
    "RelationshipMetadata",
    "DisplayHints",
    "FieldType",
    "RelationshipKind",
    "CascadePolicy",
    "FetchPolicy",
    "NOT_PROVIDED",
]
