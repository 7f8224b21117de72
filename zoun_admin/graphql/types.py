"""
GraphQL types for entity metadata and records.
"""

import base64
import json
from typing import Any

import graphene
from django.core.serializers.json import DjangoJSONEncoder
from graphene.types.generic import GenericScalar

from .errors import EngineErrorType


class AdminJSONEncoder(DjangoJSONEncoder):
    """DjangoJSONEncoder that also writes binary values as base64 text."""

    def default(self, o):
        if isinstance(o, (bytes, bytearray, memoryview)):
            return base64.b64encode(bytes(o)).decode("ascii")
        return super().default(o)


def to_json_value(value: Any) -> Any:
    """Convert dates, decimals, UUIDs and bytes into JSON-safe values."""
    return json.loads(json.dumps(value, cls=AdminJSONEncoder))


class ChoiceType(graphene.ObjectType):
    value = GenericScalar()
    label = graphene.String()


class FieldMetadataType(graphene.ObjectType):
    """GraphQL type for plain field metadata."""

    name = graphene.String(required=True)
    type = graphene.String(required=True)
    subtype = graphene.String()
    nullable = graphene.Boolean(required=True)
    max_length = graphene.Int()
    unique = graphene.Boolean(required=True)
    primary_key = graphene.Boolean(required=True)
    generated = graphene.Boolean(required=True)
    required = graphene.Boolean(required=True)
    editable = graphene.Boolean(required=True)
    label = graphene.String(required=True)
    help_text = graphene.String()
    widget = graphene.String()
    hidden = graphene.Boolean(required=True)
    read_only = graphene.Boolean(required=True)
    default = GenericScalar()
    choices = graphene.List(ChoiceType)

    def resolve_type(field, info):
        return field.field_type.value

    def resolve_required(field, info):
        return field.is_required

    def resolve_editable(field, info):
        return field.is_editable

    def resolve_label(field, info):
        return field.display_label

    def resolve_help_text(field, info):
        return field.hints.help_text

    def resolve_widget(field, info):
        return field.hints.widget

    def resolve_hidden(field, info):
        return field.hints.hidden

    def resolve_read_only(field, info):
        return field.hints.read_only

    def resolve_default(field, info):
        if not field.has_default or callable(field.default):
            return None
        return to_json_value(field.default)

    def resolve_choices(field, info):
        return [
            ChoiceType(value=to_json_value(value), label=label)
            for value, label in field.choices
        ]


class RelationshipMetadataType(graphene.ObjectType):
    name = graphene.String(required=True)
    kind = graphene.String(required=True)
    target = graphene.String(required=True)
    owning = graphene.Boolean(required=True)
    cascade = graphene.String(required=True)
    fetch = graphene.String(required=True)
    required = graphene.Boolean(required=True)
    remote_name = graphene.String()
    label = graphene.String(required=True)

    def resolve_kind(rel, info):
        return rel.kind.value

    def resolve_cascade(rel, info):
        return rel.cascade.value

    def resolve_fetch(rel, info):
        return rel.fetch.value

    def resolve_label(rel, info):
        return rel.display_label


class EntityMetadataType(graphene.ObjectType):
    name = graphene.String(required=True)
    label = graphene.String(required=True)
    plural_label = graphene.String(required=True)
    primary_key = graphene.String(required=True)
    version_field = graphene.String()
    unique_together = graphene.List(graphene.List(graphene.String))
    fields = graphene.List(graphene.NonNull(FieldMetadataType), required=True)
    relationships = graphene.List(graphene.NonNull(RelationshipMetadataType), required=True)

    def resolve_label(entity, info):
        return entity.display_label

    def resolve_plural_label(entity, info):
        return entity.plural_label or f"{entity.display_label}s"


class PageType(graphene.ObjectType):
    items = graphene.List(GenericScalar, required=True)
    total = graphene.Int(required=True)
    offset = graphene.Int(required=True)
    limit = graphene.Int(required=True)
    has_next = graphene.Boolean(required=True)

    @classmethod
    def from_page(cls, page) -> "PageType":
        return cls(
            items=[to_json_value(item.as_dict()) for item in page.items],
            total=page.total,
            offset=page.offset,
            limit=page.limit,
            has_next=page.has_next,
        )


class ListPayload(graphene.ObjectType):
    ok = graphene.Boolean(required=True)
    page = graphene.Field(PageType)
    errors = graphene.List(graphene.NonNull(EngineErrorType), required=True)


class RecordPayload(graphene.ObjectType):
    ok = graphene.Boolean(required=True)
    record = GenericScalar()
    errors = graphene.List(graphene.NonNull(EngineErrorType), required=True)


class RelationshipPayload(graphene.ObjectType):
    """To-one relationships fill ``record``; to-many ones fill ``page``."""

    ok = graphene.Boolean(required=True)
    record = GenericScalar()
    page = graphene.Field(PageType)
    errors = graphene.List(graphene.NonNull(EngineErrorType), required=True)
