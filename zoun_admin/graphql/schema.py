"""
GraphQL schema exposing entity metadata and generic CRUD.

Every resolver catches engine errors and returns them in the payload's
``errors`` list; mutations run in one transaction that is rolled back when
the payload is not ok.
"""

import logging
from typing import Any, Optional

import graphene
from django.db import transaction
from graphene.types.generic import GenericScalar

from ..core.engine import get_engine
from ..core.exceptions import AdminEngineError
from ..crud import EntityInstance, OperationContext, Page
from ..query import QuerySpec
from .errors import EngineErrorType, build_engine_errors, build_unexpected_error
from .types import (
    EntityMetadataType,
    ListPayload,
    PageType,
    RecordPayload,
    RelationshipPayload,
    to_json_value,
)

logger = logging.getLogger(__name__)


def _context(info) -> OperationContext:
    return OperationContext.from_request(info.context)


def _record(instance: Optional[EntityInstance]) -> Any:
    return to_json_value(instance.as_dict()) if instance is not None else None


class Query(graphene.ObjectType):
    entities = graphene.List(graphene.NonNull(EntityMetadataType), required=True)
    entity = graphene.Field(EntityMetadataType, name=graphene.String(required=True))
    list_records = graphene.Field(
        ListPayload,
        entity=graphene.String(required=True),
        query=GenericScalar(),
        required=True,
    )
    record = graphene.Field(
        RecordPayload,
        entity=graphene.String(required=True),
        pk=GenericScalar(required=True),
        required=True,
    )
    relationship = graphene.Field(
        RelationshipPayload,
        entity=graphene.String(required=True),
        pk=GenericScalar(required=True),
        name=graphene.String(required=True),
        query=GenericScalar(),
        required=True,
    )
    relationship_options = graphene.Field(
        ListPayload,
        entity=graphene.String(required=True),
        name=graphene.String(required=True),
        query=GenericScalar(),
        required=True,
    )

    def resolve_entities(root, info):
        return get_engine().registry.entities()

    def resolve_entity(root, info, name):
        registry = get_engine().registry
        return registry.get(name) if name in registry else None

    def resolve_list_records(root, info, entity, query=None):
        try:
            page = get_engine().executor.list(
                entity, QuerySpec.from_dict(query), context=_context(info)
            )
        except AdminEngineError as exc:
            return ListPayload(ok=False, page=None, errors=build_engine_errors(exc))
        return ListPayload(ok=True, page=PageType.from_page(page), errors=[])

    def resolve_record(root, info, entity, pk):
        try:
            instance = get_engine().executor.read(entity, pk, context=_context(info))
        except AdminEngineError as exc:
            return RecordPayload(ok=False, record=None, errors=build_engine_errors(exc))
        return RecordPayload(ok=True, record=_record(instance), errors=[])

    def resolve_relationship(root, info, entity, pk, name, query=None):
        engine = get_engine()
        context = _context(info)
        try:
            instance = engine.executor.read(entity, pk, context=context)
            result = engine.resolver.resolve(
                instance, name, spec=QuerySpec.from_dict(query), context=context
            )
        except AdminEngineError as exc:
            return RelationshipPayload(ok=False, errors=build_engine_errors(exc))
        if isinstance(result, Page):
            return RelationshipPayload(ok=True, page=PageType.from_page(result), errors=[])
        return RelationshipPayload(ok=True, record=_record(result), errors=[])

    def resolve_relationship_options(root, info, entity, name, query=None):
        try:
            page = get_engine().resolver.options(
                entity, name, spec=QuerySpec.from_dict(query), context=_context(info)
            )
        except AdminEngineError as exc:
            return ListPayload(ok=False, page=None, errors=build_engine_errors(exc))
        return ListPayload(ok=True, page=PageType.from_page(page), errors=[])


class CreateRecord(graphene.Mutation):
    class Arguments:
        entity = graphene.String(required=True)
        data = GenericScalar(required=True)

    ok = graphene.Boolean(required=True)
    record = GenericScalar()
    errors = graphene.List(graphene.NonNull(EngineErrorType), required=True)

    @classmethod
    @transaction.atomic
    def mutate(cls, root, info, entity, data):
        try:
            instance = get_engine().executor.create(entity, data or {}, context=_context(info))
            return cls(ok=True, record=_record(instance), errors=[])
        except AdminEngineError as exc:
            transaction.set_rollback(True)
            return cls(ok=False, record=None, errors=build_engine_errors(exc))
        except Exception as exc:
            transaction.set_rollback(True)
            logger.exception("Unexpected error creating %s", entity)
            return cls(
                ok=False,
                record=None,
                errors=build_unexpected_error(f"Failed to create {entity}: {exc}"),
            )


class UpdateRecord(graphene.Mutation):
    class Arguments:
        entity = graphene.String(required=True)
        pk = GenericScalar(required=True)
        data = GenericScalar(required=True)
        expected_version = GenericScalar()

    ok = graphene.Boolean(required=True)
    record = GenericScalar()
    errors = graphene.List(graphene.NonNull(EngineErrorType), required=True)

    @classmethod
    @transaction.atomic
    def mutate(cls, root, info, entity, pk, data, expected_version=None):
        try:
            instance = get_engine().executor.update(
                entity,
                pk,
                data or {},
                expected_version=expected_version,
                context=_context(info),
            )
            return cls(ok=True, record=_record(instance), errors=[])
        except AdminEngineError as exc:
            transaction.set_rollback(True)
            return cls(ok=False, record=None, errors=build_engine_errors(exc))
        except Exception as exc:
            transaction.set_rollback(True)
            logger.exception("Unexpected error updating %s %r", entity, pk)
            return cls(
                ok=False,
                record=None,
                errors=build_unexpected_error(f"Failed to update {entity}: {exc}"),
            )


class DeleteRecord(graphene.Mutation):
    class Arguments:
        entity = graphene.String(required=True)
        pk = GenericScalar(required=True)

    ok = graphene.Boolean(required=True)
    deleted = graphene.Int()
    errors = graphene.List(graphene.NonNull(EngineErrorType), required=True)

    @classmethod
    @transaction.atomic
    def mutate(cls, root, info, entity, pk):
        try:
            deleted = get_engine().executor.delete(entity, pk, context=_context(info))
            return cls(ok=True, deleted=deleted, errors=[])
        except AdminEngineError as exc:
            transaction.set_rollback(True)
            return cls(ok=False, deleted=0, errors=build_engine_errors(exc))
        except Exception as exc:
            transaction.set_rollback(True)
            logger.exception("Unexpected error deleting %s %r", entity, pk)
            return cls(
                ok=False,
                deleted=0,
                errors=build_unexpected_error(f"Failed to delete {entity}: {exc}"),
            )


class Mutation(graphene.ObjectType):
    create_record = CreateRecord.Field()
    update_record = UpdateRecord.Field()
    delete_record = DeleteRecord.Field()


schema = graphene.Schema(query=Query, mutation=Mutation)
