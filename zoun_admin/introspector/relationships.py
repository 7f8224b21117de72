"""
Relationship discovery logic for DjangoModelAdapter.
"""

import logging
from typing import Any, Optional

from django.db import models

from .describable import RelationshipDeclaration
from .types import CascadePolicy, FetchPolicy, RelationshipKind

logger = logging.getLogger(__name__)

_ON_DELETE_POLICIES = {
    models.CASCADE: CascadePolicy.DELETE,
    models.SET_NULL: CascadePolicy.UPDATE,
    models.SET_DEFAULT: CascadePolicy.UPDATE,
    models.PROTECT: CascadePolicy.NONE,
    models.RESTRICT: CascadePolicy.NONE,
    models.DO_NOTHING: CascadePolicy.NONE,
}


def is_hidden_relation(rel: models.ForeignObjectRel) -> bool:
    hidden = getattr(rel, "hidden", None)
    if isinstance(hidden, bool):
        return hidden
    return rel.is_hidden()


def cascade_from_on_delete(field: models.Field) -> tuple[CascadePolicy, Any]:
    """Map a foreign key's ``on_delete`` handler to a policy and reset value."""
    on_delete = getattr(field.remote_field, "on_delete", None)
    policy = _ON_DELETE_POLICIES.get(on_delete)
    if policy is not None:
        reset_value = field.get_default() if on_delete is models.SET_DEFAULT else None
        return policy, reset_value
    # models.SET(value) builds a closure that only exposes its value through
    # deconstruct().
    deconstruct = getattr(on_delete, "deconstruct", None)
    if deconstruct is not None:
        _, args, _ = deconstruct()
        value = args[0] if args else None
        return CascadePolicy.UPDATE, value() if callable(value) else value
    logger.debug("Unknown on_delete handler %r on %s", on_delete, field)
    return CascadePolicy.NONE, None


class RelationshipDiscoveryMixin:
    """Mixin for discovering model relationships."""

    def _default_fetch(self, kind: RelationshipKind) -> FetchPolicy:
        if kind in (RelationshipKind.MANY_TO_ONE, RelationshipKind.ONE_TO_ONE):
            return FetchPolicy.EAGER
        return FetchPolicy.LAZY

    def _reverse_accessor(self, field: models.Field) -> Optional[str]:
        remote = field.remote_field
        if remote is None or is_hidden_relation(remote):
            return None
        return remote.get_accessor_name()

    def _describe_forward_relation(self, field: models.Field) -> Optional[RelationshipDeclaration]:
        meta = self.admin_meta
        if isinstance(field, models.OneToOneField):
            kind = RelationshipKind.ONE_TO_ONE
        elif isinstance(field, models.ForeignKey):
            kind = RelationshipKind.MANY_TO_ONE
        elif isinstance(field, models.ManyToManyField):
            kind = RelationshipKind.MANY_TO_MANY
        else:
            return None

        if kind is RelationshipKind.MANY_TO_MANY:
            cascade, reset_value = CascadePolicy.UPDATE, None
            required = False
            fk_field = None
        else:
            cascade, reset_value = cascade_from_on_delete(field)
            required = not field.null
            fk_field = field.attname

        return RelationshipDeclaration(
            name=field.name,
            kind=kind,
            target=field.related_model,
            owning=True,
            cascade=meta.cascade.get(field.name, cascade),
            fetch=meta.fetch.get(field.name, self._default_fetch(kind)),
            remote_name=self._reverse_accessor(field),
            required=required,
            fk_field=fk_field,
            reset_value=reset_value,
            label=meta.labels.get(field.name) or str(field.verbose_name).capitalize(),
        )

    def _describe_reverse_relation(self, rel: models.ForeignObjectRel) -> Optional[RelationshipDeclaration]:
        if is_hidden_relation(rel):
            return None
        if isinstance(rel, models.OneToOneRel):
            kind = RelationshipKind.ONE_TO_ONE
        elif isinstance(rel, models.ManyToOneRel):
            kind = RelationshipKind.ONE_TO_MANY
        elif isinstance(rel, models.ManyToManyRel):
            kind = RelationshipKind.MANY_TO_MANY
        else:
            return None
        name = rel.get_accessor_name()
        meta = self.admin_meta
        return RelationshipDeclaration(
            name=name,
            kind=kind,
            target=rel.related_model,
            owning=False,
            cascade=CascadePolicy.NONE,
            fetch=meta.fetch.get(name, FetchPolicy.LAZY),
            remote_name=rel.field.name,
            label=meta.labels.get(name),
            implicit=True,
        )

