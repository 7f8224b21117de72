"""
DjangoModelAdapter implementation.
"""

import threading
import weakref
from typing import Optional

from django.db import models
from django.utils.functional import cached_property
from django.utils.text import capfirst

from .meta import AdminMetaConfig, get_model_admin_meta
from .describable import EntityDescriptor, RelationshipDeclaration
from .fields import FieldExtractionMixin
from .relationships import RelationshipDiscoveryMixin
from .types import FieldMetadata, FieldType

VERSION_FIELD_NAMES = ("version", "lock_version")


class DjangoModelAdapter(FieldExtractionMixin, RelationshipDiscoveryMixin):
    """
    Describes a Django model class for the schema introspector.
    """

    def __init__(self, model: type[models.Model]):
        self.model = model
        self._meta = getattr(model, "_meta", None)

    _cache: "weakref.WeakKeyDictionary[type[models.Model], DjangoModelAdapter]" = (
        weakref.WeakKeyDictionary()
    )
    _cache_lock = threading.Lock()

    @classmethod
    def for_model(cls, model: type[models.Model]) -> "DjangoModelAdapter":
        with cls._cache_lock:
            cached = cls._cache.get(model)
            if cached is None:
                cached = cls(model)
                cls._cache[model] = cached
            return cached

    @classmethod
    def clear_cache(cls) -> None:
        with cls._cache_lock:
            cls._cache.clear()

    @cached_property
    def admin_meta(self) -> AdminMetaConfig:
        return get_model_admin_meta(self.model)

    @cached_property
    def fields(self) -> tuple[FieldMetadata, ...]:
        """Extracts concrete plain fields."""
        if not self._meta:
            return ()
        described = []
        for field in self._meta.get_fields():
            if field.is_relation or not getattr(field, "concrete", False):
                continue
            if field.name in self.admin_meta.exclude:
                continue
            metadata = self._describe_field(field)
            if metadata is not None:
                described.append(metadata)
        return tuple(described)

    @cached_property
    def relationships(self) -> tuple[RelationshipDeclaration, ...]:
        """Identifies forward then reverse relationships."""
        if not self._meta:
            return ()
        forward, reverse = [], []
        for field in self._meta.get_fields():
            if not field.is_relation or field.name in self.admin_meta.exclude:
                continue
            if field.auto_created and not field.concrete:
                declaration = self._describe_reverse_relation(field)
                if declaration is not None and declaration.name not in self.admin_meta.exclude:
                    reverse.append(declaration)
            else:
                declaration = self._describe_forward_relation(field)
                if declaration is not None:
                    forward.append(declaration)
        return tuple(forward + reverse)

    def _version_field(self) -> Optional[str]:
        if self.admin_meta.version_field:
            return self.admin_meta.version_field
        for field in self.fields:
            if (
                field.name in VERSION_FIELD_NAMES
                and field.field_type is FieldType.NUMBER
                and field.subtype == "integer"
            ):
                return field.name
        return None

    def _unique_together(self) -> tuple[tuple[str, ...], ...]:
        groups = [tuple(group) for group in self._meta.unique_together]
        for constraint in self._meta.constraints:
            if not isinstance(constraint, models.UniqueConstraint):
                continue
            if constraint.condition is not None or not constraint.fields:
                continue
            groups.append(tuple(constraint.fields))
        return tuple(groups)

    def describe(self) -> EntityDescriptor:
        opts = self._meta
        return EntityDescriptor(
            name=opts.object_name,
            fields=self.fields,
            relationships=self.relationships,
            source=self.model,
            label=self.admin_meta.label or capfirst(str(opts.verbose_name)),
            plural_label=self.admin_meta.plural_label
            or capfirst(str(opts.verbose_name_plural)),
            version_field=self._version_field(),
            unique_together=self._unique_together(),
        )
