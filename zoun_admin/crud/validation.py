"""
Input validation for create and update.

Every problem is collected into one mapping of member name to messages so
the caller gets the full list in a single ValidationError, raised before the
store is written to.
"""

import logging
import re
from collections import defaultdict
from typing import Any, Dict, List, Mapping, Optional

from django.core import validators as django_validators
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone

from ..core.exceptions import ValidationError
from ..core.registry import MetadataRegistry
from ..core.settings import CrudSettings
from ..introspector.types import (
    EntityMetadata,
    FieldMetadata,
    FieldType,
    RelationshipKind,
    RelationshipMetadata,
)
from ..query.builder import QueryBuilder
from ..query.spec import FilterPredicate, Operator
from ..store.base import PersistenceStore
from ..utils.coercion import CoercionError, coerce_list, coerce_value
from ..utils.sanitization import sanitize_html

logger = logging.getLogger(__name__)

NON_FIELD_ERRORS = "__all__"

_FORMAT_VALIDATORS = {
    "email": django_validators.EmailValidator(),
    "url": django_validators.URLValidator(),
}


class InputValidator:
    """Cleans raw input for one entity and checks it against the store."""

    def __init__(
        self,
        registry: MetadataRegistry,
        store: PersistenceStore,
        builder: QueryBuilder,
        settings: Optional[CrudSettings] = None,
    ):
        self.registry = registry
        self.store = store
        self.builder = builder
        self.settings = settings or CrudSettings.from_settings()

    def clean_create(
        self, metadata: EntityMetadata, data: Mapping[str, Any], timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        errors: Dict[str, List[str]] = defaultdict(list)
        cleaned = self._clean_members(metadata, data, errors, creating=True)

        for field in metadata.fields:
            if field.generated or field.name in cleaned or field.name in errors:
                continue
            if field.name == metadata.version_field:
                cleaned[field.name] = self.initial_version(field)
            elif field.has_default:
                cleaned[field.name] = field.get_default()
            elif field.is_required:
                errors[field.name].append("This field is required.")
        for rel in metadata.foreign_keys:
            if rel.required and cleaned.get(rel.name) is None and rel.name not in errors:
                errors[rel.name].append("This field is required.")

        self._check_store(metadata, cleaned, errors, current=None, timeout=timeout)
        if errors:
            raise ValidationError(dict(errors), entity=metadata.name)
        return cleaned

    def clean_update(
        self,
        metadata: EntityMetadata,
        current: Mapping[str, Any],
        data: Mapping[str, Any],
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Validate only the supplied members of an existing record."""
        errors: Dict[str, List[str]] = defaultdict(list)
        cleaned = self._clean_members(metadata, data, errors, creating=False)
        self._check_store(metadata, cleaned, errors, current=current, timeout=timeout)
        if errors:
            raise ValidationError(dict(errors), entity=metadata.name)
        return cleaned

    def initial_version(self, field: FieldMetadata) -> Any:
        if field.has_default:
            return field.get_default()
        if field.field_type is FieldType.DATE:
            return timezone.now()
        return 0

    # ------------------------------------------------------------------ #
    # Member cleaning
    # ------------------------------------------------------------------ #
    def _clean_members(
        self,
        metadata: EntityMetadata,
        data: Mapping[str, Any],
        errors: Dict[str, List[str]],
        creating: bool,
    ) -> Dict[str, Any]:
        cleaned: Dict[str, Any] = {}
        for name, raw in data.items():
            field = metadata.get_field(name)
            if field is not None:
                if field.generated or field.hints.read_only:
                    errors[name].append("This field is read-only.")
                elif name == metadata.version_field:
                    errors[name].append("This field is managed automatically.")
                elif field.primary_key and not creating:
                    errors[name].append("The primary key cannot be changed.")
                else:
                    value = self._clean_field(field, raw, errors)
                    if name not in errors:
                        cleaned[name] = value
                continue

            rel = metadata.get_relationship(name)
            if rel is None:
                errors[name].append("Unknown field.")
            elif not rel.owning:
                errors[name].append("This relationship can only be set from the other side.")
            else:
                value = self._clean_reference(rel, raw, errors)
                if name not in errors:
                    cleaned[name] = value
        return cleaned

    def _clean_field(
        self, field: FieldMetadata, raw: Any, errors: Dict[str, List[str]]
    ) -> Any:
        name = field.name
        try:
            value = coerce_value(field, raw)
        except CoercionError as exc:
            errors[name].append(str(exc))
            return None

        if value is None:
            if not field.nullable:
                errors[name].append("This field cannot be null.")
            return None

        if field.field_type is FieldType.STRING and isinstance(value, str):
            if self.settings.sanitize_html:
                value = sanitize_html(
                    value,
                    tags=self.settings.allowed_html_tags,
                    attributes=self.settings.allowed_html_attributes,
                )
            self._check_text(field, value, errors)
        elif field.field_type in (FieldType.NUMBER, FieldType.DATE):
            self._check_range(field, value, errors)
        elif field.field_type is FieldType.BINARY:
            limit = min(
                field.max_length or self.settings.max_binary_size,
                self.settings.max_binary_size,
            )
            if len(value) > limit:
                errors[name].append(
                    f"Ensure this value has at most {limit} bytes (it has {len(value)})."
                )
        return value

    def _check_text(self, field: FieldMetadata, value: str, errors: Dict[str, List[str]]) -> None:
        messages: List[str] = []
        if value == "":
            if not field.allow_blank:
                messages.append("This field cannot be blank.")
        else:
            if field.max_length is not None and len(value) > field.max_length:
                messages.append(
                    f"Ensure this value has at most {field.max_length} characters "
                    f"(it has {len(value)})."
                )
            if field.min_length is not None and len(value) < field.min_length:
                messages.append(
                    f"Ensure this value has at least {field.min_length} characters "
                    f"(it has {len(value)})."
                )
            if field.pattern and not re.search(field.pattern, value):
                messages.append("Enter a valid value.")
            validator = _FORMAT_VALIDATORS.get(field.subtype)
            if validator is not None:
                try:
                    validator(value)
                except DjangoValidationError as exc:
                    messages.extend(str(message) for message in exc.messages)
        if messages:
            errors[field.name].extend(messages)

    def _check_range(self, field: FieldMetadata, value: Any, errors: Dict[str, List[str]]) -> None:
        messages: List[str] = []
        try:
            if field.min_value is not None and value < field.min_value:
                messages.append(
                    f"Ensure this value is greater than or equal to {field.min_value}."
                )
            if field.max_value is not None and value > field.max_value:
                messages.append(
                    f"Ensure this value is less than or equal to {field.max_value}."
                )
        except TypeError:
            logger.debug("Cannot compare %r with the bounds of %s", value, field.name)
        if messages:
            errors[field.name].extend(messages)

    def _clean_reference(
        self, rel: RelationshipMetadata, raw: Any, errors: Dict[str, List[str]]
    ) -> Any:
        pk_field = self.registry.get(rel.target).pk_field
        try:
            if rel.kind is RelationshipKind.MANY_TO_MANY:
                keys = [coerce_value(pk_field, item) for item in coerce_list(raw)]
                return list(dict.fromkeys(key for key in keys if key is not None))
            key = coerce_value(pk_field, raw)
        except CoercionError as exc:
            errors[rel.name].append(f"Invalid key: {exc}")
            return None
        if key is None and rel.required:
            errors[rel.name].append("This field is required.")
        return key

    # ------------------------------------------------------------------ #
    # Store checks
    # ------------------------------------------------------------------ #
    def _count(
        self,
        metadata: EntityMetadata,
        anchors: List[FilterPredicate],
        current: Optional[Mapping[str, Any]],
        timeout: Optional[float],
    ) -> int:
        if current is not None:
            anchors = anchors + [
                FilterPredicate(metadata.primary_key, Operator.NEQ, current[metadata.primary_key])
            ]
        predicates = self.builder.build_predicates(metadata, anchors=anchors)
        return self.store.count(metadata.name, predicates, timeout=timeout)

    def _check_store(
        self,
        metadata: EntityMetadata,
        cleaned: Dict[str, Any],
        errors: Dict[str, List[str]],
        current: Optional[Mapping[str, Any]],
        timeout: Optional[float],
    ) -> None:
        for name, value in cleaned.items():
            field = metadata.get_field(name)
            if field is None or not field.unique or value is None:
                continue
            if self._count(metadata, [FilterPredicate(name, Operator.EQ, value)], current, timeout):
                errors[name].append(f"{field.display_label} is not unique.")

        for rel in metadata.relationships:
            if rel.name not in cleaned or rel.name in errors:
                continue
            self._check_references(metadata, rel, cleaned[rel.name], errors, current, timeout)

        for group in metadata.unique_together:
            if current is not None and not any(member in cleaned for member in group):
                continue
            merged = dict(current or {})
            merged.update(cleaned)
            values = [merged.get(member) for member in group]
            if any(value is None for value in values) or any(m in errors for m in group):
                continue
            anchors = [
                FilterPredicate(member, Operator.EQ, value)
                for member, value in zip(group, values)
            ]
            if self._count(metadata, anchors, current, timeout):
                labels = " and ".join(self._member_label(metadata, m) for m in group)
                errors[NON_FIELD_ERRORS].append(
                    f"{metadata.display_label} with this {labels} already exists."
                )

    def _check_references(
        self,
        metadata: EntityMetadata,
        rel: RelationshipMetadata,
        value: Any,
        errors: Dict[str, List[str]],
        current: Optional[Mapping[str, Any]],
        timeout: Optional[float],
    ) -> None:
        keys = value if isinstance(value, list) else ([] if value is None else [value])
        if not keys:
            return
        target = self.registry.get(rel.target)
        plan = self.builder.build_unbounded(
            target.name, [FilterPredicate(target.primary_key, Operator.IN, keys)]
        )
        found = {row[target.primary_key] for row in self.store.execute_query(plan, timeout=timeout)}
        for key in keys:
            if key not in found:
                errors[rel.name].append(f"No {target.display_label} with key {key!r}.")
        if rel.kind is RelationshipKind.ONE_TO_ONE and rel.name not in errors:
            if self._count(metadata, [FilterPredicate(rel.name, Operator.EQ, value)], current, timeout):
                errors[rel.name].append(
                    f"{target.display_label} {value!r} is already linked to another "
                    f"{metadata.display_label}."
                )

    def _member_label(self, metadata: EntityMetadata, name: str) -> str:
        member = metadata.get_field(name) or metadata.get_relationship(name)
        return member.display_label if member is not None else name
