"""
Plain field extraction logic for DjangoModelAdapter.
"""

import logging
from typing import Any, Optional, Tuple

from django.core import validators
from django.db import models
from django.utils.text import capfirst

from .types import NOT_PROVIDED, DisplayHints, FieldMetadata, FieldType

logger = logging.getLogger(__name__)

AUTO_FIELDS = (models.AutoField, models.BigAutoField, models.SmallAutoField)

# Checked in order: subclasses before their bases.
STRING_SUBTYPES: Tuple[Tuple[type, str, str], ...] = (
    (models.EmailField, "email", "email"),
    (models.URLField, "url", "url"),
    (models.SlugField, "slug", "text"),
    (models.UUIDField, "uuid", "text"),
    (models.TextField, "text", "textarea"),
    (models.CharField, "char", "text"),
    (models.GenericIPAddressField, "char", "text"),
)


class FieldExtractionMixin:
    """Mixin for turning concrete Django fields into FieldMetadata."""

    def _semantic_type(self, field: models.Field) -> Optional[Tuple[FieldType, Optional[str], str]]:
        """Return ``(type, subtype, widget)`` or None when unsupported."""
        if getattr(field, "choices", None) and not isinstance(field, models.BooleanField):
            return FieldType.ENUM, None, "select"
        for field_class, subtype, widget in STRING_SUBTYPES:
            if isinstance(field, field_class):
                return FieldType.STRING, subtype, widget
        if isinstance(field, models.BooleanField):
            return FieldType.BOOLEAN, None, "checkbox"
        if isinstance(field, models.DecimalField):
            return FieldType.NUMBER, "decimal", "number"
        if isinstance(field, models.FloatField):
            return FieldType.NUMBER, "float", "number"
        if isinstance(field, (models.IntegerField,) + AUTO_FIELDS):
            return FieldType.NUMBER, "integer", "number"
        if isinstance(field, models.DateTimeField):
            return FieldType.DATE, "datetime", "datetime"
        if isinstance(field, models.DateField):
            return FieldType.DATE, "date", "date"
        if isinstance(field, models.TimeField):
            return FieldType.DATE, "time", "time"
        if isinstance(field, models.BinaryField):
            return FieldType.BINARY, None, "file"
        return None

    def _validator_constraints(self, field: models.Field) -> dict[str, Any]:
        constraints: dict[str, Any] = {}
        try:
            field_validators = list(field.validators)
        except Exception as exc:  # integer range lookups touch the connection
            logger.debug("Could not read validators of %s: %s", field, exc)
            field_validators = list(getattr(field, "_validators", []))
        for validator in field_validators:
            limit = getattr(validator, "limit_value", None)
            if callable(limit):
                continue
            if isinstance(validator, validators.MinValueValidator):
                current = constraints.get("min_value")
                constraints["min_value"] = limit if current is None else max(current, limit)
            elif isinstance(validator, validators.MaxValueValidator):
                current = constraints.get("max_value")
                constraints["max_value"] = limit if current is None else min(current, limit)
            elif isinstance(validator, validators.MinLengthValidator):
                constraints["min_length"] = limit
            elif isinstance(validator, (validators.EmailValidator, validators.URLValidator)):
                continue
            elif isinstance(validator, validators.RegexValidator):
                if not validator.inverse_match:
                    constraints["pattern"] = validator.regex.pattern
        return constraints

    @staticmethod
    def _is_writable(field: models.Field) -> bool:
        # Django declares BinaryField editable=False by default; payloads stay
        # writable unless AdminMeta.read_only lists them.
        return field.editable or isinstance(field, models.BinaryField)

    def _default(self, field: models.Field, field_type: FieldType) -> Any:
        if field.has_default():
            return field.default
        # Blank text columns fall back to "" like Field.get_default().
        if (
            field_type is FieldType.STRING
            and field.blank
            and not field.null
            and field.empty_strings_allowed
        ):
            return ""
        return NOT_PROVIDED

    def _describe_field(self, field: models.Field) -> Optional[FieldMetadata]:
        mapped = self._semantic_type(field)
        if mapped is None:
            logger.debug(
                "Skipping unsupported field %s.%s (%s)",
                self.model.__name__,
                field.name,
                type(field).__name__,
            )
            return None
        field_type, subtype, widget = mapped
        meta = self.admin_meta
        generated = isinstance(field, AUTO_FIELDS) or bool(
            getattr(field, "auto_now", False) or getattr(field, "auto_now_add", False)
        )
        choices = tuple(
            (value, str(label)) for value, label in (field.flatchoices or ())
        )
        label = meta.labels.get(field.name) or capfirst(str(field.verbose_name))
        hints = DisplayHints(
            label=label,
            help_text=str(meta.help_texts.get(field.name, field.help_text) or ""),
            widget=widget,
            hidden=field.name in meta.hidden,
            read_only=field.name in meta.read_only or not self._is_writable(field),
            order=meta.order_of(field.name),
            lob=isinstance(field, (models.TextField, models.BinaryField)),
        )
        return FieldMetadata(
            name=field.name,
            field_type=field_type,
            nullable=field.null,
            max_length=field.max_length,
            unique=field.unique,
            default=self._default(field, field_type),
            hints=hints,
            primary_key=field.primary_key,
            generated=generated,
            subtype=subtype,
            choices=choices,
            allow_blank=field.blank,
            **self._validator_constraints(field),
        )
