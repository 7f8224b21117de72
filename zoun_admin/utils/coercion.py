"""
Type coercion utilities for zoun-admin.

Values arriving from forms and GraphQL variables are often strings. These
helpers turn them into the Python value that matches a field's semantic type
and raise ``CoercionError`` when that is not possible.
"""

import base64
import binascii
import datetime
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, List

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime, parse_time

from ..introspector.types import FieldMetadata, FieldType

TRUE_VALUES = ("true", "1", "yes", "on")
FALSE_VALUES = ("false", "0", "no", "off")


class CoercionError(ValueError):
    """Raised when a value cannot be converted to a field's type."""


def coerce_int(value: Any) -> int:
    """
    Coerce a value to an integer.

    Examples:
        >>> coerce_int("42")
        42
        >>> coerce_int(3.0)
        3
    """
    if isinstance(value, bool):
        raise CoercionError("Enter a whole number.")
    if isinstance(value, int):
        return value
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise CoercionError("Enter a whole number.") from None
    if not number.is_finite() or number != number.to_integral_value():
        raise CoercionError("Enter a whole number.")
    return int(number)


def coerce_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise CoercionError("Enter a number.")
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise CoercionError("Enter a number.") from None
    if not number.is_finite():
        raise CoercionError("Enter a number.")
    return number


def coerce_float(value: Any) -> float:
    if isinstance(value, bool):
        raise CoercionError("Enter a number.")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise CoercionError("Enter a number.") from None


def coerce_bool(value: Any) -> bool:
    """
    Coerce a value to a boolean.

    Examples:
        >>> coerce_bool("on")
        True
        >>> coerce_bool(0)
        False
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
    raise CoercionError("Enter true or false.")


def _make_aware(value: datetime.datetime) -> datetime.datetime:
    if settings.USE_TZ and timezone.is_naive(value):
        return timezone.make_aware(value, datetime.timezone.utc)
    if not settings.USE_TZ and timezone.is_aware(value):
        return timezone.make_naive(value, datetime.timezone.utc)
    return value


def coerce_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return _make_aware(value)
    if isinstance(value, datetime.date):
        return _make_aware(datetime.datetime.combine(value, datetime.time()))
    if isinstance(value, str):
        text = value.strip()
        try:
            parsed = parse_datetime(text)
            if parsed is None:
                day = parse_date(text)
                if day is not None:
                    parsed = datetime.datetime.combine(day, datetime.time())
        except ValueError:
            parsed = None
        if parsed is not None:
            return _make_aware(parsed)
    raise CoercionError("Enter a valid date/time.")


def coerce_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            parsed = parse_date(text)
            if parsed is None:
                moment = parse_datetime(text)
                parsed = moment.date() if moment is not None else None
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise CoercionError("Enter a valid date.")


def coerce_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.time):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_time(value.strip())
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise CoercionError("Enter a valid time.")


def coerce_binary(value: Any) -> bytes:
    """Accept raw bytes, or base64 text as sent over JSON."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return base64.b64decode(value.encode("ascii"), validate=True)
        except (binascii.Error, ValueError):
            raise CoercionError("Enter valid base64 data.") from None
    raise CoercionError("Enter binary data.")


def coerce_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        raise CoercionError("Enter a valid UUID.") from None


def coerce_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal, uuid.UUID)) and not isinstance(value, bool):
        return str(value)
    raise CoercionError("Enter a text value.")


def coerce_choice(field: FieldMetadata, value: Any) -> Any:
    values = field.choice_values()
    if value in values:
        return value
    # Form posts send every choice as text.
    text = str(value).strip()
    for choice in values:
        if str(choice) == text:
            return choice
    raise CoercionError(f"Select a valid choice. {value!r} is not one of the available choices.")


_NUMBER_COERCERS = {
    "integer": coerce_int,
    "decimal": coerce_decimal,
    "float": coerce_float,
}

_DATE_COERCERS = {
    "datetime": coerce_datetime,
    "date": coerce_date,
    "time": coerce_time,
}


def coerce_value(field: FieldMetadata, value: Any) -> Any:
    """
    Convert ``value`` to the Python type of ``field``.

    ``None`` is returned unchanged. Blank strings become ``None`` for every
    type except strings. Raises CoercionError with a user-facing message.
    """
    if value is None:
        return None
    if isinstance(value, str) and not value.strip() and field.field_type is not FieldType.STRING:
        return None

    field_type = field.field_type
    if field_type is FieldType.ENUM:
        return coerce_choice(field, value)
    if field_type is FieldType.STRING:
        if field.subtype == "uuid":
            return coerce_uuid(value)
        return coerce_string(value)
    if field_type is FieldType.NUMBER:
        return _NUMBER_COERCERS.get(field.subtype, coerce_decimal)(value)
    if field_type is FieldType.BOOLEAN:
        return coerce_bool(value)
    if field_type is FieldType.DATE:
        return _DATE_COERCERS.get(field.subtype, coerce_datetime)(value)
    if field_type is FieldType.BINARY:
        return coerce_binary(value)
    raise CoercionError(f"Unsupported field type {field_type!r}")


def coerce_list(value: Any) -> List[Any]:
    """
    Coerce a value to a list.

    Examples:
        >>> coerce_list((1, 2))
        [1, 2]
        >>> coerce_list("a,b")
        ['a,b']
    """
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    return [value]
