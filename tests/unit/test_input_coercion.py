import base64
import datetime
from decimal import Decimal

import pytest

from zoun_admin.introspector import FieldMetadata, FieldType
from zoun_admin.utils import CoercionError, coerce_bool, coerce_int, coerce_value, sanitize_html
from zoun_admin.utils.coercion import coerce_binary, coerce_datetime

pytestmark = [pytest.mark.unit]


def _field(field_type, subtype=None, **kwargs):
    return FieldMetadata(name="value", field_type=field_type, subtype=subtype, **kwargs)


@pytest.mark.parametrize("raw,expected", [("42", 42), (3.0, 3), (Decimal("7"), 7), (" 8 ", 8)])
def test_coerce_int(raw, expected):
    assert coerce_int(raw) == expected


@pytest.mark.parametrize("raw", [True, "4.5", "four", float("nan")])
def test_coerce_int_rejects(raw):
    with pytest.raises(CoercionError):
        coerce_int(raw)


def test_coerce_bool():
    assert coerce_bool("Yes") is True
    assert coerce_bool(0) is False
    with pytest.raises(CoercionError):
        coerce_bool("maybe")


def test_coerce_datetime_is_aware():
    value = coerce_datetime("2024-03-01T10:30:00")

    assert value.tzinfo is not None
    assert value.replace(tzinfo=None) == datetime.datetime(2024, 3, 1, 10, 30)


def test_coerce_binary_accepts_base64():
    encoded = base64.b64encode(b"\x00\x01").decode("ascii")

    assert coerce_binary(encoded) == b"\x00\x01"
    with pytest.raises(CoercionError):
        coerce_binary("not base64!")


def test_blank_text_becomes_none_for_non_strings():
    assert coerce_value(_field(FieldType.NUMBER, "integer"), "  ") is None
    assert coerce_value(_field(FieldType.STRING, "char"), "") == ""


def test_coerce_value_dispatches_on_subtype():
    assert coerce_value(_field(FieldType.NUMBER, "decimal"), "1.50") == Decimal("1.50")
    assert coerce_value(_field(FieldType.DATE, "date"), "2024-03-01") == datetime.date(2024, 3, 1)
    assert coerce_value(_field(FieldType.DATE, "time"), "10:15") == datetime.time(10, 15)


def test_coerce_choice_matches_text():
    field = _field(FieldType.ENUM, choices=((1, "One"), (2, "Two")))

    assert coerce_value(field, "2") == 2
    with pytest.raises(CoercionError):
        coerce_value(field, "3")


def test_sanitize_html_strips_disallowed_tags():
    cleaned = sanitize_html('<p onclick="x()">Hi <script>alert(1)</script></p>', tags=["p"])

    assert "<script>" not in cleaned
    assert "onclick" not in cleaned
    assert cleaned.startswith("<p>Hi")
