import pytest

from zoun_admin.core.exceptions import ValidationError
from zoun_admin.crud import NON_FIELD_ERRORS
from zoun_admin.introspector import (
    EntityDescriptor,
    FieldMetadata,
    FieldType,
    RelationshipDeclaration,
    RelationshipKind,
)
from zoun_admin.testing import build_memory_engine

pytestmark = [pytest.mark.unit]


def pk_field():
    return FieldMetadata(
        name="id",
        field_type=FieldType.NUMBER,
        subtype="integer",
        primary_key=True,
        unique=True,
        generated=True,
    )


def text_field(name, max_length):
    return FieldMetadata(
        name=name, field_type=FieldType.STRING, subtype="char", max_length=max_length
    )


def _extra_descriptors():
    slot = EntityDescriptor(
        name="Slot",
        fields=(
            pk_field(),
            text_field("code", max_length=10),
            FieldMetadata(name="row", field_type=FieldType.NUMBER, subtype="integer"),
        ),
        unique_together=(("code", "row"),),
    )
    profile = EntityDescriptor(
        name="Profile",
        fields=(
            pk_field(),
            FieldMetadata(
                name="bio", field_type=FieldType.STRING, subtype="text", default=""
            ),
            FieldMetadata(name="avatar", field_type=FieldType.BINARY, nullable=True, max_length=4),
        ),
        relationships=(
            RelationshipDeclaration(
                name="author",
                kind=RelationshipKind.ONE_TO_ONE,
                target="Author",
                required=True,
                fk_field="author_id",
            ),
        ),
    )
    return [slot, profile]


@pytest.fixture
def descriptors(descriptors):
    return descriptors + _extra_descriptors()


def test_unique_together_reports_non_field_error(executor):
    executor.create("Slot", {"code": "A", "row": 1})
    executor.create("Slot", {"code": "A", "row": 2})

    with pytest.raises(ValidationError) as exc:
        executor.create("Slot", {"code": "A", "row": "1"})

    assert exc.value.errors == {
        NON_FIELD_ERRORS: ["Slot with this Code and Row already exists."]
    }


def test_unique_together_checks_merged_values_on_update(executor):
    executor.create("Slot", {"code": "A", "row": 1})
    other = executor.create("Slot", {"code": "B", "row": 1})

    with pytest.raises(ValidationError):
        executor.update("Slot", other.pk, {"code": "A"})


def test_one_to_one_target_can_only_be_linked_once(executor):
    author = executor.create("Author", {"name": "N. K."})
    executor.create("Profile", {"author": author.pk})

    with pytest.raises(ValidationError) as exc:
        executor.create("Profile", {"author": author.pk})

    assert "already linked" in exc.value.errors["author"][0]


def test_required_relationship_is_reported(executor):
    with pytest.raises(ValidationError) as exc:
        executor.create("Profile", {"bio": "x"})

    assert exc.value.errors == {"author": ["This field is required."]}


def test_binary_size_limit(executor):
    author = executor.create("Author", {"name": "Size"})

    with pytest.raises(ValidationError) as exc:
        executor.create("Profile", {"author": author.pk, "avatar": b"12345"})

    assert "at most 4 bytes" in exc.value.errors["avatar"][0]


def test_inverse_relationship_cannot_be_written(executor):
    with pytest.raises(ValidationError) as exc:
        executor.create("Author", {"name": "Inverse", "books": [1]})

    assert exc.value.errors["books"] == [
        "This relationship can only be set from the other side."
    ]


def test_null_not_allowed(executor):
    with pytest.raises(ValidationError) as exc:
        executor.create("Author", {"name": None})

    assert exc.value.errors == {"name": ["This field cannot be null."]}


def test_html_is_sanitized_when_enabled(descriptors):
    engine = build_memory_engine(
        descriptors,
        crud={"sanitize_html": True, "allowed_html_tags": ["b"]},
    )
    author = engine.executor.create("Author", {"name": "Safe"})

    profile = engine.executor.create(
        "Profile", {"author": author.pk, "bio": "<b>hi</b><script>x</script>"}
    )

    assert profile["bio"] == "<b>hi</b>x"


def test_errors_are_raised_before_any_write(engine, executor):
    with pytest.raises(ValidationError):
        executor.create("Book", {"title": "Nope", "isbn": "n", "author": 12})

    assert engine.store.count("Book") == 0
