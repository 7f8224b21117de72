import pytest

from zoun_admin.core.exceptions import ImmutableStateError, NotFoundError, SchemaError
from zoun_admin.core.registry import MetadataRegistry, build_registry
from zoun_admin.introspector import (
    EntityMetadata,
    FieldMetadata,
    FieldType,
    RelationshipKind,
    RelationshipMetadata,
)

pytestmark = [pytest.mark.unit]


def _entity(name, relationships=()):
    return EntityMetadata(
        name=name,
        fields=(
            FieldMetadata(
                name="id", field_type=FieldType.NUMBER, primary_key=True, unique=True
            ),
        ),
        relationships=tuple(relationships),
        primary_key="id",
    )


def test_registry_is_frozen_after_build(descriptors):
    registry = build_registry(descriptors)

    assert registry.is_frozen
    with pytest.raises(ImmutableStateError):
        registry.register(_entity("Late"))
    with pytest.raises(ImmutableStateError):
        registry.unregister("Book")


def test_lookup_and_iteration_order(descriptors):
    registry = build_registry(descriptors)

    assert registry.names() == ["Author", "Book", "Category", "Tag", "Post", "Document"]
    assert registry.get("Book").name == "Book"
    assert "Book" in registry
    assert len(registry) == 6


def test_unknown_entity_raises_not_found(registry):
    with pytest.raises(NotFoundError) as exc:
        registry.get("Unknown")

    assert exc.value.entity == "Unknown"


def test_duplicate_registration_is_rejected():
    registry = MetadataRegistry([_entity("Thing")])

    with pytest.raises(SchemaError):
        registry.register(_entity("Thing"))


def test_freeze_rejects_dangling_relationship():
    registry = MetadataRegistry(
        [
            _entity(
                "Review",
                [
                    RelationshipMetadata(
                        name="book", kind=RelationshipKind.MANY_TO_ONE, target="Book"
                    )
                ],
            )
        ]
    )

    with pytest.raises(SchemaError):
        registry.freeze()
    assert not registry.is_frozen


def _pet(owner_id_type):
    return EntityMetadata(
        name="Pet",
        fields=(
            FieldMetadata(
                name="id", field_type=FieldType.NUMBER, primary_key=True, unique=True
            ),
            FieldMetadata(name="owner_id", field_type=owner_id_type),
        ),
        relationships=(
            RelationshipMetadata(
                name="owner",
                kind=RelationshipKind.MANY_TO_ONE,
                target="Owner",
                fk_field="owner_id",
            ),
        ),
        primary_key="id",
    )


def test_freeze_rejects_foreign_key_column_of_another_type():
    registry = MetadataRegistry([_entity("Owner"), _pet(FieldType.STRING)])

    with pytest.raises(SchemaError) as exc:
        registry.freeze()

    assert exc.value.entity == "Pet"
    assert exc.value.field == "owner_id"
    assert not registry.is_frozen


def test_freeze_accepts_foreign_key_column_matching_target_key():
    registry = MetadataRegistry([_entity("Owner"), _pet(FieldType.NUMBER)])

    assert registry.freeze().is_frozen


def test_dependents_index_lists_owning_relationships(registry):
    dependents = {(meta.name, rel.name) for meta, rel in registry.dependents_of("Category")}

    assert dependents == {("Category", "parent"), ("Post", "category")}
    assert registry.dependents_of("Document") == ()


def test_metadata_is_immutable(registry):
    book = registry.get("Book")

    with pytest.raises(AttributeError):
        book.name = "Volume"


def test_metadata_helpers(registry):
    post = registry.get("Post")

    assert post.has_member("tags") and post.has_member("title")
    assert not post.has_member("body")
    assert [f.name for f in post.editable_fields()] == ["title", "status"]
    assert post.foreign_keys == (post.get_relationship("category"),)

    data = post.as_dict()
    assert data["pluralLabel"] == "Posts"
    assert data["fields"][2]["choices"] == [
        {"value": "draft", "label": "Draft"},
        {"value": "published", "label": "Published"},
    ]
    assert [r["name"] for r in data["relationships"]] == ["category", "tags"]
