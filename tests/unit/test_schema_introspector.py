import pytest

from zoun_admin.core.exceptions import SchemaError
from zoun_admin.introspector import (
    DisplayHints,
    EntityDescriptor,
    FieldMetadata,
    FieldType,
    RelationshipDeclaration,
    RelationshipKind,
    SchemaIntrospector,
)

pytestmark = [pytest.mark.unit]


def _pk(name="id", **kwargs):
    return FieldMetadata(name=name, field_type=FieldType.NUMBER, subtype="integer", primary_key=True, **kwargs)


def test_primary_key_is_listed_among_fields(descriptors):
    entities = {e.name: e for e in SchemaIntrospector().introspect(descriptors)}

    book = entities["Book"]
    assert book.primary_key == "id"
    assert "id" in [f.name for f in book.fields]
    assert book.pk_field.unique is True


def test_primary_key_is_marked_unique_when_not_declared():
    descriptor = EntityDescriptor(name="Note", fields=(_pk(),))

    (note,) = SchemaIntrospector().introspect([descriptor])

    assert note.pk_field.unique is True


def test_introspection_is_deterministic(descriptors):
    introspector = SchemaIntrospector()

    assert introspector.introspect(descriptors) == introspector.introspect(descriptors)


def test_missing_primary_key_is_rejected():
    descriptor = EntityDescriptor(
        name="Orphan", fields=(FieldMetadata(name="title", field_type=FieldType.STRING),)
    )

    with pytest.raises(SchemaError) as exc:
        SchemaIntrospector().introspect([descriptor])

    assert exc.value.entity == "Orphan"


def test_two_primary_keys_are_rejected():
    descriptor = EntityDescriptor(name="Twin", fields=(_pk("a"), _pk("b")))

    with pytest.raises(SchemaError):
        SchemaIntrospector().introspect([descriptor])


def test_nullable_primary_key_is_rejected():
    descriptor = EntityDescriptor(name="Loose", fields=(_pk(nullable=True),))

    with pytest.raises(SchemaError):
        SchemaIntrospector().introspect([descriptor])


def test_duplicate_member_names_are_rejected():
    descriptor = EntityDescriptor(
        name="Clash",
        fields=(_pk(), FieldMetadata(name="owner", field_type=FieldType.STRING)),
        relationships=(
            RelationshipDeclaration(
                name="owner", kind=RelationshipKind.MANY_TO_ONE, target="Clash"
            ),
        ),
    )

    with pytest.raises(SchemaError) as exc:
        SchemaIntrospector().introspect([descriptor])

    assert exc.value.field == "owner"


def test_relationship_to_unknown_entity_is_rejected():
    descriptor = EntityDescriptor(
        name="Review",
        fields=(_pk(),),
        relationships=(
            RelationshipDeclaration(
                name="book", kind=RelationshipKind.MANY_TO_ONE, target="Book"
            ),
        ),
    )

    with pytest.raises(SchemaError) as exc:
        SchemaIntrospector().introspect([descriptor])

    assert "Book" in str(exc.value)


def test_implicit_inverse_to_unknown_entity_is_dropped():
    descriptor = EntityDescriptor(
        name="Shelf",
        fields=(_pk(),),
        relationships=(
            RelationshipDeclaration(
                name="books",
                kind=RelationshipKind.ONE_TO_MANY,
                target="Book",
                owning=False,
                implicit=True,
            ),
        ),
    )

    (shelf,) = SchemaIntrospector().introspect([descriptor])

    assert shelf.relationships == ()


def test_duplicate_entity_names_are_rejected():
    descriptor = EntityDescriptor(name="Same", fields=(_pk(),))

    with pytest.raises(SchemaError):
        SchemaIntrospector().introspect([descriptor, descriptor])


def test_version_field_must_be_number_or_date():
    descriptor = EntityDescriptor(
        name="Versioned",
        fields=(_pk(), FieldMetadata(name="rev", field_type=FieldType.STRING)),
        version_field="rev",
    )

    with pytest.raises(SchemaError) as exc:
        SchemaIntrospector().introspect([descriptor])

    assert exc.value.field == "rev"


def test_unique_group_must_reference_members():
    descriptor = EntityDescriptor(
        name="Slot",
        fields=(_pk(), FieldMetadata(name="code", field_type=FieldType.STRING)),
        unique_together=(("code", "row"),),
    )

    with pytest.raises(SchemaError):
        SchemaIntrospector().introspect([descriptor])


def test_fields_follow_display_order_hints():
    descriptor = EntityDescriptor(
        name="Ordered",
        fields=(
            _pk(),
            FieldMetadata(name="b", field_type=FieldType.STRING),
            FieldMetadata(
                name="a", field_type=FieldType.STRING, hints=DisplayHints(order=0)
            ),
        ),
    )

    (ordered,) = SchemaIntrospector().introspect([descriptor])

    assert [f.name for f in ordered.fields] == ["a", "id", "b"]


def test_required_flag_only_kept_on_owning_side(descriptors):
    entities = {e.name: e for e in SchemaIntrospector().introspect(descriptors)}

    assert entities["Book"].get_relationship("author").required is True
    assert entities["Author"].get_relationship("books").required is False


def test_unsupported_candidate_is_rejected():
    with pytest.raises(SchemaError):
        SchemaIntrospector().introspect([object()])
