"""
Shared fixtures: a small library schema declared with EntityDescriptor so
unit tests run against the MemoryStore without touching Django models.
"""

import pytest

from zoun_admin.introspector import (
    CascadePolicy,
    EntityDescriptor,
    FetchPolicy,
    FieldMetadata,
    FieldType,
    RelationshipDeclaration,
    RelationshipKind,
)
from zoun_admin.testing import build_memory_engine


def pk_field(name="id"):
    return FieldMetadata(
        name=name,
        field_type=FieldType.NUMBER,
        subtype="integer",
        primary_key=True,
        unique=True,
        generated=True,
    )


def text_field(name, max_length=100, **kwargs):
    return FieldMetadata(
        name=name, field_type=FieldType.STRING, subtype="char", max_length=max_length, **kwargs
    )


def library_descriptors():
    author = EntityDescriptor(
        name="Author",
        fields=(
            pk_field(),
            text_field("name"),
            FieldMetadata(
                name="email",
                field_type=FieldType.STRING,
                subtype="email",
                nullable=True,
                max_length=254,
            ),
        ),
        relationships=(
            RelationshipDeclaration(
                name="books",
                kind=RelationshipKind.ONE_TO_MANY,
                target="Book",
                owning=False,
                remote_name="author",
                implicit=True,
            ),
        ),
    )
    book = EntityDescriptor(
        name="Book",
        fields=(
            pk_field(),
            text_field("title", max_length=200),
            text_field("isbn", max_length=13, unique=True),
            FieldMetadata(
                name="pages",
                field_type=FieldType.NUMBER,
                subtype="integer",
                default=0,
                min_value=0,
                max_value=5000,
            ),
        ),
        relationships=(
            RelationshipDeclaration(
                name="author",
                kind=RelationshipKind.MANY_TO_ONE,
                target="Author",
                cascade=CascadePolicy.NONE,
                fetch=FetchPolicy.EAGER,
                remote_name="books",
                required=True,
                fk_field="author_id",
            ),
        ),
    )
    category = EntityDescriptor(
        name="Category",
        fields=(pk_field(), text_field("name")),
        relationships=(
            RelationshipDeclaration(
                name="parent",
                kind=RelationshipKind.MANY_TO_ONE,
                target="Category",
                cascade=CascadePolicy.DELETE,
                remote_name="children",
                fk_field="parent_id",
            ),
            RelationshipDeclaration(
                name="children",
                kind=RelationshipKind.ONE_TO_MANY,
                target="Category",
                owning=False,
                remote_name="parent",
                implicit=True,
            ),
            RelationshipDeclaration(
                name="posts",
                kind=RelationshipKind.ONE_TO_MANY,
                target="Post",
                owning=False,
                remote_name="category",
                implicit=True,
            ),
        ),
    )
    tag = EntityDescriptor(
        name="Tag",
        fields=(pk_field(), text_field("name", max_length=50, unique=True)),
        relationships=(
            RelationshipDeclaration(
                name="posts",
                kind=RelationshipKind.MANY_TO_MANY,
                target="Post",
                owning=False,
                remote_name="tags",
                implicit=True,
            ),
        ),
    )
    post = EntityDescriptor(
        name="Post",
        fields=(
            pk_field(),
            text_field("title", max_length=200),
            FieldMetadata(
                name="status",
                field_type=FieldType.ENUM,
                default="draft",
                choices=(("draft", "Draft"), ("published", "Published")),
            ),
        ),
        relationships=(
            RelationshipDeclaration(
                name="category",
                kind=RelationshipKind.MANY_TO_ONE,
                target="Category",
                cascade=CascadePolicy.UPDATE,
                remote_name="posts",
                fk_field="category_id",
            ),
            RelationshipDeclaration(
                name="tags",
                kind=RelationshipKind.MANY_TO_MANY,
                target="Tag",
                cascade=CascadePolicy.UPDATE,
                remote_name="posts",
            ),
        ),
    )
    document = EntityDescriptor(
        name="Document",
        fields=(
            pk_field(),
            text_field("title", max_length=120),
            FieldMetadata(
                name="version", field_type=FieldType.NUMBER, subtype="integer", default=0
            ),
        ),
        version_field="version",
    )
    return [author, book, category, tag, post, document]


@pytest.fixture
def descriptors():
    return library_descriptors()


@pytest.fixture
def engine(descriptors):
    return build_memory_engine(descriptors, query={"default_page_size": 20, "max_page_size": 100})


@pytest.fixture
def executor(engine):
    return engine.executor


@pytest.fixture
def registry(engine):
    return engine.registry
