import sys
import pathlib
sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1]))

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

import pytest

from litemap.core.metadata import (
    SERIAL_IDENTITY,
    EntityMetadata,
    Role,
    host_type_name,
    sql_type,
)
from litemap.core.model import Column, Entity, ForeignKey, PrimaryKey, qualified_name
from litemap.errors import MappingError


class Author(Entity):
    __tablename__ = "authors"

    name: Annotated[str, Column()] = ""


class Article(Entity):
    __tablename__ = "articles"

    headline: Annotated[str, Column("title")] = ""
    views: Annotated[int, Column(type_name="long")] = 0
    rating: Annotated[float, Column()] = 0.0
    published: Annotated[bool, Column()] = False
    author: Annotated[Optional[Author], ForeignKey(Author, name="author_id")] = None
    draft_notes: str = ""


@pytest.mark.parametrize(
    "type_name, expected",
    [
        ("byte", "int"),
        ("short", "int"),
        ("int", "int"),
        ("long", "bigint"),
        ("char", "varchar"),
        ("string", "varchar"),
        ("String", "varchar"),
        ("double", "float"),
        ("DOUBLE", "float"),
        ("boolean", "boolean"),
        ("Timestamp", "timestamp"),
    ],
)
def test_sql_type_mapping(type_name, expected):
    assert sql_type(type_name) == expected


def test_host_type_names():
    assert host_type_name(str) == "string"
    assert host_type_name(int) == "int"
    assert host_type_name(float) == "double"
    assert host_type_name(bool) == "boolean"
    assert host_type_name(Decimal) == "numeric"
    assert host_type_name(datetime) == "timestamp"
    assert host_type_name(Optional[str]) == "string"
    assert host_type_name(int | None) == "int"


def test_host_type_name_rejects_real_unions():
    with pytest.raises(MappingError):
        host_type_name(int | str)


def test_columns_follow_declaration_order_with_identity_first():
    metadata = EntityMetadata.from_model(Article)

    assert metadata.table_name == "articles"
    assert metadata.column_names == ["id", "title", "views", "rating", "published", "author_id"]
    assert metadata.column_types == [SERIAL_IDENTITY, "varchar", "bigint", "float", "boolean", "int"]
    assert metadata.primary_key.role is Role.PRIMARY
    assert [c.field_name for c in metadata.data_columns] == [
        "headline",
        "views",
        "rating",
        "published",
        "author",
    ]


def test_foreign_key_descriptor_and_constraint():
    metadata = EntityMetadata.from_model(Article)
    fk = metadata.columns[-1]

    assert fk.role is Role.FOREIGN_KEY
    assert fk.is_foreign_key
    assert fk.referenced_type is Author
    assert metadata.constraints == (
        "FOREIGN KEY (author_id) REFERENCES authors(id) ON DELETE CASCADE ON UPDATE CASCADE",
    )


def test_unmarked_fields_are_not_mapped():
    metadata = EntityMetadata.from_model(Article)
    assert "draft_notes" not in metadata.column_names


def test_metadata_is_immutable():
    metadata = EntityMetadata.from_model(Author)
    with pytest.raises(AttributeError):
        metadata.table_name = "other"  # type: ignore[misc]
    assert isinstance(metadata.columns, tuple)


def test_foreign_key_target_by_name():
    class Review(Entity):
        __tablename__ = "reviews"

        article: Annotated[Optional[Article], ForeignKey("Article")] = None

    metadata = EntityMetadata.from_model(Review)
    assert metadata.columns[1].referenced_type is Article
    assert metadata.column_names == ["id", "article"]


def test_missing_table_name_is_rejected():
    class Untitled(Entity):
        label: Annotated[str, Column()] = ""

    with pytest.raises(MappingError):
        EntityMetadata.from_model(Untitled)


def test_second_primary_key_is_rejected():
    class DoubleKey(Entity):
        __tablename__ = "double_keys"

        code: Annotated[int, PrimaryKey()] = 0

    with pytest.raises(MappingError):
        EntityMetadata.from_model(DoubleKey)


def test_duplicate_column_names_are_rejected():
    class Clash(Entity):
        __tablename__ = "clashes"

        first: Annotated[str, Column("name")] = ""
        second: Annotated[str, Column("name")] = ""

    with pytest.raises(MappingError):
        EntityMetadata.from_model(Clash)


def test_unknown_foreign_key_target_is_rejected():
    class Orphan(Entity):
        __tablename__ = "orphans"

        parent: Annotated[Optional[int], ForeignKey("NoSuchEntity")] = None

    with pytest.raises(MappingError):
        EntityMetadata.from_model(Orphan)


def test_non_entity_is_rejected():
    with pytest.raises(MappingError):
        EntityMetadata.from_model(dict)  # type: ignore[arg-type]


def _first_branch() -> type[Entity]:
    class Branch(Entity):
        __tablename__ = "branches"

        parent: Annotated[Optional[Entity], ForeignKey("Branch")] = None

    return Branch


def _second_branch() -> type[Entity]:
    class Branch(Entity):
        __tablename__ = "other_branches"

        parent: Annotated[Optional[Entity], ForeignKey("Branch")] = None

    return Branch


def test_self_reference_by_shared_name_binds_to_declaring_class():
    first, second = _first_branch(), _second_branch()

    for model in (first, second):
        metadata = EntityMetadata.from_model(model)
        assert metadata.columns[1].referenced_type is model
        assert f"REFERENCES {model.__tablename__}(id)" in metadata.constraints[0]


def test_shared_name_from_another_class_is_ambiguous():
    first = _first_branch()
    _second_branch()

    class Leaf(Entity):
        __tablename__ = "leaves"

        branch: Annotated[Optional[Entity], ForeignKey("Branch")] = None

    with pytest.raises(MappingError, match="module-qualified"):
        EntityMetadata.from_model(Leaf)

    class Twig(Entity):
        __tablename__ = "twigs"

        branch: Annotated[Optional[Entity], ForeignKey(qualified_name(first))] = None

    metadata = EntityMetadata.from_model(Twig)
    assert metadata.columns[1].referenced_type is first
