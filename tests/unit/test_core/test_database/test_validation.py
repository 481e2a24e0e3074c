"""Tests for SQL identifier validation."""

from __future__ import annotations

import pytest
from sqlalchemy import text

from hierarchy_store.core.database import IdentifierValidationError, NestedSetTree
from hierarchy_store.core.database.validation import validate_identifier, validate_tree_columns
from hierarchy_store.infra.database import SQLAlchemyStore

pytestmark = pytest.mark.unit


class TestValidateIdentifier:
    """validate_identifier()."""

    @pytest.mark.parametrize("name", ["categories", "_tree", "org_units2", "lft", "Parent_ID"])
    def test_accepts_plain_identifiers(self, name):
        assert validate_identifier(name) == name

    @pytest.mark.parametrize(
        "name",
        [
            "",
            "1tree",
            "cat-egories",
            "categories; DROP TABLE users",
            "name--",
            "a" * 64,
            "select",
            "TABLE",
        ],
    )
    def test_rejects_unsafe_identifiers(self, name):
        with pytest.raises(IdentifierValidationError):
            validate_identifier(name)

    def test_reserved_allowed_on_request(self):
        assert validate_identifier("index", allow_reserved=True) == "index"

    def test_message_names_identifier_type(self):
        with pytest.raises(IdentifierValidationError, match="column"):
            validate_identifier("", identifier_type="column")

    @pytest.mark.parametrize("name", ["sqlite_master", "pg_class", "SQLITE_sequence"])
    def test_system_catalog_tables_rejected(self, name):
        with pytest.raises(IdentifierValidationError, match="system catalogs"):
            validate_identifier(name, identifier_type="table")

    def test_system_prefix_allowed_for_columns(self):
        assert validate_identifier("pg_rank", identifier_type="column") == "pg_rank"


class TestValidateTreeColumns:
    """validate_tree_columns()."""

    def test_distinct_columns_pass(self):
        columns = {"id_field": "code", "parent_field": "boss", "left_field": "l"}

        assert validate_tree_columns(**columns) == columns

    def test_shared_column_names_both_roles(self):
        with pytest.raises(IdentifierValidationError, match="left_field and right_field"):
            validate_tree_columns(id_field="id", left_field="pos", right_field="POS")

    def test_invalid_name_rejected(self):
        with pytest.raises(IdentifierValidationError, match="column"):
            validate_tree_columns(id_field="1id")


class TestTreeConstruction:
    """NestedSetTree validates its table and column names."""

    async def test_invalid_table_rejected(self, store):
        with pytest.raises(IdentifierValidationError):
            NestedSetTree(store, "categories; --")

    @pytest.mark.parametrize(
        "field", ["id_field", "parent_field", "left_field", "right_field"]
    )
    async def test_invalid_column_rejected(self, store, field):
        with pytest.raises(IdentifierValidationError):
            NestedSetTree(store, "categories", **{field: "1bad"})

    async def test_shared_structural_column_rejected(self, store):
        with pytest.raises(IdentifierValidationError):
            NestedSetTree(store, "categories", left_field="rgt")

    async def test_invalid_label_rejected(self, store):
        with pytest.raises(IdentifierValidationError):
            NestedSetTree(store, "categories", "drop")

    async def test_custom_column_names(self, session):
        await session.execute(
            text(
                "CREATE TABLE org (code INTEGER PRIMARY KEY, boss INTEGER, "
                "l INTEGER NOT NULL DEFAULT 0, r INTEGER NOT NULL DEFAULT 0, title TEXT)"
            )
        )
        await session.execute(
            text("INSERT INTO org (code, boss, title) VALUES (1, NULL, 'ceo'), (2, 1, 'cto')")
        )
        await session.commit()
        tree = NestedSetTree(
            SQLAlchemyStore(session),
            "org",
            "title",
            id_field="code",
            parent_field="boss",
            left_field="l",
            right_field="r",
        )

        await tree.rebuild()

        assert await tree.visualise(1) == {1: "ceo", 2: "|-- cto"}
        assert await tree.count_siblings(2) == 0
