"""Name checks for tree tables and their columns.

NestedSetTree builds every statement from caller-supplied table and column
names. Each name must be a plain identifier before it reaches SQLAlchemy,
and the structural columns (id, parent, left, right) must be distinct.

Example:
    from hierarchy_store.core.database.validation import (
        validate_identifier,
        validate_tree_columns,
    )

    table = validate_identifier("org_units", identifier_type="table")
    validate_tree_columns(id_field="id", parent_field="boss", left_field="l", right_field="r")
"""

from __future__ import annotations

import re

# PostgreSQL truncates longer names silently
MAX_IDENTIFIER_LENGTH = 63
PLAIN_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_$]*")

# Table names the databases keep for their own catalogs
SYSTEM_TABLE_PREFIXES = ("pg_", "sqlite_")

# Statement keywords that would need quoting to name a table or column
RESERVED_KEYWORDS = frozenset(
    {
        "alter",
        "create",
        "database",
        "delete",
        "drop",
        "exec",
        "execute",
        "from",
        "grant",
        "index",
        "insert",
        "join",
        "revoke",
        "schema",
        "select",
        "table",
        "truncate",
        "union",
        "update",
        "where",
    },
)


class IdentifierValidationError(ValueError):
    """A table or column name can't be used for a tree."""


def _describe_problem(name: str, identifier_type: str, allow_reserved: bool) -> str | None:
    if not name:
        return f"Empty {identifier_type} name not allowed"
    if len(name) > MAX_IDENTIFIER_LENGTH:
        return f"{identifier_type} name is longer than {MAX_IDENTIFIER_LENGTH} characters"
    if PLAIN_IDENTIFIER.fullmatch(name) is None:
        return (
            f"Invalid {identifier_type} name {name!r}: use letters, digits, underscores "
            "or dollar signs, starting with a letter or underscore"
        )
    lowered = name.lower()
    if identifier_type == "table" and lowered.startswith(SYSTEM_TABLE_PREFIXES):
        return f"Table name {name!r} uses a prefix reserved for system catalogs"
    if not allow_reserved and lowered in RESERVED_KEYWORDS:
        return f"'{name}' is a SQL reserved keyword and cannot be used as {identifier_type}"
    return None


def validate_identifier(
    name: str,
    *,
    identifier_type: str = "identifier",
    allow_reserved: bool = False,
) -> str:
    """Return ``name`` unchanged if it can be used unquoted.

    Args:
        name: Table or column name
        identifier_type: Word used in error messages ("table", "column")
        allow_reserved: Accept SQL keywords such as ``index``

    Raises:
        IdentifierValidationError: If the name is empty, too long, not a plain
            identifier, a reserved keyword, or a system catalog table name
    """
    problem = _describe_problem(name, identifier_type, allow_reserved)
    if problem is not None:
        raise IdentifierValidationError(problem)
    return name


def validate_tree_columns(**columns: str) -> dict[str, str]:
    """Check the structural column names of a tree table.

    Keywords name the role each column plays (``left_field``, ...); they
    appear in the error when two roles point at the same column. Names are
    compared case-insensitively, as unquoted identifiers are.

    Raises:
        IdentifierValidationError: If a name is invalid or shared by two roles
    """
    roles: dict[str, str] = {}
    for role, name in columns.items():
        validate_identifier(name, identifier_type="column")
        other = roles.setdefault(name.lower(), role)
        if other != role:
            msg = f"{other} and {role} both name column {name!r}"
            raise IdentifierValidationError(msg)
    return columns


__all__ = [
    "IdentifierValidationError",
    "validate_identifier",
    "validate_tree_columns",
]
