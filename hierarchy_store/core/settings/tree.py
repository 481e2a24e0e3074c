"""Tree table settings used by the CLI and by build_tree()."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hierarchy_store.core.database.validation import validate_identifier, validate_tree_columns


class TreeSettings(BaseSettings):
    """Which table and columns hold the nested set.

    Environment variables use TREE_ prefix.
    Example: TREE_TABLE_NAME=categories, TREE_NAME_FIELD=title, TREE_ID_TYPE=str
    """

    table_name: str = Field(default="categories", description="Tree table name")
    name_field: str = Field(default="name", description="Label column used for sorting/display")
    id_field: str = Field(default="id", description="Primary key column")
    id_type: Literal["int", "str"] = Field(
        default="int",
        description="Key column type; CLI node ids are parsed as int only for \"int\"",
    )
    parent_field: str = Field(default="parent_id", description="Adjacency column")
    left_field: str = Field(default="lft", description="Left boundary column")
    right_field: str = Field(default="rgt", description="Right boundary column")
    sort_rebuild: bool = Field(
        default=False, description="Order siblings by name when rebuilding"
    )

    model_config = SettingsConfigDict(
        env_prefix="TREE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    @field_validator(
        "table_name", "name_field", "id_field", "parent_field", "left_field", "right_field"
    )
    @classmethod
    def _check_identifier(cls, value: str) -> str:
        """Reject names that aren't safe SQL identifiers."""
        return validate_identifier(value)

    @model_validator(mode="after")
    def _check_distinct_columns(self) -> TreeSettings:
        """Reject settings that point two structural roles at one column."""
        validate_tree_columns(**self.tree_kwargs())
        return self

    def tree_kwargs(self) -> dict[str, str]:
        """Column keyword arguments for NestedSetTree."""
        return {
            "id_field": self.id_field,
            "parent_field": self.parent_field,
            "left_field": self.left_field,
            "right_field": self.right_field,
        }
