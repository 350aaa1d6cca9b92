"""Field-name mapping between the API / in-memory records and persisted columns.

Records expose camelCase aliases (``isActive``) over snake_case attributes
(``is_active``); persisted columns use the snake_case names. The mapping is total and
bidirectional for every persisted field.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel, to_snake


class Record(BaseModel):
    """Base for persisted entities, readable from ORM rows and REST rows alike."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @field_validator("*", mode="after")
    @classmethod
    def _assume_utc(cls, v: Any) -> Any:
        # SQLite hands back naive datetimes
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v


def to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    """camelCase (or already snake_case) keys -> column names."""
    return {to_snake(key): value for key, value in fields.items()}


def from_columns(row: dict[str, Any]) -> dict[str, Any]:
    """Column names -> camelCase keys."""
    return {to_camel(key): value for key, value in row.items()}


def to_row(record: Record, *, exclude: set[str] | None = None) -> dict[str, Any]:
    """Serialize a record into a JSON-safe dict keyed by column name."""
    return record.model_dump(mode="json", by_alias=False, exclude=exclude)
