"""
Record model for noteferry.

A Record is a single note as it lives in the source store. Every other
component assumes it receives a well-typed Record; raw, possibly malformed
input goes through the RecordCleaner first.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from ..timestamps import format_timestamp, truncate_to_millis


class Record(BaseModel):
    """
    A structured note record.

    Serialized with camelCase keys (createdAt, updatedAt, isDeleted,
    deletedAt) to stay compatible with exports of the original note store.
    """

    id: str = Field(
        ...,
        description="Unique identifier of the record within its collection"
    )

    title: str = Field(
        ...,
        description="Note title; never absent, defaults to 'untitled' when cleaned"
    )

    content: str = Field(
        default="",
        description="Markdown body of the note"
    )

    tags: List[str] = Field(
        default_factory=list,
        description="Tags in their original order (set semantics)"
    )

    created_at: datetime = Field(
        ...,
        description="Creation time (UTC, millisecond precision)"
    )

    updated_at: datetime = Field(
        ...,
        description="Last modification time (UTC, millisecond precision)"
    )

    is_deleted: bool = Field(
        default=False,
        description="Whether the record lives in the trash"
    )

    deleted_at: Optional[datetime] = Field(
        default=None,
        description="When the record was moved to the trash"
    )

    class Config:
        """Pydantic configuration."""
        alias_generator = to_camel
        populate_by_name = True

    @field_validator("created_at", "updated_at", "deleted_at")
    @classmethod
    def _normalize_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        return truncate_to_millis(value)

    @field_serializer("created_at", "updated_at", "deleted_at", when_used="json")
    def _serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        if value is None:
            return None
        return format_timestamp(value)

    def to_json_dict(self) -> dict:
        """Camel-cased, JSON-ready representation (as stored in snapshots)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
