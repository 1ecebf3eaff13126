"""Pydantic schemas for POV/TRR records."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class RecordKind(str, Enum):
    """Record collection. Doubles as the workflow category for AI opt-outs."""
    POV = "pov"
    TRR = "trr"


class Visibility(str, Enum):
    """Visibility scope of a record.

    - PRIVATE: Owner only
    - TEAM: Owner plus the owner's manager
    - ORG: All authenticated users, read-only
    """
    PRIVATE = "private"
    TEAM = "team"
    ORG = "org"


class Annotation(BaseModel):
    """Append-only comment attached to a record."""
    author_id: UUID
    text: str
    created_at: datetime


class Record(BaseModel):
    """Full record schema."""
    id: UUID
    kind: RecordKind
    owner_id: UUID
    visibility: Visibility = Visibility.PRIVATE
    title: str
    description: Optional[str] = None
    status: str = "draft"
    payload: dict[str, Any] = Field(default_factory=dict)
    annotations: list[Annotation] = Field(default_factory=list)
    revision: int = 1
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RecordCreate(BaseModel):
    """Schema for creating a record. Ownership comes from the caller."""
    kind: RecordKind
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    visibility: Visibility = Visibility.PRIVATE
    status: str = "draft"
    payload: dict[str, Any] = Field(default_factory=dict)


class RecordPatch(BaseModel):
    """Optimistic-concurrency patch.

    Any field change is a full mutation. A patch that only carries an
    annotation is an annotation write.
    """
    expected_revision: int = Field(..., ge=1)
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    status: Optional[str] = None
    visibility: Optional[Visibility] = None
    payload: Optional[dict[str, Any]] = None
    annotation: Optional[str] = Field(default=None, min_length=1, max_length=2000)

    @field_validator("title", "status", "visibility", "payload", mode="before")
    @classmethod
    def reject_explicit_null(cls, v: Any) -> Any:
        """Only description may be cleared with null."""
        if v is None:
            raise ValueError("field cannot be null")
        return v

    def field_changes(self) -> dict[str, Any]:
        """Fields (excluding revision and annotation) explicitly set on the patch.

        An explicit null is a change: {"description": null} clears it.
        """
        return self.model_dump(
            exclude_unset=True,
            exclude={"expected_revision", "annotation"},
            mode="json",
        )
