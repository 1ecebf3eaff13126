"""Pydantic schemas for background AI suggestions and workflow events."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid5

from pydantic import BaseModel, Field

from cortex.core.schemas_records import RecordKind

# Namespace for deterministic suggestion ids: one id per (record, kind)
SUGGESTION_NAMESPACE = UUID("6f1c2b8e-3d4a-4c5b-9e7f-0a1b2c3d4e5f")


class SuggestionKind(str, Enum):
    """Kinds of AI enrichment computed per record."""
    CONTENT = "content"
    RISK = "risk"
    RECOMMENDATION = "recommendation"
    ANOMALY = "anomaly"
    QUALITY_SCORE = "quality_score"


class SuggestionStatus(str, Enum):
    """Suggestion lifecycle: PENDING -> READY | FAILED, then READY -> APPLIED | REJECTED."""
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"
    APPLIED = "applied"
    REJECTED = "rejected"


def suggestion_id_for(record_id: UUID, kind: SuggestionKind) -> UUID:
    """Stable suggestion id so recomputation supersedes instead of duplicating."""
    return uuid5(SUGGESTION_NAMESPACE, f"{record_id}:{kind.value}")


class Suggestion(BaseModel):
    """AI-derived annotation attached to a record."""
    id: UUID
    record_id: UUID
    kind: SuggestionKind
    status: SuggestionStatus = SuggestionStatus.PENDING
    payload: dict[str, Any] = Field(default_factory=dict)
    confidence: Optional[float] = None
    reasoning: Optional[str] = None
    input_hash: Optional[str] = None
    cycle_id: Optional[UUID] = None
    error: Optional[str] = None
    generated_at: Optional[datetime] = None
    resolved_by: Optional[UUID] = None
    resolved_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SuggestionResult(BaseModel):
    """Output of one suggestion computation."""
    payload: dict[str, Any] = Field(default_factory=dict)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reasoning: Optional[str] = None


class WorkflowEventType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


class WorkflowEvent(BaseModel):
    """Message published by the gateway after a successful write."""
    event_type: WorkflowEventType
    record_id: UUID
    category: RecordKind
    actor_id: UUID
    revision: int
    payload: dict[str, Any] = Field(default_factory=dict)
    occurred_at: Optional[datetime] = None


class AIPreferences(BaseModel):
    """User opt-in/opt-out settings for background AI."""
    user_id: UUID
    enable_background_ai: bool = True
    disabled_categories: list[RecordKind] = Field(default_factory=list)
    enabled_kinds: list[SuggestionKind] = Field(
        default_factory=lambda: list(SuggestionKind)
    )

    def allows(self, category: Optional[RecordKind]) -> bool:
        """True if background AI may run for this workflow category."""
        if not self.enable_background_ai:
            return False
        return category is None or category not in self.disabled_categories


class AIPreferencesUpdate(BaseModel):
    """Partial update of AI preferences."""
    enable_background_ai: Optional[bool] = None
    disabled_categories: Optional[list[RecordKind]] = None
    enabled_kinds: Optional[list[SuggestionKind]] = None


class RefreshSuggestionsRequest(BaseModel):
    """Request to recompute suggestions for a record."""
    kinds: list[SuggestionKind] = Field(default_factory=lambda: list(SuggestionKind))


class AcceptSuggestionRequest(BaseModel):
    """Apply a ready suggestion to the record it belongs to."""
    expected_revision: int = Field(..., ge=1)
