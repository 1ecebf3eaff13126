"""Pydantic schemas for AI content disclaimer acknowledgments."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class DisclaimerAcknowledgment(BaseModel):
    """A user's acknowledgment of one AI content policy version. Never mutated."""
    user_id: UUID
    policy_version: str
    acknowledged_at: datetime

    class Config:
        from_attributes = True


class AcknowledgeRequest(BaseModel):
    """Acknowledge a policy version (defaults to the current one)."""
    policy_version: Optional[str] = Field(default=None, min_length=1, max_length=50)


class DisclaimerStatus(BaseModel):
    """Whether the user must acknowledge before AI content is shown."""
    policy_version: str
    requires_acknowledgment: bool
