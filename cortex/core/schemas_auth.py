"""Pydantic schemas for identity and roles."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class UserRole(str, Enum):
    """Platform-wide user role.

    - ADMIN: Full access to every record (collective admin space)
    - MANAGER: Own records plus TEAM/ORG records of managed users
    - USER: Own records plus ORG-visible records (read-only)
    """
    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"


class User(BaseModel):
    """Authenticated user as supplied by the session layer."""
    id: UUID
    email: EmailStr
    role: UserRole = UserRole.USER
    full_name: Optional[str] = None
    manager_id: Optional[UUID] = None
    team_id: Optional[UUID] = None
    managed_team_ids: list[UUID] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RoleChangeRequest(BaseModel):
    """Request to change a user's role (admin only)."""
    role: UserRole
