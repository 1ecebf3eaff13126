"""AI content disclaimer acknowledgment storage."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from cortex.core.logging import get_logger
from cortex.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "disclaimer_acknowledgments"


def get_acknowledgment(user_id: UUID, policy_version: str) -> dict[str, Any] | None:
    """Get the acknowledgment for exactly this (user, policy version) pair."""
    supabase = get_supabase()
    response = (
        supabase.table(TABLE)
        .select("*")
        .eq("user_id", str(user_id))
        .eq("policy_version", policy_version)
        .limit(1)
        .execute()
    )
    return response.data[0] if response.data else None


def insert_acknowledgment(user_id: UUID, policy_version: str) -> dict[str, Any]:
    """
    Record an acknowledgment. Existing rows are left untouched.

    The table has a unique (user_id, policy_version) constraint; the upsert
    ignores duplicates so the original timestamp is kept.
    """
    supabase = get_supabase()
    row = {
        "user_id": str(user_id),
        "policy_version": policy_version,
        "acknowledged_at": datetime.now(timezone.utc).isoformat(),
    }

    supabase.table(TABLE).upsert(
        row, on_conflict="user_id,policy_version", ignore_duplicates=True
    ).execute()

    stored = get_acknowledgment(user_id, policy_version)
    if not stored:
        raise ValueError("Acknowledgment not found after insert")

    logger.info(
        f"User {user_id} acknowledged AI policy {policy_version}",
        extra={"user_id": str(user_id)},
    )
    return stored
