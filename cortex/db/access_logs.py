"""Access audit log storage."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from cortex.core.logging import get_logger
from cortex.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "access_logs"


def insert_access_log(entry: dict[str, Any]) -> None:
    """Append an access decision to the audit log."""
    supabase = get_supabase()
    row = {**entry, "created_at": datetime.now(timezone.utc).isoformat()}
    supabase.table(TABLE).insert(row).execute()


def list_access_logs(
    user_id: UUID | None = None,
    record_id: UUID | None = None,
    granted: bool | None = None,
    limit: int = 100,
) -> list[dict[str, Any]]:
    """
    List access log entries, newest first.

    Args:
        user_id: Filter by acting user
        record_id: Filter by target record
        granted: Filter by decision
        limit: Maximum entries

    Returns:
        List of log entry dicts
    """
    supabase = get_supabase()

    try:
        query = supabase.table(TABLE).select("*").order("created_at", desc=True)
        if user_id:
            query = query.eq("user_id", str(user_id))
        if record_id:
            query = query.eq("record_id", str(record_id))
        if granted is not None:
            query = query.eq("granted", granted)

        response = query.limit(limit).execute()
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list access logs: {e}")
        raise
