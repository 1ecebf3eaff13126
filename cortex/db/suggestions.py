"""Suggestion database operations.

One row per (record_id, kind). Each computation cycle rewrites the same row.
"""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from cortex.core.logging import get_logger
from cortex.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "suggestions"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def upsert_pending_suggestion(row: dict[str, Any]) -> dict[str, Any]:
    """
    Start a new computation cycle for a (record, kind) pair.

    Overwrites any previous state with status=pending and the new cycle_id.
    Payload and confidence from the previous cycle are kept until the new
    cycle finalizes.

    Args:
        row: Suggestion fields; must include id, record_id, kind, cycle_id

    Returns:
        Upserted suggestion dict
    """
    supabase = get_supabase()
    data = {**row, "status": "pending", "error": None, "updated_at": _utc_now_iso()}

    try:
        response = supabase.table(TABLE).upsert(data, on_conflict="record_id,kind").execute()
        if not response.data:
            raise ValueError("No data returned from upsert_pending_suggestion")
        return response.data[0]

    except Exception as e:
        logger.error(
            f"Failed to upsert pending suggestion: {e}",
            extra={"record_id": str(row.get("record_id")), "kind": row.get("kind")},
        )
        raise


def finalize_suggestion(
    record_id: UUID,
    kind: str,
    cycle_id: UUID,
    updates: dict[str, Any],
) -> dict[str, Any] | None:
    """
    Move a pending suggestion to ready/failed if its cycle is still current.

    Args:
        record_id: Parent record UUID
        kind: Suggestion kind
        cycle_id: Cycle that produced the result
        updates: status, payload, confidence, error, ...

    Returns:
        Updated suggestion dict, or None if a newer cycle superseded this one
    """
    supabase = get_supabase()
    data = {**updates, "updated_at": _utc_now_iso()}

    try:
        response = (
            supabase.table(TABLE)
            .update(data)
            .eq("record_id", str(record_id))
            .eq("kind", kind)
            .eq("cycle_id", str(cycle_id))
            .execute()
        )
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(
            f"Failed to finalize suggestion: {e}",
            extra={"record_id": str(record_id), "kind": kind, "cycle_id": str(cycle_id)},
        )
        raise


def get_suggestion_by_id(suggestion_id: UUID) -> dict[str, Any] | None:
    """Get a suggestion by id, or None."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table(TABLE).select("*").eq("id", str(suggestion_id)).limit(1).execute()
        )
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get suggestion {suggestion_id}: {e}")
        raise


def resolve_suggestion(
    suggestion_id: UUID,
    cycle_id: UUID,
    updates: dict[str, Any],
) -> dict[str, Any] | None:
    """
    Mark a ready suggestion applied or rejected.

    Conditional on the suggestion still being ready in the same cycle, so a
    recomputation started in between is never overwritten.

    Returns:
        Updated suggestion dict, or None if it is no longer ready in that cycle
    """
    supabase = get_supabase()
    data = {**updates, "updated_at": _utc_now_iso()}

    try:
        response = (
            supabase.table(TABLE)
            .update(data)
            .eq("id", str(suggestion_id))
            .eq("cycle_id", str(cycle_id))
            .eq("status", "ready")
            .execute()
        )
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(
            f"Failed to resolve suggestion {suggestion_id}: {e}",
            extra={"cycle_id": str(cycle_id)},
        )
        raise


def list_suggestions(record_id: UUID, status: str | None = None) -> list[dict[str, Any]]:
    """
    List suggestions for a record, optionally filtered by status.

    Args:
        record_id: Parent record UUID
        status: Optional status filter (pending, ready, failed, applied, rejected)

    Returns:
        List of suggestion dicts, most recently generated first
    """
    supabase = get_supabase()

    try:
        query = supabase.table(TABLE).select("*").eq("record_id", str(record_id))
        if status:
            query = query.eq("status", status)

        response = query.order("generated_at", desc=True).execute()
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list suggestions for {record_id}: {e}")
        raise


def delete_suggestions_for_record(record_id: UUID) -> int:
    """Delete every suggestion attached to a record. Returns rows deleted."""
    supabase = get_supabase()

    try:
        response = supabase.table(TABLE).delete().eq("record_id", str(record_id)).execute()
        return len(response.data or [])

    except Exception as e:
        logger.error(f"Failed to delete suggestions for {record_id}: {e}")
        raise
