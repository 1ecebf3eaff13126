"""POV/TRR record database operations."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from cortex.core.logging import get_logger
from cortex.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "records"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_record(record_id: UUID) -> dict[str, Any] | None:
    """
    Get a record by ID.

    Args:
        record_id: Record UUID

    Returns:
        Record dict or None if not found

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.table(TABLE).select("*").eq("id", str(record_id)).execute()
        if response.data:
            return response.data[0]
        return None

    except Exception as e:
        logger.error(f"Failed to get record {record_id}: {e}", extra={"record_id": str(record_id)})
        raise


def insert_record(data: dict[str, Any]) -> dict[str, Any]:
    """
    Insert a new record at revision 1.

    Args:
        data: Record fields (owner_id, kind, title, ...)

    Returns:
        Inserted record dict

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()
    now = _utc_now_iso()
    row = {
        **data,
        "revision": 1,
        "created_at": data.get("created_at", now),
        "updated_at": data.get("updated_at", now),
    }

    try:
        response = supabase.table(TABLE).insert(row).execute()
        if not response.data:
            raise ValueError("No data returned from insert_record")

        record = response.data[0]
        logger.info(f"Created record {record['id']}", extra={"record_id": record["id"]})
        return record

    except Exception as e:
        logger.error(f"Failed to insert record: {e}")
        raise


def update_record_if_revision(
    record_id: UUID,
    expected_revision: int,
    updates: dict[str, Any],
) -> dict[str, Any] | None:
    """
    Conditionally apply updates and bump the revision in one statement.

    The row only matches if its revision still equals expected_revision, so
    two writers holding the same revision cannot both succeed.

    Args:
        record_id: Record UUID
        expected_revision: Revision the caller last read
        updates: Field updates (revision/updated_at are set here)

    Returns:
        Updated record dict, or None if the revision did not match

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()
    row = {
        **updates,
        "revision": expected_revision + 1,
        "updated_at": _utc_now_iso(),
    }

    try:
        response = (
            supabase.table(TABLE)
            .update(row)
            .eq("id", str(record_id))
            .eq("revision", expected_revision)
            .execute()
        )

        if response.data:
            logger.info(
                f"Updated record {record_id} to revision {expected_revision + 1}",
                extra={"record_id": str(record_id)},
            )
            return response.data[0]

        logger.info(
            f"Record {record_id} not at revision {expected_revision}",
            extra={"record_id": str(record_id)},
        )
        return None

    except Exception as e:
        logger.error(f"Failed to update record {record_id}: {e}", extra={"record_id": str(record_id)})
        raise


def delete_record(record_id: UUID) -> bool:
    """
    Hard delete a record.

    Returns:
        True if a row was deleted
    """
    supabase = get_supabase()

    try:
        response = supabase.table(TABLE).delete().eq("id", str(record_id)).execute()
        deleted = bool(response.data)
        if deleted:
            logger.warning(f"Deleted record {record_id}", extra={"record_id": str(record_id)})
        return deleted

    except Exception as e:
        logger.error(f"Failed to delete record {record_id}: {e}", extra={"record_id": str(record_id)})
        raise


def list_records(
    kind: str | None = None,
    owner_ids: list[UUID] | None = None,
    visibility: list[str] | None = None,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """
    List records, newest first.

    Args:
        kind: Optional record kind filter ("pov" | "trr")
        owner_ids: Optional owner filter
        visibility: Optional visibility filter
        limit: Maximum number of records

    Returns:
        List of record dicts
    """
    supabase = get_supabase()

    try:
        query = supabase.table(TABLE).select("*").order("updated_at", desc=True)

        if kind:
            query = query.eq("kind", kind)
        if owner_ids is not None:
            if not owner_ids:
                return []
            query = query.in_("owner_id", [str(o) for o in owner_ids])
        if visibility:
            query = query.in_("visibility", visibility)

        response = query.limit(limit).execute()
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list records: {e}")
        raise
