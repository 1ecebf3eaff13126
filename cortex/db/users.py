"""User database operations."""

from typing import Any
from uuid import UUID

from cortex.core.logging import get_logger
from cortex.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "users"


def get_user(user_id: UUID) -> dict[str, Any] | None:
    """Get a user row by ID."""
    supabase = get_supabase()
    response = supabase.table(TABLE).select("*").eq("id", str(user_id)).execute()
    return response.data[0] if response.data else None


def list_managed_user_ids(manager_id: UUID, team_ids: list[UUID] | None = None) -> list[UUID]:
    """
    IDs of users managed by manager_id.

    A user is managed if their manager_id is the manager, or their team is one
    of the manager's managed teams.
    """
    supabase = get_supabase()

    direct = supabase.table(TABLE).select("id").eq("manager_id", str(manager_id)).execute()
    ids = {UUID(row["id"]) for row in direct.data or []}

    if team_ids:
        team = (
            supabase.table(TABLE)
            .select("id")
            .in_("team_id", [str(t) for t in team_ids])
            .execute()
        )
        ids.update(UUID(row["id"]) for row in team.data or [])

    ids.discard(manager_id)
    return sorted(ids, key=str)


def update_user_role(user_id: UUID, role: str) -> dict[str, Any] | None:
    """
    Set a user's role. Callers must have checked can_change_role first.

    Returns:
        Updated user dict, or None if the user does not exist
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table(TABLE)
            .update({"role": role})
            .eq("id", str(user_id))
            .execute()
        )
        if not response.data:
            logger.warning(f"Role change: user {user_id} not found")
            return None

        logger.info(f"Changed role of user {user_id} to {role}", extra={"user_id": str(user_id)})
        return response.data[0]

    except Exception as e:
        logger.error(f"Failed to update role for {user_id}: {e}")
        raise
