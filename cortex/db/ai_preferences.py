"""Read/write per-user background AI preferences."""

from typing import Any
from uuid import UUID

from cortex.core.logging import get_logger
from cortex.core.schemas_suggestions import SuggestionKind
from cortex.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "ai_preferences"

DEFAULT_PREFS: dict[str, Any] = {
    "enable_background_ai": True,
    "disabled_categories": [],
    "enabled_kinds": [k.value for k in SuggestionKind],
}


def get_ai_preferences(user_id: str | UUID) -> dict[str, Any]:
    """Get AI preferences for a user.

    Returns defaults if no preferences are stored.
    """
    supabase = get_supabase()
    result = (
        supabase.table(TABLE)
        .select("*")
        .eq("user_id", str(user_id))
        .limit(1)
        .execute()
    )
    if result.data:
        stored = {k: v for k, v in result.data[0].items() if v is not None}
        return {**DEFAULT_PREFS, **stored, "user_id": str(user_id)}
    return {**DEFAULT_PREFS, "user_id": str(user_id)}


def update_ai_preferences(user_id: str | UUID, prefs: dict[str, Any]) -> dict[str, Any]:
    """Merge prefs into the stored preferences and return the result."""
    supabase = get_supabase()

    current = get_ai_preferences(user_id)
    current.update(prefs)
    current["user_id"] = str(user_id)

    supabase.table(TABLE).upsert(current, on_conflict="user_id").execute()
    logger.info(f"Updated AI preferences for user {user_id}", extra={"user_id": str(user_id)})
    return current
