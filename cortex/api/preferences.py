"""API endpoints for per-user background AI preferences."""

from fastapi import APIRouter, Depends, HTTPException

from cortex.core.auth_middleware import AuthContext, require_auth
from cortex.core.logging import get_logger
from cortex.core.schemas_suggestions import AIPreferences, AIPreferencesUpdate
from cortex.db import ai_preferences as ai_preferences_db

logger = get_logger(__name__)

router = APIRouter(prefix="/preferences")


@router.get("/ai", response_model=AIPreferences)
async def get_ai_preferences(
    auth: AuthContext = Depends(require_auth),
) -> AIPreferences:
    """Get the caller's AI preferences (defaults if never set)."""
    try:
        return AIPreferences(**ai_preferences_db.get_ai_preferences(auth.user_id))

    except Exception as e:
        logger.exception(f"Error getting AI preferences: {e}", extra={"user_id": str(auth.user_id)})
        raise HTTPException(status_code=500, detail="Failed to get AI preferences") from e


@router.patch("/ai", response_model=AIPreferences)
async def update_ai_preferences(
    body: AIPreferencesUpdate,
    auth: AuthContext = Depends(require_auth),
) -> AIPreferences:
    """
    Update the caller's AI preferences.

    Setting enable_background_ai=false stops all new background suggestion
    work for records the caller writes.
    """
    try:
        changes = body.model_dump(exclude_none=True, mode="json")
        stored = ai_preferences_db.update_ai_preferences(auth.user_id, changes)
        return AIPreferences(**stored)

    except Exception as e:
        logger.exception(f"Error updating AI preferences: {e}", extra={"user_id": str(auth.user_id)})
        raise HTTPException(status_code=500, detail="Failed to update AI preferences") from e
