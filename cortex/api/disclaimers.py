"""API endpoints for AI content disclaimer acknowledgments."""

from fastapi import APIRouter, Depends, HTTPException

from cortex.core.auth_middleware import AuthContext, require_auth
from cortex.core.disclaimer_gate import DisclaimerGate, get_disclaimer_gate
from cortex.core.logging import get_logger
from cortex.core.schemas_disclaimer import (
    AcknowledgeRequest,
    DisclaimerAcknowledgment,
    DisclaimerStatus,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/disclaimers")


@router.get("/status", response_model=DisclaimerStatus)
async def get_disclaimer_status(
    auth: AuthContext = Depends(require_auth),
    gate: DisclaimerGate = Depends(get_disclaimer_gate),
) -> DisclaimerStatus:
    """Whether the caller must acknowledge the current AI content policy."""
    try:
        return DisclaimerStatus(
            policy_version=gate.policy_version,
            requires_acknowledgment=gate.requires_acknowledgment(auth.user_id),
        )

    except Exception as e:
        logger.exception(f"Error checking disclaimer status: {e}")
        raise HTTPException(status_code=500, detail="Failed to check disclaimer status") from e


@router.post("/acknowledge", response_model=DisclaimerAcknowledgment)
async def acknowledge_disclaimer(
    body: AcknowledgeRequest | None = None,
    auth: AuthContext = Depends(require_auth),
    gate: DisclaimerGate = Depends(get_disclaimer_gate),
) -> DisclaimerAcknowledgment:
    """Acknowledge a policy version (the current one if omitted). Idempotent."""
    policy_version = body.policy_version if body else None
    try:
        return gate.acknowledge(auth.user_id, policy_version)

    except Exception as e:
        logger.exception(f"Error acknowledging disclaimer: {e}", extra={"user_id": str(auth.user_id)})
        raise HTTPException(status_code=500, detail="Failed to acknowledge disclaimer") from e
