"""Admin API endpoints: access audit log and role management."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pydantic import BaseModel

from cortex.core.auth_middleware import AuthContext, require_admin
from cortex.core.data_gateway import FederatedDataGateway, get_gateway
from cortex.core.enrichment_orchestrator import BackgroundEnrichmentOrchestrator, get_orchestrator
from cortex.core.logging import get_logger
from cortex.core.results import Denied, NotFound
from cortex.core.schemas_auth import RoleChangeRequest, User

logger = get_logger(__name__)

router = APIRouter(prefix="/admin")


class AccessLogResponse(BaseModel):
    """Access log entries, newest first."""

    entries: list[dict[str, Any]]
    total: int


@router.get("/access-logs", response_model=AccessLogResponse)
async def list_access_logs(
    user_id: UUID | None = Query(None, description="Filter by acting user"),
    record_id: UUID | None = Query(None, description="Filter by record"),
    limit: int = Query(100, ge=1, le=1000),
    auth: AuthContext = Depends(require_admin),
    gateway: FederatedDataGateway = Depends(get_gateway),
) -> AccessLogResponse:
    """List access decisions recorded by the gateway."""
    try:
        entries = gateway.get_access_logs(auth.user, user_id=user_id, record_id=record_id, limit=limit)
        if isinstance(entries, Denied):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
        return AccessLogResponse(entries=entries, total=len(entries))

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error listing access logs: {e}")
        raise HTTPException(status_code=500, detail="Failed to list access logs") from e


@router.patch("/users/{user_id}/role", response_model=User)
async def change_user_role(
    body: RoleChangeRequest,
    user_id: UUID = Path(..., description="User UUID"),
    auth: AuthContext = Depends(require_admin),
    gateway: FederatedDataGateway = Depends(get_gateway),
) -> User:
    """Change a user's role."""
    try:
        result = gateway.change_role(auth.user, user_id, body.role)
        if isinstance(result, Denied):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
        if isinstance(result, NotFound):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        logger.info(
            f"Admin {auth.user_id} set role of {user_id} to {body.role.value}",
            extra={"user_id": str(user_id)},
        )
        return result

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error changing role: {e}", extra={"user_id": str(user_id)})
        raise HTTPException(status_code=500, detail="Failed to change role") from e


@router.get("/enrichment/stats")
async def get_enrichment_stats(
    auth: AuthContext = Depends(require_admin),
    orchestrator: BackgroundEnrichmentOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Background enrichment worker statistics."""
    return orchestrator.stats
