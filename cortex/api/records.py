"""API endpoints for POV/TRR records."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from pydantic import BaseModel

from cortex.api.gateway_helpers import raise_for_result
from cortex.core.auth_middleware import AuthContext, require_auth
from cortex.core.data_gateway import FederatedDataGateway, get_gateway
from cortex.core.logging import get_logger
from cortex.core.schemas_records import Record, RecordCreate, RecordKind, RecordPatch
from cortex.core.schemas_suggestions import Suggestion

logger = get_logger(__name__)

router = APIRouter(prefix="/records")


# ============================================================================
# Response Models
# ============================================================================


class RecordViewResponse(BaseModel):
    """A record with the suggestions the caller may see."""

    record: Record
    suggestions: list[Suggestion]
    disclaimer_required: bool


class RecordListResponse(BaseModel):
    """Response for listing records."""

    records: list[Record]
    total: int


# ============================================================================
# Endpoints
# ============================================================================


@router.get("", response_model=RecordListResponse)
async def list_records(
    kind: RecordKind | None = Query(None, description="Filter by record kind"),
    limit: int = Query(50, ge=1, le=500, description="Maximum records to return"),
    auth: AuthContext = Depends(require_auth),
    gateway: FederatedDataGateway = Depends(get_gateway),
) -> RecordListResponse:
    """
    List every record the caller can read.

    Args:
        kind: Optional filter by kind
        limit: Maximum records (capped by MAX_LIST_LIMIT)

    Returns:
        Accessible records, most recently updated first
    """
    try:
        records = gateway.list_accessible(auth.user, kind=kind, limit=limit)
        return RecordListResponse(records=records, total=len(records))

    except Exception as e:
        logger.exception(f"Error listing records: {e}")
        raise HTTPException(status_code=500, detail="Failed to list records") from e


@router.post("", response_model=Record, status_code=status.HTTP_201_CREATED)
async def create_record(
    body: RecordCreate,
    auth: AuthContext = Depends(require_auth),
    gateway: FederatedDataGateway = Depends(get_gateway),
) -> Record:
    """Create a record owned by the caller."""
    try:
        return gateway.create(auth.user, body)

    except Exception as e:
        logger.exception(f"Error creating record: {e}")
        raise HTTPException(status_code=500, detail="Failed to create record") from e


@router.get("/{record_id}", response_model=RecordViewResponse)
async def get_record(
    record_id: UUID = Path(..., description="Record UUID"),
    auth: AuthContext = Depends(require_auth),
    gateway: FederatedDataGateway = Depends(get_gateway),
) -> RecordViewResponse:
    """
    Get a record with its ready suggestions.

    Suggestions are withheld (disclaimer_required=true) until the caller has
    acknowledged the current AI content policy.
    """
    try:
        result = gateway.fetch(auth.user, record_id)
        raise_for_result(result)
        return RecordViewResponse(
            record=result.record,
            suggestions=result.suggestions,
            disclaimer_required=result.disclaimer_required,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error getting record {record_id}: {e}", extra={"record_id": str(record_id)})
        raise HTTPException(status_code=500, detail="Failed to get record") from e


@router.patch("/{record_id}", response_model=Record)
async def patch_record(
    body: RecordPatch,
    record_id: UUID = Path(..., description="Record UUID"),
    auth: AuthContext = Depends(require_auth),
    gateway: FederatedDataGateway = Depends(get_gateway),
) -> Record:
    """
    Update a record.

    Requires expected_revision. Returns 409 with the current revision when the
    record changed since it was read.
    """
    try:
        result = gateway.mutate(auth.user, record_id, body)
        raise_for_result(result)
        return result

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error updating record {record_id}: {e}", extra={"record_id": str(record_id)})
        raise HTTPException(status_code=500, detail="Failed to update record") from e


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_record(
    record_id: UUID = Path(..., description="Record UUID"),
    auth: AuthContext = Depends(require_auth),
    gateway: FederatedDataGateway = Depends(get_gateway),
) -> Response:
    """Delete a record and its suggestions."""
    try:
        result = gateway.delete(auth.user, record_id)
        raise_for_result(result)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error deleting record {record_id}: {e}", extra={"record_id": str(record_id)})
        raise HTTPException(status_code=500, detail="Failed to delete record") from e
