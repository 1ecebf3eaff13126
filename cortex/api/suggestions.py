"""API endpoints for background AI suggestions on records."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, status
from pydantic import BaseModel

from cortex.api.gateway_helpers import raise_for_result
from cortex.core.auth_middleware import AuthContext, require_auth
from cortex.core.data_gateway import FederatedDataGateway, get_gateway
from cortex.core.logging import get_logger
from cortex.core.schemas_records import Record
from cortex.core.schemas_suggestions import (
    AcceptSuggestionRequest,
    RefreshSuggestionsRequest,
    Suggestion,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/records/{record_id}/suggestions")


class SuggestionListResponse(BaseModel):
    """Ready suggestions for a record."""

    record_id: UUID
    suggestions: list[Suggestion]
    disclaimer_required: bool


class RefreshSuggestionsResponse(BaseModel):
    """Cycles scheduled by a refresh request."""

    record_id: UUID
    cycle_ids: list[UUID]


@router.get("", response_model=SuggestionListResponse)
async def list_suggestions(
    record_id: UUID = Path(..., description="Record UUID"),
    auth: AuthContext = Depends(require_auth),
    gateway: FederatedDataGateway = Depends(get_gateway),
) -> SuggestionListResponse:
    """List ready suggestions for a record the caller can read."""
    try:
        result = gateway.fetch(auth.user, record_id)
        raise_for_result(result)
        return SuggestionListResponse(
            record_id=record_id,
            suggestions=result.suggestions,
            disclaimer_required=result.disclaimer_required,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error listing suggestions: {e}", extra={"record_id": str(record_id)})
        raise HTTPException(status_code=500, detail="Failed to list suggestions") from e


@router.post(
    "/refresh",
    response_model=RefreshSuggestionsResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def refresh_suggestions(
    body: RefreshSuggestionsRequest | None = None,
    record_id: UUID = Path(..., description="Record UUID"),
    auth: AuthContext = Depends(require_auth),
    gateway: FederatedDataGateway = Depends(get_gateway),
) -> RefreshSuggestionsResponse:
    """
    Recompute suggestions in the background.

    Returns immediately; poll GET /suggestions for results.
    """
    body = body or RefreshSuggestionsRequest()
    try:
        result = gateway.refresh_suggestions(auth.user, record_id, body.kinds)
        raise_for_result(result)
        return RefreshSuggestionsResponse(record_id=record_id, cycle_ids=result)

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error refreshing suggestions: {e}", extra={"record_id": str(record_id)})
        raise HTTPException(status_code=500, detail="Failed to refresh suggestions") from e


@router.post("/{suggestion_id}/accept", response_model=Record)
async def accept_suggestion(
    body: AcceptSuggestionRequest,
    record_id: UUID = Path(..., description="Record UUID"),
    suggestion_id: UUID = Path(..., description="Suggestion UUID"),
    auth: AuthContext = Depends(require_auth),
    gateway: FederatedDataGateway = Depends(get_gateway),
) -> Record:
    """
    Apply a ready suggestion to the record.

    Requires write access and an acknowledged AI disclaimer. The record
    write is revision-checked like PATCH /records/{id}.
    """
    try:
        result = gateway.accept_suggestion(
            auth.user, record_id, suggestion_id, body.expected_revision
        )
        raise_for_result(result)
        return result

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(
            f"Error accepting suggestion {suggestion_id}: {e}",
            extra={"record_id": str(record_id)},
        )
        raise HTTPException(status_code=500, detail="Failed to accept suggestion") from e


@router.post("/{suggestion_id}/reject", response_model=Suggestion)
async def reject_suggestion(
    record_id: UUID = Path(..., description="Record UUID"),
    suggestion_id: UUID = Path(..., description="Suggestion UUID"),
    auth: AuthContext = Depends(require_auth),
    gateway: FederatedDataGateway = Depends(get_gateway),
) -> Suggestion:
    """Dismiss a ready suggestion. It no longer appears in reads."""
    try:
        result = gateway.reject_suggestion(auth.user, record_id, suggestion_id)
        raise_for_result(result)
        return result

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(
            f"Error rejecting suggestion {suggestion_id}: {e}",
            extra={"record_id": str(record_id)},
        )
        raise HTTPException(status_code=500, detail="Failed to reject suggestion") from e
