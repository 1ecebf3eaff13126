"""Shared helpers for translating gateway results into HTTP responses."""

from typing import Any

from fastapi import HTTPException, status

from cortex.core.results import DISCLAIMER_REQUIRED, Conflict, Denied, NotFound

# Denied and NotFound share one response so callers cannot detect record existence
NOT_FOUND_DETAIL = "Record not found"
DISCLAIMER_DETAIL = "AI disclaimer must be acknowledged first"


def raise_for_result(result: Any) -> None:
    """Raise the HTTPException matching a gateway failure value, if any."""
    # Only returned after access was granted, so it reveals nothing about existence
    if isinstance(result, Denied) and result.reason == DISCLAIMER_REQUIRED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=DISCLAIMER_DETAIL)
    if isinstance(result, (Denied, NotFound)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)
    if isinstance(result, Conflict):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "Record was modified; re-fetch and retry",
                "expected_revision": result.expected_revision,
                "actual_revision": result.actual_revision,
            },
        )
