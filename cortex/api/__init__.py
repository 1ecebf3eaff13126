"""API router for v1 endpoints."""

from fastapi import APIRouter

from cortex.api import admin, disclaimers, preferences, records, suggestions

router = APIRouter()

# Records CRUD and federated listing
router.include_router(records.router, tags=["records"])

# Background AI suggestions per record
router.include_router(suggestions.router, tags=["suggestions"])

# AI content disclaimer acknowledgments
router.include_router(disclaimers.router, tags=["disclaimers"])

# Per-user AI preferences
router.include_router(preferences.router, tags=["preferences"])

# Access logs and role management
router.include_router(admin.router, tags=["admin"])
