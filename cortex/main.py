"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from cortex.api import router as api_router
from cortex.core.enrichment_orchestrator import get_orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    orchestrator = get_orchestrator()
    orchestrator.start()
    try:
        yield
    finally:
        await orchestrator.stop()


app = FastAPI(
    title="Cortex Gateway",
    description="Role-aware federated data gateway for POV/TRR records with background AI enrichment",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])
