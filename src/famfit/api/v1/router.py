"""Primary API router definition."""

from fastapi import APIRouter

from . import changes, points, redemptions

api_router = APIRouter()

api_router.include_router(points.router)
api_router.include_router(redemptions.router)
api_router.include_router(changes.router)


@api_router.get("/health", tags=["health"])
async def healthcheck() -> dict[str, str]:
    """Basic health probe endpoint."""
    return {"status": "ok"}
