from fastapi import APIRouter

from timetravel.api.v2.endpoints import resources

# Create API router
api_router = APIRouter()

api_router.include_router(resources.router, tags=["Records"])

__all__ = ["api_router"]
