"""
API v1 Router
"""

from fastapi import APIRouter
from . import credits, listings, organizations, partnerships

router = APIRouter()

router.include_router(organizations.router, prefix="/orgs", tags=["Organizations"])
router.include_router(listings.router, prefix="/listings", tags=["Listings"])
router.include_router(partnerships.router, prefix="/partnerships", tags=["Partnerships"])
router.include_router(credits.router, prefix="/credits", tags=["Credits"])


@router.get("/", tags=["API"])
async def api_root():
    """API root — returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/orgs",
            "/listings",
            "/listings/categories",
            "/partnerships/{level}",
            "/credits",
        ],
    }
