"""API V1 Router"""

from fastapi import APIRouter

# Import endpoint routers
from app.api.v1.endpoints import files, masjids, service_plans, maintenance

# Create API v1 router
api_router = APIRouter()

# Include endpoint routers with prefixes and tags
api_router.include_router(files.router, prefix="/files", tags=["Files"])
api_router.include_router(masjids.router, prefix="/masjids", tags=["Masjid Assets"])
api_router.include_router(service_plans.router, prefix="/service-plans", tags=["Service Plans"])
api_router.include_router(maintenance.router, prefix="/maintenance", tags=["Maintenance"])
