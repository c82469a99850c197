"""
API v1 Router Module

All v1 endpoints are prefixed with /api/v1/

- POST /api/v1/posters     - badge an uploaded or remote image, JPEG out
- GET  /api/v1/metrics     - Prometheus metrics
- /api/v1/badge/cache      - remote badge cache inspection
"""

from fastapi import APIRouter

from src.api.v1.posters import router as posters_router
from src.api.v1.system import router as system_router

# Main v1 router
api_v1_router = APIRouter(prefix="/api/v1")

api_v1_router.include_router(posters_router, prefix="/posters", tags=["posters"])
api_v1_router.include_router(system_router, tags=["system"])
