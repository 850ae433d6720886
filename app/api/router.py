"""
API router aggregation.

Endpoint routers are mounted here; ``main.py`` mounts this router at
``settings.API_PREFIX``.
"""

from fastapi import APIRouter

from app.api.endpoints import donors

api_router = APIRouter()

api_router.include_router(donors.router, prefix="/donors", tags=["Donors"])
