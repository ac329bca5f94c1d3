"""
API Router v1

Combines all route modules.
"""

from fastapi import APIRouter

from tempo_guide.api.v1.routes import strava, plans

api_router = APIRouter()

api_router.include_router(strava.router, tags=["Strava"])
api_router.include_router(plans.router, tags=["Plans"])
