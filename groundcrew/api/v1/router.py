"""
API v1 main router.
Aggregates all API endpoint routers.
"""
from fastapi import APIRouter
from groundcrew.api.v1.endpoints import aggregation, feeds, tasks, turnarounds

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(turnarounds.router, prefix="/turnarounds", tags=["Turnarounds"])
api_router.include_router(tasks.router, prefix="/turnarounds", tags=["Tasks"])
api_router.include_router(feeds.router, prefix="/feeds", tags=["Live Feeds"])
api_router.include_router(aggregation.router, prefix="/aggregation", tags=["Aggregation"])
