"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from app.api.v1.endpoints import analytics, records

api_router = APIRouter()

# Surgical records and their lifecycle transitions
api_router.include_router(
    records.router,
    prefix="/records",
    tags=["Records"],
)

# Dashboard analytics
api_router.include_router(
    analytics.router,
    prefix="/analytics",
    tags=["Analytics"],
)
