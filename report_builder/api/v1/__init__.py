"""API v1 router aggregation."""

from fastapi import APIRouter

from report_builder.api.v1 import reporting

api_router = APIRouter()

# Include module routers
api_router.include_router(reporting.router, prefix="/reporting", tags=["reporting"])
