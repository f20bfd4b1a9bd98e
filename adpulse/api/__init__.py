"""
AdPulse API package initialization.

This package contains FastAPI router modules:
- analyze: Anomaly analysis run and daily KPI table over posted fact rows
"""

from fastapi import APIRouter

from adpulse.api.analyze import router as analyze_router

# Create main API router
api_router = APIRouter()

# analyze router has its own /analyze prefix
api_router.include_router(analyze_router)

__all__ = [
    "api_router",
    "analyze_router",
]
