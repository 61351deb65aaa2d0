"""
API Router Aggregator.

Combines the v1 routers into a single router for the main app.
"""

from fastapi import APIRouter

from app.api.v1 import auth

api_router = APIRouter()

api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"],
)
