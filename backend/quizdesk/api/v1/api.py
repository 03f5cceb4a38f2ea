"""
API v1 router combining all v1 endpoints.
"""
from fastapi import APIRouter
from quizdesk.api.v1 import health, auth, test

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(test.router, tags=["test"])
