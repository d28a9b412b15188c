"""Routes API / API routes."""

from fastapi import APIRouter

from app.api import branches

api_router = APIRouter(prefix="/api")

api_router.include_router(branches.router, prefix="/branches", tags=["branches"])
