"""Main API router aggregating all endpoints."""

from fastapi import APIRouter

from search_sync.api import routes

router = APIRouter(prefix="/v1")

router.include_router(routes.router, tags=["sync"])
