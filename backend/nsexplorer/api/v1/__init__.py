"""API v1 router that aggregates all sub-routers."""

from fastapi import APIRouter

from nsexplorer.api.v1.builders import router as builders_router
from nsexplorer.api.v1.namespaces import router as namespaces_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(namespaces_router)
api_router.include_router(builders_router)
