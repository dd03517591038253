"""Main API router."""

from fastapi import APIRouter, Depends

from mediahub.api.jobs import router as jobs_router
from mediahub.auth import require_job_api_key

api_router = APIRouter(prefix="/api")

api_router.include_router(
    jobs_router,
    prefix="/jobs",
    tags=["jobs"],
    dependencies=[Depends(require_job_api_key)],
)
