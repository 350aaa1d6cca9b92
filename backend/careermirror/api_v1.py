"""API v1 router: all JSON endpoints under /api/v1 prefix."""

from fastapi import APIRouter

from .auth.routes import router as auth_router
from .generation.routes import router as generation_router
from .interview.routes import router as interview_router
from .resumes.routes import router as resumes_router

api_v1_router = APIRouter(prefix="/api/v1", tags=["api-v1"])

api_v1_router.include_router(auth_router)
api_v1_router.include_router(resumes_router)
api_v1_router.include_router(generation_router)
api_v1_router.include_router(interview_router)
