"""Stateless generation: transcript in, documents out, nothing persisted."""

from fastapi import APIRouter, Depends, Request

from ..config import settings
from ..dependencies import get_orchestrator
from ..rate_limit import limiter
from ..resumes.schemas import GenerateRequest
from .orchestrator import GenerationOrchestrator

router = APIRouter(tags=["generation"])


@router.post("/generate")
@limiter.limit(settings.rate_limit_generate)
async def generate(
    request: Request,
    payload: GenerateRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    output = await orchestrator.generate(payload.conversation_history)
    return output.model_dump(mode="json", by_alias=True)
