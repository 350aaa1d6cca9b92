"""Resume routes: list, read, save, edit, delete and generate-and-save."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Request, Response
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from ..config import settings
from ..dependencies import get_backend, get_orchestrator, get_token
from ..generation.orchestrator import GenerationOrchestrator
from ..rate_limit import limiter
from ..storage.interfaces import Backend
from . import service
from .schemas import GenerateRequest, ResumeRecord, SaveResumeRequest

router = APIRouter(prefix="/resumes", tags=["resumes"])


def _body(resume: ResumeRecord) -> dict:
    return resume.model_dump(mode="json", by_alias=True)


@router.get("")
def list_resumes(token: str | None = Depends(get_token), backend: Backend = Depends(get_backend)):
    return {"resumes": [_body(r) for r in service.list_resumes(backend, token)]}


@router.post("", status_code=201)
def save_resume(
    payload: SaveResumeRequest,
    token: str | None = Depends(get_token),
    backend: Backend = Depends(get_backend),
):
    resume = service.save_resume(backend, token, payload.to_output(), payload.conversation_history)
    return _body(resume)


@router.post("/generate", status_code=201)
@limiter.limit(settings.rate_limit_generate)
async def generate_resume(
    request: Request,
    payload: GenerateRequest,
    token: str | None = Depends(get_token),
    backend: Backend = Depends(get_backend),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    resume = await service.generate_and_save(backend, orchestrator, token, payload.conversation_history)
    return _body(resume)


@router.get("/{resume_id}")
def get_resume(
    resume_id: UUID,
    token: str | None = Depends(get_token),
    backend: Backend = Depends(get_backend),
):
    return _body(service.get_resume(backend, token, resume_id))


@router.patch("/{resume_id}")
def update_resume(
    resume_id: UUID,
    fields: dict[str, Any] = Body(...),
    token: str | None = Depends(get_token),
    backend: Backend = Depends(get_backend),
):
    try:
        resume = service.update_resume(backend, token, resume_id, fields)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc
    return _body(resume)


@router.delete("/{resume_id}", status_code=204)
def delete_resume(
    resume_id: UUID,
    token: str | None = Depends(get_token),
    backend: Backend = Depends(get_backend),
):
    service.delete_resume(backend, token, resume_id)
    return Response(status_code=204)
