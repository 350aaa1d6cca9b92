"""Resume use cases: every operation authenticates first, then touches storage."""

import logging
from typing import Any
from uuid import UUID

from starlette.concurrency import run_in_threadpool

from ..analytics.service import track
from ..auth.guard import AuthGuard
from ..errors import Forbidden, NotFoundOrForbidden, Unauthenticated
from ..generation.orchestrator import GenerationOrchestrator
from ..generation.schemas import FinalOutput, Message
from ..plans.policy import can_create
from ..storage.interfaces import Backend
from .schemas import ResumeRecord

logger = logging.getLogger(__name__)


def _authorize(backend: Backend, token: str | None, target_owner_id: UUID | None = None) -> UUID:
    return AuthGuard(backend.sessions).authorize(token, target_owner_id)


def _check_quota(backend: Backend, user_id: UUID) -> None:
    """Raises QuotaExceeded when the user's plan allows no further active resume."""
    user = backend.users.get(user_id)
    if user is None:
        raise Unauthenticated()
    active = len(backend.resumes.list(user_id))
    decision = can_create(user, active)
    if not decision.allowed:
        logger.info("Quota reached: user=%s plan=%s active=%d", user_id, decision.plan, active)
        track(backend.events, "quota_exceeded", user_id, plan=decision.plan, active=active)
    decision.raise_if_denied()


def list_resumes(backend: Backend, token: str | None) -> list[ResumeRecord]:
    user_id = _authorize(backend, token)
    return backend.resumes.list(user_id)


def get_resume(backend: Backend, token: str | None, resume_id: UUID) -> ResumeRecord:
    """Fetch, then authorize against the owner, then decide what to reveal.

    Missing, deleted and foreign resumes are indistinguishable to the caller; session
    problems are reported as such.
    """
    resume = backend.resumes.get_by_id(resume_id)
    try:
        _authorize(backend, token, resume.user_id if resume else None)
    except Forbidden as exc:
        raise NotFoundOrForbidden() from exc
    if resume is None or not resume.is_active:
        raise NotFoundOrForbidden()
    return resume


def save_resume(
    backend: Backend, token: str | None, content: FinalOutput, transcript: list[Message]
) -> ResumeRecord:
    user_id = _authorize(backend, token)
    _check_quota(backend, user_id)
    record = backend.resumes.save(user_id, content, transcript)
    track(backend.events, "resume_created", user_id, resume_id=str(record.id))
    return record


def update_resume(backend: Backend, token: str | None, resume_id: UUID, fields: dict[str, Any]) -> ResumeRecord:
    user_id = _authorize(backend, token)
    record = backend.resumes.update(user_id, resume_id, fields)
    track(backend.events, "resume_updated", user_id, resume_id=str(resume_id), version=record.version)
    return record


def delete_resume(backend: Backend, token: str | None, resume_id: UUID) -> None:
    user_id = _authorize(backend, token)
    backend.resumes.soft_delete(user_id, resume_id)
    track(backend.events, "resume_deleted", user_id, resume_id=str(resume_id))


async def generate_and_save(
    backend: Backend,
    orchestrator: GenerationOrchestrator,
    token: str | None,
    transcript: list[Message],
) -> ResumeRecord:
    """Check access and quota before spending a generation, then persist the result.

    Storage calls are blocking and run in the threadpool; only the generation is awaited
    on the event loop.
    """
    user_id = await run_in_threadpool(_authorize, backend, token)
    await run_in_threadpool(_check_quota, backend, user_id)
    output = await orchestrator.generate(transcript)
    record = await run_in_threadpool(backend.resumes.save, user_id, output, transcript)
    await run_in_threadpool(
        track, backend.events, "resume_generated", user_id, resume_id=str(record.id), messages=len(transcript)
    )
    return record
