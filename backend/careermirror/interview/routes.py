"""Interview chat routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..config import settings
from ..dependencies import get_backend, get_chat_client, get_token
from ..generation.schemas import Message
from ..integrations.anthropic_client import ChatClient
from ..rate_limit import limiter
from ..resumes.service import get_resume
from ..storage.interfaces import Backend
from .service import ready_to_generate, reply, restore_transcript

router = APIRouter(prefix="/interview", tags=["interview"])


class ReplyRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    conversation_history: list[Message] = Field(default_factory=list)
    message: str = Field(..., min_length=1, max_length=10_000)


def _transcript_body(transcript: list[Message]) -> dict:
    return {
        "conversationHistory": [m.model_dump(mode="json") for m in transcript],
        "readyToGenerate": ready_to_generate(transcript),
    }


@router.post("/reply")
@limiter.limit(settings.rate_limit_chat)
async def interview_reply(
    request: Request,
    payload: ReplyRequest,
    client: ChatClient = Depends(get_chat_client),
):
    user_turn = Message(role="user", text=payload.message)
    answer = await reply(client, payload.conversation_history, payload.message)
    transcript = [*payload.conversation_history, user_turn, answer]
    return {"message": answer.model_dump(mode="json"), **_transcript_body(transcript)}


@router.get("/{resume_id}/transcript")
def resume_transcript(
    resume_id: UUID,
    token: str | None = Depends(get_token),
    backend: Backend = Depends(get_backend),
):
    """Reload the conversation behind a saved resume, to continue the interview from it."""
    return _transcript_body(restore_transcript(get_resume(backend, token, resume_id)))
