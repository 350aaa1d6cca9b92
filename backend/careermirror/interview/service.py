"""Interview chat: the conversational half of CareerMirror."""

import logging

import anthropic

from ..generation.schemas import Message
from ..integrations.anthropic_client import ChatClient
from ..prompts import INTERVIEW_OPENING, INTERVIEWER_SYSTEM_PROMPT
from ..resumes.schemas import ResumeRecord

logger = logging.getLogger(__name__)

CHAT_TEMPERATURE = 0.7
FALLBACK_CONNECTION = "I seem to be having a momentary connection issue. Could you please repeat that?"
FALLBACK_EMPTY = "I'm listening. Could you tell me more?"

# Generation is offered once the model has asked for it, or unconditionally after this many turns
READY_MIN_MESSAGES = 6
READY_MAX_MESSAGES = 10


def to_chat_messages(transcript: list[Message]) -> list[dict[str, str]]:
    """Map transcript turns to alternating user/assistant messages.

    Consecutive turns of the same role are merged and the conversation always opens
    with a user turn.
    """
    messages: list[dict[str, str]] = []
    for turn in transcript:
        role = "user" if turn.role == "user" else "assistant"
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"] += "\n\n" + turn.text
        else:
            messages.append({"role": role, "content": turn.text})
    if messages and messages[0]["role"] == "assistant":
        messages.insert(0, {"role": "user", "content": INTERVIEW_OPENING})
    return messages


async def reply(client: ChatClient, transcript: list[Message], text: str) -> Message:
    """Send the user's message and return the interviewer's answer as a new turn."""
    messages = to_chat_messages([*transcript, Message(role="user", text=text)])
    try:
        answer = await client.chat(INTERVIEWER_SYSTEM_PROMPT, messages, CHAT_TEMPERATURE)
    except anthropic.APIError:
        logger.warning("Interview chat call failed", exc_info=True)
        return Message(role="model", text=FALLBACK_CONNECTION)
    return Message(role="model", text=answer or FALLBACK_EMPTY)


def ready_to_generate(transcript: list[Message]) -> bool:
    if len(transcript) >= READY_MAX_MESSAGES:
        return True
    if len(transcript) < READY_MIN_MESSAGES:
        return False
    last_model = next((m for m in reversed(transcript) if m.role == "model"), None)
    return last_model is not None and "generate" in last_model.text.lower()


def restore_transcript(resume: ResumeRecord) -> list[Message]:
    """The conversation saved with a resume, replacing whatever is in progress."""
    return [m.model_copy() for m in resume.conversation_history]
