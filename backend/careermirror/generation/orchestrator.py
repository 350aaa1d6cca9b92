"""Turns an interview transcript into a resume and a career insights report.

The two documents come from independent model calls issued concurrently. Both calls
settle before the outcome is decided, and the result is all-or-nothing: if either
document fails to arrive, parse or validate, the whole generation fails.
"""

import asyncio
import hashlib
import json
import logging

from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool

from ..errors import GenerationFailed, InsufficientInput
from ..integrations.anthropic_client import GenerationClient, GenerationRequest, extract_json
from ..integrations.cache import GENERATION_TTL, CacheService, NullCacheService
from ..prompts import GENERATION_SYSTEM_PROMPT, INSIGHTS_PROMPT, RESUME_PROMPT
from .schemas import CareerInsights, FinalOutput, Message, ProfessionalResume

logger = logging.getLogger(__name__)

RESUME_TOOL = "professional_resume"
INSIGHTS_TOOL = "career_insights"


def render_transcript(transcript: list[Message]) -> str:
    return "\n\n".join(
        f"{'User' if m.role == 'user' else 'Assistant'}: {m.text}" for m in transcript
    )


def transcript_hash(conversation: str, model_id: str) -> str:
    return hashlib.sha256(f"{model_id}:{conversation}".encode()).hexdigest()


def _parse(name: str, outcome: str | BaseException, model: type[BaseModel]) -> BaseModel | None:
    if isinstance(outcome, BaseException):
        logger.error("Generation %s failed: %s: %s", name, type(outcome).__name__, outcome)
        return None
    try:
        data = json.loads(outcome) if outcome.strip() else None
    except json.JSONDecodeError:
        try:
            data = extract_json(outcome)
        except ValueError:
            logger.error("Generation %s returned unparseable JSON (first_100=%r)", name, outcome[:100])
            return None
    if not isinstance(data, dict):
        logger.error("Generation %s returned no JSON object", name)
        return None
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        logger.error("Generation %s failed validation: %d error(s): %s", name, exc.error_count(), exc.errors()[:3])
        return None


class GenerationOrchestrator:
    def __init__(
        self,
        client: GenerationClient,
        cache: CacheService | None = None,
        min_turns: int = 2,
        temperature: float = 0.4,
        max_output_tokens: int = 8192,
    ) -> None:
        self._client = client
        self._cache = cache or NullCacheService()
        self._min_turns = min_turns
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens

    def _request(self, name: str, template: str, schema: type[BaseModel], conversation: str) -> GenerationRequest:
        return GenerationRequest(
            name=name,
            system_prompt=GENERATION_SYSTEM_PROMPT,
            prompt=template.format(conversation=conversation),
            schema=schema.model_json_schema(by_alias=True),
            temperature=self._temperature,
            max_output_tokens=self._max_output_tokens,
        )

    async def generate(self, transcript: list[Message]) -> FinalOutput:
        """Raises InsufficientInput before any model call, GenerationFailed after both settle."""
        if len(transcript) < self._min_turns:
            raise InsufficientInput(
                f"At least {self._min_turns} messages are needed to generate, got {len(transcript)}"
            )

        conversation = render_transcript(transcript)
        cache_key = f"generation:{transcript_hash(conversation, self._client.model_id)[:32]}"
        cached = await run_in_threadpool(self._cache.get_json, cache_key)
        if cached:
            try:
                logger.info("Generation served from cache (%d messages)", len(transcript))
                return FinalOutput.model_validate(cached)
            except ValidationError:
                logger.warning("Discarding stale cached generation %s", cache_key)

        logger.info("Generating documents from %d messages", len(transcript))
        resume_outcome, insights_outcome = await asyncio.gather(
            self._client.generate_json(self._request(RESUME_TOOL, RESUME_PROMPT, ProfessionalResume, conversation)),
            self._client.generate_json(self._request(INSIGHTS_TOOL, INSIGHTS_PROMPT, CareerInsights, conversation)),
            return_exceptions=True,
        )

        resume = _parse(RESUME_TOOL, resume_outcome, ProfessionalResume)
        insights = _parse(INSIGHTS_TOOL, insights_outcome, CareerInsights)
        if resume is None or insights is None:
            raise GenerationFailed()

        output = FinalOutput(professional_resume=resume, career_insights=insights)
        await run_in_threadpool(
            self._cache.set_json, cache_key, output.model_dump(mode="json", by_alias=True), GENERATION_TTL
        )
        return output
