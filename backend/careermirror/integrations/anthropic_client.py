"""Anthropic API client for schema-constrained generation and interview chat.

Structured output is requested by forcing a single tool whose input schema is the
target document schema. Replies that come back as plain text go through a JSON repair
pipeline before being handed to validation.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol

import anthropic

logger = logging.getLogger(__name__)

PRICING = {
    "claude-haiku-4-5-20251001": {"input": 0.80, "output": 4.00},
    "claude-sonnet-4-5-20250929": {"input": 3.00, "output": 15.00},
}

CHAT_MAX_TOKENS = 1024


class EmptyResponse(Exception):
    """The model returned neither tool input nor text."""


@dataclass(frozen=True)
class GenerationRequest:
    name: str
    system_prompt: str
    prompt: str
    schema: dict[str, Any]
    temperature: float
    max_output_tokens: int


class GenerationClient(Protocol):
    """Structured generation: returns the response as JSON text, or raises."""

    model_id: str

    async def generate_json(self, request: GenerationRequest) -> str: ...


class ChatClient(Protocol):
    async def chat(self, system_prompt: str, messages: list[dict[str, str]], temperature: float) -> str: ...


def _calculate_cost(usage: anthropic.types.Usage, model_id: str) -> float:
    pricing = PRICING.get(model_id, PRICING["claude-sonnet-4-5-20250929"])
    input_cost = (usage.input_tokens / 1_000_000) * pricing["input"]
    output_cost = (usage.output_tokens / 1_000_000) * pricing["output"]
    return round(input_cost + output_cost, 6)


def _strip_markdown_wrapper(text: str) -> str:
    """Remove ```json ... ``` fences."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
        if "```" in text:
            text = text.rsplit("```", 1)[0]
        text = text.strip()
    return text


def _clean_json_text(text: str) -> str:
    """Fix the syntax slips models make most often."""
    text = re.sub(r",\s*([}\]])", r"\1", text)
    text = re.sub(r"\bNaN\b", "null", text)
    text = re.sub(r"-?\bInfinity\b", "null", text)
    return text


def _escape_newlines_in_strings(text: str) -> str:
    """Escape raw line breaks that appear inside string literals."""
    out: list[str] = []
    in_string = escaped = False
    for ch in text:
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            in_string = not in_string
        elif in_string and ch in "\r\n":
            if ch == "\n":
                out.append("\\n")
            continue
        out.append(ch)
    return "".join(out)


def extract_json(raw_text: str) -> dict[str, Any]:
    """Parse a JSON object out of a model reply.

    Tries, in order: the text as-is (fences stripped), common syntax fixes, the
    outermost ``{ ... }`` block, then that block with raw newlines escaped.
    Raises json.JSONDecodeError when nothing parses, ValueError when the JSON is not an object.
    """
    text = _strip_markdown_wrapper(raw_text)
    candidates = [text, _clean_json_text(text)]
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        fragment = text[start : end + 1]
        candidates.append(_clean_json_text(fragment))
        candidates.append(_clean_json_text(_escape_newlines_in_strings(fragment)))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if not isinstance(parsed, dict):
            raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
        return parsed

    raise json.JSONDecodeError("No valid JSON found in model response", text[:200], 0)


class AnthropicGenerationClient:
    """Async Anthropic client with a bounded timeout and retry budget."""

    def __init__(
        self,
        api_key: str,
        model_id: str,
        chat_model_id: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self.model_id = model_id
        self.chat_model_id = chat_model_id
        self._client = client or anthropic.AsyncAnthropic(
            api_key=api_key, timeout=timeout, max_retries=max_retries
        )

    async def generate_json(self, request: GenerationRequest) -> str:
        message = await self._client.messages.create(
            model=self.model_id,
            max_tokens=request.max_output_tokens,
            temperature=request.temperature,
            system=request.system_prompt,
            messages=[{"role": "user", "content": request.prompt}],
            tools=[
                {
                    "name": request.name,
                    "description": f"Record the generated {request.name.replace('_', ' ')} document.",
                    "input_schema": request.schema,
                }
            ],
            tool_choice={"type": "tool", "name": request.name},
        )
        logger.info(
            "Generation %s: %d in / %d out tokens, $%.4f (stop=%s)",
            request.name,
            message.usage.input_tokens,
            message.usage.output_tokens,
            _calculate_cost(message.usage, self.model_id),
            message.stop_reason,
        )

        for block in message.content:
            if block.type == "tool_use":
                return json.dumps(block.input, ensure_ascii=False)

        text = "".join(block.text for block in message.content if block.type == "text")
        if not text.strip():
            raise EmptyResponse(f"Empty response for {request.name}")
        logger.warning("Generation %s returned text instead of tool input, extracting JSON", request.name)
        return json.dumps(extract_json(text), ensure_ascii=False)

    async def chat(self, system_prompt: str, messages: list[dict[str, str]], temperature: float) -> str:
        message = await self._client.messages.create(
            model=self.chat_model_id,
            max_tokens=CHAT_MAX_TOKENS,
            temperature=temperature,
            system=system_prompt,
            messages=messages,
        )
        return "".join(block.text for block in message.content if block.type == "text").strip()

    async def close(self) -> None:
        await self._client.close()
