"""Tests for the generation orchestrator (concurrency, validation, caching)."""

import asyncio
import json

import anthropic
import httpx
import pytest
from fakes import INSIGHTS_DATA, RESUME_DATA, FakeGenerationClient
from pydantic import ValidationError

from careermirror.errors import GenerationFailed, InsufficientInput
from careermirror.generation.orchestrator import GenerationOrchestrator, render_transcript
from careermirror.generation.schemas import FinalOutput, Message


class DictCache:
    def __init__(self):
        self.data = {}

    def get_json(self, key):
        return self.data.get(key)

    def set_json(self, key, data, ttl):
        self.data[key] = data


class SlowInsightsClient(FakeGenerationClient):
    """Resume call fails immediately, insights call finishes later."""

    def __init__(self):
        super().__init__()
        self.insights_finished = False

    async def generate_json(self, request):
        self.requests.append(request)
        if request.name == "professional_resume":
            raise RuntimeError("boom")
        await asyncio.sleep(0.05)
        self.insights_finished = True
        return json.dumps(INSIGHTS_DATA)


class RendezvousClient(FakeGenerationClient):
    """Each call waits until both calls are in flight, so sequential issue times out."""

    def __init__(self):
        super().__init__()
        self.in_flight = 0
        self.peak = 0
        self.both_started = asyncio.Event()

    async def generate_json(self, request):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        if self.in_flight == 2:
            self.both_started.set()
        try:
            await asyncio.wait_for(self.both_started.wait(), timeout=1.0)
            return await super().generate_json(request)
        finally:
            self.in_flight -= 1


class TestRenderTranscript:
    def test_roles_and_separators(self):
        transcript = [Message(role="model", text="Hello"), Message(role="user", text="Hi there")]
        assert render_transcript(transcript) == "Assistant: Hello\n\nUser: Hi there"


class TestGenerate:
    @pytest.mark.asyncio
    async def test_success(self, orchestrator, generation_client, transcript):
        output = await orchestrator.generate(transcript)
        assert isinstance(output, FinalOutput)
        assert output.professional_resume.personal_info.name == "Ada Lovelace"
        assert len(output.career_insights.ideal_roles) == 4
        assert sorted(r.name for r in generation_client.requests) == ["career_insights", "professional_resume"]

    @pytest.mark.asyncio
    async def test_requests_carry_prompt_and_schema(self, orchestrator, generation_client, transcript):
        await orchestrator.generate(transcript)
        request = next(r for r in generation_client.requests if r.name == "career_insights")
        assert "User: I write programs for the Analytical Engine." in request.prompt
        assert "idealRoles" in request.schema["properties"]
        assert request.max_output_tokens == 8192

    @pytest.mark.asyncio
    async def test_output_is_immutable(self, orchestrator, transcript):
        output = await orchestrator.generate(transcript)
        with pytest.raises(ValidationError):
            output.professional_resume = None

    @pytest.mark.asyncio
    async def test_single_message_makes_no_calls(self, orchestrator, generation_client):
        with pytest.raises(InsufficientInput):
            await orchestrator.generate([Message(role="user", text="Hi")])
        assert generation_client.requests == []

    @pytest.mark.asyncio
    async def test_empty_transcript(self, orchestrator, generation_client):
        with pytest.raises(InsufficientInput):
            await orchestrator.generate([])
        assert generation_client.requests == []

    @pytest.mark.asyncio
    async def test_insights_schema_violation_fails_whole_generation(self, transcript):
        bad_insights = dict(INSIGHTS_DATA, idealRoles=INSIGHTS_DATA["idealRoles"][:2])
        client = FakeGenerationClient(
            {"professional_resume": json.dumps(RESUME_DATA), "career_insights": json.dumps(bad_insights)}
        )
        with pytest.raises(GenerationFailed):
            await GenerationOrchestrator(client).generate(transcript)

    @pytest.mark.asyncio
    async def test_match_score_out_of_range(self, transcript):
        roles = [dict(r, matchScore=120) for r in INSIGHTS_DATA["idealRoles"]]
        client = FakeGenerationClient(
            {
                "professional_resume": json.dumps(RESUME_DATA),
                "career_insights": json.dumps(dict(INSIGHTS_DATA, idealRoles=roles)),
            }
        )
        with pytest.raises(GenerationFailed):
            await GenerationOrchestrator(client).generate(transcript)

    @pytest.mark.asyncio
    async def test_missing_project_impact(self, transcript):
        projects = [{"title": "x", "description": "y", "technologies": []}]
        client = FakeGenerationClient(
            {
                "professional_resume": json.dumps(dict(RESUME_DATA, projects=projects)),
                "career_insights": json.dumps(INSIGHTS_DATA),
            }
        )
        with pytest.raises(GenerationFailed):
            await GenerationOrchestrator(client).generate(transcript)

    @pytest.mark.asyncio
    async def test_transport_error(self, transcript):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client = FakeGenerationClient(
            {
                "professional_resume": anthropic.APIConnectionError(request=request),
                "career_insights": json.dumps(INSIGHTS_DATA),
            }
        )
        with pytest.raises(GenerationFailed):
            await GenerationOrchestrator(client).generate(transcript)

    @pytest.mark.asyncio
    async def test_empty_response(self, transcript):
        client = FakeGenerationClient(
            {"professional_resume": "", "career_insights": json.dumps(INSIGHTS_DATA)}
        )
        with pytest.raises(GenerationFailed):
            await GenerationOrchestrator(client).generate(transcript)

    @pytest.mark.asyncio
    async def test_fenced_json_accepted(self, transcript):
        client = FakeGenerationClient(
            {
                "professional_resume": "```json\n" + json.dumps(RESUME_DATA) + "\n```",
                "career_insights": json.dumps(INSIGHTS_DATA)[:-1] + ",}",
            }
        )
        output = await GenerationOrchestrator(client).generate(transcript)
        assert output.career_insights.personality_profile.work_style == "Visionary Analyst"

    @pytest.mark.asyncio
    async def test_unknown_fields_preserved(self, transcript):
        client = FakeGenerationClient(
            {
                "professional_resume": json.dumps(dict(RESUME_DATA, awards=["Royal Society"])),
                "career_insights": json.dumps(INSIGHTS_DATA),
            }
        )
        output = await GenerationOrchestrator(client).generate(transcript)
        assert output.model_dump(by_alias=True)["professionalResume"]["awards"] == ["Royal Society"]

    @pytest.mark.asyncio
    async def test_waits_for_both_calls_before_failing(self, transcript):
        client = SlowInsightsClient()
        with pytest.raises(GenerationFailed):
            await GenerationOrchestrator(client).generate(transcript)
        assert client.insights_finished

    @pytest.mark.asyncio
    async def test_both_calls_in_flight_together(self, transcript):
        client = RendezvousClient()
        output = await GenerationOrchestrator(client).generate(transcript)
        assert client.peak == 2
        assert output.career_insights.personality_profile.work_style == "Visionary Analyst"


class TestCaching:
    @pytest.mark.asyncio
    async def test_second_generation_served_from_cache(self, transcript):
        client = FakeGenerationClient()
        orchestrator = GenerationOrchestrator(client, cache=DictCache())
        first = await orchestrator.generate(transcript)
        second = await orchestrator.generate(transcript)
        assert first == second
        assert len(client.requests) == 2

    @pytest.mark.asyncio
    async def test_failures_not_cached(self, transcript):
        cache = DictCache()
        client = FakeGenerationClient({"professional_resume": "", "career_insights": ""})
        with pytest.raises(GenerationFailed):
            await GenerationOrchestrator(client, cache=cache).generate(transcript)
        assert cache.data == {}

    @pytest.mark.asyncio
    async def test_different_transcripts_different_keys(self, transcript):
        cache = DictCache()
        orchestrator = GenerationOrchestrator(FakeGenerationClient(), cache=cache)
        await orchestrator.generate(transcript)
        await orchestrator.generate([*transcript, Message(role="user", text="One more thing")])
        assert len(cache.data) == 2
