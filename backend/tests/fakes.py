"""Test doubles and sample documents shared by the test modules."""

import json
from datetime import UTC, datetime, timedelta

from careermirror.integrations.anthropic_client import GenerationRequest

RESUME_DATA = {
    "personalInfo": {"name": "Ada Lovelace", "email": "ada@example.com", "phone": "", "location": "London"},
    "summary": "Analytical engineer who turns ideas into working machines.",
    "experience": [
        {
            "company": "Analytical Engines Ltd",
            "position": "Lead Programmer",
            "duration": "1842 - 1843",
            "achievements": ["Published the first algorithm for a computing machine"],
            "skills": ["Mathematics"],
        }
    ],
    "education": [{"institution": "Home tutoring", "degree": "Mathematics", "field": "", "year": "1835"}],
    "skills": {"technical": ["Algorithms", "Mathematics"], "soft": ["Writing"]},
    "projects": [
        {
            "title": "Note G",
            "description": "Bernoulli numbers on the Analytical Engine",
            "technologies": ["Punched cards"],
            "impact": "Foundation of computer programming",
        }
    ],
}

INSIGHTS_DATA = {
    "personalityProfile": {"workStyle": "Visionary Analyst", "strengths": ["Abstraction"], "preferences": ["Depth"]},
    "idealRoles": [
        {"title": "Research Engineer", "reasoning": "Loves first principles", "matchScore": 92},
        {"title": "Compiler Engineer", "reasoning": "Thinks in transformations", "matchScore": 88},
        {"title": "Technical Writer", "reasoning": "Explains complex machines clearly", "matchScore": 80},
        {"title": "Data Scientist", "reasoning": "Comfortable with numbers", "matchScore": 75},
    ],
    "environments": {"preferred": ["Research labs"], "toAvoid": ["Rigid hierarchies"]},
    "careerPath": {"shortTerm": ["Publish more notes"], "longTerm": ["Lead a research group"]},
    "redFlags": ["No time for deep work"],
    "recommendations": ["Build a portfolio of annotated algorithms"],
}


class FakeClock:
    """Deterministic, manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeGenerationClient:
    """Scripted generation client: one canned response (or exception) per tool name."""

    def __init__(self, responses: dict | None = None, model_id: str = "test-model") -> None:
        self.model_id = model_id
        self.responses = responses if responses is not None else {
            "professional_resume": json.dumps(RESUME_DATA),
            "career_insights": json.dumps(INSIGHTS_DATA),
        }
        self.requests: list[GenerationRequest] = []

    async def generate_json(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        outcome = self.responses[request.name]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeChatClient:
    def __init__(self, answer: str = "Tell me about your last role.", error: Exception | None = None) -> None:
        self.answer = answer
        self.error = error
        self.calls: list[dict] = []

    async def chat(self, system_prompt, messages, temperature):
        self.calls.append({"system": system_prompt, "messages": messages, "temperature": temperature})
        if self.error:
            raise self.error
        return self.answer
