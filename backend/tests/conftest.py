"""Shared test fixtures."""

from datetime import timedelta

import pytest
from fakes import INSIGHTS_DATA, RESUME_DATA, FakeClock, FakeGenerationClient

from careermirror.auth import service as auth_service
from careermirror.database.base import create_db_engine
from careermirror.generation.orchestrator import GenerationOrchestrator
from careermirror.generation.schemas import FinalOutput, Message
from careermirror.integrations.cache import NullCacheService
from careermirror.storage.local import LocalBackend


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Lowest bcrypt cost factor so signup/login tests stay fast."""
    import bcrypt

    real_gensalt = bcrypt.gensalt
    monkeypatch.setattr(bcrypt, "gensalt", lambda rounds=4, prefix=b"2b": real_gensalt(4, prefix))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend(clock):
    """Local backend on an in-memory SQLite database."""
    local = LocalBackend(create_db_engine("sqlite://"), session_ttl=timedelta(days=30), clock=clock)
    local.create_schema()
    try:
        yield local
    finally:
        local.close()


@pytest.fixture
def account(backend):
    """A signed-up free-plan user and its session token."""
    return auth_service.signup(backend, "Ada Lovelace", "ada@example.com", "correct horse battery")


@pytest.fixture
def other_account(backend):
    return auth_service.signup(backend, "Charles Babbage", "charles@example.com", "difference engine")


@pytest.fixture
def final_output():
    return FinalOutput.model_validate({"professionalResume": RESUME_DATA, "careerInsights": INSIGHTS_DATA})


@pytest.fixture
def transcript():
    return [
        Message(role="model", text="Hi! What do you do today?"),
        Message(role="user", text="I write programs for the Analytical Engine."),
        Message(role="model", text="What was your most impactful project?"),
        Message(role="user", text="Note G, computing Bernoulli numbers."),
    ]


@pytest.fixture
def generation_client():
    return FakeGenerationClient()


@pytest.fixture
def orchestrator(generation_client):
    return GenerationOrchestrator(generation_client, cache=NullCacheService(), min_turns=2)
