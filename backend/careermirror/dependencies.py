"""Shared FastAPI dependencies."""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .generation.orchestrator import GenerationOrchestrator
from .integrations.anthropic_client import ChatClient
from .storage.interfaces import Backend

bearer_scheme = HTTPBearer(auto_error=False)


def get_token(credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)) -> str | None:
    """The bearer token, if any. Validation is the AuthGuard's job."""
    return credentials.credentials if credentials else None


def get_backend(request: Request) -> Backend:
    """The storage backend selected at startup."""
    return request.app.state.backend


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    return request.app.state.orchestrator


def get_chat_client(request: Request) -> ChatClient:
    return request.app.state.chat_client
