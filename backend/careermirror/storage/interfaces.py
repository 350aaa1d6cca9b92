"""Storage contracts with Protocol pattern for dependency injection.

Both strategies (LocalBackend, RemoteBackend) implement the same set of stores, so
services and the AuthGuard never know which one is active.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol
from uuid import UUID

from ..auth.schemas import SessionRecord, UserRecord
from ..generation.schemas import FinalOutput, Message
from ..resumes.schemas import ResumeRecord


class SessionStatus(StrEnum):
    VALID = "valid"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class SessionResolution:
    status: SessionStatus
    user_id: UUID | None = None

    @classmethod
    def valid(cls, user_id: UUID) -> "SessionResolution":
        return cls(SessionStatus.VALID, user_id)


EXPIRED = SessionResolution(SessionStatus.EXPIRED)
NOT_FOUND = SessionResolution(SessionStatus.NOT_FOUND)


def session_status(session: SessionRecord | None, now: datetime) -> SessionStatus:
    if session is None:
        return SessionStatus.NOT_FOUND
    if session.expires_at <= now:
        return SessionStatus.EXPIRED
    return SessionStatus.VALID


class SessionStore(Protocol):
    """Issues, validates and expires opaque session tokens."""

    def create(self, user_id: UUID) -> str: ...
    def resolve(self, token: str) -> SessionResolution: ...
    def destroy(self, token: str) -> None: ...


class UserStore(Protocol):
    def create(self, email: str, password_hash: str, name: str | None) -> UserRecord: ...
    def get(self, user_id: UUID) -> UserRecord | None: ...
    def get_by_email(self, email: str) -> UserRecord | None: ...
    def update(self, user_id: UUID, fields: dict[str, Any]) -> UserRecord: ...


class ResumeRepository(Protocol):
    def list(self, owner_id: UUID) -> list[ResumeRecord]: ...
    def get_by_id(self, resume_id: UUID) -> ResumeRecord | None: ...
    def save(self, owner_id: UUID, content: FinalOutput, transcript: list[Message]) -> ResumeRecord: ...
    def update(self, owner_id: UUID, resume_id: UUID, fields: dict[str, Any]) -> ResumeRecord: ...
    def soft_delete(self, owner_id: UUID, resume_id: UUID) -> None: ...


class EventLog(Protocol):
    """Best-effort analytics sink. Never raises."""

    def log(self, event: str, user_id: UUID | None, metadata: dict[str, Any] | None = None) -> None: ...


class Backend(Protocol):
    name: str
    sessions: SessionStore
    users: UserStore
    resumes: ResumeRepository
    events: EventLog

    def health(self) -> bool: ...
    def close(self) -> None: ...
