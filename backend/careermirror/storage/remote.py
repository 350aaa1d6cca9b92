"""Remote storage strategy: a managed Postgres reached through its PostgREST API.

Rows travel with snake_case column names and are mapped to camelCase records through
``storage.mapping``. Every HTTP call is bounded by the client timeout; transport errors
and unexpected statuses surface as StorageError.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import httpx
from pydantic_core import to_jsonable_python

from ..auth.schemas import SessionRecord, UserRecord
from ..errors import DuplicateUser, NotFoundOrForbidden, StorageError
from ..generation.schemas import FinalOutput, Message
from ..resumes.schemas import VERSIONED_FIELDS, ResumeRecord, new_resume_values, update_values
from .clock import touch, utcnow
from .interfaces import EXPIRED, NOT_FOUND, SessionResolution, SessionStatus, session_status
from .local import USER_FIELDS
from .mapping import from_columns, to_columns

logger = logging.getLogger(__name__)

USERS_TABLE = "profiles"
SESSIONS_TABLE = "sessions"
RESUMES_TABLE = "resumes"
EVENTS_TABLE = "analytics"


class RemoteConflict(StorageError):
    """Unique constraint violated on the remote backend."""


def _eq(value: Any) -> str:
    return f"eq.{value}"


class RestClient:
    """Minimal PostgREST table client."""

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def select(self, table: str, filters: dict[str, str], **params: str) -> list[dict[str, Any]]:
        return self._send("GET", table, params={"select": "*", **filters, **params})

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        rows = self._send("POST", table, json=row, representation=True)
        if not rows:
            raise StorageError(f"Insert into {table} returned no row")
        return rows[0]

    def update(self, table: str, filters: dict[str, str], values: dict[str, Any]) -> list[dict[str, Any]]:
        return self._send("PATCH", table, params=filters, json=values, representation=True)

    def delete(self, table: str, filters: dict[str, str]) -> None:
        self._send("DELETE", table, params=filters)

    def close(self) -> None:
        self._client.close()

    def _send(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        representation: bool = False,
    ) -> list[dict[str, Any]]:
        headers = {"Prefer": "return=representation"} if representation else {}
        try:
            response = self._client.request(
                method,
                f"/{table}",
                params=params,
                json=to_jsonable_python(json) if json is not None else None,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.error("Remote %s %s failed: %s", method, table, exc)
            raise StorageError(f"Remote backend unreachable ({table})") from exc

        if response.status_code == 409:
            raise RemoteConflict(f"Conflict on {table}")
        if response.status_code >= 400:
            logger.error(
                "Remote %s %s returned %d: %s", method, table, response.status_code, response.text[:200]
            )
            raise StorageError(f"Remote backend error ({table}, HTTP {response.status_code})")
        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]


class _RemoteStore:
    def __init__(self, rest: RestClient, clock: Callable[[], datetime] = utcnow) -> None:
        self._rest = rest
        self._clock = clock


class RemoteSessionStore(_RemoteStore):
    def __init__(self, rest: RestClient, ttl: timedelta, clock: Callable[[], datetime] = utcnow) -> None:
        super().__init__(rest, clock)
        self._ttl = ttl

    def create(self, user_id: UUID) -> str:
        token = secrets.token_urlsafe(32)
        now = self._clock()
        self._rest.insert(
            SESSIONS_TABLE,
            to_columns(
                {
                    "id": uuid.uuid4(),
                    "userId": user_id,
                    "token": token,
                    "createdAt": now,
                    "expiresAt": now + self._ttl,
                }
            ),
        )
        return token

    def resolve(self, token: str) -> SessionResolution:
        if not token:
            return NOT_FOUND
        rows = self._rest.select(SESSIONS_TABLE, {"token": _eq(token)}, limit="1")
        session = SessionRecord.model_validate(from_columns(rows[0])) if rows else None
        status = session_status(session, self._clock())
        if status is SessionStatus.VALID:
            return SessionResolution.valid(session.user_id)
        if status is SessionStatus.EXPIRED:
            self.destroy(token)
            logger.info("Expired session removed (user=%s)", session.user_id)
            return EXPIRED
        return NOT_FOUND

    def destroy(self, token: str) -> None:
        if token:
            self._rest.delete(SESSIONS_TABLE, {"token": _eq(token)})


class RemoteUserStore(_RemoteStore):
    def create(self, email: str, password_hash: str, name: str | None) -> UserRecord:
        email = email.strip().lower()
        if self.get_by_email(email):
            raise DuplicateUser()
        now = self._clock()
        row = to_columns(
            {
                "id": uuid.uuid4(),
                "email": email,
                "name": name,
                "passwordHash": password_hash,
                "plan": "free",
                "createdAt": now,
                "updatedAt": now,
            }
        )
        try:
            saved = self._rest.insert(USERS_TABLE, row)
        except RemoteConflict as exc:
            raise DuplicateUser() from exc
        return UserRecord.model_validate(from_columns(saved))

    def get(self, user_id: UUID) -> UserRecord | None:
        return self._find({"id": _eq(user_id)})

    def get_by_email(self, email: str) -> UserRecord | None:
        return self._find({"email": _eq(email.strip().lower())})

    def update(self, user_id: UUID, fields: dict[str, Any]) -> UserRecord:
        values = to_columns(fields)
        unknown = set(values) - USER_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")
        current = self.get(user_id)
        if current is None:
            raise NotFoundOrForbidden()
        values["updated_at"] = touch(current.updated_at, self._clock())
        rows = self._rest.update(USERS_TABLE, {"id": _eq(user_id)}, values)
        if not rows:
            raise NotFoundOrForbidden()
        return UserRecord.model_validate(from_columns(rows[0]))

    def _find(self, filters: dict[str, str]) -> UserRecord | None:
        rows = self._rest.select(USERS_TABLE, filters, limit="1")
        return UserRecord.model_validate(from_columns(rows[0])) if rows else None


class RemoteResumeRepository(_RemoteStore):
    def list(self, owner_id: UUID) -> list[ResumeRecord]:
        rows = self._rest.select(
            RESUMES_TABLE,
            {"user_id": _eq(owner_id), "is_active": _eq("true")},
            order="updated_at.desc",
        )
        return [ResumeRecord.model_validate(from_columns(r)) for r in rows]

    def get_by_id(self, resume_id: UUID) -> ResumeRecord | None:
        rows = self._rest.select(RESUMES_TABLE, {"id": _eq(resume_id)}, limit="1")
        return ResumeRecord.model_validate(from_columns(rows[0])) if rows else None

    def save(self, owner_id: UUID, content: FinalOutput, transcript: list[Message]) -> ResumeRecord:
        now = self._clock()
        row = {**new_resume_values(owner_id, content, transcript), "id": uuid.uuid4(), "created_at": now, "updated_at": now}
        saved = self._rest.insert(RESUMES_TABLE, to_columns(row))
        record = ResumeRecord.model_validate(from_columns(saved))
        logger.info("Resume saved: id=%s owner=%s title=%r", record.id, owner_id, record.title)
        return record

    def update(self, owner_id: UUID, resume_id: UUID, fields: dict[str, Any]) -> ResumeRecord:
        values = update_values(fields)
        current = self._owned_active(owner_id, resume_id)
        if VERSIONED_FIELDS & values.keys():
            values["version"] = current.version + 1
        values["updated_at"] = touch(current.updated_at, self._clock())
        rows = self._rest.update(RESUMES_TABLE, self._owned_filters(owner_id, resume_id), to_columns(values))
        if not rows:
            raise NotFoundOrForbidden()
        return ResumeRecord.model_validate(from_columns(rows[0]))

    def soft_delete(self, owner_id: UUID, resume_id: UUID) -> None:
        rows = self._rest.update(RESUMES_TABLE, self._owned_filters(owner_id, resume_id), {"is_active": False})
        if not rows:
            raise NotFoundOrForbidden()
        logger.info("Resume soft-deleted: id=%s owner=%s", resume_id, owner_id)

    def _owned_active(self, owner_id: UUID, resume_id: UUID) -> ResumeRecord:
        rows = self._rest.select(RESUMES_TABLE, self._owned_filters(owner_id, resume_id), limit="1")
        if not rows:
            raise NotFoundOrForbidden()
        return ResumeRecord.model_validate(from_columns(rows[0]))

    @staticmethod
    def _owned_filters(owner_id: UUID, resume_id: UUID) -> dict[str, str]:
        return {"id": _eq(resume_id), "user_id": _eq(owner_id), "is_active": _eq("true")}


class RemoteEventLog(_RemoteStore):
    def log(self, event: str, user_id: UUID | None, metadata: dict[str, Any] | None = None) -> None:
        try:
            self._rest.insert(EVENTS_TABLE, {"user_id": user_id, "event": event, "metadata": metadata or {}})
        except StorageError:
            logger.warning("Analytics event %r not recorded", event)


class RemoteBackend:
    """Delegates every store to the managed backend."""

    name = "remote"

    def __init__(
        self,
        client: httpx.Client,
        session_ttl: timedelta = timedelta(days=30),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._rest = RestClient(client)
        self.sessions = RemoteSessionStore(self._rest, session_ttl, clock)
        self.users = RemoteUserStore(self._rest, clock)
        self.resumes = RemoteResumeRepository(self._rest, clock)
        self.events = RemoteEventLog(self._rest, clock)

    @classmethod
    def from_settings(
        cls,
        url: str,
        api_key: str,
        timeout: float,
        session_ttl: timedelta = timedelta(days=30),
    ) -> RemoteBackend:
        client = httpx.Client(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
            timeout=timeout,
        )
        return cls(client, session_ttl)

    def health(self) -> bool:
        try:
            self._rest.select(USERS_TABLE, {}, select="id", limit="1")
            return True
        except StorageError:
            return False

    def close(self) -> None:
        self._rest.close()
