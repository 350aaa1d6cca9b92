"""Local storage strategy: one SQLAlchemy table per entity kind, owned by this process.

Malformed persisted state (undecodable JSON, rows that no longer match the record
schema, a missing table) is logged and the affected table is read as empty.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import Engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError, StatementError
from sqlalchemy.orm import Session, sessionmaker

from ..analytics.models import AnalyticsEvent
from ..auth.models import User, UserSession
from ..auth.schemas import SessionRecord, UserRecord
from ..database.base import Base, create_db_engine, create_session_factory
from ..errors import DuplicateUser, NotFoundOrForbidden
from ..generation.schemas import FinalOutput, Message
from ..resumes.models import Resume
from ..resumes.schemas import VERSIONED_FIELDS, ResumeRecord, new_resume_values, update_values
from .clock import touch, utcnow
from .interfaces import EXPIRED, NOT_FOUND, SessionResolution, SessionStatus, session_status

logger = logging.getLogger(__name__)

_RECOVERABLE = (ValueError, StatementError)

USER_FIELDS = frozenset(
    {"name", "plan", "plan_expires_at", "phone", "location", "linkedin", "portfolio", "preferences"}
)


class _LocalStore:
    def __init__(self, session_factory: sessionmaker[Session], clock: Callable[[], datetime] = utcnow) -> None:
        self._session_factory = session_factory
        self._clock = clock

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """One unit of work: committed on success, rolled back on any error."""
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class LocalSessionStore(_LocalStore):
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        ttl: timedelta,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(session_factory, clock)
        self._ttl = ttl

    def create(self, user_id: UUID) -> str:
        token = secrets.token_urlsafe(32)
        now = self._clock()
        with self._session() as db:
            db.add(UserSession(user_id=user_id, token=token, created_at=now, expires_at=now + self._ttl))
        return token

    def resolve(self, token: str) -> SessionResolution:
        if not token:
            return NOT_FOUND
        try:
            with self._session() as db:
                row = db.query(UserSession).filter(UserSession.token == token).first()
                session = SessionRecord.model_validate(row) if row else None
                status = session_status(session, self._clock())
                if status is SessionStatus.EXPIRED:
                    db.delete(row)
                    logger.info("Expired session removed (user=%s)", session.user_id)
        except _RECOVERABLE:
            logger.warning("Unreadable sessions table, treating as empty", exc_info=True)
            return NOT_FOUND

        if status is SessionStatus.VALID:
            return SessionResolution.valid(session.user_id)
        return EXPIRED if status is SessionStatus.EXPIRED else NOT_FOUND

    def destroy(self, token: str) -> None:
        if not token:
            return
        with self._session() as db:
            db.query(UserSession).filter(UserSession.token == token).delete(synchronize_session=False)


class LocalUserStore(_LocalStore):
    def create(self, email: str, password_hash: str, name: str | None) -> UserRecord:
        email = email.strip().lower()
        now = self._clock()
        try:
            with self._session() as db:
                if db.query(User).filter(User.email == email).first():
                    raise DuplicateUser()
                user = User(
                    email=email,
                    password_hash=password_hash,
                    name=name,
                    plan="free",
                    created_at=now,
                    updated_at=now,
                )
                db.add(user)
                db.flush()
                record = UserRecord.model_validate(user)
        except IntegrityError as exc:
            raise DuplicateUser() from exc
        return record

    def get(self, user_id: UUID) -> UserRecord | None:
        return self._find(User.id == user_id)

    def get_by_email(self, email: str) -> UserRecord | None:
        return self._find(User.email == email.strip().lower())

    def update(self, user_id: UUID, fields: dict[str, Any]) -> UserRecord:
        unknown = set(fields) - USER_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")
        with self._session() as db:
            user = db.query(User).filter(User.id == user_id).first()
            if not user:
                raise NotFoundOrForbidden()
            for key, value in fields.items():
                setattr(user, key, value)
            user.updated_at = touch(user.updated_at, self._clock())
            db.flush()
            return UserRecord.model_validate(user)

    def _find(self, criterion) -> UserRecord | None:
        try:
            with self._session() as db:
                user = db.query(User).filter(criterion).first()
                return UserRecord.model_validate(user) if user else None
        except _RECOVERABLE:
            logger.warning("Unreadable users table, treating as empty", exc_info=True)
            return None


class LocalResumeRepository(_LocalStore):
    def list(self, owner_id: UUID) -> list[ResumeRecord]:
        try:
            with self._session() as db:
                rows = (
                    db.query(Resume)
                    .filter(Resume.user_id == owner_id, Resume.is_active.is_(True))
                    .order_by(Resume.updated_at.desc())
                    .all()
                )
                return [ResumeRecord.model_validate(r) for r in rows]
        except _RECOVERABLE:
            logger.warning("Unreadable resumes table, treating as empty (owner=%s)", owner_id, exc_info=True)
            return []

    def get_by_id(self, resume_id: UUID) -> ResumeRecord | None:
        try:
            with self._session() as db:
                row = db.query(Resume).filter(Resume.id == resume_id).first()
                return ResumeRecord.model_validate(row) if row else None
        except _RECOVERABLE:
            logger.warning("Unreadable resumes table, treating as empty (id=%s)", resume_id, exc_info=True)
            return None

    def save(self, owner_id: UUID, content: FinalOutput, transcript: list[Message]) -> ResumeRecord:
        now = self._clock()
        with self._session() as db:
            row = Resume(**new_resume_values(owner_id, content, transcript), created_at=now, updated_at=now)
            db.add(row)
            db.flush()
            record = ResumeRecord.model_validate(row)
        logger.info("Resume saved: id=%s owner=%s title=%r", record.id, owner_id, record.title)
        return record

    def update(self, owner_id: UUID, resume_id: UUID, fields: dict[str, Any]) -> ResumeRecord:
        values = update_values(fields)
        with self._session() as db:
            row = self._owned_active(db, owner_id, resume_id)
            if VERSIONED_FIELDS & values.keys():
                row.version = (row.version or 1) + 1
            for key, value in values.items():
                setattr(row, key, value)
            row.updated_at = touch(row.updated_at, self._clock())
            db.flush()
            return ResumeRecord.model_validate(row)

    def soft_delete(self, owner_id: UUID, resume_id: UUID) -> None:
        with self._session() as db:
            row = self._owned_active(db, owner_id, resume_id)
            row.is_active = False
        logger.info("Resume soft-deleted: id=%s owner=%s", resume_id, owner_id)

    @staticmethod
    def _owned_active(db: Session, owner_id: UUID, resume_id: UUID) -> Resume:
        row = (
            db.query(Resume)
            .filter(Resume.id == resume_id, Resume.user_id == owner_id, Resume.is_active.is_(True))
            .first()
        )
        if row is None:
            raise NotFoundOrForbidden()
        return row


class LocalEventLog(_LocalStore):
    def log(self, event: str, user_id: UUID | None, metadata: dict[str, Any] | None = None) -> None:
        try:
            with self._session() as db:
                db.add(
                    AnalyticsEvent(
                        user_id=user_id,
                        event=event,
                        event_metadata=metadata or {},
                        created_at=self._clock(),
                    )
                )
        except SQLAlchemyError:
            logger.warning("Analytics event %r not recorded", event, exc_info=True)


class LocalBackend:
    """All state in a single database owned by this backend instance."""

    name = "local"

    def __init__(
        self,
        engine: Engine,
        session_ttl: timedelta = timedelta(days=30),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._engine = engine
        factory = create_session_factory(engine)
        self.sessions = LocalSessionStore(factory, session_ttl, clock)
        self.users = LocalUserStore(factory, clock)
        self.resumes = LocalResumeRepository(factory, clock)
        self.events = LocalEventLog(factory, clock)

    @classmethod
    def from_url(cls, database_url: str, session_ttl: timedelta = timedelta(days=30)) -> LocalBackend:
        return cls(create_db_engine(database_url), session_ttl)

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_schema(self) -> None:
        """Create missing tables directly (tests, throwaway databases)."""
        Base.metadata.create_all(bind=self._engine)

    def health(self) -> bool:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("Local database unreachable", exc_info=True)
            return False

    def close(self) -> None:
        self._engine.dispose()
