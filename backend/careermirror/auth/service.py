"""Authentication service: signup, login, sessions, profile and plan changes."""

import logging
from typing import Any

import bcrypt

from ..analytics.service import track
from ..errors import InvalidCredentials, Unauthenticated
from ..storage.interfaces import Backend
from .guard import AuthGuard
from .schemas import PaidPlan, ProfileUpdate, UserRecord

logger = logging.getLogger(__name__)

# bcrypt ignores everything past 72 bytes and newer releases reject longer input
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode())
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def signup(backend: Backend, name: str, email: str, password: str, *, ip: str = "") -> tuple[UserRecord, str]:
    """Create a free-plan user and open a session. Raises DuplicateUser."""
    user = backend.users.create(email, hash_password(password), name.strip() or None)
    token = backend.sessions.create(user.id)
    logger.info("User signed up: %s", user.id)
    track(backend.events, "signup", user.id, ip=ip)
    return user, token


def login(backend: Backend, email: str, password: str, *, ip: str = "") -> tuple[UserRecord, str]:
    user = backend.users.get_by_email(email)
    if not user or not verify_password(password, user.password_hash):
        logger.info("Login failed for %s", email.strip().lower())
        track(backend.events, "login_failed", None, email=email.strip().lower(), ip=ip)
        raise InvalidCredentials()
    token = backend.sessions.create(user.id)
    track(backend.events, "login", user.id, ip=ip)
    return user, token


def logout(backend: Backend, token: str | None) -> None:
    """Destroy the session behind ``token``. Unknown tokens are ignored."""
    if not token:
        return
    backend.sessions.destroy(token)


def current_user(backend: Backend, token: str | None) -> UserRecord:
    user_id = AuthGuard(backend.sessions).authorize(token)
    user = backend.users.get(user_id)
    if user is None:
        # Session outlived its user
        backend.sessions.destroy(token)
        raise Unauthenticated()
    return user


def update_profile(backend: Backend, token: str | None, fields: dict[str, Any]) -> UserRecord:
    user = current_user(backend, token)
    update = ProfileUpdate.model_validate(fields)
    values = update.model_dump(exclude_unset=True)
    if not values:
        return user
    updated = backend.users.update(user.id, values)
    track(backend.events, "profile_updated", user.id, fields=sorted(values))
    return updated


def upgrade_plan(backend: Backend, token: str | None, plan: PaidPlan) -> UserRecord:
    """Switch the user to a paid plan. No payment is taken here."""
    if plan not in ("pro", "enterprise"):
        raise ValueError(f"Unknown plan: {plan}")
    user = current_user(backend, token)
    updated = backend.users.update(user.id, {"plan": plan, "plan_expires_at": None})
    logger.info("Plan changed: user=%s %s -> %s", user.id, user.plan, plan)
    track(backend.events, "plan_upgraded", user.id, previous=user.plan, plan=plan)
    return updated
