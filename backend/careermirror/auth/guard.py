"""Access control in front of every user-scoped operation."""

import logging
from uuid import UUID

from ..errors import Forbidden, SessionExpired, Unauthenticated
from ..storage.interfaces import SessionStatus, SessionStore

logger = logging.getLogger(__name__)


class AuthGuard:
    """Validates a session token and, optionally, ownership of a target resource.

    Works against whichever SessionStore the selected backend provides.
    """

    def __init__(self, sessions: SessionStore) -> None:
        self._sessions = sessions

    def authorize(self, token: str | None, target_owner_id: UUID | None = None) -> UUID:
        if not token:
            raise Unauthenticated()

        resolution = self._sessions.resolve(token)
        if resolution.status is SessionStatus.EXPIRED:
            raise SessionExpired()
        if resolution.status is not SessionStatus.VALID or resolution.user_id is None:
            raise Unauthenticated()

        if target_owner_id is not None and target_owner_id != resolution.user_id:
            logger.warning(
                "Ownership check failed: user=%s target_owner=%s", resolution.user_id, target_owner_id
            )
            raise Forbidden()
        return resolution.user_id
