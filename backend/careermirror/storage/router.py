"""Backend selection: evaluated once at startup, injected everywhere else."""

import logging
from datetime import timedelta

from ..config import Settings
from .interfaces import Backend
from .local import LocalBackend
from .remote import RemoteBackend

logger = logging.getLogger(__name__)

_MIN_API_KEY_LENGTH = 10


def use_remote_backend(settings: Settings) -> bool:
    """True only when the remote backend is enabled and fully configured."""
    return bool(
        settings.remote_backend_enabled
        and settings.remote_url
        and len(settings.remote_api_key) > _MIN_API_KEY_LENGTH
    )


def create_backend(settings: Settings) -> Backend:
    ttl = timedelta(days=settings.session_ttl_days)
    if use_remote_backend(settings):
        logger.info("Using remote backend at %s", settings.remote_url)
        return RemoteBackend.from_settings(
            settings.remote_url,
            settings.remote_api_key,
            settings.remote_timeout_seconds,
            session_ttl=ttl,
        )
    if settings.remote_backend_enabled:
        logger.warning("Remote backend enabled but not configured, falling back to local storage")
    logger.info("Using local backend (%s)", settings.database_url.split("://", 1)[0])
    return LocalBackend.from_url(settings.database_url, session_ttl=ttl)
