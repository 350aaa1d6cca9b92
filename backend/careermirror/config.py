"""Application settings loaded from the environment (or .env) and logging setup."""

import logging
import logging.handlers
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Local strategy
    database_url: str = "sqlite:///./careermirror.db"
    session_ttl_days: int = 30

    # Remote strategy (managed Postgres behind a PostgREST API)
    remote_backend_enabled: bool = False
    remote_url: str = ""
    remote_api_key: str = ""
    remote_timeout_seconds: float = 10.0

    # Generation
    anthropic_api_key: str = ""
    generation_model: str = "claude-sonnet-4-5-20250929"
    chat_model: str = "claude-haiku-4-5-20251001"
    generation_temperature: float = 0.4
    generation_max_output_tokens: int = 8192
    generation_timeout_seconds: float = 60.0
    min_transcript_turns: int = 2
    redis_url: str = ""

    # HTTP
    cors_origins: str = "*"
    cors_allow_credentials: bool = False
    trusted_hosts: str = "*"
    rate_limit_generate: str = "5/minute"
    rate_limit_auth: str = "10/minute"
    rate_limit_chat: str = "20/minute"

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_max_bytes: int = 10_485_760  # 10 MB
    log_backup_count: int = 5

    model_config = {"env_file": ".env"}

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def trusted_hosts_list(self) -> list[str]:
        return [h.strip() for h in self.trusted_hosts.split(",") if h.strip()]


settings = Settings()


_CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_DETAIL_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s:%(lineno)d] %(message)s"

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "anthropic")


def _rotating_handler(path: Path, level: int, config: Settings) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=config.log_max_bytes,
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_DETAIL_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(config: Settings | None = None) -> None:
    """Configure root logging: console (INFO), rotating app.log (DEBUG) and error.log (ERROR)."""
    config = config or settings
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(console)
    root.addHandler(_rotating_handler(log_dir / "app.log", logging.DEBUG, config))
    root.addHandler(_rotating_handler(log_dir / "error.log", logging.ERROR, config))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, dir=%s, max=%s MB x %d backups",
        config.log_level, log_dir, config.log_max_bytes // 1_048_576, config.log_backup_count,
    )
