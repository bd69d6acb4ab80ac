"""
Application configuration for Prompt Canvas.

Settings are read from the environment, optionally seeded from a ``.env``
file via python-dotenv. Database selection follows a forgiving rule: an
unknown ``DB_TYPE``, or a known type without its connection details, logs a
warning and falls back to running without a database so the gallery keeps
working from the local store.

Classes:
    DatabaseConfig: Which gallery database to use and how to reach it
    AppConfig: Endpoints, timeouts and storage locations

Functions:
    load_env: Load a .env file into the process environment
    get_db_config: Resolve DatabaseConfig from environment variables
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional
import logging
import os

from dotenv import load_dotenv

from PC_Libs.constants import (
    DB_TYPE_NONE,
    DB_TYPE_POSTGRES,
    DB_TYPE_SQLITE,
    DEFAULT_GALLERY_DIR,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_IMAGE_GENERATION_ENDPOINT,
    DEFAULT_SQLITE_FILE,
)

logger = logging.getLogger(__name__)


def load_env(env_path: Optional[Path] = None) -> None:
    """Load a .env file (current directory by default) without overriding set variables."""
    if env_path is not None:
        load_dotenv(env_path)
    else:
        load_dotenv()


@dataclass(frozen=True)
class DatabaseConfig:
    db_type: str = DB_TYPE_NONE
    sqlite_path: Optional[Path] = None
    postgres_url: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return self.db_type != DB_TYPE_NONE


def get_db_config(environ: Optional[Mapping[str, str]] = None) -> DatabaseConfig:
    """
    Resolve the gallery database configuration.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        DatabaseConfig, with db_type "none" when nothing usable is configured
    """
    env = os.environ if environ is None else environ
    db_type = (env.get("DB_TYPE") or "").strip().lower()

    if not db_type or db_type == DB_TYPE_NONE:
        return DatabaseConfig()

    if db_type == DB_TYPE_SQLITE:
        sqlite_path = (env.get("SQLITE_PATH") or "").strip()
        return DatabaseConfig(
            db_type=DB_TYPE_SQLITE,
            sqlite_path=Path(sqlite_path) if sqlite_path else Path(DEFAULT_SQLITE_FILE),
        )

    if db_type == DB_TYPE_POSTGRES:
        postgres_url = (env.get("POSTGRES_URL") or "").strip()
        if not postgres_url:
            logger.warning("DB_TYPE is postgres, but POSTGRES_URL is not set. Falling back to no database.")
            return DatabaseConfig()
        return DatabaseConfig(db_type=DB_TYPE_POSTGRES, postgres_url=postgres_url)

    logger.warning(f"Unsupported DB_TYPE: {db_type}. Falling back to no database.")
    return DatabaseConfig()


def _optional(env: Mapping[str, str], key: str) -> Optional[str]:
    value = (env.get(key) or "").strip()
    return value.rstrip("/") if value else None


@dataclass(frozen=True)
class AppConfig:
    """Runtime configuration.

    Attributes:
        generation_endpoint: Image generation webhook URL
        moderation_endpoint: Prompt moderation URL (None = pass prompts through)
        upload_endpoint: Multipart upload URL (None = no remote storage)
        http_timeout: Timeout in seconds for every HTTP call
        gallery_dir: Directory holding the local gallery file
        database: Remote gallery database selection
        log_level: Logging level name for the entry script
    """

    generation_endpoint: str = DEFAULT_IMAGE_GENERATION_ENDPOINT
    moderation_endpoint: Optional[str] = None
    upload_endpoint: Optional[str] = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    gallery_dir: Path = Path(DEFAULT_GALLERY_DIR)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        env = os.environ if environ is None else environ

        timeout_value = env.get("HTTP_TIMEOUT_SECONDS")
        try:
            http_timeout = float(timeout_value) if timeout_value else DEFAULT_HTTP_TIMEOUT_SECONDS
        except ValueError:
            logger.warning(f"Invalid HTTP_TIMEOUT_SECONDS '{timeout_value}', using default")
            http_timeout = DEFAULT_HTTP_TIMEOUT_SECONDS

        return cls(
            generation_endpoint=_optional(env, "IMAGE_GENERATION_ENDPOINT") or DEFAULT_IMAGE_GENERATION_ENDPOINT,
            moderation_endpoint=_optional(env, "MODERATION_ENDPOINT"),
            upload_endpoint=_optional(env, "UPLOAD_ENDPOINT"),
            http_timeout=max(1.0, http_timeout),
            gallery_dir=Path((env.get("GALLERY_DIR") or DEFAULT_GALLERY_DIR).strip()),
            database=get_db_config(env),
            log_level=(env.get("PROMPT_CANVAS_LOG_LEVEL") or "INFO").strip().upper(),
        )
