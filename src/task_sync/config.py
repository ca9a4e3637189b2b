# src/task_sync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app, passed explicitly to components.
- No secrets required at import time.
- Endpoint/credential parsing lives here so bad configuration fails before any I/O.
"""

from __future__ import annotations

import logging
import os
import ssl
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv, set_key

from .core.errors import ConfigurationError

ENV_PREFIX = "TASKSYNC"

logger = logging.getLogger(__name__)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Endpoint:
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True, slots=True)
class Credentials:
    org: str
    user: str
    key: str


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    config_path: Path

    # ---- Sync server ----
    server: str
    credentials: str
    certificate: str
    timeout_seconds: float

    # ---- UX ----
    verbose: bool
    confirmation: bool

    @staticmethod
    def from_env() -> "Settings":
        config_path = _env_path(_k("CONFIG_PATH"), Path(".env"))
        if config_path.exists():
            load_dotenv(config_path, override=False)

        app_name = _env(_k("APP_NAME"), "task-sync").strip() or "task-sync"
        log_level = _env(_k("LOG_LEVEL"), "WARNING")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/task-sync"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "tasks.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            config_path=config_path,
            server=_env(_k("SERVER")).strip(),
            credentials=_env(_k("CREDENTIALS")).strip(),
            certificate=_env(_k("CERTIFICATE")).strip(),
            timeout_seconds=_env_float(_k("TIMEOUT_SECONDS"), 30.0),
            verbose=_env_bool(_k("VERBOSE"), True),
            confirmation=_env_bool(_k("CONFIRMATION"), True),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS


# ---- validation ----


def parse_endpoint(raw: str) -> Endpoint:
    """
    Split "host:port" on the LAST colon.

    An empty value or a value without a colon means no server is configured.
    """
    raw = (raw or "").strip()
    colon = raw.rfind(":")
    if not raw or colon == -1:
        raise ConfigurationError(
            f"Sync server is not configured. Set {_k('SERVER')} to host:port."
        )

    host, port_s = raw[:colon].strip(), raw[colon + 1 :].strip()
    if not host:
        raise ConfigurationError(f"Sync server '{raw}' has no host.")
    try:
        port = int(port_s)
    except ValueError:
        raise ConfigurationError(f"Sync server '{raw}' has an invalid port.") from None
    if not 0 < port < 65536:
        raise ConfigurationError(f"Sync server '{raw}' has an invalid port.")
    return Endpoint(host=host, port=port)


def parse_credentials(raw: str) -> Credentials:
    parts = (raw or "").split("/")
    if len(parts) != 3 or not all(p.strip() for p in parts):
        raise ConfigurationError(
            f"Sync credentials are missing or malformed. Set {_k('CREDENTIALS')} to org/user/key."
        )
    org, user, key = (p.strip() for p in parts)
    return Credentials(org=org, user=user, key=key)


def require_certificate(raw: str) -> Path:
    if not raw or not raw.strip():
        raise ConfigurationError(
            f"Sync certificate is not configured. Set {_k('CERTIFICATE')} to the CA file."
        )
    return Path(raw.strip()).expanduser()


def load_trust_anchor(raw: str) -> ssl.SSLContext:
    """Build the verifying TLS context from the configured CA file, before any network I/O."""
    path = require_certificate(raw)
    if not path.is_file():
        raise ConfigurationError(f"Sync certificate {path} does not exist.")
    try:
        return ssl.create_default_context(cafile=str(path))
    except ssl.SSLError as e:
        raise ConfigurationError(f"Sync certificate {path} is not a valid CA file.") from e
    except OSError as e:
        raise ConfigurationError(f"Sync certificate {path} cannot be read.") from e


def persist_server(settings: Settings, new_server: str) -> Settings:
    """
    Store a relocated server endpoint in the dotenv config file.

    Returns a Settings copy pointing at the new server; the caller decides whether
    to keep using it for the rest of the process.
    """
    path = Path(settings.config_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch(exist_ok=True)
        set_key(str(path), _k("SERVER"), new_server, quote_mode="never")
    except OSError as e:
        raise ConfigurationError(
            f"The sync server moved to {new_server}, but {path} could not be updated."
        ) from e
    logger.info("Persisted relocated server %s to %s", new_server, path)
    return replace(settings, server=new_server)
