"""Configuration loading for the record sync engine."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass
class Config:
    """Configuration for database access."""

    sqlite_db_path: str = None
    postgres_connection_string: str = None
    statement_timeout: Optional[float] = None  # seconds, None for no limit
    log_level: str = "INFO"

    def get_db_type(self) -> str:
        """Determine which database type is configured."""
        if self.postgres_connection_string:
            return "postgresql"
        elif self.sqlite_db_path:
            return "sqlite"
        else:
            msg = "No database configured. Set either SQLITE_DB_PATH or POSTGRES_CONNECTION_STRING"
            raise ValueError(
                msg,
            )


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        timeout = float(raw)
    except ValueError:
        msg = f"Invalid STATEMENT_TIMEOUT: {raw!r} (expected seconds)"
        raise ValueError(msg) from None
    if timeout <= 0:
        msg = f"Invalid STATEMENT_TIMEOUT: {raw!r} (must be positive)"
        raise ValueError(msg)
    return timeout


def load_config(env_file: Optional[str] = None) -> Config:
    """
    Load configuration from environment variables.

    Environment variable loading precedence:
    1. If env_file provided via CLI, load from that path
    2. Otherwise, check for .env in current working directory
    3. Otherwise, use system environment variables

    Args:
        env_file: Optional path to .env file (CLI parameter)

    Returns:
        Config object with loaded settings

    Raises:
        ValueError: If no database is configured or a value is invalid
    """
    if env_file:
        load_dotenv(env_file)
    elif Path(".env").exists():
        load_dotenv(".env")

    config = Config(
        sqlite_db_path=os.getenv("SQLITE_DB_PATH"),
        postgres_connection_string=os.getenv("POSTGRES_CONNECTION_STRING"),
        statement_timeout=_parse_timeout(os.getenv("STATEMENT_TIMEOUT")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )

    # Fail early rather than on first connect
    config.get_db_type()
    return config
