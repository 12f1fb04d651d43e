"""
Runtime configuration for the Event Manager client.

Connection parameters for the hosted Parse Server are read from the
environment (or a local .env file). Missing values are NOT fatal at import
time: every remote operation checks them first and raises a
ConfigurationError, so pages can report the problem instead of crashing.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from event_manager.errors import ConfigurationError

# Poster uploads race against this timer (seconds)
UPLOAD_TIMEOUT_SECONDS = 15
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_SESSION_FILE = ".parse_session.json"
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",  # Local frontend dev server
    "http://localhost:5050",  # Gateway itself
]

# Required parameter name -> environment variable
REQUIRED_SETTINGS = {
    "application_id": "PARSE_APPLICATION_ID",
    "javascript_key": "PARSE_JAVASCRIPT_KEY",
    "server_url": "PARSE_SERVER_URL",
}


@dataclass
class ParseConfig:
    application_id: Optional[str] = None
    javascript_key: Optional[str] = None
    server_url: Optional[str] = None
    session_file: str = DEFAULT_SESSION_FILE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    upload_timeout: float = UPLOAD_TIMEOUT_SECONDS
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    def missing(self) -> List[str]:
        """
        Names of the environment variables whose values are absent.

        Returns:
            list: e.g. ["PARSE_SERVER_URL"], empty when fully configured.
        """
        return [
            env_name
            for attr, env_name in REQUIRED_SETTINGS.items()
            if not (getattr(self, attr) or "").strip()
        ]

    @property
    def is_configured(self) -> bool:
        return not self.missing()

    def require(self) -> None:
        """
        Raise ConfigurationError unless all three connection parameters are set.
        """
        missing = self.missing()
        if missing:
            raise ConfigurationError(
                "Parse configuration missing. Please check your environment variables: "
                + ", ".join(missing)
            )


def _parse_float(raw: Optional[str], default: float) -> float:
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _parse_origins(raw: Optional[str]) -> List[str]:
    if not raw:
        return list(DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def load_config() -> ParseConfig:
    """
    Build a ParseConfig from environment variables (.env is loaded first).

    Returns:
        ParseConfig: The configuration, possibly incomplete.
    """
    load_dotenv()

    return ParseConfig(
        application_id=os.getenv("PARSE_APPLICATION_ID"),
        javascript_key=os.getenv("PARSE_JAVASCRIPT_KEY"),
        server_url=os.getenv("PARSE_SERVER_URL"),
        session_file=os.getenv("PARSE_SESSION_FILE", DEFAULT_SESSION_FILE),
        request_timeout=_parse_float(os.getenv("PARSE_REQUEST_TIMEOUT"), DEFAULT_REQUEST_TIMEOUT),
        cors_origins=_parse_origins(os.getenv("CORS_ORIGINS")),
    )
