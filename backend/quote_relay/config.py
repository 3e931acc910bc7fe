"""Relay configuration, read from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigError

DEFAULT_API_URL = "https://api-capital.backend-capital.com"
DEFAULT_STREAM_URL = "wss://api-streaming-capital.backend-capital.com/connect"


@dataclass(frozen=True, slots=True)
class Settings:
    """Everything the relay needs to know about its upstream and itself.

    The provider credentials may be empty: the relay still starts and serves
    synthetic quotes, and every login attempt fails with a descriptive error.
    """

    api_key: str = ""
    identifier: str = ""
    password: str = ""
    host: str = "0.0.0.0"
    port: int = 8080
    epic: str = "GOLD"
    api_base_url: str = DEFAULT_API_URL
    stream_url: str = DEFAULT_STREAM_URL
    session_file: Path = Path("session.json")
    log_level: str = "INFO"

    # Timing (seconds)
    keepalive_interval: float = 9 * 60
    no_data_timeout: float = 15.0
    reconnect_delay: float = 5.0
    mock_interval: float = 2.0
    request_timeout: float = 10.0
    open_timeout: float = 10.0
    send_timeout: float = 1.0

    @property
    def session_url(self) -> str:
        return f"{self.api_base_url}/api/v1/session"

    @property
    def ping_url(self) -> str:
        return f"{self.api_base_url}/api/v1/ping"

    @property
    def market_url(self) -> str:
        return f"{self.api_base_url}/api/v1/markets/{self.epic}"

    def require_credentials(self) -> None:
        """Raise ConfigError naming every missing provider credential."""
        missing = [
            name
            for name, value in (
                ("CAPITAL_API_KEY", self.api_key),
                ("CAPITAL_EMAIL", self.identifier),
                ("CAPITAL_PASSWORD", self.password),
            )
            if not value
        ]
        if missing:
            raise ConfigError(f"Missing CAPITAL credentials: {', '.join(missing)}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from the environment (``os.environ`` by default)."""
        env = os.environ if environ is None else environ

        port_raw = env.get("PORT", "").strip() or "8080"
        try:
            port = int(port_raw)
        except ValueError as e:
            raise ConfigError(f"PORT must be an integer, got {port_raw!r}") from e

        return cls(
            api_key=env.get("CAPITAL_API_KEY", "").strip(),
            identifier=env.get("CAPITAL_EMAIL", "").strip(),
            password=env.get("CAPITAL_PASSWORD", ""),
            host=env.get("HOST", "").strip() or "0.0.0.0",
            port=port,
            epic=env.get("RELAY_EPIC", "").strip().upper() or "GOLD",
            api_base_url=(env.get("CAPITAL_API_URL", "").strip() or DEFAULT_API_URL).rstrip("/"),
            stream_url=env.get("CAPITAL_STREAM_URL", "").strip() or DEFAULT_STREAM_URL,
            session_file=Path(env.get("RELAY_SESSION_FILE", "").strip() or "session.json"),
            log_level=env.get("LOG_LEVEL", "").strip().upper() or "INFO",
        )
