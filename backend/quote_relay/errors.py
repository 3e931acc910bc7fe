"""Error taxonomy for the quote relay."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for every error raised by the relay core."""


class AuthError(RelayError):
    """Login was rejected, could not be attempted, or credentials are missing.

    ``detail`` carries the upstream error body (or message) when there is one.
    """

    def __init__(self, message: str, detail: object = None) -> None:
        super().__init__(message)
        self.detail = detail


class TransportError(RelayError):
    """Upstream connect/send/receive failure."""


class ParseError(RelayError):
    """An inbound upstream frame could not be decoded."""


class ConfigError(RelayError):
    """Required configuration values are missing."""
