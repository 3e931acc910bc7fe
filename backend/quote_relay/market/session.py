"""Provider session management: login, lazy authentication and keepalive."""

from __future__ import annotations

import logging

import httpx

from ..config import Settings
from ..errors import AuthError, ConfigError
from .credentials import CredentialStore
from .models import Credentials

logger = logging.getLogger(__name__)

REJECTED_SESSION_CODES = frozenset({401, 403})


def _error_detail(response: httpx.Response) -> object:
    """Best-effort decode of an upstream error body for logs and AuthError.detail."""
    try:
        return response.json()
    except ValueError:
        return response.text


class SessionManager:
    """Owns the provider session and the only code path that writes credentials.

    Everything that needs tokens goes through ensure_credentials(), which logs
    in on demand when none are held.
    """

    def __init__(
        self,
        settings: Settings,
        store: CredentialStore,
        client: httpx.AsyncClient,
    ) -> None:
        self._settings = settings
        self._store = store
        self._client = client

    @property
    def credentials(self) -> Credentials:
        return self._store.current

    async def login(self) -> Credentials:
        """Open a new provider session and persist its tokens.

        Raises AuthError on missing configuration, network failure, a non-2xx
        answer, or a response without both tokens. Stored credentials are left
        untouched on failure.
        """
        try:
            self._settings.require_credentials()
        except ConfigError as e:
            logger.error("Login failed: %s", e)
            raise AuthError(str(e)) from e

        try:
            response = await self._client.post(
                self._settings.session_url,
                json={
                    "identifier": self._settings.identifier,
                    "password": self._settings.password,
                },
                headers={
                    "X-CAP-API-KEY": self._settings.api_key,
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as e:
            logger.error("Login failed: %s", e)
            raise AuthError(f"Login request failed: {e}", detail=str(e)) from e

        if not response.is_success:
            detail = _error_detail(response)
            logger.error("Login failed (%d): %s", response.status_code, detail)
            raise AuthError(f"Login rejected with HTTP {response.status_code}", detail=detail)

        credentials = Credentials(
            session_token=response.headers.get("cst"),
            security_token=response.headers.get("x-security-token"),
        )
        if not credentials.present:
            logger.error("Login response did not carry both session tokens")
            raise AuthError("Login response missing session tokens")

        self._store.update(credentials)
        logger.info("Logged in to provider")
        return credentials

    async def ensure_credentials(self) -> Credentials:
        """Return usable credentials, logging in first if none are held."""
        if not self._store.present:
            return await self.login()
        return self._store.current

    def invalidate(self) -> None:
        """Drop the held tokens so the next request logs in again."""
        self._store.clear()

    async def authenticated_get(self, url: str) -> httpx.Response:
        """GET ``url`` with the session headers. Transport errors propagate.

        A 401/403 means the held tokens were rejected: they are dropped and
        the request is retried once with a fresh login.
        """
        credentials = await self.ensure_credentials()
        response = await self._client.get(url, headers=credentials.headers())
        if response.status_code in REJECTED_SESSION_CODES:
            logger.warning("Session rejected (HTTP %d), logging in again", response.status_code)
            self.invalidate()
            credentials = await self.ensure_credentials()
            response = await self._client.get(url, headers=credentials.headers())
        return response

    async def keep_alive(self) -> bool:
        """Ping the provider; re-login once if the session has lapsed.

        Never raises. Returns True when a valid session is held afterwards.
        """
        if self._store.present:
            try:
                response = await self._client.get(
                    self._settings.ping_url,
                    headers=self._store.current.headers(),
                )
                if response.is_success:
                    logger.info("Session still valid")
                    return True
                logger.warning("Session ping returned HTTP %d, re-login", response.status_code)
            except httpx.HTTPError as e:
                logger.warning("Session ping failed (%s), re-login", e)
        else:
            logger.info("No session held, logging in")

        try:
            await self.login()
        except AuthError as e:
            logger.error("Re-login failed during session keepalive: %s", e)
            return False
        return True
