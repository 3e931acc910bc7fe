"""Session token storage, persisted as JSON between restarts."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .models import Credentials

logger = logging.getLogger(__name__)


class CredentialStore:
    """Holds the current Credentials and mirrors them to a JSON file.

    Persistence is best-effort: a file that cannot be read or written is
    logged, and the relay falls back to logging in fresh.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._credentials = Credentials()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def current(self) -> Credentials:
        return self._credentials

    @property
    def present(self) -> bool:
        return self._credentials.present

    def load(self) -> Credentials:
        """Load persisted tokens. Missing, malformed or partial files yield empty credentials."""
        if not self._path.exists():
            logger.info("No session file at %s, will log in fresh", self._path)
            self._credentials = Credentials()
            return self._credentials

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Failed to read %s, ignoring: %s", self._path, e)
            self._credentials = Credentials()
            return self._credentials

        self._credentials = Credentials.from_dict(data)
        if self._credentials.present:
            logger.info("Loaded session tokens from %s", self._path)
        else:
            logger.warning("Session file %s is incomplete, will log in fresh", self._path)
        return self._credentials

    def update(self, credentials: Credentials) -> None:
        """Replace the current credentials and persist them."""
        self._credentials = credentials
        self._save()

    def clear(self) -> None:
        """Forget the in-memory tokens so the next request logs in again."""
        self._credentials = Credentials()

    def _save(self) -> None:
        try:
            self._path.write_text(json.dumps(self._credentials.to_dict()), encoding="utf-8")
        except OSError as e:
            logger.error("Failed to save session tokens to %s: %s", self._path, e)
