"""Credential cache, the only state this package persists.

Stores ``{instanceUrl, apiKey}`` as JSON. Owners of clients and controllers
subscribe to changes and rebuild them from the new ``ApiSession``; nothing
looks the session up implicitly.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Callable, Optional

import structlog

from n8n_remote.core.config import Settings
from n8n_remote.session.credentials import ApiSession, Credentials

logger = structlog.get_logger(__name__)

SessionListener = Callable[[Optional[ApiSession]], None]


class SessionStoreError(RuntimeError):
    """Credential file could not be read or written."""
    pass


class SessionStore:
    def __init__(self, path: str | Path, api_prefix: str = "/api/v1", timeout: float = 30.0) -> None:
        self._path = Path(path).expanduser()
        self._api_prefix = api_prefix
        self._timeout = timeout
        self._current: Optional[ApiSession] = None
        self._listeners: list[SessionListener] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> SessionStore:
        return cls(
            settings.N8N_SESSION_FILE,
            api_prefix=settings.N8N_API_PREFIX,
            timeout=settings.N8N_TIMEOUT_SECONDS,
        )

    @property
    def path(self) -> Path:
        return self._path

    @property
    def current(self) -> Optional[ApiSession]:
        return self._current

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def load(self) -> Optional[ApiSession]:
        """Read cached credentials; a missing file means "not connected"."""
        if not self._path.exists():
            return None
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("session_load_failed", path=str(self._path), error=str(exc))
            raise SessionStoreError("Failed to load saved credentials") from exc
        if not isinstance(raw, dict):
            raise SessionStoreError("Failed to load saved credentials")

        credentials = Credentials.from_dict(raw)
        if not credentials.is_complete:
            return None
        self._set(self._session_for(credentials))
        logger.info("session_loaded", instance=credentials.instance_url)
        return self._current

    def save(self, credentials: Credentials) -> ApiSession:
        if not credentials.is_complete:
            raise ValueError("instance URL and API key are both required")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(credentials.to_dict()), encoding="utf-8")
            os.chmod(tmp, 0o600)
            tmp.replace(self._path)
        except OSError as exc:
            logger.warning("session_save_failed", path=str(self._path), error=str(exc))
            raise SessionStoreError("Failed to save credentials") from exc

        session = self._session_for(credentials)
        self._set(session)
        logger.info("session_saved", instance=credentials.instance_url)
        return session

    def clear(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            raise SessionStoreError("Failed to disconnect") from exc
        self._set(None)
        logger.info("session_cleared")

    def _session_for(self, credentials: Credentials) -> ApiSession:
        return ApiSession(credentials=credentials, api_prefix=self._api_prefix, timeout=self._timeout)

    def _set(self, session: Optional[ApiSession]) -> None:
        if session == self._current:
            return
        self._current = session
        for listener in list(self._listeners):
            listener(session)
