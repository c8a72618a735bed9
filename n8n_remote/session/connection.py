"""Connection test for the setup screen.

Probes ``GET /workflows?limit=1`` with a short timeout and only persists the
credentials once the instance answered.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx
import structlog

from n8n_remote.api import endpoints
from n8n_remote.api.transport import Transport
from n8n_remote.core.errors import ApiError, ErrorKind, user_message
from n8n_remote.session.credentials import ApiSession, Credentials
from n8n_remote.session.store import SessionStore, SessionStoreError

logger = structlog.get_logger(__name__)

_CONNECTION_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.TIMEOUT: "Connection timed out",
    ErrorKind.AUTH: "Invalid API key",
    ErrorKind.NOT_FOUND: "Invalid n8n instance URL",
    ErrorKind.NETWORK: "Network error - check the URL",
}


@dataclass(frozen=True)
class ConnectionResult:
    ok: bool
    session: Optional[ApiSession] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


def connection_message(error: ApiError) -> str:
    return _CONNECTION_MESSAGES.get(error.kind) or user_message(error) or "Connection failed"


class ConnectionChecker:
    def __init__(
        self,
        store: SessionStore,
        timeout: float = 10.0,
        api_prefix: str = "/api/v1",
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._store = store
        self._timeout = timeout
        self._api_prefix = api_prefix
        self._http_transport = http_transport

    async def test(self, credentials: Credentials, persist: bool = True) -> ConnectionResult:
        if not credentials.is_complete:
            return ConnectionResult(ok=False, error="Instance URL and API key are required", error_kind=ErrorKind.VALIDATION)

        probe = ApiSession(credentials=credentials, api_prefix=self._api_prefix, timeout=self._timeout)
        transport = Transport(probe, transport=self._http_transport)
        try:
            await transport.get(endpoints.Workflows.LIST, {"limit": 1})
        except ApiError as exc:
            logger.info("connection_test_failed", instance=credentials.instance_url, kind=exc.kind.value)
            return ConnectionResult(ok=False, error=connection_message(exc), error_kind=exc.kind)

        logger.info("connection_test_succeeded", instance=credentials.instance_url)
        if not persist:
            return ConnectionResult(ok=True, session=probe)
        try:
            session = self._store.save(credentials)
        except SessionStoreError as exc:
            return ConnectionResult(ok=False, error=str(exc), error_kind=ErrorKind.UNKNOWN)
        return ConnectionResult(ok=True, session=session)
