"""HTTP transport for the n8n public API.

모든 httpx 예외와 non-2xx 응답은 이 경계에서 ``ApiError``로 한 번만 변환된다.
No retries happen here: retrying is always an explicit user action.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping

import httpx
import structlog

from n8n_remote.core.errors import ApiError, UnknownApiError
from n8n_remote.session.credentials import ApiSession

logger = structlog.get_logger(__name__)


def clean_query(query: Mapping[str, Any] | None) -> dict[str, Any]:
    """Drop unset parameters; n8n rejects empty-string filters on some endpoints."""
    if not query:
        return {}
    return {key: value for key, value in query.items() if value is not None and value != ""}


class Transport:
    """Sends one request against ``session.base_url`` with the API key header."""

    def __init__(self, session: ApiSession, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._api_session = session
        self._transport = transport

    @property
    def session(self) -> ApiSession:
        return self._api_session

    @asynccontextmanager
    async def _session(self, timeout: float | None = None) -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(
            base_url=self._api_session.base_url,
            headers=self._api_session.headers,
            timeout=timeout if timeout is not None else self._api_session.timeout,
            transport=self._transport,
        ) as client:
            yield client

    async def request(
        self,
        method: str,
        path: str,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        timeout: float | None = None,
    ) -> Any:
        params = clean_query(query)
        logger.debug("n8n_request", method=method, path=path, params=sorted(params))
        try:
            async with self._session(timeout) as client:
                if body is None:
                    res = await client.request(method, path, params=params)
                else:
                    res = await client.request(method, path, params=params, json=body)
        except httpx.HTTPError as exc:
            error = ApiError.from_transport_exception(exc)
            logger.warning("n8n_transport_error", method=method, path=path, kind=error.kind.value, error=str(exc))
            raise error from exc

        payload = _decode(res)
        if res.is_success:
            return payload

        error = ApiError.from_status(res.status_code, payload, res.reason_phrase)
        logger.warning(
            "n8n_api_error",
            method=method,
            path=path,
            status=res.status_code,
            kind=error.kind.value,
        )
        raise error

    async def get(self, path: str, query: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        return await self.request("GET", path, query=query, **kwargs)

    async def post(self, path: str, body: Any = None, query: Mapping[str, Any] | None = None) -> Any:
        return await self.request("POST", path, query=query, body=body)

    async def put(self, path: str, body: Any = None) -> Any:
        return await self.request("PUT", path, body=body)

    async def patch(self, path: str, body: Any = None) -> Any:
        return await self.request("PATCH", path, body=body)

    async def delete(self, path: str, query: Mapping[str, Any] | None = None) -> Any:
        return await self.request("DELETE", path, query=query)


def _decode(res: httpx.Response) -> Any:
    if not res.content:
        return None
    try:
        return res.json()
    except ValueError as exc:
        if res.is_success:
            raise UnknownApiError(
                "Server returned a non-JSON body",
                status_code=res.status_code,
                raw_body=res.text[:500],
            ) from exc
        return res.text[:500]
