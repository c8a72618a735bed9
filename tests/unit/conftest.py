"""Shared fixtures for n8n_remote unit tests."""
import httpx
import pytest

from n8n_remote.api.client import N8nClient
from n8n_remote.session.credentials import ApiSession, Credentials
from tests.unit.fakes import ScriptedPages

INSTANCE_URL = "https://n8n.example.test"
API_KEY = "test-api-key"


class Router:
    """httpx.MockTransport handler keyed by (method, path)."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], object] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, response) -> None:
        self.routes[(method, path)] = response

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.routes.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(404, json={"message": "not found"})
        if isinstance(response, httpx.Response):
            return response
        if callable(response):
            return response(request)
        status, payload = response
        return httpx.Response(status, json=payload)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def session() -> ApiSession:
    return ApiSession(credentials=Credentials(INSTANCE_URL + "/", API_KEY), timeout=5.0)


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
def client(session, router) -> N8nClient:
    return N8nClient(session, http_transport=httpx.MockTransport(router))


@pytest.fixture
def pages() -> ScriptedPages:
    return ScriptedPages()
