"""Process-level wiring.

``AppContext`` is built once at startup and handed to every screen. It owns
the ``SessionStore`` and the current ``N8nClient``; when credentials change
the client is rebuilt and ``session_version`` moves, so screens know to
re-create their controllers.
"""
from __future__ import annotations

from typing import Optional

import httpx
import structlog

from n8n_remote.api.client import N8nClient
from n8n_remote.api.models import ExecutionStatus
from n8n_remote.controllers.list_controller import PaginatedListController
from n8n_remote.controllers.resources import (
    ExecutionDetailController,
    ExecutionListController,
    WorkflowListController,
    WorkflowOverview,
    credential_list,
    project_list,
    tag_list,
    variable_list,
)
from n8n_remote.core.config import Settings
from n8n_remote.core.logging import bind_instance, setup_logging
from n8n_remote.session.connection import ConnectionChecker
from n8n_remote.session.credentials import ApiSession, Credentials
from n8n_remote.session.store import SessionStore, SessionStoreError

logger = structlog.get_logger(__name__)


class NotConnectedError(RuntimeError):
    """No credentials have been configured yet."""
    pass


class AppContext:
    def __init__(
        self,
        settings: Settings,
        store: SessionStore,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.session_version = 0
        self._http_transport = http_transport
        self._client: Optional[N8nClient] = None
        store.subscribe(self._on_session_changed)
        if store.current is not None:
            self._on_session_changed(store.current)

    @classmethod
    def create(cls, settings: Settings, http_transport: httpx.AsyncBaseTransport | None = None) -> AppContext:
        setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
        store = SessionStore.from_settings(settings)
        context = cls(settings, store, http_transport=http_transport)

        env_credentials = Credentials(settings.N8N_INSTANCE_URL, settings.N8N_API_KEY)
        if env_credentials.is_complete:
            # environment wins over the cache and is not written back
            context._on_session_changed(ApiSession.from_settings(settings, env_credentials))
            return context
        try:
            store.load()
        except SessionStoreError as exc:
            logger.warning("session_cache_unreadable", error=str(exc))
        return context

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> N8nClient:
        if self._client is None:
            raise NotConnectedError("n8n instance is not configured")
        return self._client

    def connection_checker(self) -> ConnectionChecker:
        return ConnectionChecker(
            self.store,
            timeout=self.settings.N8N_CONNECTION_TEST_TIMEOUT_SECONDS,
            api_prefix=self.settings.N8N_API_PREFIX,
            http_transport=self._http_transport,
        )

    def disconnect(self) -> None:
        self.store.clear()

    # ── Controller factories ─────────────────────────────

    def workflows(self) -> WorkflowListController:
        return WorkflowListController(
            self.client,
            page_size=self.settings.N8N_PAGE_SIZE,
            debounce_seconds=self.settings.N8N_SEARCH_DEBOUNCE_SECONDS,
        )

    def executions(self, workflow_id: Optional[str] = None, status: Optional[ExecutionStatus] = None) -> ExecutionListController:
        return ExecutionListController(
            self.client,
            page_size=self.settings.N8N_PAGE_SIZE,
            workflow_id=workflow_id,
            status=status,
        )

    def credentials(self) -> PaginatedListController:
        return credential_list(self.client, self.settings.N8N_PAGE_SIZE)

    def tags(self) -> PaginatedListController:
        return tag_list(self.client, self.settings.N8N_PAGE_SIZE)

    def variables(self) -> PaginatedListController:
        return variable_list(self.client, self.settings.N8N_PAGE_SIZE)

    def projects(self) -> PaginatedListController:
        return project_list(self.client, self.settings.N8N_PAGE_SIZE)

    def workflow_overview(self, workflow_id: str) -> WorkflowOverview:
        return WorkflowOverview(
            self.client,
            workflow_id,
            executions_page_size=self.settings.N8N_DETAIL_EXECUTIONS_PAGE_SIZE,
        )

    def execution_detail(self, execution_id: str) -> ExecutionDetailController:
        return ExecutionDetailController(self.client, execution_id)

    def _on_session_changed(self, session: Optional[ApiSession]) -> None:
        self._client = N8nClient(session, http_transport=self._http_transport) if session else None
        self.session_version += 1
        bind_instance(session.instance_url if session else None)
        logger.info("client_rebuilt", connected=session is not None, version=self.session_version)
