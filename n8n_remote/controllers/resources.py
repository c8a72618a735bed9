"""Per-resource controllers built from the generic list/detail machines.

Only filter-to-query mapping and action wiring live here; pagination, race
guards and rollback stay in ``PaginatedListController``/``DetailController``.
"""
from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

from n8n_remote.api.client import N8nClient
from n8n_remote.api.models import (
    Credential,
    Execution,
    ExecutionStatus,
    Page,
    Project,
    Tag,
    Variable,
    Workflow,
)
from n8n_remote.controllers.detail_controller import DetailController
from n8n_remote.controllers.list_controller import MutationOutcome, PaginatedListController

WORKFLOW_SEARCH_KEY = "name"


class WorkflowListController(PaginatedListController[Workflow]):
    """Workflows screen: name search (debounced), active/tag/project filters."""

    def __init__(
        self,
        client: N8nClient,
        *,
        page_size: int = 20,
        debounce_seconds: float = 0.3,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._client = client

        async def fetch_page(filters: Mapping[str, Any], cursor: Optional[str], limit: int) -> Page[Workflow]:
            return await client.workflows.list(
                limit,
                cursor,
                active=filters.get("active"),
                tags=filters.get("tags"),
                name=filters.get(WORKFLOW_SEARCH_KEY),
                project_id=filters.get("project_id"),
            )

        super().__init__(
            fetch_page,
            page_size=page_size,
            filters=filters,
            debounce_keys=(WORKFLOW_SEARCH_KEY,),
            debounce_seconds=debounce_seconds,
            name="workflows",
        )

    def search(self, query: str) -> asyncio.Task[None]:
        return self.set_filter(WORKFLOW_SEARCH_KEY, query.strip() or None)

    def filter_active(self, active: Optional[bool]) -> asyncio.Task[None]:
        return self.set_filter("active", active)

    def filter_tags(self, tag_names: Optional[list[str]]) -> asyncio.Task[None]:
        return self.set_filter("tags", ",".join(tag_names) if tag_names else None)

    async def toggle_active(self, workflow_id: str, active: bool) -> MutationOutcome[Workflow]:
        async def apply(entity_id: str, patch: Mapping[str, Any]) -> Workflow:
            return await self._client.workflows.set_active(entity_id, bool(patch["active"]))

        return await self.mutate(workflow_id, {"active": active}, apply)

    async def delete(self, workflow_id: str) -> None:
        """Delete on the server, then drop the row. Raises ``ApiError`` on failure."""
        await self._client.workflows.delete(workflow_id)
        self.remove(workflow_id)


class ExecutionListController(PaginatedListController[Execution]):
    """Executions screen: status and workflow filters."""

    def __init__(
        self,
        client: N8nClient,
        *,
        page_size: int = 20,
        workflow_id: Optional[str] = None,
        status: Optional[ExecutionStatus] = None,
        include_data: Optional[bool] = None,
    ) -> None:
        self._client = client

        async def fetch_page(filters: Mapping[str, Any], cursor: Optional[str], limit: int) -> Page[Execution]:
            return await client.executions.list(
                limit,
                cursor,
                status=filters.get("status"),
                workflow_id=filters.get("workflow_id"),
                project_id=filters.get("project_id"),
                include_data=filters.get("include_data"),
            )

        super().__init__(
            fetch_page,
            page_size=page_size,
            filters={"workflow_id": workflow_id, "status": status, "include_data": include_data},
            name="executions",
        )

    def filter_status(self, status: Optional[ExecutionStatus]) -> asyncio.Task[None]:
        return self.set_filter("status", status)

    def filter_workflow(self, workflow_id: Optional[str]) -> asyncio.Task[None]:
        return self.set_filter("workflow_id", workflow_id)

    async def delete(self, execution_id: str) -> None:
        await self._client.executions.delete(execution_id)
        self.remove(execution_id)


def credential_list(client: N8nClient, page_size: int = 20) -> PaginatedListController[Credential]:
    async def fetch_page(filters: Mapping[str, Any], cursor: Optional[str], limit: int) -> Page[Credential]:
        return await client.credentials.list(limit, cursor)

    return PaginatedListController(fetch_page, page_size=page_size, name="credentials")


def tag_list(client: N8nClient, page_size: int = 20) -> PaginatedListController[Tag]:
    async def fetch_page(filters: Mapping[str, Any], cursor: Optional[str], limit: int) -> Page[Tag]:
        return await client.tags.list(limit, cursor)

    return PaginatedListController(fetch_page, page_size=page_size, name="tags")


def variable_list(client: N8nClient, page_size: int = 20) -> PaginatedListController[Variable]:
    async def fetch_page(filters: Mapping[str, Any], cursor: Optional[str], limit: int) -> Page[Variable]:
        return await client.variables.list(limit, cursor)

    return PaginatedListController(fetch_page, page_size=page_size, name="variables")


def project_list(client: N8nClient, page_size: int = 20) -> PaginatedListController[Project]:
    async def fetch_page(filters: Mapping[str, Any], cursor: Optional[str], limit: int) -> Page[Project]:
        return await client.projects.list(limit, cursor)

    return PaginatedListController(fetch_page, page_size=page_size, name="projects")


class WorkflowDetailController(DetailController[Workflow]):
    def __init__(self, client: N8nClient, workflow_id: str) -> None:
        workflows = client.workflows

        async def activate(entity_id: str, payload: Mapping[str, Any]) -> Workflow:
            return await workflows.activate(entity_id)

        async def deactivate(entity_id: str, payload: Mapping[str, Any]) -> Workflow:
            return await workflows.deactivate(entity_id)

        async def toggle(entity_id: str, payload: Mapping[str, Any]) -> Workflow:
            return await workflows.set_active(entity_id, bool(payload["active"]))

        async def update(entity_id: str, payload: Mapping[str, Any]) -> Workflow:
            return await workflows.update(entity_id, payload)

        async def transfer(entity_id: str, payload: Mapping[str, Any]) -> None:
            await workflows.transfer(entity_id, str(payload["destinationProjectId"]))

        super().__init__(
            workflows.get,
            actions={
                "activate": activate,
                "deactivate": deactivate,
                "toggle": toggle,
                "update": update,
                "transfer": transfer,
            },
            delete_one=workflows.delete,
            entity_id=workflow_id,
            name="workflow",
        )

    async def toggle_active(self) -> Optional[Workflow]:
        current = self.entity
        if current is None:
            return None
        return await self.act("toggle", {"active": not current.active})


class ExecutionDetailController(DetailController[Execution]):
    """Execution screen. ``retry()`` moves the controller to the new execution."""

    def __init__(self, client: N8nClient, execution_id: str, include_data: bool = True) -> None:
        executions = client.executions

        async def fetch_one(entity_id: str) -> Execution:
            return await executions.get(entity_id, include_data=include_data)

        async def retry(entity_id: str, payload: Mapping[str, Any]) -> Execution:
            return await executions.retry(entity_id)

        async def stop(entity_id: str, payload: Mapping[str, Any]) -> Execution:
            return await executions.stop(entity_id)

        super().__init__(
            fetch_one,
            actions={"retry": retry, "stop": stop},
            delete_one=executions.delete,
            entity_id=execution_id,
            name="execution",
        )

    async def retry(self) -> Optional[Execution]:
        return await self.act("retry")

    async def stop(self) -> Optional[Execution]:
        return await self.act("stop")


class WorkflowOverview:
    """Workflow detail screen: the workflow plus its recent executions."""

    def __init__(self, client: N8nClient, workflow_id: str, executions_page_size: int = 10) -> None:
        self.workflow = WorkflowDetailController(client, workflow_id)
        self.executions = ExecutionListController(
            client,
            page_size=executions_page_size,
            workflow_id=workflow_id,
        )

    async def load(self) -> None:
        await asyncio.gather(self.workflow.fetch(), self.executions.refresh())

    async def refresh(self) -> None:
        await self.load()
