"""Typed n8n API client.

Each resource group wraps the shared ``Transport`` and validates responses into
the wire models. A response that does not fit its model raises
``UnknownApiError``; callers never see pydantic errors.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional, TypeVar

import httpx
import pydantic
import structlog

from n8n_remote.api import endpoints
from n8n_remote.api.models import (
    ActivateWorkflowBody,
    AuditReport,
    CreateCredentialRequest,
    CreateWorkflowRequest,
    Credential,
    CredentialSchema,
    DataTable,
    DataTableRow,
    Execution,
    ExecutionStatus,
    Page,
    Project,
    ProjectUser,
    RetryExecutionBody,
    SourceControlPullResult,
    StopExecutionsBody,
    Tag,
    UpdateCredentialRequest,
    UpdateWorkflowRequest,
    User,
    Variable,
    WireModel,
    Workflow,
    WorkflowVersion,
)
from n8n_remote.api.transport import Transport
from n8n_remote.core.errors import UnknownApiError
from n8n_remote.session.credentials import ApiSession

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=pydantic.BaseModel)


def parse(model: type[M], payload: Any) -> M:
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as exc:
        logger.warning("n8n_response_shape_mismatch", model=model.__name__, errors=exc.error_count())
        raise UnknownApiError(
            f"Unexpected response for {model.__name__}",
            raw_body=payload,
        ) from exc


def parse_list(model: type[M], payload: Any) -> list[M]:
    # some endpoints wrap arrays as {"data": [...]}
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]
    if not isinstance(payload, list):
        raise UnknownApiError(f"Expected a list of {model.__name__}", raw_body=payload)
    return [parse(model, item) for item in payload]


def _body(payload: WireModel | Mapping[str, Any] | None) -> Any:
    if payload is None:
        return None
    if isinstance(payload, WireModel):
        return payload.to_wire()
    return dict(payload)


def _page_query(limit: Optional[int], cursor: Optional[str], **filters: Any) -> dict[str, Any]:
    query: dict[str, Any] = {"limit": limit, "cursor": cursor}
    query.update(filters)
    return query


class _Resource:
    def __init__(self, transport: Transport) -> None:
        self._t = transport


class WorkflowsApi(_Resource):
    async def list(
        self,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
        *,
        active: Optional[bool] = None,
        tags: Optional[str] = None,
        name: Optional[str] = None,
        project_id: Optional[str] = None,
        exclude_pinned_data: Optional[bool] = None,
    ) -> Page[Workflow]:
        payload = await self._t.get(
            endpoints.Workflows.LIST,
            _page_query(
                limit,
                cursor,
                active=active,
                tags=tags,
                name=name,
                projectId=project_id,
                excludePinnedData=exclude_pinned_data,
            ),
        )
        return parse(Page[Workflow], payload)

    async def get(self, workflow_id: str, exclude_pinned_data: Optional[bool] = None) -> Workflow:
        payload = await self._t.get(
            endpoints.Workflows.get(workflow_id),
            {"excludePinnedData": exclude_pinned_data},
        )
        return parse(Workflow, payload)

    async def create(self, data: CreateWorkflowRequest | Mapping[str, Any]) -> Workflow:
        return parse(Workflow, await self._t.post(endpoints.Workflows.CREATE, _body(data)))

    async def update(self, workflow_id: str, data: UpdateWorkflowRequest | Mapping[str, Any]) -> Workflow:
        # n8n replaces the whole workflow on PUT
        return parse(Workflow, await self._t.put(endpoints.Workflows.update(workflow_id), _body(data)))

    async def delete(self, workflow_id: str) -> None:
        await self._t.delete(endpoints.Workflows.delete(workflow_id))

    async def activate(self, workflow_id: str, data: ActivateWorkflowBody | None = None) -> Workflow:
        return parse(Workflow, await self._t.post(endpoints.Workflows.activate(workflow_id), _body(data)))

    async def deactivate(self, workflow_id: str) -> Workflow:
        return parse(Workflow, await self._t.post(endpoints.Workflows.deactivate(workflow_id)))

    async def set_active(self, workflow_id: str, active: bool) -> Workflow:
        if active:
            return await self.activate(workflow_id)
        return await self.deactivate(workflow_id)

    async def get_tags(self, workflow_id: str) -> list[Tag]:
        return parse_list(Tag, await self._t.get(endpoints.Workflows.tags(workflow_id)))

    async def update_tags(self, workflow_id: str, tag_ids: list[str]) -> list[Tag]:
        payload = await self._t.put(endpoints.Workflows.tags(workflow_id), [{"id": tag_id} for tag_id in tag_ids])
        return parse_list(Tag, payload)

    async def transfer(self, workflow_id: str, destination_project_id: str) -> None:
        await self._t.put(
            endpoints.Workflows.transfer(workflow_id),
            {"destinationProjectId": destination_project_id},
        )

    async def get_version(self, workflow_id: str, version_id: str) -> WorkflowVersion:
        return parse(WorkflowVersion, await self._t.get(endpoints.Workflows.version(workflow_id, version_id)))


class ExecutionsApi(_Resource):
    async def list(
        self,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
        *,
        status: Optional[ExecutionStatus | str] = None,
        workflow_id: Optional[str] = None,
        project_id: Optional[str] = None,
        include_data: Optional[bool] = None,
    ) -> Page[Execution]:
        if isinstance(status, ExecutionStatus):
            status = status.value
        payload = await self._t.get(
            endpoints.Executions.LIST,
            _page_query(
                limit,
                cursor,
                status=status,
                workflowId=workflow_id,
                projectId=project_id,
                includeData=include_data,
            ),
        )
        return parse(Page[Execution], payload)

    async def get(self, execution_id: str, include_data: Optional[bool] = None) -> Execution:
        payload = await self._t.get(
            endpoints.Executions.get(execution_id),
            {"includeData": include_data},
        )
        return parse(Execution, payload)

    async def delete(self, execution_id: str) -> None:
        await self._t.delete(endpoints.Executions.delete(execution_id))

    async def retry(self, execution_id: str, data: RetryExecutionBody | None = None) -> Execution:
        """Start a new execution from a failed one; the result has ``retry_of == execution_id``."""
        body = _body(data or RetryExecutionBody(load_workflow=True))
        return parse(Execution, await self._t.post(endpoints.Executions.retry(execution_id), body))

    async def stop(self, execution_id: str) -> Execution:
        return parse(Execution, await self._t.post(endpoints.Executions.stop(execution_id)))

    async def stop_many(self, data: StopExecutionsBody) -> dict[str, Any]:
        payload = await self._t.post(endpoints.Executions.STOP_MANY, _body(data))
        return payload if isinstance(payload, dict) else {"success": True}

    async def get_tags(self, execution_id: str) -> list[Tag]:
        return parse_list(Tag, await self._t.get(endpoints.Executions.tags(execution_id)))

    async def update_tags(self, execution_id: str, tag_ids: list[str]) -> list[Tag]:
        payload = await self._t.put(endpoints.Executions.tags(execution_id), [{"id": tag_id} for tag_id in tag_ids])
        return parse_list(Tag, payload)


class CredentialsApi(_Resource):
    async def list(self, limit: Optional[int] = None, cursor: Optional[str] = None) -> Page[Credential]:
        return parse(Page[Credential], await self._t.get(endpoints.Credentials.LIST, _page_query(limit, cursor)))

    async def get(self, credential_id: str) -> Credential:
        return parse(Credential, await self._t.get(endpoints.Credentials.get(credential_id)))

    async def create(self, data: CreateCredentialRequest | Mapping[str, Any]) -> Credential:
        return parse(Credential, await self._t.post(endpoints.Credentials.CREATE, _body(data)))

    async def update(self, credential_id: str, data: UpdateCredentialRequest | Mapping[str, Any]) -> Credential:
        return parse(Credential, await self._t.patch(endpoints.Credentials.update(credential_id), _body(data)))

    async def delete(self, credential_id: str) -> None:
        await self._t.delete(endpoints.Credentials.delete(credential_id))

    async def get_schema(self, credential_type: str) -> CredentialSchema:
        return parse(CredentialSchema, await self._t.get(endpoints.Credentials.schema(credential_type)))

    async def transfer(self, credential_id: str, destination_project_id: str) -> None:
        await self._t.put(
            endpoints.Credentials.transfer(credential_id),
            {"destinationProjectId": destination_project_id},
        )


class TagsApi(_Resource):
    async def list(self, limit: Optional[int] = None, cursor: Optional[str] = None) -> Page[Tag]:
        return parse(Page[Tag], await self._t.get(endpoints.Tags.LIST, _page_query(limit, cursor)))

    async def get(self, tag_id: str) -> Tag:
        return parse(Tag, await self._t.get(endpoints.Tags.get(tag_id)))

    async def create(self, name: str) -> Tag:
        return parse(Tag, await self._t.post(endpoints.Tags.CREATE, {"name": name}))

    async def update(self, tag_id: str, name: str) -> Tag:
        return parse(Tag, await self._t.put(endpoints.Tags.update(tag_id), {"name": name}))

    async def delete(self, tag_id: str) -> None:
        await self._t.delete(endpoints.Tags.delete(tag_id))


class ProjectsApi(_Resource):
    async def list(self, limit: Optional[int] = None, cursor: Optional[str] = None) -> Page[Project]:
        return parse(Page[Project], await self._t.get(endpoints.Projects.LIST, _page_query(limit, cursor)))

    async def get(self, project_id: str) -> Project:
        return parse(Project, await self._t.get(endpoints.Projects.get(project_id)))

    async def create(self, name: str) -> Project:
        return parse(Project, await self._t.post(endpoints.Projects.CREATE, {"name": name}))

    async def update(self, project_id: str, name: str) -> None:
        await self._t.put(endpoints.Projects.update(project_id), {"name": name})

    async def delete(self, project_id: str) -> None:
        await self._t.delete(endpoints.Projects.delete(project_id))

    async def get_users(self, project_id: str) -> list[ProjectUser]:
        return parse_list(ProjectUser, await self._t.get(endpoints.Projects.users(project_id)))

    async def add_user(self, project_id: str, user_id: str, role: str) -> None:
        await self._t.post(
            endpoints.Projects.users(project_id),
            {"relations": [{"userId": user_id, "role": role}]},
        )

    async def update_user_role(self, project_id: str, user_id: str, role: str) -> None:
        await self._t.patch(endpoints.Projects.user(project_id, user_id), {"role": role})

    async def remove_user(self, project_id: str, user_id: str) -> None:
        await self._t.delete(endpoints.Projects.user(project_id, user_id))


class UsersApi(_Resource):
    async def list(
        self,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
        *,
        include_role: Optional[bool] = None,
        project_id: Optional[str] = None,
    ) -> Page[User]:
        payload = await self._t.get(
            endpoints.Users.LIST,
            _page_query(limit, cursor, includeRole=include_role, projectId=project_id),
        )
        return parse(Page[User], payload)

    async def get(self, user_id: str) -> User:
        return parse(User, await self._t.get(endpoints.Users.get(user_id)))

    async def invite(self, email: str, role: str = "global:member") -> Any:
        return await self._t.post(endpoints.Users.INVITE, [{"email": email, "role": role}])

    async def delete(self, user_id: str, transfer_id: Optional[str] = None) -> None:
        await self._t.delete(endpoints.Users.delete(user_id), {"transferId": transfer_id})

    async def update_role(self, user_id: str, role: str) -> None:
        await self._t.patch(endpoints.Users.role(user_id), {"newRoleName": role})


class VariablesApi(_Resource):
    async def list(self, limit: Optional[int] = None, cursor: Optional[str] = None) -> Page[Variable]:
        return parse(Page[Variable], await self._t.get(endpoints.Variables.LIST, _page_query(limit, cursor)))

    async def create(self, key: str, value: str) -> None:
        await self._t.post(endpoints.Variables.CREATE, {"key": key, "value": value})

    async def update(self, variable_id: str, key: str, value: str) -> None:
        await self._t.put(endpoints.Variables.update(variable_id), {"key": key, "value": value})

    async def delete(self, variable_id: str) -> None:
        await self._t.delete(endpoints.Variables.delete(variable_id))


class DataTablesApi(_Resource):
    async def list(self, limit: Optional[int] = None, cursor: Optional[str] = None) -> Page[DataTable]:
        return parse(Page[DataTable], await self._t.get(endpoints.DataTables.LIST, _page_query(limit, cursor)))

    async def get(self, table_id: str) -> DataTable:
        return parse(DataTable, await self._t.get(endpoints.DataTables.get(table_id)))

    async def create(self, name: str, columns: list[dict[str, Any]]) -> DataTable:
        return parse(DataTable, await self._t.post(endpoints.DataTables.CREATE, {"name": name, "columns": columns}))

    async def delete(self, table_id: str) -> None:
        await self._t.delete(endpoints.DataTables.delete(table_id))

    async def get_rows(
        self,
        table_id: str,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
        *,
        search: Optional[str] = None,
    ) -> Page[DataTableRow]:
        payload = await self._t.get(endpoints.DataTables.rows(table_id), _page_query(limit, cursor, search=search))
        return parse(Page[DataTableRow], payload)

    async def insert_rows(self, table_id: str, rows: list[dict[str, Any]]) -> Any:
        return await self._t.post(endpoints.DataTables.rows(table_id), {"data": rows, "returnType": "all"})


class N8nClient:
    """Entry point: one client per ``ApiSession``.

    Rebuild the client when credentials change instead of mutating it; see
    ``SessionStore.subscribe``.
    """

    def __init__(self, session: ApiSession, http_transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.transport = Transport(session, transport=http_transport)
        self.workflows = WorkflowsApi(self.transport)
        self.executions = ExecutionsApi(self.transport)
        self.credentials = CredentialsApi(self.transport)
        self.tags = TagsApi(self.transport)
        self.projects = ProjectsApi(self.transport)
        self.users = UsersApi(self.transport)
        self.variables = VariablesApi(self.transport)
        self.data_tables = DataTablesApi(self.transport)

    @property
    def session(self) -> ApiSession:
        return self.transport.session

    async def generate_audit(self, categories: Optional[list[str]] = None, days_abandoned_workflow: Optional[int] = None) -> AuditReport:
        options: dict[str, Any] = {}
        if categories:
            options["categories"] = categories
        if days_abandoned_workflow is not None:
            options["daysAbandonedWorkflow"] = days_abandoned_workflow
        payload = await self.transport.post(endpoints.Audit.GENERATE, {"additionalOptions": options} if options else None)
        return parse(AuditReport, payload or {})

    async def pull_source_control(self, force: bool = False) -> SourceControlPullResult:
        payload = await self.transport.post(endpoints.SourceControl.PULL, {"force": force})
        return parse(SourceControlPullResult, payload or {})
