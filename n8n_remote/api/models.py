"""Wire models for the n8n public API.

Attributes are snake_case; the camelCase names n8n uses on the wire are
generated aliases. Fields the client does not know about are preserved.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Entity(WireModel):
    """Anything the API addresses by an opaque id."""

    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # some n8n versions return numeric execution ids
        if isinstance(value, int):
            return str(value)
        return value


T = TypeVar("T", bound=Entity)


class Page(WireModel, Generic[T]):
    data: list[T] = Field(default_factory=list)
    next_cursor: Optional[str] = None
    total_count: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("totalCount", "numberOfTotalRecords", "total_count"),
    )


# ── Workflows ─────────────────────────────────────────


class WorkflowSettings(WireModel):
    error_workflow: Optional[str] = None
    timezone: Optional[str] = None
    save_manual_executions: Optional[bool] = None
    save_execution_progress: Optional[bool] = None
    save_data_error_execution: Optional[str] = None
    save_data_success_execution: Optional[str] = None
    execution_timeout: Optional[int] = None
    execution_order: Optional[str] = None


class WorkflowNode(WireModel):
    id: Optional[str] = None
    name: str
    type: str
    type_version: float = 1
    position: list[float] = Field(default_factory=lambda: [0, 0])
    parameters: dict[str, Any] = Field(default_factory=dict)
    credentials: Optional[dict[str, Any]] = None
    disabled: Optional[bool] = None
    notes: Optional[str] = None


class Tag(Entity):
    name: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Workflow(Entity):
    name: str = ""
    active: bool = False
    nodes: list[WorkflowNode] = Field(default_factory=list)
    connections: dict[str, Any] = Field(default_factory=dict)
    settings: Optional[WorkflowSettings] = None
    static_data: Optional[dict[str, Any]] = None
    tags: list[Tag] = Field(default_factory=list)
    trigger_count: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    version_id: Optional[str] = None
    description: Optional[str] = None
    meta: Optional[dict[str, Any]] = None


class WorkflowVersion(WireModel):
    id: Optional[str] = None
    version_id: str
    workflow_id: str
    name: str = ""
    active: bool = False
    nodes: list[WorkflowNode] = Field(default_factory=list)
    connections: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CreateWorkflowRequest(WireModel):
    name: str
    nodes: list[WorkflowNode] = Field(default_factory=list)
    connections: dict[str, Any] = Field(default_factory=dict)
    settings: Optional[WorkflowSettings] = None
    static_data: Optional[dict[str, Any]] = None
    description: Optional[str] = None


class UpdateWorkflowRequest(WireModel):
    name: Optional[str] = None
    nodes: Optional[list[WorkflowNode]] = None
    connections: Optional[dict[str, Any]] = None
    settings: Optional[WorkflowSettings] = None
    static_data: Optional[dict[str, Any]] = None
    description: Optional[str] = None


class ActivateWorkflowBody(WireModel):
    version_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None


# ── Executions ────────────────────────────────────────


class ExecutionStatus(str, Enum):
    NEW = "new"
    RUNNING = "running"
    WAITING = "waiting"
    SUCCESS = "success"
    ERROR = "error"
    CANCELED = "canceled"
    CRASHED = "crashed"
    UNKNOWN = "unknown"


class ExecutionData(WireModel):
    start_nodes: Optional[list[Any]] = None
    result_data: Optional[dict[str, Any]] = None
    execution_data: Optional[dict[str, Any]] = None

    @property
    def error_message(self) -> str | None:
        error = (self.result_data or {}).get("error")
        if isinstance(error, dict):
            return error.get("message")
        return None

    @property
    def last_node_executed(self) -> str | None:
        return (self.result_data or {}).get("lastNodeExecuted")


class Execution(Entity):
    finished: bool = False
    mode: str = "manual"
    # retry_of is a back-reference to the original execution, never an owner
    retry_of: Optional[str] = None
    retry_success_id: Optional[str] = None
    started_at: Optional[str] = None
    stopped_at: Optional[str] = None
    workflow_id: Optional[str] = None
    workflow_name: Optional[str] = None
    status: ExecutionStatus = ExecutionStatus.UNKNOWN
    data: Optional[ExecutionData] = None
    custom_data: Optional[dict[str, Any]] = None
    wait_till: Optional[str] = None
    execution_time: Optional[int] = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Any:
        if value is None:
            return ExecutionStatus.UNKNOWN
        if isinstance(value, str) and value not in ExecutionStatus._value2member_map_:
            return ExecutionStatus.UNKNOWN
        return value

    @field_validator("retry_of", "retry_success_id", "workflow_id", mode="before")
    @classmethod
    def _coerce_ref(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value


class RetryExecutionBody(WireModel):
    load_workflow: Optional[bool] = None


class StopExecutionsBody(WireModel):
    status: list[str]
    workflow_id: Optional[str] = None
    started_after: Optional[str] = None
    started_before: Optional[str] = None


# ── Credentials ───────────────────────────────────────


class ProjectRef(WireModel):
    id: str
    name: str = ""
    icon: Optional[Any] = None


class Credential(Entity):
    name: str = ""
    type: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    data: Optional[dict[str, Any]] = None
    is_global: Optional[bool] = None
    is_resolvable: Optional[bool] = None
    project: Optional[ProjectRef] = None


class CreateCredentialRequest(WireModel):
    name: str
    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class UpdateCredentialRequest(WireModel):
    name: Optional[str] = None
    type: Optional[str] = None
    data: Optional[dict[str, Any]] = None


class CredentialSchema(WireModel):
    type: str = "object"
    properties: dict[str, Any] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)
    additional_properties: Optional[bool] = None


# ── Projects / users / variables ──────────────────────


class Project(Entity):
    name: str = ""
    type: Optional[str] = None
    icon: Optional[Any] = None
    description: Optional[str] = None


class ProjectUser(WireModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None


class User(Entity):
    email: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_pending: Optional[bool] = None
    role: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Variable(Entity):
    key: str
    value: str = ""
    type: Optional[str] = None


# ── Audit / source control / data tables ─────────────


class AuditReport(WireModel):
    """Risk report sections keyed by title, e.g. "Credentials Risk Report"."""

    @property
    def sections(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class SourceControlPullResult(WireModel):
    variables: Optional[dict[str, Any]] = None
    credentials: Optional[list[Any]] = None
    workflows: Optional[list[Any]] = None
    tags: Optional[dict[str, Any]] = None


class DataTable(Entity):
    name: str = ""
    columns: list[dict[str, Any]] = Field(default_factory=list)
    project_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DataTableRow(Entity):
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def values(self) -> dict[str, Any]:
        return dict(self.model_extra or {})
