import json

import pytest

from n8n_remote.api.models import ExecutionStatus, StopExecutionsBody, UpdateWorkflowRequest
from n8n_remote.core.errors import NotFoundError, UnknownApiError


@pytest.mark.asyncio
async def test_workflow_page_is_parsed_from_camel_case(client, router):
    router.add(
        "GET",
        "/api/v1/workflows",
        (
            200,
            {
                "data": [
                    {"id": "1", "name": "Billing", "active": True, "createdAt": "2024-05-01T10:00:00.000Z"},
                    {"id": "2", "name": "Onboarding", "active": False, "triggerCount": 3},
                ],
                "nextCursor": "abc",
            },
        ),
    )

    page = await client.workflows.list(2, active=True, tags="ops,billing", project_id="p1")

    assert [w.id for w in page.data] == ["1", "2"]
    assert page.data[0].created_at == "2024-05-01T10:00:00.000Z"
    assert page.data[1].trigger_count == 3
    assert page.next_cursor == "abc"
    assert page.total_count is None
    params = router.last.url.params
    assert params["limit"] == "2"
    assert params["tags"] == "ops,billing"
    assert params["projectId"] == "p1"
    assert "cursor" not in params


@pytest.mark.asyncio
async def test_page_total_count_accepts_legacy_name(client, router):
    router.add("GET", "/api/v1/tags", (200, {"data": [{"id": "t1", "name": "ops"}], "numberOfTotalRecords": 41}))

    page = await client.tags.list(1)

    assert page.total_count == 41


@pytest.mark.asyncio
async def test_unknown_fields_are_preserved(client, router):
    router.add("GET", "/api/v1/workflows/9", (200, {"id": "9", "name": "x", "isArchived": False}))

    workflow = await client.workflows.get("9")

    assert workflow.model_extra == {"isArchived": False}


@pytest.mark.asyncio
async def test_set_active_hits_activate_and_deactivate(client, router):
    router.add("POST", "/api/v1/workflows/5/activate", (200, {"id": "5", "name": "w", "active": True}))
    router.add("POST", "/api/v1/workflows/5/deactivate", (200, {"id": "5", "name": "w", "active": False}))

    assert (await client.workflows.set_active("5", True)).active is True
    assert router.last.url.path == "/api/v1/workflows/5/activate"
    assert (await client.workflows.set_active("5", False)).active is False
    assert router.last.url.path == "/api/v1/workflows/5/deactivate"


@pytest.mark.asyncio
async def test_update_workflow_sends_aliased_body_without_nulls(client, router):
    router.add("PUT", "/api/v1/workflows/5", (200, {"id": "5", "name": "renamed"}))

    await client.workflows.update("5", UpdateWorkflowRequest(name="renamed", static_data={"a": 1}))

    assert json.loads(router.last.content) == {"name": "renamed", "staticData": {"a": 1}}


@pytest.mark.asyncio
async def test_retry_sends_load_workflow_and_returns_new_execution(client, router):
    router.add(
        "POST",
        "/api/v1/executions/100/retry",
        (200, {"id": 101, "retryOf": 100, "status": "running", "workflowId": 7}),
    )

    execution = await client.executions.retry("100")

    assert json.loads(router.last.content) == {"loadWorkflow": True}
    assert execution.id == "101"
    assert execution.retry_of == "100"
    assert execution.workflow_id == "7"
    assert execution.status == ExecutionStatus.RUNNING


@pytest.mark.asyncio
async def test_execution_list_sends_status_value(client, router):
    router.add("GET", "/api/v1/executions", (200, {"data": [], "nextCursor": None}))

    await client.executions.list(10, status=ExecutionStatus.ERROR, workflow_id="7", include_data=False)

    params = router.last.url.params
    assert params["status"] == "error"
    assert params["workflowId"] == "7"
    assert params["includeData"] == "false"


@pytest.mark.asyncio
@pytest.mark.parametrize("raw_status", [None, "someFutureStatus"])
async def test_unrecognized_execution_status_is_unknown(client, router, raw_status):
    router.add("GET", "/api/v1/executions/3", (200, {"id": "3", "status": raw_status}))

    execution = await client.executions.get("3")

    assert execution.status == ExecutionStatus.UNKNOWN


@pytest.mark.asyncio
async def test_execution_error_details_are_exposed(client, router):
    router.add(
        "GET",
        "/api/v1/executions/4",
        (
            200,
            {
                "id": "4",
                "status": "error",
                "data": {"resultData": {"error": {"message": "boom"}, "lastNodeExecuted": "HTTP Request"}},
            },
        ),
    )

    execution = await client.executions.get("4", include_data=True)

    assert router.last.url.params["includeData"] == "true"
    assert execution.data.error_message == "boom"
    assert execution.data.last_node_executed == "HTTP Request"


@pytest.mark.asyncio
async def test_response_shape_mismatch_is_unknown_error(client, router):
    router.add("GET", "/api/v1/workflows", (200, {"data": [{"name": "missing id"}]}))

    with pytest.raises(UnknownApiError) as exc_info:
        await client.workflows.list()
    assert exc_info.value.raw_body == {"data": [{"name": "missing id"}]}


@pytest.mark.asyncio
async def test_workflow_tags_accept_bare_and_wrapped_lists(client, router):
    router.add("GET", "/api/v1/workflows/5/tags", (200, [{"id": "t1", "name": "ops"}]))
    router.add("PUT", "/api/v1/workflows/5/tags", (200, {"data": [{"id": "t2", "name": "billing"}]}))

    assert [t.name for t in await client.workflows.get_tags("5")] == ["ops"]
    updated = await client.workflows.update_tags("5", ["t2"])

    assert [t.id for t in updated] == ["t2"]
    assert json.loads(router.last.content) == [{"id": "t2"}]


@pytest.mark.asyncio
async def test_credential_update_uses_patch(client, router):
    router.add("PATCH", "/api/v1/credentials/c1", (200, {"id": "c1", "name": "Slack", "type": "slackApi"}))

    credential = await client.credentials.update("c1", {"name": "Slack"})

    assert router.last.method == "PATCH"
    assert credential.type == "slackApi"


@pytest.mark.asyncio
async def test_stop_many_tolerates_empty_body(client, router):
    router.add("POST", "/api/v1/executions/stop", (200, None))

    result = await client.executions.stop_many(StopExecutionsBody(status=["running"], workflow_id="7"))

    assert result == {"success": True}
    assert json.loads(router.last.content) == {"status": ["running"], "workflowId": "7"}


@pytest.mark.asyncio
async def test_audit_report_exposes_sections(client, router):
    router.add("POST", "/api/v1/audit", (200, {"Credentials Risk Report": {"risk": "credentials"}}))

    report = await client.generate_audit(categories=["credentials"])

    assert report.sections == {"Credentials Risk Report": {"risk": "credentials"}}
    assert json.loads(router.last.content) == {"additionalOptions": {"categories": ["credentials"]}}


@pytest.mark.asyncio
async def test_missing_resource_raises_not_found(client):
    with pytest.raises(NotFoundError):
        await client.workflows.get("nope")
