import json

import httpx
import pytest

from n8n_remote.api.models import ExecutionStatus
from n8n_remote.controllers.resources import (
    ExecutionDetailController,
    ExecutionListController,
    WorkflowDetailController,
    WorkflowListController,
    WorkflowOverview,
    tag_list,
)
from n8n_remote.core.errors import ErrorKind, NotFoundError

WORKFLOWS = {
    "data": [
        {"id": "1", "name": "Billing", "active": True},
        {"id": "2", "name": "Onboarding", "active": False},
    ],
    "nextCursor": None,
}


@pytest.mark.asyncio
async def test_workflow_search_maps_to_name_query(client, router):
    router.add("GET", "/api/v1/workflows", (200, WORKFLOWS))
    controller = WorkflowListController(client, page_size=5, debounce_seconds=0.01)

    await controller.search("  Bill  ")

    params = router.last.url.params
    assert params["name"] == "Bill"
    assert params["limit"] == "5"
    assert [w.name for w in controller.snapshot.items] == ["Billing", "Onboarding"]


@pytest.mark.asyncio
async def test_workflow_tag_filter_is_comma_joined(client, router):
    router.add("GET", "/api/v1/workflows", (200, WORKFLOWS))
    controller = WorkflowListController(client, filters={"active": True})

    await controller.filter_tags(["ops", "billing"])

    params = router.last.url.params
    assert params["tags"] == "ops,billing"
    assert params["active"] == "true"


@pytest.mark.asyncio
async def test_toggle_active_reconciles_with_server_workflow(client, router):
    router.add("GET", "/api/v1/workflows", (200, WORKFLOWS))
    router.add(
        "POST",
        "/api/v1/workflows/2/activate",
        (200, {"id": "2", "name": "Onboarding", "active": True, "updatedAt": "2024-06-01T00:00:00.000Z"}),
    )
    controller = WorkflowListController(client)
    await controller.refresh()

    outcome = await controller.toggle_active("2", True)

    assert outcome.ok
    toggled = controller.snapshot.items[1]
    assert toggled.active is True
    assert toggled.updated_at == "2024-06-01T00:00:00.000Z"


@pytest.mark.asyncio
async def test_toggle_active_rolls_back_when_server_refuses(client, router):
    router.add("GET", "/api/v1/workflows", (200, WORKFLOWS))
    router.add(
        "POST",
        "/api/v1/workflows/2/activate",
        (400, {"message": "Workflow has no node to start the workflow"}),
    )
    controller = WorkflowListController(client)
    await controller.refresh()

    outcome = await controller.toggle_active("2", True)

    assert not outcome.ok
    assert outcome.message == "Workflow has no node to start the workflow"
    assert controller.snapshot.items[1].active is False
    assert controller.snapshot.error_kind == ErrorKind.VALIDATION


@pytest.mark.asyncio
async def test_workflow_delete_removes_row_after_server_confirms(client, router):
    router.add("GET", "/api/v1/workflows", (200, WORKFLOWS))
    router.add("DELETE", "/api/v1/workflows/1", (200, {"id": "1", "name": "Billing"}))
    controller = WorkflowListController(client)
    await controller.refresh()

    await controller.delete("1")

    assert [w.id for w in controller.snapshot.items] == ["2"]


@pytest.mark.asyncio
async def test_failed_workflow_delete_raises_and_keeps_row(client, router):
    router.add("GET", "/api/v1/workflows", (200, WORKFLOWS))
    controller = WorkflowListController(client)
    await controller.refresh()

    with pytest.raises(NotFoundError):
        await controller.delete("1")
    assert len(controller.snapshot.items) == 2


@pytest.mark.asyncio
async def test_execution_list_filters_by_workflow_and_status(client, router):
    router.add("GET", "/api/v1/executions", (200, {"data": [{"id": 9, "status": "error"}], "nextCursor": "n"}))
    controller = ExecutionListController(client, workflow_id="7")

    await controller.filter_status(ExecutionStatus.ERROR)

    params = router.last.url.params
    assert params["workflowId"] == "7"
    assert params["status"] == "error"
    assert controller.snapshot.items[0].id == "9"
    assert controller.snapshot.has_more is True


@pytest.mark.asyncio
async def test_workflow_detail_toggle_flips_current_state(client, router):
    router.add("GET", "/api/v1/workflows/3", (200, {"id": "3", "name": "w", "active": True}))
    router.add("POST", "/api/v1/workflows/3/deactivate", (200, {"id": "3", "name": "w", "active": False}))
    controller = WorkflowDetailController(client, "3")

    assert await controller.toggle_active() is None
    await controller.fetch()
    result = await controller.toggle_active()

    assert result.active is False
    assert controller.entity.active is False


@pytest.mark.asyncio
async def test_workflow_detail_transfer_keeps_entity(client, router):
    router.add("GET", "/api/v1/workflows/3", (200, {"id": "3", "name": "w"}))
    router.add("PUT", "/api/v1/workflows/3/transfer", (204, None))
    controller = WorkflowDetailController(client, "3")
    await controller.fetch()

    await controller.act("transfer", {"destinationProjectId": "p2"})

    assert json.loads(router.last.content) == {"destinationProjectId": "p2"}
    assert controller.entity.name == "w"
    assert controller.snapshot.act_error is None


@pytest.mark.asyncio
async def test_execution_retry_moves_screen_to_new_execution(client, router):
    router.add("GET", "/api/v1/executions/100", (200, {"id": "100", "status": "error"}))
    router.add("POST", "/api/v1/executions/100/retry", (200, {"id": "101", "retryOf": "100", "status": "running"}))
    router.add("GET", "/api/v1/executions/101", (200, {"id": "101", "retryOf": "100", "status": "success"}))
    controller = ExecutionDetailController(client, "100")
    await controller.fetch()
    assert router.last.url.params["includeData"] == "true"

    retried = await controller.retry()

    assert retried.retry_of == "100"
    assert controller.entity_id == "101"
    await controller.refresh()
    assert controller.entity.status == ExecutionStatus.SUCCESS


@pytest.mark.asyncio
async def test_workflow_overview_loads_workflow_and_its_executions(client, router):
    router.add("GET", "/api/v1/workflows/7", (200, {"id": "7", "name": "Billing", "active": True}))
    router.add("GET", "/api/v1/executions", (200, {"data": [{"id": "70"}, {"id": "71"}], "nextCursor": None}))
    overview = WorkflowOverview(client, "7", executions_page_size=2)

    await overview.load()

    assert overview.workflow.entity.name == "Billing"
    assert [e.id for e in overview.executions.snapshot.items] == ["70", "71"]
    executions_request = next(r for r in router.requests if r.url.path == "/api/v1/executions")
    assert executions_request.url.params["workflowId"] == "7"
    assert executions_request.url.params["limit"] == "2"


@pytest.mark.asyncio
async def test_simple_list_factories_page_through_their_endpoint(client, router):
    def tags(request):
        if request.url.params.get("cursor") == "next":
            return httpx.Response(200, json={"data": [{"id": "t3", "name": "c"}], "nextCursor": None})
        return httpx.Response(200, json={"data": [{"id": "t1", "name": "a"}, {"id": "t2", "name": "b"}], "nextCursor": "next"})

    router.add("GET", "/api/v1/tags", tags)
    controller = tag_list(client, page_size=2)

    await controller.refresh()
    await controller.load_more()

    assert [t.id for t in controller.snapshot.items] == ["t1", "t2", "t3"]
    assert controller.snapshot.has_more is False
