import json
import logging

import httpx
import pytest
import structlog

from n8n_remote.bootstrap import AppContext, NotConnectedError
from n8n_remote.core.config import Settings
from n8n_remote.core.logging import JSONContextFormatter, bind_instance, setup_logging
from n8n_remote.session.credentials import Credentials


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.reset_defaults()
    bind_instance(None)


@pytest.fixture
def make_settings(tmp_path):
    def factory(**overrides) -> Settings:
        values = {
            "N8N_INSTANCE_URL": "",
            "N8N_API_KEY": "",
            "N8N_SESSION_FILE": str(tmp_path / "session.json"),
            "N8N_PAGE_SIZE": 3,
            "LOG_LEVEL": "WARNING",
        }
        values.update(overrides)
        return Settings(**values)

    return factory


def ok_transport() -> httpx.MockTransport:
    return httpx.MockTransport(lambda request: httpx.Response(200, json={"data": [], "nextCursor": None}))


def test_environment_credentials_win_and_are_not_cached(make_settings, tmp_path):
    settings = make_settings(N8N_INSTANCE_URL="https://env.example.test/", N8N_API_KEY="env-key")

    context = AppContext.create(settings)

    assert context.is_connected
    assert context.client.session.instance_url == "https://env.example.test"
    assert context.client.session.timeout == settings.N8N_TIMEOUT_SECONDS
    assert not (tmp_path / "session.json").exists()


def test_cached_credentials_are_loaded_on_start(make_settings, tmp_path):
    (tmp_path / "session.json").write_text(json.dumps({"instanceUrl": "https://cached.test", "apiKey": "k"}))

    context = AppContext.create(make_settings())

    assert context.client.session.instance_url == "https://cached.test"
    assert context.session_version == 1


def test_unreadable_cache_starts_disconnected(make_settings, tmp_path):
    (tmp_path / "session.json").write_text("garbage")

    context = AppContext.create(make_settings())

    assert not context.is_connected
    with pytest.raises(NotConnectedError):
        context.workflows()


@pytest.mark.asyncio
async def test_successful_connection_rebuilds_client(make_settings):
    context = AppContext.create(make_settings(), http_transport=ok_transport())
    assert context.session_version == 0

    result = await context.connection_checker().test(Credentials("https://new.example.test", "new-key"))

    assert result.ok
    assert context.session_version == 1
    assert context.client.session.instance_url == "https://new.example.test"
    assert context.workflows().page_size == 3


def test_disconnect_drops_client(make_settings, tmp_path):
    (tmp_path / "session.json").write_text(json.dumps({"instanceUrl": "https://cached.test", "apiKey": "k"}))
    context = AppContext.create(make_settings())

    context.disconnect()

    assert not context.is_connected
    assert context.session_version == 2
    assert not (tmp_path / "session.json").exists()


@pytest.mark.asyncio
async def test_factories_share_the_current_client(make_settings):
    settings = make_settings(N8N_INSTANCE_URL="https://env.example.test", N8N_API_KEY="k", N8N_DETAIL_EXECUTIONS_PAGE_SIZE=4)
    context = AppContext.create(settings, http_transport=ok_transport())

    overview = context.workflow_overview("7")
    executions = context.executions(workflow_id="7")
    await executions.refresh()

    assert overview.executions.page_size == 4
    assert executions.filters == {"workflow_id": "7"}
    assert executions.snapshot.is_empty
    assert context.execution_detail("9").entity_id == "9"


def test_json_formatter_includes_bound_instance():
    bind_instance("https://n8n.example.test")
    record = logging.LogRecord("n8n_remote.test", logging.WARNING, __file__, 1, "list_fetch_failed", None, None)

    payload = json.loads(JSONContextFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["message"] == "list_fetch_failed"
    assert payload["instance"] == "https://n8n.example.test"


def test_setup_logging_owns_the_package_logger():
    handler = setup_logging("debug", json_output=False)

    package_logger = logging.getLogger("n8n_remote")
    assert package_logger.handlers == [handler]
    assert package_logger.level == logging.DEBUG
    assert package_logger.propagate is False
