"""Client tests against a scripted HTTP transport."""

from __future__ import annotations

import logging

import httpx
import pytest

from cursor_agents.client import AgentInformationClient, AgentManagementClient
from cursor_agents.config import Config
from cursor_agents.errors import APIError, ConfigurationError, InvalidArgumentError, RateLimitError
from cursor_agents.models import AgentStatus, LaunchResponse
from cursor_agents.outcome import Failure, Success
from tests.conftest import TEST_API_KEY, TEST_BASE_URL, ScriptedTransport

pytestmark = pytest.mark.integration

REPO = "https://github.com/acme/repo"
AGENT = {
    "id": "bc_1",
    "name": "Add README",
    "status": "CREATING",
    "source": {"repository": REPO, "ref": "main"},
    "target": {"url": "https://cursor.com/agents?id=bc_1", "autoCreatePr": True},
}


@pytest.fixture
def config() -> Config:
    return Config(api_key=TEST_API_KEY, base_url=TEST_BASE_URL)


@pytest.fixture
def manage(config: Config, scripted: ScriptedTransport) -> AgentManagementClient:
    return AgentManagementClient(config=config, http_client=scripted.client())


@pytest.fixture
def info(config: Config, scripted: ScriptedTransport) -> AgentInformationClient:
    return AgentInformationClient(config=config, http_client=scripted.client())


# =============================================================================
# Construction
# =============================================================================


def test_constructor_accepts_key_and_base_url() -> None:
    client = AgentManagementClient(TEST_API_KEY, TEST_BASE_URL + "/")
    try:
        assert client.api_key == TEST_API_KEY
        assert client.base_url == TEST_BASE_URL
    finally:
        client.close()


def test_constructor_falls_back_to_env_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CURSOR_API_KEY", "env-key")
    with AgentInformationClient() as client:
        assert client.api_key == "env-key"
        assert client.base_url == "https://api.cursor.com"


def test_constructor_without_key_fails() -> None:
    with pytest.raises(ConfigurationError):
        AgentInformationClient()


def test_injected_http_client_is_not_closed(config: Config, scripted: ScriptedTransport) -> None:
    http = scripted.client()
    with AgentInformationClient(config=config, http_client=http):
        pass
    assert not http.is_closed


# =============================================================================
# Management
# =============================================================================


def test_launch_posts_request_and_projects_response(
    manage: AgentManagementClient, scripted: ScriptedTransport
) -> None:
    scripted.add("POST", "/v0/agents", AGENT)

    outcome = manage.launch("Add a README", "claude-4-sonnet", REPO)

    assert outcome == Success(LaunchResponse(id="bc_1", status=AgentStatus.CREATING))
    request = scripted.last_request
    assert str(request.url) == f"{TEST_BASE_URL}/v0/agents"
    assert request.headers["Authorization"] == f"Bearer {TEST_API_KEY}"
    assert request.headers["Accept"] == "application/json"
    assert scripted.last_json() == {
        "prompt": {"text": "Add a README", "images": []},
        "source": {"repository": REPO, "ref": "main"},
        "model": "claude-4-sonnet",
        "target": {"autoCreatePr": True},
    }


def test_launch_options_override_config(
    manage: AgentManagementClient, scripted: ScriptedTransport
) -> None:
    scripted.add("POST", "/v0/agents", AGENT)

    manage.launch("p", "gpt-4o", REPO, ref="develop", auto_create_pr=False)

    body = scripted.last_json()
    assert body["source"]["ref"] == "develop"
    assert body["target"] == {"autoCreatePr": False}


@pytest.mark.parametrize(
    ("prompt", "model", "repository", "name"),
    [
        (None, "m", REPO, "Prompt"),
        ("  ", "m", REPO, "Prompt"),
        ("p", "", REPO, "Model"),
        ("p", "m", None, "Repository"),
    ],
)
def test_launch_validates_arguments_before_sending(
    manage: AgentManagementClient,
    scripted: ScriptedTransport,
    prompt,
    model,
    repository,
    name: str,
) -> None:
    with pytest.raises(InvalidArgumentError, match=f"{name} cannot be None or empty"):
        manage.launch(prompt, model, repository)
    assert scripted.requests == []


def test_launch_http_error_becomes_failure(
    manage: AgentManagementClient, scripted: ScriptedTransport
) -> None:
    scripted.add(
        "POST",
        "/v0/agents",
        {"error": {"code": "INVALID_REQUEST", "message": "Invalid repository", "details": None}},
        status=400,
    )

    outcome = manage.launch("p", "m", REPO)

    assert isinstance(outcome, Failure)
    error = outcome.error
    assert isinstance(error, APIError)
    assert error.status_code == 400
    assert error.code == "INVALID_REQUEST"
    assert error.retryable is False
    assert "Invalid repository" in str(error)
    assert error.hint is not None


def test_follow_up(manage: AgentManagementClient, scripted: ScriptedTransport) -> None:
    scripted.add("POST", "/v0/agents/bc_1/followup", {"id": "bc_1"})

    assert manage.follow_up("bc_1", "Also add tests") == Success("bc_1")
    assert scripted.last_json() == {"prompt": {"text": "Also add tests", "images": []}}


def test_follow_up_requires_agent_id(manage: AgentManagementClient) -> None:
    with pytest.raises(InvalidArgumentError, match="Agent ID"):
        manage.follow_up("", "p")


def test_delete(manage: AgentManagementClient, scripted: ScriptedTransport) -> None:
    scripted.add("DELETE", "/v0/agents/bc_1", {"id": "bc_1"})
    assert manage.delete("bc_1").get_or_raise() == "bc_1"


def test_delete_unknown_agent_is_a_404_failure(manage: AgentManagementClient) -> None:
    error = manage.delete("bc_missing").error_or_none()

    assert isinstance(error, APIError)
    assert error.status_code == 404
    assert error.code == "NOT_FOUND"
    assert "DELETE /v0/agents/bc_missing" in str(error)


def test_agent_ids_are_path_quoted(
    manage: AgentManagementClient, scripted: ScriptedTransport
) -> None:
    manage.delete("a/b")
    assert scripted.last_request.url.raw_path == b"/v0/agents/a%2Fb"


# =============================================================================
# Information
# =============================================================================


def test_list_agents(info: AgentInformationClient, scripted: ScriptedTransport) -> None:
    scripted.add("GET", "/v0/agents", {"agents": [AGENT], "nextCursor": "c2"})

    page = info.list_agents(limit=10, cursor="c1").get_or_raise()

    assert [a.id for a in page.agents] == ["bc_1"]
    assert page.next_cursor == "c2"
    assert dict(scripted.last_request.url.params) == {"limit": "10", "cursor": "c1"}


def test_list_agents_without_paging_sends_no_params(
    info: AgentInformationClient, scripted: ScriptedTransport
) -> None:
    scripted.add("GET", "/v0/agents", {"agents": []})

    assert info.list_agents().get_or_raise().agents == []
    assert scripted.last_request.url.query == b""


@pytest.mark.parametrize("limit", [0, 101, -1])
def test_list_agents_rejects_out_of_range_limit(
    info: AgentInformationClient, scripted: ScriptedTransport, limit: int
) -> None:
    with pytest.raises(InvalidArgumentError, match="limit must be between 1 and 100"):
        info.list_agents(limit=limit)
    assert scripted.requests == []


def test_get_status(info: AgentInformationClient, scripted: ScriptedTransport) -> None:
    scripted.add("GET", "/v0/agents/bc_1", {**AGENT, "status": "FINISHED", "summary": "Done"})

    agent = info.get_status("bc_1").get_or_raise()

    assert agent.status is AgentStatus.FINISHED
    assert agent.is_terminal
    assert agent.summary == "Done"


def test_get_conversation(info: AgentInformationClient, scripted: ScriptedTransport) -> None:
    scripted.add(
        "GET",
        "/v0/agents/bc_1/conversation",
        {"id": "bc_1", "messages": [{"id": "m1", "type": "user_message", "text": "hi"}]},
    )

    conversation = info.get_conversation("bc_1").get_or_raise()
    assert conversation.messages[0].text == "hi"


# =============================================================================
# Failure modes
# =============================================================================


def test_rate_limit_is_retryable(info: AgentInformationClient, scripted: ScriptedTransport) -> None:
    scripted.add("GET", "/v0/agents", {"error": {"code": "RATE_LIMIT_EXCEEDED"}}, status=429)

    error = info.list_agents().error_or_none()

    assert isinstance(error, RateLimitError)
    assert error.retryable is True


def test_transport_error_becomes_failure(
    info: AgentInformationClient, scripted: ScriptedTransport
) -> None:
    scripted.add("GET", "/v0/agents/bc_1", httpx.ConnectError("connection refused"))

    error = info.get_status("bc_1").error_or_none()

    assert isinstance(error, APIError)
    assert error.status_code is None
    assert error.retryable is True
    assert isinstance(error.__cause__, httpx.ConnectError)


def test_non_json_body_becomes_failure(
    info: AgentInformationClient, scripted: ScriptedTransport
) -> None:
    scripted.add("GET", "/v0/agents/bc_1", httpx.Response(200, text="<html>"))

    error = info.get_status("bc_1").error_or_none()

    assert isinstance(error, APIError)
    assert "non-JSON" in str(error)


def test_schema_mismatch_becomes_failure(
    info: AgentInformationClient, scripted: ScriptedTransport
) -> None:
    scripted.add("GET", "/v0/agents/bc_1", {"name": "missing id and status"})

    error = info.get_status("bc_1").error_or_none()

    assert isinstance(error, APIError)
    assert "Unexpected Agent payload" in str(error)


def test_failures_are_logged_at_debug(
    info: AgentInformationClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG, logger="cursor_agents.client"):
        info.get_status("bc_missing")

    assert any("get_status failed" in r.getMessage() for r in caplog.records)
