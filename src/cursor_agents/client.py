"""Synchronous clients for the Cursor background agents API.

Every operation performs one blocking request and returns an ``Outcome``:
the request is wrapped with ``run_catching``, the JSON body is projected with
``map``, and failures are logged with ``peek_error``. Nothing is retried.

Invalid arguments (empty ids or prompts, out-of-range limits) are caller bugs
and raise ``InvalidArgumentError`` immediately instead of producing a failure.

Example:
    with AgentManagementClient(api_key) as agents:
        outcome = agents.launch("Add a README", "claude-4-sonnet", repo_url)
    print(outcome.fold(lambda a: f"launched {a.id}", lambda e: f"failed: {e}"))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Self
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from cursor_agents._http import USER_AGENT, decode_json, error_from_response, error_from_transport
from cursor_agents.config import Config
from cursor_agents.errors import APIError, InvalidArgumentError
from cursor_agents.models import (
    Agent,
    AgentList,
    Conversation,
    FollowUpRequest,
    IdResponse,
    Image,
    LaunchAgentRequest,
    LaunchResponse,
    Prompt,
    Source,
    Target,
)
from cursor_agents.outcome import Outcome, run_catching

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import TracebackType

log = logging.getLogger(__name__)

AGENTS_PATH = "/v0/agents"
MAX_LIST_LIMIT = 100


def _require_text(value: str | None, name: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{name} cannot be None or empty")
    return value


def _parser[M: BaseModel](model: type[M]) -> Callable[[Any], M]:
    """Return a function validating a JSON body as *model*, raising APIError on mismatch."""

    def parse(data: Any) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise APIError(
                f"Unexpected {model.__name__} payload: {exc.error_count()} validation error(s)",
                hint="The API response did not match the expected schema.",
            ) from exc

    return parse


class _AgentsClient:
    """Shared transport, auth headers and lifecycle for the agents clients."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        config: Config | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        if config is None:
            kwargs: dict[str, Any] = {"api_key": api_key}
            if base_url is not None:
                kwargs["base_url"] = base_url
            config = Config(**kwargs)
        self.config = config
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(timeout=config.timeout_s)

    @property
    def api_key(self) -> str:
        return self.config.api_key or ""

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def close(self) -> None:
        """Close the underlying HTTP client unless it was injected."""
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _agent_path(self, agent_id: str, *suffix: str) -> str:
        return "/".join((AGENTS_PATH, quote(agent_id, safe=""), *suffix))

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Perform one request and return its decoded JSON body.

        Raises:
            APIError: For transport failures, non-2xx responses and non-JSON bodies.
        """
        headers = {
            **self.config.auth_headers,
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        log.debug("%s %s params=%s", method, path, params)
        try:
            response = self._http.request(
                method,
                f"{self.config.base_url}{path}",
                json=json,
                params=params,
                headers=headers,
            )
        except httpx.RequestError as exc:
            raise error_from_transport(exc) from exc
        if response.is_error:
            raise error_from_response(response)
        return decode_json(response)

    def _call(self, operation: str, method: str, path: str, **kwargs: Any) -> Outcome[Any, BaseException]:
        return run_catching(self._request, method, path, **kwargs).peek_error(
            lambda error: log.debug("%s failed: %s", operation, error)
        )


class AgentManagementClient(_AgentsClient):
    """Launch, follow up on, and delete background agents."""

    def launch(
        self,
        prompt: str,
        model: str,
        repository: str,
        *,
        ref: str | None = None,
        auto_create_pr: bool | None = None,
        images: Sequence[Image] = (),
    ) -> Outcome[LaunchResponse, BaseException]:
        """Launch an agent working on *repository*.

        Args:
            prompt: Instructions for the agent.
            model: LLM model name, e.g. ``"claude-4-sonnet"``.
            repository: Repository URL the agent works in.
            ref: Branch or ref to start from; defaults to ``config.default_ref``.
            auto_create_pr: Open a PR when the agent finishes; defaults to
                ``config.auto_create_pr``.
            images: Optional images attached to the prompt.

        Returns:
            Outcome holding the new agent's id and status.
        """
        _require_text(prompt, "Prompt")
        _require_text(model, "Model")
        _require_text(repository, "Repository")

        request = LaunchAgentRequest(
            prompt=Prompt(text=prompt, images=list(images)),
            source=Source(repository=repository, ref=ref or self.config.default_ref),
            model=model,
            target=Target(
                auto_create_pr=self.config.auto_create_pr
                if auto_create_pr is None
                else auto_create_pr
            ),
        )
        return (
            self._call("launch", "POST", AGENTS_PATH, json=request.to_wire())
            .map(_parser(Agent))
            .map(LaunchResponse.from_agent)
        )

    def follow_up(self, agent_id: str, prompt: str) -> Outcome[str, BaseException]:
        """Send a follow-up prompt to a running agent; the outcome holds the agent id."""
        _require_text(agent_id, "Agent ID")
        _require_text(prompt, "Prompt")

        request = FollowUpRequest(prompt=Prompt(text=prompt))
        return (
            self._call(
                "follow_up", "POST", self._agent_path(agent_id, "followup"), json=request.to_wire()
            )
            .map(_parser(IdResponse))
            .map(lambda response: response.id)
        )

    def delete(self, agent_id: str) -> Outcome[str, BaseException]:
        """Delete an agent; the outcome holds the deleted agent's id."""
        _require_text(agent_id, "Agent ID")
        return (
            self._call("delete", "DELETE", self._agent_path(agent_id))
            .map(_parser(IdResponse))
            .map(lambda response: response.id)
        )


class AgentInformationClient(_AgentsClient):
    """Read-only access to agents: listing, status and conversation history."""

    def list_agents(
        self, limit: int | None = None, cursor: str | None = None
    ) -> Outcome[AgentList, BaseException]:
        """List agents, one page at a time.

        ``cursor`` is the opaque ``next_cursor`` of a previous page.
        """
        if limit is not None and not 1 <= limit <= MAX_LIST_LIMIT:
            raise InvalidArgumentError(
                f"limit must be between 1 and {MAX_LIST_LIMIT}, got {limit}"
            )
        params = {
            key: value
            for key, value in (("limit", limit), ("cursor", cursor))
            if value is not None
        }
        return self._call("list_agents", "GET", AGENTS_PATH, params=params or None).map(
            _parser(AgentList)
        )

    def get_status(self, agent_id: str) -> Outcome[Agent, BaseException]:
        """Fetch the current state of one agent (a single call, no polling)."""
        _require_text(agent_id, "Agent ID")
        return self._call("get_status", "GET", self._agent_path(agent_id)).map(
            _parser(Agent)
        )

    def get_conversation(self, agent_id: str) -> Outcome[Conversation, BaseException]:
        """Fetch the conversation history of one agent."""
        _require_text(agent_id, "Agent ID")
        return self._call(
            "get_conversation", "GET", self._agent_path(agent_id, "conversation")
        ).map(_parser(Conversation))
