"""Command-line interface: ``cursor-agents <command>``.

Each command runs one client call and folds the resulting outcome into a
message and an exit code: 0 on success, 1 when the call failed, 2 when the
configuration is unusable.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING, Any

import httpx

from cursor_agents.client import AgentInformationClient, AgentManagementClient
from cursor_agents.config import resolve_config
from cursor_agents.errors import ConfigurationError, _walk_exception_chain

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from cursor_agents.config import Config
    from cursor_agents.models import Agent, AgentList, Conversation, LaunchResponse
    from cursor_agents.outcome import Outcome

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cursor-agents", description="Manage Cursor background agents."
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--base-url", help="API base URL (default: https://api.cursor.com)")
    commands = parser.add_subparsers(dest="command", required=True)

    launch = commands.add_parser("launch", help="Launch an agent on a repository")
    launch.add_argument("prompt", help="Instructions for the agent")
    launch.add_argument("--repository", "-r", required=True, help="Repository URL")
    launch.add_argument("--model", "-m", help="Model name (default: config default_model)")
    launch.add_argument("--ref", help="Branch or ref to start from")
    launch.add_argument(
        "--no-auto-pr", action="store_true", help="Do not open a PR when the agent finishes"
    )

    listing = commands.add_parser("list", help="List agents")
    listing.add_argument("--limit", type=int, help="Maximum number of agents (1-100)")
    listing.add_argument("--cursor", help="Cursor from a previous page")

    status = commands.add_parser("status", help="Show an agent's status")
    status.add_argument("agent_id")

    conversation = commands.add_parser("conversation", help="Show an agent's conversation")
    conversation.add_argument("agent_id")

    followup = commands.add_parser("followup", help="Send a follow-up prompt to an agent")
    followup.add_argument("agent_id")
    followup.add_argument("prompt")

    delete = commands.add_parser("delete", help="Delete an agent")
    delete.add_argument("agent_id")
    return parser


# --- Rendering ---


def _format_launch(response: LaunchResponse) -> str:
    return f"Agent created successfully: {response.id} ({_status(response.status)})"


def _format_agent(agent: Agent) -> str:
    lines = [f"{agent.id}  {_status(agent.status)}  {agent.name or ''}".rstrip()]
    if agent.source is not None:
        lines.append(f"  source: {agent.source.repository}@{agent.source.ref or '-'}")
    if agent.target is not None and agent.target.url:
        lines.append(f"  target: {agent.target.url}")
    if agent.summary:
        lines.append(f"  summary: {agent.summary}")
    return "\n".join(lines)


def _format_list(page: AgentList) -> str:
    if not page.agents:
        return "No agents."
    lines = [f"{a.id}  {_status(a.status)}  {a.name or ''}".rstrip() for a in page.agents]
    if page.next_cursor:
        lines.append(f"(more: --cursor {page.next_cursor})")
    return "\n".join(lines)


def _format_conversation(conversation: Conversation) -> str:
    if not conversation.messages:
        return "No messages."
    return "\n".join(f"[{m.type}] {m.text}" for m in conversation.messages)


def _status(status: Any) -> str:
    return getattr(status, "value", status)


def _format_error(error: BaseException, *, verbose: bool) -> str:
    message = f"Error: {error}"
    if verbose:
        causes = [e for e in _walk_exception_chain(error) if e is not error]
        message += "".join(f"\n  caused by {type(e).__name__}: {e}" for e in causes)
    return message


# --- Dispatch ---


def _run_command(
    args: argparse.Namespace, config: Config, http: httpx.Client
) -> tuple[Outcome[Any, BaseException], Callable[[Any], str]]:
    if args.command in {"launch", "followup", "delete"}:
        manage = AgentManagementClient(config=config, http_client=http)
        if args.command == "launch":
            outcome = manage.launch(
                args.prompt,
                args.model or config.default_model,
                args.repository,
                ref=args.ref,
                auto_create_pr=False if args.no_auto_pr else None,
            )
            return outcome, _format_launch
        if args.command == "followup":
            return manage.follow_up(args.agent_id, args.prompt), (
                lambda agent_id: f"Follow-up sent to {agent_id}"
            )
        return manage.delete(args.agent_id), (lambda agent_id: f"Deleted {agent_id}")

    info = AgentInformationClient(config=config, http_client=http)
    if args.command == "list":
        return info.list_agents(args.limit, args.cursor), _format_list
    if args.command == "status":
        return info.get_status(args.agent_id), _format_agent
    return info.get_conversation(args.agent_id), _format_conversation


def main(
    argv: Sequence[str] | None = None, *, transport: httpx.BaseTransport | None = None
) -> int:
    """Entry point for the ``cursor-agents`` console script.

    *transport* replaces the network layer (tests pass ``httpx.MockTransport``).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )

    try:
        config = resolve_config(base_url=args.base_url)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG
    log.debug("Resolved %s", config)

    with httpx.Client(timeout=config.timeout_s, transport=transport) as http:
        try:
            outcome, render = _run_command(args, config, http)
        except ValueError as exc:  # invalid arguments
            parser.error(str(exc))

    return outcome.fold(
        lambda value: _emit(render(value), sys.stdout, EXIT_OK),
        lambda error: _emit(_format_error(error, verbose=args.verbose), sys.stderr, EXIT_FAILURE),
    )


def _emit(message: str, stream: Any, code: int) -> int:
    print(message, file=stream)
    return code


if __name__ == "__main__":
    sys.exit(main())
