"""cursor-agents: a Python client for Cursor background agents.

Public API:
    - Outcome, Success, Failure: explicit success/failure values
    - run_catching(), sequence() and the other outcome factories
    - AgentManagementClient: launch, follow_up, delete
    - AgentInformationClient: list_agents, get_status, get_conversation
    - Config / resolve_config(): client configuration
"""

from __future__ import annotations

import logging

from cursor_agents.client import AgentInformationClient, AgentManagementClient
from cursor_agents.config import Config, resolve_config
from cursor_agents.errors import (
    APIError,
    ConfigurationError,
    CursorAgentsError,
    InvalidArgumentError,
    InvalidStateError,
    NullValueError,
    RateLimitError,
    RemoteError,
)
from cursor_agents.models import Agent, AgentList, AgentStatus, Conversation, LaunchResponse
from cursor_agents.outcome import (
    Failure,
    Outcome,
    Success,
    failure,
    from_condition,
    from_nullable,
    from_optional,
    from_predicate,
    run_catching,
    sequence,
    success,
)
from cursor_agents.serialization import dumps, loads, register_error_type

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("cursor-agents")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("cursor_agents").addHandler(logging.NullHandler())

__all__ = [
    "APIError",
    "Agent",
    "AgentInformationClient",
    "AgentList",
    "AgentManagementClient",
    "AgentStatus",
    "Config",
    "ConfigurationError",
    "Conversation",
    "CursorAgentsError",
    "Failure",
    "InvalidArgumentError",
    "InvalidStateError",
    "LaunchResponse",
    "NullValueError",
    "Outcome",
    "RateLimitError",
    "RemoteError",
    "Success",
    "dumps",
    "failure",
    "from_condition",
    "from_nullable",
    "from_optional",
    "from_predicate",
    "loads",
    "register_error_type",
    "resolve_config",
    "run_catching",
    "sequence",
    "success",
]
