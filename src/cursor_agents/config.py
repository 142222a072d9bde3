"""Configuration: a frozen Config resolved from overrides, env and pyproject.

Precedence, highest first: explicit overrides, ``CURSOR_AGENTS_*`` environment
variables, the ``[tool.cursor-agents]`` table of ``./pyproject.toml``,
schema defaults. The API key additionally falls back to ``CURSOR_API_KEY``.
The nearest ``.env`` file is loaded into the environment on first use.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import tomllib
from typing import TYPE_CHECKING, Any

import dotenv
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from cursor_agents.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

log = logging.getLogger(__name__)

API_KEY_ENV_VAR = "CURSOR_API_KEY"
ENV_PREFIX = "CURSOR_AGENTS_"
CONFIG_TOOL_NAME = "cursor-agents"
DEFAULT_BASE_URL = "https://api.cursor.com"

_MISSING_KEY_HINT = (
    f"Set {API_KEY_ENV_VAR} environment variable or pass api_key=... "
    "(keys are created in the Cursor dashboard under Integrations)."
)

_DOTENV_LOADED = False


def _load_dotenv_once() -> None:
    """Load the nearest .env (searching up from the working directory) once per process."""
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    dotenv.load_dotenv(dotenv.find_dotenv(usecwd=True))
    _DOTENV_LOADED = True


# --- Schema (Pydantic wall) ---


class Settings(BaseModel):
    """Validation schema and defaults for every configuration field."""

    api_key: SecretStr | None = None
    base_url: str = Field(default=DEFAULT_BASE_URL, min_length=1)
    timeout_s: float = Field(default=30.0, gt=0)
    default_model: str = Field(default="claude-4-sonnet", min_length=1)
    default_ref: str = Field(default="main", min_length=1)
    auto_create_pr: bool = True

    model_config = {"extra": "forbid"}

    @field_validator("api_key", mode="before")
    @classmethod
    def normalize_api_key(cls, v: Any) -> Any:
        """Trim whitespace and map empty keys to None."""
        if isinstance(v, SecretStr):
            v = v.get_secret_value()
        if isinstance(v, str):
            v = v.strip()
            return SecretStr(v) if v else None
        return v

    @field_validator("base_url", "default_model", "default_ref", mode="before")
    @classmethod
    def strip_strings(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("base_url")
    @classmethod
    def check_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")


# --- Immutable runtime payload ---


@dataclass(frozen=True)
class Config:
    """Immutable client configuration.

    The API key is auto-resolved from ``CURSOR_API_KEY`` when not given.

    Example:
        config = Config(base_url="http://localhost:8080")
        # API key is resolved from CURSOR_API_KEY
    """

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    timeout_s: float = 30.0
    default_model: str = "claude-4-sonnet"
    default_ref: str = "main"
    auto_create_pr: bool = True

    def __post_init__(self) -> None:
        """Validate fields and resolve the API key."""
        _load_dotenv_once()
        try:
            settings = Settings(
                api_key=self.api_key or os.environ.get(API_KEY_ENV_VAR),
                base_url=self.base_url,
                timeout_s=self.timeout_s,
                default_model=self.default_model,
                default_ref=self.default_ref,
                auto_create_pr=self.auto_create_pr,
            )
        except ValidationError as e:
            raise _configuration_error(e) from e

        if settings.api_key is None:
            raise ConfigurationError("API key required", hint=_MISSING_KEY_HINT)

        object.__setattr__(self, "api_key", settings.api_key.get_secret_value())
        object.__setattr__(self, "base_url", settings.base_url)
        object.__setattr__(self, "default_model", settings.default_model)
        object.__setattr__(self, "default_ref", settings.default_ref)

    @property
    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(api_key={'[REDACTED]' if self.api_key else None}, "
            f"base_url={self.base_url!r}, timeout_s={self.timeout_s!r}, "
            f"default_model={self.default_model!r}, default_ref={self.default_ref!r}, "
            f"auto_create_pr={self.auto_create_pr!r})"
        )

    __repr__ = __str__


def _configuration_error(e: ValidationError) -> ConfigurationError:
    err = e.errors()[0]
    field = ".".join(str(part) for part in err.get("loc", ())) or "config"
    msg = err.get("msg") or "invalid value"
    # Remove "Value error, " prefix if present (Pydantic standard wrapper)
    if msg.startswith("Value error, "):
        msg = msg[13:]
    return ConfigurationError(
        f"Configuration validation failed for {field}: {msg}",
        hint=f"Check the {field} setting (env {ENV_PREFIX}{field.upper()}).",
    )


# --- Loaders ---


def _coerce_env_value(value: str, target_type: Any) -> Any:
    """Coerce an env string to bool/float when the schema asks for one."""
    if target_type is bool:
        return value.strip().lower() in {"1", "true", "yes", "on"}
    if target_type is float:
        try:
            return float(value)
        except ValueError:
            return value  # let validation report it
    return value


def load_env() -> dict[str, Any]:
    """Read ``CURSOR_AGENTS_*`` variables into a config mapping."""
    config: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        info = Settings.model_fields.get(field_name)
        if info is None:
            log.debug("Ignoring unknown config variable %s", key)
            continue
        config[field_name] = _coerce_env_value(value, info.annotation)
    return config


def load_pyproject(path: Path | None = None) -> dict[str, Any]:
    """Read the ``[tool.cursor-agents]`` table; missing or unreadable files yield {}."""
    path = path or Path.cwd() / "pyproject.toml"
    if not path.exists():
        return {}
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        log.debug("Skipping unreadable %s: %s", path, exc)
        return {}
    table = data.get("tool", {}).get(CONFIG_TOOL_NAME, {})
    return dict(table) if isinstance(table, dict) else {}


def resolve_config(
    overrides: Mapping[str, Any] | None = None,
    *,
    pyproject_path: Path | None = None,
    **kwargs: Any,
) -> Config:
    """Resolve a Config from all sources.

    Args:
        overrides: Programmatic values; ``None`` entries are ignored.
        pyproject_path: Alternative pyproject.toml location.
        **kwargs: Merged into *overrides*.

    Raises:
        ConfigurationError: If the merged configuration is invalid.
    """
    _load_dotenv_once()
    explicit = {k: v for k, v in {**(overrides or {}), **kwargs}.items() if v is not None}
    merged: dict[str, Any] = {
        **load_pyproject(pyproject_path),
        **load_env(),
        **explicit,
    }
    try:
        settings = Settings.model_validate(merged)
    except ValidationError as e:
        raise _configuration_error(e) from e

    return Config(
        api_key=settings.api_key.get_secret_value() if settings.api_key else None,
        base_url=settings.base_url,
        timeout_s=settings.timeout_s,
        default_model=settings.default_model,
        default_ref=settings.default_ref,
        auto_create_pr=settings.auto_create_pr,
    )
