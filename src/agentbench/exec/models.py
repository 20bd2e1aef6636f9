"""Data models for the execution layer.

:class:`ExecutionSpec` and :class:`ToolConfig` are frozen pydantic models whose
collection fields are exposed as tuples and read-only mappings, so a spec can
be shared between sandboxes and report generators without defensive copies.
Use :meth:`ExecutionSpec.builder` or :meth:`ExecutionSpec.to_builder` to derive
modified specs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator

from agentbench.exec.errors import SpecValidationError

SHELL_COMMAND_MARKER = "__SHELL_COMMAND__"
"""First element of the two-element ``(marker, snippet)`` shell command form."""

TOOLS_ENV_VAR = "MCP_TOOLS"
"""Environment variable carrying the comma-joined tool names of a spec."""


def _freeze(value: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(value))


class ToolConfig(BaseModel):
    """Tool/server integration settings attached to an :class:`ExecutionSpec`."""

    model_config = ConfigDict(frozen=True, extra="forbid", coerce_numbers_to_str=True)

    servers: tuple[str, ...] = Field(..., min_length=1, description="Tool/server names, in order.")
    secrets: Mapping[str, str] = Field(
        default_factory=dict, validate_default=True, description="Secrets keyed by name."
    )
    pull_on_demand: bool = Field(default=True, description="Pull tool images lazily.")

    @field_validator("secrets", mode="after")
    @classmethod
    def _freeze_secrets(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return _freeze(value)

    @field_serializer("secrets")
    def _dump_secrets(self, secrets: Mapping[str, str]) -> dict[str, str]:
        return dict(secrets)

    @classmethod
    def of(cls, *servers: str) -> ToolConfig:
        return cls.builder().servers(*servers).build()

    @classmethod
    def with_secrets(cls, secrets: Mapping[str, str], *servers: str) -> ToolConfig:
        return cls.builder().servers(*servers).secrets(secrets).build()

    @classmethod
    def builder(cls) -> ToolConfigBuilder:
        return ToolConfigBuilder()

    def to_builder(self) -> ToolConfigBuilder:
        return ToolConfigBuilder(self)

    @property
    def tools_value(self) -> str:
        """Comma-joined server names, as seen by the executed process."""
        return ",".join(self.servers)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ToolConfig):
            return NotImplemented
        return (
            self.servers == other.servers
            and dict(self.secrets) == dict(other.secrets)
            and self.pull_on_demand == other.pull_on_demand
        )

    def __hash__(self) -> int:
        return hash((self.servers, frozenset(self.secrets.items()), self.pull_on_demand))

    def __repr_args__(self) -> Any:
        # Secret values never appear in reprs or logs.
        yield "servers", self.servers
        yield "secret_count", len(self.secrets)
        yield "pull_on_demand", self.pull_on_demand


class ToolConfigBuilder:
    """Fluent builder for :class:`ToolConfig`."""

    def __init__(self, config: ToolConfig | None = None) -> None:
        self._servers: tuple[str, ...] = config.servers if config else ()
        self._secrets: dict[str, str] = dict(config.secrets) if config else {}
        self._pull_on_demand = config.pull_on_demand if config else True

    def server(self, name: str) -> ToolConfigBuilder:
        self._servers = (*self._servers, name)
        return self

    def servers(self, *names: str) -> ToolConfigBuilder:
        """Replace the accumulated server list."""
        self._servers = tuple(names)
        return self

    def secret(self, key: str, value: str) -> ToolConfigBuilder:
        self._secrets = {**self._secrets, key: value}
        return self

    def secrets(self, secrets: Mapping[str, str]) -> ToolConfigBuilder:
        """Replace the accumulated secrets."""
        self._secrets = dict(secrets)
        return self

    def pull_on_demand(self, enabled: bool) -> ToolConfigBuilder:
        self._pull_on_demand = enabled
        return self

    def with_brave(self, api_key: str) -> ToolConfigBuilder:
        return self.server("brave").secret("brave.api_key", api_key)

    def with_filesystem(self) -> ToolConfigBuilder:
        return self.server("filesystem")

    def with_github(self, token: str) -> ToolConfigBuilder:
        return self.server("github").secret("github.token", token)

    def with_slack(self, token: str) -> ToolConfigBuilder:
        return self.server("slack").secret("slack.token", token)

    def build(self) -> ToolConfig:
        if not self._servers:
            raise SpecValidationError("At least one server must be specified")
        try:
            return ToolConfig(
                servers=self._servers,
                secrets=self._secrets,
                pull_on_demand=self._pull_on_demand,
            )
        except ValidationError as exc:
            raise SpecValidationError(str(exc)) from exc


class ExecutionSpec(BaseModel):
    """Immutable description of one command to run inside a sandbox."""

    model_config = ConfigDict(frozen=True, extra="forbid", coerce_numbers_to_str=True)

    command: tuple[str, ...] = Field(..., min_length=1, description="Executable and arguments.")
    env: Mapping[str, str] = Field(
        default_factory=dict, validate_default=True, description="Overlay on the inherited env."
    )
    timeout: float | None = Field(default=None, gt=0, description="Max execution time in seconds.")
    tools: ToolConfig | None = Field(default=None, description="Optional tool integration config.")

    @field_validator("env", mode="after")
    @classmethod
    def _freeze_env(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return _freeze(value)

    @field_serializer("env")
    def _dump_env(self, env: Mapping[str, str]) -> dict[str, str]:
        return dict(env)

    @classmethod
    def of(cls, *command: str) -> ExecutionSpec:
        """Shorthand for ``ExecutionSpec.builder().command(*command).build()``."""
        return cls.builder().command(*command).build()

    @classmethod
    def builder(cls) -> ExecutionSpecBuilder:
        return ExecutionSpecBuilder()

    def to_builder(self) -> ExecutionSpecBuilder:
        return ExecutionSpecBuilder(self)

    @property
    def shell_snippet(self) -> str | None:
        """The snippet of a ``(SHELL_COMMAND_MARKER, snippet)`` command, else ``None``."""
        if len(self.command) == 2 and self.command[0] == SHELL_COMMAND_MARKER:
            return self.command[1]
        return None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExecutionSpec):
            return NotImplemented
        return (
            self.command == other.command
            and dict(self.env) == dict(other.env)
            and self.timeout == other.timeout
            and self.tools == other.tools
        )

    def __hash__(self) -> int:
        return hash((self.command, frozenset(self.env.items()), self.timeout, self.tools))


class ExecutionSpecBuilder:
    """Fluent builder for :class:`ExecutionSpec`.

    ``env(key, value)`` accumulates entries, while ``env(mapping)`` replaces
    everything accumulated so far. Call the mapping form first when layering
    individual keys on top of a base environment.
    """

    def __init__(self, spec: ExecutionSpec | None = None) -> None:
        self._command: tuple[str, ...] = spec.command if spec else ()
        self._env: dict[str, str] = dict(spec.env) if spec else {}
        self._timeout: float | None = spec.timeout if spec else None
        self._tools: ToolConfig | None = spec.tools if spec else None

    def command(self, *cmd: str | Sequence[str]) -> ExecutionSpecBuilder:
        """Set the command from varargs or from a single list/tuple."""
        if len(cmd) == 1 and not isinstance(cmd[0], str):
            if cmd[0] is None:
                raise SpecValidationError("Command cannot be None")
            cmd = tuple(cmd[0])
        self._command = tuple(cmd)  # type: ignore[arg-type]
        return self

    def shell_command(self, snippet: str) -> ExecutionSpecBuilder:
        """Mark *snippet* for expansion into a platform shell invocation."""
        if snippet is None:
            raise SpecValidationError("Shell command cannot be None")
        self._command = (SHELL_COMMAND_MARKER, snippet)
        return self

    def env(self, key_or_env: str | Mapping[str, str], value: str | None = None) -> ExecutionSpecBuilder:
        if isinstance(key_or_env, str):
            if value is None:
                raise SpecValidationError(f"Missing value for env var {key_or_env!r}")
            self._env = {**self._env, key_or_env: value}
        else:
            self._env = dict(key_or_env)
        return self

    def timeout(self, seconds: float | None) -> ExecutionSpecBuilder:
        self._timeout = seconds
        return self

    def tools(self, config: ToolConfig | None) -> ExecutionSpecBuilder:
        self._tools = config
        return self

    def build(self) -> ExecutionSpec:
        if not self._command:
            raise SpecValidationError("Command cannot be empty")
        try:
            return ExecutionSpec(
                command=self._command,
                env=self._env,
                timeout=self._timeout,
                tools=self._tools,
            )
        except ValidationError as exc:
            raise SpecValidationError(str(exc)) from exc


class ExecutionResult(BaseModel):
    """Outcome of one completed :meth:`Sandbox.execute` call."""

    model_config = ConfigDict(frozen=True)

    exit_code: int = Field(..., description="Process exit code.")
    merged_log: str = Field(default="", description="Combined stdout/stderr, in delivery order.")
    duration: float = Field(..., ge=0, description="Wall-clock seconds from dispatch to completion.")

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def failed(self) -> bool:
        return not self.success

    @property
    def has_output(self) -> bool:
        return bool(self.merged_log)

    @property
    def output_length(self) -> int:
        return len(self.merged_log)

    def summary(self) -> str:
        return (
            f"ExecutionResult(exit_code={self.exit_code}, success={self.success}, "
            f"duration={self.duration:.3f}s, output_length={self.output_length})"
        )
