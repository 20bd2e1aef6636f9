"""Execution layer — specs, customizers, results, and sandboxes."""

from agentbench.exec.customizers import (
    ChainCustomizer,
    ConditionalCustomizer,
    FunctionCustomizer,
    SpecCustomizer,
    ToolsFlagCustomizer,
    chain,
    identity,
    when,
)
from agentbench.exec.errors import (
    CustomizerStateError,
    ExecError,
    SandboxClosedError,
    SandboxError,
    SandboxTimeoutError,
    SpecValidationError,
)
from agentbench.exec.models import (
    SHELL_COMMAND_MARKER,
    TOOLS_ENV_VAR,
    ExecutionResult,
    ExecutionSpec,
    ExecutionSpecBuilder,
    ToolConfig,
    ToolConfigBuilder,
)

__all__ = [
    "SHELL_COMMAND_MARKER",
    "TOOLS_ENV_VAR",
    "ChainCustomizer",
    "ConditionalCustomizer",
    "CustomizerStateError",
    "ExecError",
    "ExecutionResult",
    "ExecutionSpec",
    "ExecutionSpecBuilder",
    "FunctionCustomizer",
    "SandboxClosedError",
    "SandboxError",
    "SandboxTimeoutError",
    "SpecCustomizer",
    "SpecValidationError",
    "ToolConfig",
    "ToolConfigBuilder",
    "ToolsFlagCustomizer",
    "chain",
    "identity",
    "when",
]
