"""Load run files: a sandbox configuration plus one command to execute.

Example::

    name: hello
    sandbox:
      backend: local
    exec:
      command: [echo, "Hello, World!"]
      env:
        GREETING: ${USER}
      timeout: 30
      tools:
        servers: [brave, filesystem]
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from agentbench.exec.errors import SpecValidationError
from agentbench.exec.models import ExecutionSpec
from agentbench.exec.sandbox.factory import SandboxSettings

if TYPE_CHECKING:
    from pathlib import Path


class RunFile(BaseModel):
    """Top-level run file schema."""

    name: str = ""
    sandbox: SandboxSettings = Field(default_factory=SandboxSettings)
    exec: ExecutionSpec


class RunFileLoader:
    """Load and validate a run YAML file into a :class:`RunFile`."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> RunFile:
        """Read YAML, interpolate env vars, and validate.

        Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
        using :func:`os.path.expandvars` before YAML parsing.

        Raises:
            SpecValidationError: On read errors, YAML parse errors, or schema
                validation failures.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SpecValidationError(f"Cannot read {self._path}: {exc}") from exc

        expanded = os.path.expandvars(raw)

        try:
            data: Any = yaml.safe_load(expanded)
        except yaml.YAMLError as exc:
            raise SpecValidationError(f"YAML parse error: {exc}") from exc

        if not isinstance(data, dict):
            raise SpecValidationError("Run file YAML must be a mapping")

        try:
            return RunFile.model_validate(data)
        except ValidationError as exc:
            raise SpecValidationError(str(exc)) from exc
