"""Sandbox protocol and the lifecycle shared by every backend."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, ClassVar, Protocol, Self, runtime_checkable

from agentbench.exec.customizers import SpecCustomizer, as_customizer
from agentbench.exec.errors import SandboxClosedError, SandboxTimeoutError, SpecValidationError
from agentbench.exec.models import TOOLS_ENV_VAR, ExecutionResult, ExecutionSpec
from agentbench.utils.telemetry import (
    ATTR_ARG_COUNT,
    ATTR_BACKEND,
    ATTR_DURATION,
    ATTR_EXECUTABLE,
    ATTR_EXIT_CODE,
    ATTR_TIMED_OUT,
    ATTR_TIMEOUT,
    get_tracer,
)

if TYPE_CHECKING:
    from pathlib import PurePath
    from types import TracebackType

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

CustomizerLike = SpecCustomizer | Callable[[ExecutionSpec], ExecutionSpec]


@runtime_checkable
class Sandbox(Protocol):
    """Runs commands in an isolated working environment.

    Implementations must provide ``execute()`` for running commands and
    ``close()`` for releasing owned resources (directories, containers).
    """

    @property
    def work_dir(self) -> PurePath:
        """Directory commands run in (host path or in-container path)."""
        ...

    @property
    def closed(self) -> bool: ...

    async def execute(self, spec: ExecutionSpec) -> ExecutionResult:
        """Run *spec* and return its result."""
        ...

    async def close(self) -> None:
        """Release resources; calling it more than once is a no-op."""
        ...


class BaseSandbox(ABC):
    """Common open/closed lifecycle and customizer handling.

    Subclasses implement :meth:`_run`, which receives the already customized
    spec, and :meth:`_release`, which is called at most once.
    """

    backend: ClassVar[str] = "base"

    def __init__(self, customizers: Iterable[CustomizerLike] = ()) -> None:
        checked: list[SpecCustomizer] = []
        for index, customizer in enumerate(customizers):
            if customizer is None:
                raise SpecValidationError(f"Customizer at index {index} cannot be None")
            checked.append(as_customizer(customizer))
        self._customizers = tuple(checked)
        self._closed = False

    @property
    @abstractmethod
    def work_dir(self) -> PurePath: ...

    @property
    def customizers(self) -> tuple[SpecCustomizer, ...]:
        return self._customizers

    @property
    def closed(self) -> bool:
        return self._closed

    def apply_customizers(self, spec: ExecutionSpec) -> ExecutionSpec:
        """Run *spec* through every registered customizer, in order."""
        customized = spec
        for customizer in self._customizers:
            customized = customizer.customize(customized)
        return customized

    async def execute(self, spec: ExecutionSpec) -> ExecutionResult:
        """Customize *spec* and run it on this sandbox's backend.

        Raises:
            SandboxClosedError: If the sandbox has been closed.
            SandboxTimeoutError: If the spec's timeout elapsed first.
            SandboxError: If the backend could not run the command.
        """
        if self._closed:
            raise SandboxClosedError()

        customized = self.apply_customizers(spec)

        with _tracer.start_as_current_span("sandbox.execute") as span:
            span.set_attribute(ATTR_BACKEND, self.backend)
            span.set_attribute(ATTR_EXECUTABLE, customized.command[0])
            span.set_attribute(ATTR_ARG_COUNT, len(customized.command) - 1)
            if customized.timeout is not None:
                span.set_attribute(ATTR_TIMEOUT, customized.timeout)

            try:
                result = await self._run(customized)
            except SandboxTimeoutError:
                span.set_attribute(ATTR_TIMED_OUT, True)
                raise

            span.set_attribute(ATTR_EXIT_CODE, result.exit_code)
            span.set_attribute(ATTR_DURATION, result.duration)

        return result

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._release()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @abstractmethod
    async def _run(self, spec: ExecutionSpec) -> ExecutionResult:
        """Translate and execute an already customized spec."""

    @abstractmethod
    async def _release(self) -> None:
        """Free backend resources. Called exactly once, on first close."""

    @staticmethod
    def process_env(spec: ExecutionSpec) -> dict[str, str]:
        """Environment overlay for *spec*: its env plus the derived tools variable."""
        env = dict(spec.env)
        if spec.tools is not None and spec.tools.servers:
            env[TOOLS_ENV_VAR] = spec.tools.tools_value
            logger.debug("Added %s environment variable: %s", TOOLS_ENV_VAR, env[TOOLS_ENV_VAR])
        return env
