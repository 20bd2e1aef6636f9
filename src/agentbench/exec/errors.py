"""Shared error types for the execution layer."""

from __future__ import annotations


class ExecError(Exception):
    """Base error for all execution-layer failures."""


class SpecValidationError(ExecError, ValueError):
    """An execution spec, tool config, or run file failed validation."""


class CustomizerStateError(ExecError, RuntimeError):
    """A customizer found the spec in a state it refuses to modify."""


class SandboxClosedError(ExecError, RuntimeError):
    """An operation was attempted on a sandbox that has been closed."""

    def __init__(self, detail: str = "Sandbox has been closed") -> None:
        super().__init__(detail)


class SandboxError(ExecError):
    """A sandbox backend operation failed (launch, exec, or teardown)."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__("Sandbox error" + (f": {detail}" if detail else ""))


class SandboxTimeoutError(ExecError):
    """Execution exceeded the configured timeout.

    Deliberately *not* a :class:`SandboxError`: a command that never finished
    is a different outcome from a backend that failed to run it.
    """

    def __init__(
        self,
        message: str = "Execution timed out",
        *,
        timeout: float | None = None,
        elapsed: float | None = None,
    ) -> None:
        self.message = message
        self.timeout = timeout
        self.elapsed = elapsed
        super().__init__(message)

    @property
    def has_timeout_details(self) -> bool:
        return self.timeout is not None

    @property
    def detailed_message(self) -> str:
        """The message followed by whichever of timeout/elapsed are known."""
        details: list[str] = []
        if self.timeout is not None:
            details.append(f"timeout: {self.timeout}s")
        if self.elapsed is not None:
            details.append(f"elapsed: {self.elapsed:.3f}s")
        if not details:
            return self.message
        return f"{self.message} ({', '.join(details)})"

    def __reduce__(self) -> tuple[object, ...]:
        return (_rebuild_timeout, (self.message, self.timeout, self.elapsed))


def _rebuild_timeout(
    message: str, timeout: float | None, elapsed: float | None
) -> SandboxTimeoutError:
    return SandboxTimeoutError(message, timeout=timeout, elapsed=elapsed)
