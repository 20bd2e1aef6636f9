"""LocalSandbox — executes commands as host subprocesses in a private directory.

Isolation is filesystem-only: each sandbox roots its commands at its own
working directory. There is no network or resource-quota isolation.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import signal
import tempfile
import time
from pathlib import Path
from typing import TYPE_CHECKING

from agentbench.exec.errors import SandboxError, SandboxTimeoutError
from agentbench.exec.models import ExecutionResult, ExecutionSpec
from agentbench.exec.sandbox.base import BaseSandbox

if TYPE_CHECKING:
    from collections.abc import Iterable

    from agentbench.exec.sandbox.base import CustomizerLike

logger = logging.getLogger(__name__)

OWNED_DIR_PREFIX = "agentbench-"
"""Name prefix of the temporary working directories a sandbox creates itself."""

_IS_WINDOWS = os.name == "nt"


class LocalSandbox(BaseSandbox):
    """Host subprocess sandbox rooted at an isolated working directory.

    Satisfies the :class:`~agentbench.exec.sandbox.base.Sandbox` protocol.

    Each ``execute()`` call:
    1. Expands the shell-marker command form into ``sh -c`` / ``cmd /c``.
    2. Overlays the spec's env (plus ``MCP_TOOLS``) on the inherited env.
    3. Starts the process in its own session with stderr folded into stdout,
       so the merged log keeps the order the process wrote it in.
    4. On timeout, kills the whole process group and raises
       :class:`~agentbench.exec.errors.SandboxTimeoutError`.

    When no *work_dir* is given, a temporary directory is created and deleted
    again on ``close()``. A caller-supplied directory is never deleted.
    """

    backend = "local"

    def __init__(
        self,
        work_dir: str | os.PathLike[str] | None = None,
        *,
        customizers: Iterable[CustomizerLike] = (),
    ) -> None:
        super().__init__(customizers)
        try:
            if work_dir is None:
                self._work_dir = Path(tempfile.mkdtemp(prefix=OWNED_DIR_PREFIX))
                self._owns_work_dir = True
            else:
                self._work_dir = Path(work_dir)
                self._owns_work_dir = False
                self._work_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SandboxError(f"Failed to create working directory: {exc}") from exc

        logger.debug(
            "Created LocalSandbox in %s (owned=%s, customizers=%d)",
            self._work_dir,
            self._owns_work_dir,
            len(self.customizers),
        )

    @property
    def work_dir(self) -> Path:
        return self._work_dir

    @property
    def owns_work_dir(self) -> bool:
        return self._owns_work_dir

    async def _run(self, spec: ExecutionSpec) -> ExecutionResult:
        command = self._translate_command(spec)
        env = {**os.environ, **self.process_env(spec)}

        logger.debug("Executing %s in %s", command, self._work_dir)

        start = time.perf_counter()
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=self._work_dir,
                env=env,
                start_new_session=not _IS_WINDOWS,
            )
        except OSError as exc:
            raise SandboxError(f"Failed to launch {command[0]!r}: {exc}") from exc

        try:
            output, _ = await asyncio.wait_for(proc.communicate(), timeout=spec.timeout)
        except TimeoutError:
            await self._kill_tree(proc)
            elapsed = time.perf_counter() - start
            raise SandboxTimeoutError(
                f"Process timed out after {spec.timeout}s",
                timeout=spec.timeout,
                elapsed=elapsed,
            ) from None
        except asyncio.CancelledError:
            await self._kill_tree(proc)
            raise

        duration = time.perf_counter() - start
        return ExecutionResult(
            exit_code=proc.returncode if proc.returncode is not None else -1,
            merged_log=output.decode(errors="replace") if output else "",
            duration=duration,
        )

    async def _release(self) -> None:
        if not self._owns_work_dir:
            logger.debug("Closing sandbox, keeping external directory: %s", self._work_dir)
            return
        logger.debug("Closing sandbox and deleting temporary directory: %s", self._work_dir)
        await asyncio.to_thread(self._remove_work_dir)

    def _remove_work_dir(self) -> None:
        """Delete the owned directory, skipping entries that cannot be removed."""
        if self._work_dir.exists():
            shutil.rmtree(self._work_dir, onexc=_log_delete_failure)

    @staticmethod
    def _translate_command(spec: ExecutionSpec) -> list[str]:
        snippet = spec.shell_snippet
        if snippet is None:
            return list(spec.command)
        if _IS_WINDOWS:
            return ["cmd", "/c", snippet]
        return ["/bin/sh", "-c", snippet]

    @staticmethod
    async def _kill_tree(proc: asyncio.subprocess.Process) -> None:
        """Kill *proc* and everything it spawned, then reap it."""
        try:
            if not _IS_WINDOWS:
                # The group outlives its leader while any background child holds the pipe.
                os.killpg(proc.pid, signal.SIGKILL)
            elif proc.returncode is None:
                killer = await asyncio.create_subprocess_exec(
                    "taskkill", "/F", "/T", "/PID", str(proc.pid),
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.DEVNULL,
                )
                await killer.wait()
        except (ProcessLookupError, PermissionError):
            pass  # already gone
        except OSError:
            logger.warning("Could not kill process tree of pid %s", proc.pid, exc_info=True)
            if proc.returncode is None:
                proc.kill()
        # Drain the pipe so the transport can close and the child is reaped.
        await proc.communicate()

    def __repr__(self) -> str:
        return (
            f"LocalSandbox(work_dir={str(self._work_dir)!r}, owned={self._owns_work_dir}, "
            f"customizers={len(self.customizers)}, closed={self.closed})"
        )


def _log_delete_failure(function: object, path: str, exc: BaseException) -> None:
    logger.warning("Could not delete %s during sandbox cleanup: %s", path, exc)
