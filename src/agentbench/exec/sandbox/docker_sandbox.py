"""DockerSandbox — executes commands inside one long-lived Docker container.

Uses the ``docker`` CLI via subprocess (no docker-py dependency).
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from agentbench.exec.errors import SandboxError, SpecValidationError
from agentbench.exec.models import ExecutionResult, ExecutionSpec
from agentbench.exec.sandbox.base import BaseSandbox

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from agentbench.exec.sandbox.base import CustomizerLike

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER_WORKDIR = "/work"
_DAEMON_ERROR_PREFIX = "Error response from daemon"


class DockerSandbox(BaseSandbox):
    """Sandbox backed by a single container that lives as long as the sandbox.

    Satisfies the :class:`~agentbench.exec.sandbox.base.Sandbox` protocol.
    Create instances with :meth:`start`; the constructor does no I/O.

    Each ``execute()`` call runs ``docker exec`` in the running container with
    the command passed as positional parameters to ``sh -c 'exec "$@"'``, so
    arguments are never re-parsed by a shell and the exit code passes straight
    through.

    Docker reports stdout and stderr separately, so the merged log is stdout
    followed by stderr rather than an interleaving of the two.

    Known limitation: ``ExecutionSpec.timeout`` is not enforced here. A
    command that never exits blocks ``execute()`` until the caller gives up.
    """

    backend = "docker"

    def __init__(
        self,
        container_id: str,
        *,
        image: str,
        work_dir: str = DEFAULT_CONTAINER_WORKDIR,
        customizers: Iterable[CustomizerLike] = (),
        docker_binary: str = "docker",
    ) -> None:
        super().__init__(customizers)
        self._container_id = container_id
        self._image = image
        self._work_dir = PurePosixPath(work_dir)
        self._docker = docker_binary

    @classmethod
    async def start(
        cls,
        image: str,
        *,
        work_dir: str = DEFAULT_CONTAINER_WORKDIR,
        customizers: Iterable[CustomizerLike] = (),
        docker_binary: str = "docker",
    ) -> DockerSandbox:
        """Start a container from *image* that idles until the sandbox is closed."""
        name = f"agentbench-{uuid.uuid4().hex[:12]}"
        output = await cls._run_docker([
            docker_binary, "run", "--detach",
            "--name", name,
            "--label", "agentbench.sandbox=true",
            "--workdir", work_dir,
            image,
            "sleep", "infinity",
        ])
        container_id = output.stdout.strip() or name
        logger.debug("Started DockerSandbox container %s from image %s", container_id[:12], image)
        return cls(
            container_id,
            image=image,
            work_dir=work_dir,
            customizers=customizers,
            docker_binary=docker_binary,
        )

    @property
    def work_dir(self) -> PurePosixPath:
        return self._work_dir

    @property
    def container_id(self) -> str:
        return self._container_id

    @property
    def image(self) -> str:
        return self._image

    async def _run(self, spec: ExecutionSpec) -> ExecutionResult:
        if not spec.command:
            raise SpecValidationError("Command cannot be empty")
        if spec.timeout is not None:
            logger.debug("DockerSandbox does not enforce timeouts; ignoring %ss", spec.timeout)

        exec_cmd = self._build_exec_command(spec)
        logger.debug("Executing %s in container %s", list(spec.command), self._container_id[:12])

        start = time.perf_counter()
        output = await self._run_docker(exec_cmd, check=False)
        duration = time.perf_counter() - start

        if output.returncode != 0 and output.stderr.startswith(_DAEMON_ERROR_PREFIX):
            raise SandboxError(f"Failed to execute command in container: {output.stderr.strip()}")

        return ExecutionResult(
            exit_code=output.returncode,
            merged_log=output.stdout + output.stderr,
            duration=duration,
        )

    async def _release(self) -> None:
        logger.debug("Removing DockerSandbox container %s", self._container_id[:12])
        try:
            await self._run_docker([self._docker, "rm", "--force", self._container_id])
        except SandboxError:
            logger.warning("Failed to remove container %s cleanly", self._container_id[:12])
            raise

    def _build_exec_command(self, spec: ExecutionSpec) -> list[str]:
        """Build the ``docker exec`` invocation for an already customized spec."""
        cmd: list[str] = [self._docker, "exec", "--workdir", str(self._work_dir)]
        for key, value in self.process_env(spec).items():
            cmd.extend(["-e", f"{key}={value}"])
        cmd.append(self._container_id)
        cmd.extend(wrap_command(spec.command))
        return cmd

    @staticmethod
    async def _run_docker(cmd: list[str], *, check: bool = True) -> _DockerOutput:
        """Run a docker CLI command and return its raw output."""
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise SandboxError(f"Failed to run docker: {exc}") from exc

        try:
            stdout_bytes, stderr_bytes = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
            await proc.wait()
            raise

        stdout = stdout_bytes.decode(errors="replace") if stdout_bytes else ""
        stderr = stderr_bytes.decode(errors="replace") if stderr_bytes else ""
        returncode = proc.returncode if proc.returncode is not None else -1

        if check and returncode != 0:
            raise SandboxError(f"docker command failed (rc={returncode}): {(stderr or stdout).strip()}")

        return _DockerOutput(returncode=returncode, stdout=stdout, stderr=stderr)

    def __repr__(self) -> str:
        return (
            f"DockerSandbox(image={self._image!r}, container={self._container_id[:12]!r}, "
            f"customizers={len(self.customizers)}, closed={self.closed})"
        )


def wrap_command(command: Sequence[str]) -> list[str]:
    """Wrap *command* so a shell ``exec``s it from its positional parameters."""
    return ["sh", "-c", 'exec "$@"', "sh", *command]


class _DockerOutput:
    """Simple container for docker CLI output."""

    __slots__ = ("returncode", "stderr", "stdout")

    def __init__(self, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
