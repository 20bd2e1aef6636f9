"""Backend selection for sandboxes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field

from agentbench.exec.sandbox.docker_sandbox import DEFAULT_CONTAINER_WORKDIR, DockerSandbox
from agentbench.exec.sandbox.local_sandbox import LocalSandbox

if TYPE_CHECKING:
    from collections.abc import Iterable

    from agentbench.exec.sandbox.base import BaseSandbox, CustomizerLike


class SandboxSettings(BaseModel):
    """Which backend to run on and how to set it up."""

    backend: Literal["local", "docker"] = Field(default="local", description="Sandbox backend.")
    work_dir: str | None = Field(
        default=None,
        description="Host working directory (local backend). A temp dir is used when unset.",
    )
    image: str = Field(default="ubuntu:24.04", description="Docker image (docker backend).")
    container_work_dir: str = Field(
        default=DEFAULT_CONTAINER_WORKDIR,
        description="Working directory inside the container.",
    )
    docker_binary: str = Field(default="docker", description="Docker CLI executable.")


async def create_sandbox(
    settings: SandboxSettings | None = None,
    *,
    customizers: Iterable[CustomizerLike] = (),
) -> BaseSandbox:
    """Create the sandbox described by *settings*.

    The backend is chosen here, once; nothing downstream inspects the
    concrete sandbox type.
    """
    cfg = settings or SandboxSettings()
    if cfg.backend == "docker":
        return await DockerSandbox.start(
            cfg.image,
            work_dir=cfg.container_work_dir,
            customizers=customizers,
            docker_binary=cfg.docker_binary,
        )
    return LocalSandbox(cfg.work_dir, customizers=customizers)
