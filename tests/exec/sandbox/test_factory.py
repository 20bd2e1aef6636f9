"""Tests for sandbox backend selection."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

from agentbench.exec.customizers import ToolsFlagCustomizer
from agentbench.exec.sandbox.docker_sandbox import DockerSandbox
from agentbench.exec.sandbox.factory import SandboxSettings, create_sandbox
from agentbench.exec.sandbox.local_sandbox import LocalSandbox

if TYPE_CHECKING:
    from pathlib import Path


class TestSandboxSettings:
    def test_defaults(self) -> None:
        cfg = SandboxSettings()
        assert cfg.backend == "local"
        assert cfg.work_dir is None
        assert cfg.container_work_dir == "/work"
        assert cfg.docker_binary == "docker"


class TestCreateSandbox:
    async def test_default_is_local(self) -> None:
        sandbox = await create_sandbox()
        try:
            assert isinstance(sandbox, LocalSandbox)
            assert sandbox.owns_work_dir is True
        finally:
            await sandbox.close()

    async def test_local_with_work_dir(self, tmp_path: Path) -> None:
        customizer = ToolsFlagCustomizer()
        sandbox = await create_sandbox(
            SandboxSettings(work_dir=str(tmp_path)), customizers=[customizer]
        )
        assert isinstance(sandbox, LocalSandbox)
        assert sandbox.work_dir == tmp_path
        assert sandbox.customizers == (customizer,)
        await sandbox.close()
        assert tmp_path.exists()

    async def test_docker_backend(self) -> None:
        settings = SandboxSettings(backend="docker", image="node:20-slim", container_work_dir="/src")
        with patch.object(DockerSandbox, "start", new_callable=AsyncMock) as mock_start:
            await create_sandbox(settings)

        mock_start.assert_awaited_once()
        assert mock_start.call_args.args == ("node:20-slim",)
        assert mock_start.call_args.kwargs["work_dir"] == "/src"
        assert mock_start.call_args.kwargs["docker_binary"] == "docker"
