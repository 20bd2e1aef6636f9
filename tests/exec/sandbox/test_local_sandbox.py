"""Tests for LocalSandbox (real POSIX subprocesses)."""

from __future__ import annotations

import logging
import os
import sys
import time
from pathlib import Path

import pytest

from agentbench.exec.customizers import FunctionCustomizer
from agentbench.exec.errors import SandboxClosedError, SandboxError, SandboxTimeoutError
from agentbench.exec.models import ExecutionSpec, ToolConfig
from agentbench.exec.sandbox import local_sandbox
from agentbench.exec.sandbox.local_sandbox import OWNED_DIR_PREFIX, LocalSandbox

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX commands")


class TestLocalSandboxExecute:
    async def test_hello_world(self) -> None:
        async with LocalSandbox() as sandbox:
            result = await sandbox.execute(ExecutionSpec.of("echo", "Hello, World!"))
        assert result.exit_code == 0
        assert result.success is True
        assert "Hello, World!" in result.merged_log
        assert result.duration >= 0

    async def test_false_exits_one(self) -> None:
        async with LocalSandbox() as sandbox:
            result = await sandbox.execute(ExecutionSpec.of("false"))
        assert result.exit_code == 1
        assert result.success is False

    async def test_nonzero_exit_code(self) -> None:
        async with LocalSandbox() as sandbox:
            result = await sandbox.execute(ExecutionSpec.of("sh", "-c", "exit 42"))
        assert result.exit_code == 42

    async def test_timeout_raises(self) -> None:
        spec = ExecutionSpec.builder().command("sleep", "2").timeout(0.1).build()
        async with LocalSandbox() as sandbox:
            with pytest.raises(SandboxTimeoutError) as exc_info:
                await sandbox.execute(spec)
        assert exc_info.value.timeout == 0.1
        assert "0.1" in str(exc_info.value)
        assert exc_info.value.elapsed is not None
        assert exc_info.value.elapsed >= 0.1

    async def test_timeout_kills_whole_process_tree(self) -> None:
        # The background sleep would keep the output pipe open if only the
        # shell were killed.
        spec = ExecutionSpec.builder().shell_command("sleep 5 & sleep 5; wait").timeout(0.2).build()
        start = time.monotonic()
        async with LocalSandbox() as sandbox:
            with pytest.raises(SandboxTimeoutError):
                await sandbox.execute(spec)
        assert time.monotonic() - start < 3

    async def test_timeout_kills_background_child_after_shell_exits(self) -> None:
        spec = ExecutionSpec.builder().shell_command("sleep 4 & exit 0").timeout(0.3).build()
        start = time.monotonic()
        async with LocalSandbox() as sandbox:
            with pytest.raises(SandboxTimeoutError) as exc_info:
                await sandbox.execute(spec)
        assert time.monotonic() - start < 2
        assert exc_info.value.timeout == 0.3

    async def test_stdout_and_stderr_are_merged_in_order(self) -> None:
        spec = ExecutionSpec.builder().shell_command("echo one; echo two 1>&2; echo three").build()
        async with LocalSandbox() as sandbox:
            result = await sandbox.execute(spec)
        assert result.merged_log == "one\ntwo\nthree\n"

    async def test_shell_command_expanded(self) -> None:
        spec = ExecutionSpec.builder().shell_command("echo $((2 + 3))").build()
        async with LocalSandbox() as sandbox:
            result = await sandbox.execute(spec)
        assert result.merged_log.strip() == "5"

    async def test_runs_in_work_dir(self, tmp_path: Path) -> None:
        async with LocalSandbox(tmp_path) as sandbox:
            result = await sandbox.execute(ExecutionSpec.of("pwd"))
            await sandbox.execute(ExecutionSpec.builder().shell_command("echo hi > out.txt").build())
        assert Path(result.merged_log.strip()).resolve() == tmp_path.resolve()
        assert (tmp_path / "out.txt").read_text() == "hi\n"

    async def test_env_overlays_inherited_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGENTBENCH_INHERITED", "from-parent")
        spec = (
            ExecutionSpec.builder()
            .shell_command('echo "$AGENTBENCH_INHERITED $AGENTBENCH_SPEC"')
            .env("AGENTBENCH_SPEC", "from-spec")
            .build()
        )
        async with LocalSandbox() as sandbox:
            result = await sandbox.execute(spec)
        assert result.merged_log.strip() == "from-parent from-spec"
        assert "AGENTBENCH_SPEC" not in os.environ

    async def test_tools_env_var(self) -> None:
        spec = (
            ExecutionSpec.builder()
            .shell_command('echo "$MCP_TOOLS"')
            .tools(ToolConfig.of("brave", "filesystem"))
            .build()
        )
        async with LocalSandbox() as sandbox:
            result = await sandbox.execute(spec)
        assert result.merged_log.strip() == "brave,filesystem"

    async def test_no_tools_env_var_without_tools(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MCP_TOOLS", raising=False)
        spec = ExecutionSpec.builder().shell_command('echo "[${MCP_TOOLS-unset}]"').build()
        async with LocalSandbox() as sandbox:
            result = await sandbox.execute(spec)
        assert result.merged_log.strip() == "[unset]"

    async def test_customizers_applied(self) -> None:
        shout = FunctionCustomizer(lambda s: s.to_builder().command([*s.command, "customized"]).build())
        async with LocalSandbox(customizers=[shout]) as sandbox:
            result = await sandbox.execute(ExecutionSpec.of("echo", "value"))
        assert result.merged_log.strip() == "value customized"

    async def test_bad_command(self) -> None:
        async with LocalSandbox() as sandbox:
            with pytest.raises(SandboxError) as exc_info:
                await sandbox.execute(ExecutionSpec.of("nonexistent_command_xyz"))
        assert isinstance(exc_info.value.__cause__, OSError)

    async def test_execute_after_close(self) -> None:
        sandbox = LocalSandbox()
        await sandbox.close()
        with pytest.raises(SandboxClosedError):
            await sandbox.execute(ExecutionSpec.of("echo"))


class TestLocalSandboxLifecycle:
    async def test_owned_directory_removed_on_close(self) -> None:
        sandbox = LocalSandbox()
        work_dir = sandbox.work_dir
        assert work_dir.name.startswith(OWNED_DIR_PREFIX)
        assert work_dir.is_dir()
        assert sandbox.owns_work_dir is True
        (work_dir / "nested").mkdir()
        (work_dir / "nested" / "file.txt").write_text("data")

        await sandbox.close()

        assert not work_dir.exists()

    async def test_explicit_directory_kept_on_close(self, tmp_path: Path) -> None:
        sandbox = LocalSandbox(tmp_path)
        (tmp_path / "keep.txt").write_text("data")
        assert sandbox.owns_work_dir is False

        await sandbox.close()

        assert tmp_path.is_dir()
        assert (tmp_path / "keep.txt").exists()

    async def test_explicit_directory_with_owned_prefix_kept(self, tmp_path: Path) -> None:
        work_dir = tmp_path / f"{OWNED_DIR_PREFIX}caller"
        sandbox = LocalSandbox(work_dir)
        await sandbox.close()
        assert work_dir.is_dir()

    def test_explicit_directory_created(self, tmp_path: Path) -> None:
        work_dir = tmp_path / "a" / "b"
        sandbox = LocalSandbox(work_dir)
        assert sandbox.work_dir == work_dir
        assert work_dir.is_dir()

    async def test_close_twice(self) -> None:
        sandbox = LocalSandbox()
        await sandbox.close()
        assert sandbox.closed is True
        await sandbox.close()
        assert sandbox.closed is True

    async def test_context_manager_closes_on_error(self) -> None:
        with pytest.raises(SandboxTimeoutError):
            async with LocalSandbox() as sandbox:
                work_dir = sandbox.work_dir
                await sandbox.execute(ExecutionSpec.builder().command("sleep", "2").timeout(0.1).build())
        assert sandbox.closed is True
        assert not work_dir.exists()

    async def test_cleanup_failures_are_logged_not_raised(
        self,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        def failing_rmtree(path, *, onexc) -> None:
            onexc(os.unlink, str(Path(path) / "stuck.txt"), PermissionError("denied"))

        sandbox = LocalSandbox()
        work_dir = sandbox.work_dir
        monkeypatch.setattr(local_sandbox.shutil, "rmtree", failing_rmtree)

        with caplog.at_level(logging.WARNING, logger=local_sandbox.__name__):
            await sandbox.close()

        assert sandbox.closed is True
        assert "stuck.txt" in caplog.text
        monkeypatch.undo()
        local_sandbox.shutil.rmtree(work_dir)
