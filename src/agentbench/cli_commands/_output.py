"""Shared CLI helpers: running one spec and printing its outcome."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from agentbench.exec.customizers import ToolsFlagCustomizer
from agentbench.exec.errors import CustomizerStateError, SandboxError, SandboxTimeoutError, SpecValidationError
from agentbench.exec.sandbox.factory import create_sandbox

if TYPE_CHECKING:
    from agentbench.exec.models import ExecutionResult, ExecutionSpec
    from agentbench.exec.sandbox.factory import SandboxSettings

console = Console()

EXIT_TIMEOUT = 124
EXIT_ERROR = 1


async def execute_once(settings: SandboxSettings, spec: ExecutionSpec) -> ExecutionResult:
    """Run *spec* in a fresh sandbox that is closed on every exit path."""
    sandbox = await create_sandbox(settings, customizers=[ToolsFlagCustomizer()])
    async with sandbox:
        return await sandbox.execute(spec)


def run_and_report(settings: SandboxSettings, spec: ExecutionSpec, *, as_json: bool = False) -> int:
    """Execute *spec*, print the outcome, and return the process exit status.

    Timeouts, sandbox failures and validation problems are reported as
    separate categories.
    """
    try:
        result = asyncio.run(execute_once(settings, spec))
    except SandboxTimeoutError as exc:
        console.print(f"[yellow]Timed out:[/yellow] {exc.detailed_message}")
        return EXIT_TIMEOUT
    except SandboxError as exc:
        console.print(f"[red]Sandbox error:[/red] {exc}")
        return EXIT_ERROR
    except (SpecValidationError, CustomizerStateError) as exc:
        console.print(f"[red]Validation error:[/red] {exc}")
        return EXIT_ERROR

    print_result(result, as_json=as_json)
    # Signal-terminated processes report a negative code.
    return result.exit_code if result.exit_code >= 0 else 128 - result.exit_code


def print_result(result: ExecutionResult, *, as_json: bool = False) -> None:
    """Pretty-print an execution result."""
    if as_json:
        console.print_json(result.model_dump_json())
        return

    if result.merged_log:
        console.print(result.merged_log, end="", markup=False, highlight=False)
        if not result.merged_log.endswith("\n"):
            console.print()

    table = Table(title="Execution Result", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    status = "[green]success[/green]" if result.success else "[red]failed[/red]"
    table.add_row("Status", status)
    table.add_row("Exit code", str(result.exit_code))
    table.add_row("Duration", f"{result.duration:.3f}s")
    table.add_row("Output", f"{result.output_length} chars")
    console.print(table)
