"""``agentbench run`` — execute a run file."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from agentbench.cli_commands._output import EXIT_ERROR, console, run_and_report
from agentbench.exec.errors import SpecValidationError


@click.command()
@click.argument("run_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON.")
@click.option("--dry-run", is_flag=True, help="Validate the run file only, do not execute.")
def run(run_file: str, as_json: bool, dry_run: bool) -> None:
    """Execute the command described in RUN_FILE yaml file."""
    from agentbench.exec.loader import RunFileLoader

    try:
        spec = RunFileLoader(Path(run_file)).load()
    except SpecValidationError as exc:
        console.print(f"[red]Validation error:[/red] {exc}")
        sys.exit(EXIT_ERROR)

    if dry_run:
        console.print("[green]Run file validated successfully.[/green]")
        console.print(f"  Name: {spec.name or '(unnamed)'}")
        console.print(f"  Backend: {spec.sandbox.backend}")
        console.print(f"  Command: {' '.join(spec.exec.command)}", markup=False)
        return

    sys.exit(run_and_report(spec.sandbox, spec.exec, as_json=as_json))
