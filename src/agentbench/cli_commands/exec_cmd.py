"""``agentbench exec`` — run one command in a sandbox."""

from __future__ import annotations

import sys

import click

from agentbench.cli_commands._output import EXIT_ERROR, console, run_and_report
from agentbench.exec.errors import SpecValidationError
from agentbench.exec.models import ExecutionSpec, ToolConfig
from agentbench.exec.sandbox.factory import SandboxSettings


def _parse_env(pairs: tuple[str, ...]) -> dict[str, str]:
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        env[key] = value
    return env


@click.command("exec", context_settings={"ignore_unknown_options": True})
@click.option("--backend", type=click.Choice(["local", "docker"]), default="local", help="Sandbox backend.")
@click.option("--image", default=None, help="Docker image for the docker backend.")
@click.option("--work-dir", type=click.Path(file_okay=False), default=None, help="Host working directory.")
@click.option("--timeout", type=float, default=None, help="Timeout in seconds.")
@click.option("--env", "-e", "env_pairs", multiple=True, help="Environment variable as KEY=VALUE.")
@click.option("--tool", "tools", multiple=True, help="Tool/server name to expose (repeatable).")
@click.option("--shell", is_flag=True, help="Run the arguments as one shell snippet.")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON.")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
def exec_cmd(
    backend: str,
    image: str | None,
    work_dir: str | None,
    timeout: float | None,
    env_pairs: tuple[str, ...],
    tools: tuple[str, ...],
    shell: bool,
    as_json: bool,
    command: tuple[str, ...],
) -> None:
    """Execute COMMAND inside a sandbox and report the result."""
    settings = SandboxSettings(backend=backend, work_dir=work_dir)  # type: ignore[arg-type]
    if image:
        settings = settings.model_copy(update={"image": image})

    builder = ExecutionSpec.builder().env(_parse_env(env_pairs)).timeout(timeout)
    if shell:
        builder.shell_command(" ".join(command))
    else:
        builder.command(list(command))
    if tools:
        builder.tools(ToolConfig.of(*tools))

    try:
        spec = builder.build()
    except SpecValidationError as exc:
        console.print(f"[red]Validation error:[/red] {exc}")
        sys.exit(EXIT_ERROR)

    sys.exit(run_and_report(settings, spec, as_json=as_json))
