"""agentbench CLI entrypoint."""

from __future__ import annotations

import logging

import click

from agentbench import __version__


@click.group()
@click.version_option(version=__version__, prog_name="agentbench")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """agentbench — run commands in local or container sandboxes."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
from agentbench.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
