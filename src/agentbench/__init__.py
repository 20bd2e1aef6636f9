"""agentbench — sandboxed command execution for agent benchmarks."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from agentbench.exec.sandbox.docker_sandbox import DockerSandbox as DockerSandbox
    from agentbench.exec.sandbox.local_sandbox import LocalSandbox as LocalSandbox

_SANDBOX_EXPORTS = {
    "LocalSandbox": "agentbench.exec.sandbox.local_sandbox",
    "DockerSandbox": "agentbench.exec.sandbox.docker_sandbox",
    "create_sandbox": "agentbench.exec.sandbox.factory",
}


def __getattr__(name: str) -> object:
    module_path = _SANDBOX_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'agentbench' has no attribute {name!r}")
