"""Sandbox subsystem — isolated command execution."""

from agentbench.exec.sandbox.base import BaseSandbox, Sandbox
from agentbench.exec.sandbox.docker_sandbox import DockerSandbox
from agentbench.exec.sandbox.factory import SandboxSettings, create_sandbox
from agentbench.exec.sandbox.local_sandbox import LocalSandbox

__all__ = [
    "BaseSandbox",
    "DockerSandbox",
    "LocalSandbox",
    "Sandbox",
    "SandboxSettings",
    "create_sandbox",
]
