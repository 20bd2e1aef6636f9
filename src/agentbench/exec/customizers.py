"""Spec customizers — pure ``ExecutionSpec -> ExecutionSpec`` transformations.

A sandbox applies its customizers, in order, to every spec immediately before
translating it into a backend invocation. Customizers only ever see logical
command/env/tool data, never backend quoting details.

Customizers must hold no mutable state: one instance may be shared by many
sandboxes running in concurrent tasks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from agentbench.exec.errors import CustomizerStateError, SpecValidationError
from agentbench.exec.models import ExecutionSpec

logger = logging.getLogger(__name__)

SpecPredicate = Callable[[ExecutionSpec], bool]


@runtime_checkable
class SpecCustomizer(Protocol):
    """Transforms a spec into a (possibly) new spec without side effects."""

    def customize(self, spec: ExecutionSpec) -> ExecutionSpec:
        """Return the customized spec; the input must not be modified."""
        ...


class FunctionCustomizer:
    """Adapts a plain callable to the :class:`SpecCustomizer` protocol."""

    __slots__ = ("_func",)

    def __init__(self, func: Callable[[ExecutionSpec], ExecutionSpec]) -> None:
        self._func = func

    def customize(self, spec: ExecutionSpec) -> ExecutionSpec:
        return self._func(spec)

    def __repr__(self) -> str:
        return f"FunctionCustomizer({self._func!r})"


class _IdentityCustomizer:
    __slots__ = ()

    def customize(self, spec: ExecutionSpec) -> ExecutionSpec:
        return spec

    def __repr__(self) -> str:
        return "identity()"


class ChainCustomizer:
    """Applies customizers left to right, feeding each output to the next."""

    __slots__ = ("_customizers",)

    def __init__(self, customizers: tuple[SpecCustomizer, ...]) -> None:
        self._customizers = customizers

    @property
    def customizers(self) -> tuple[SpecCustomizer, ...]:
        return self._customizers

    def customize(self, spec: ExecutionSpec) -> ExecutionSpec:
        result = spec
        for customizer in self._customizers:
            result = customizer.customize(result)
        return result

    def __repr__(self) -> str:
        return f"chain({', '.join(repr(c) for c in self._customizers)})"


class ConditionalCustomizer:
    """Applies a customizer only to specs matching a predicate."""

    __slots__ = ("_customizer", "_predicate")

    def __init__(self, predicate: SpecPredicate, customizer: SpecCustomizer) -> None:
        self._predicate = predicate
        self._customizer = customizer

    def customize(self, spec: ExecutionSpec) -> ExecutionSpec:
        # A failing predicate is a programming error, so it propagates.
        if self._predicate(spec):
            return self._customizer.customize(spec)
        return spec


_IDENTITY = _IdentityCustomizer()


def as_customizer(
    customizer: SpecCustomizer | Callable[[ExecutionSpec], ExecutionSpec],
) -> SpecCustomizer:
    """Return *customizer* as a :class:`SpecCustomizer`, wrapping bare callables."""
    if isinstance(customizer, SpecCustomizer):
        return customizer
    if callable(customizer):
        return FunctionCustomizer(customizer)
    raise SpecValidationError(f"Not a customizer: {customizer!r}")


def identity() -> SpecCustomizer:
    """Return a customizer that hands back the very same spec instance."""
    return _IDENTITY


def chain(*customizers: SpecCustomizer | Callable[[ExecutionSpec], ExecutionSpec]) -> SpecCustomizer:
    """Compose *customizers* into one, applied in argument order.

    Raises:
        SpecValidationError: If any entry is ``None``; the index is reported.
    """
    for index, customizer in enumerate(customizers):
        if customizer is None:
            raise SpecValidationError(f"Customizer at index {index} cannot be None")
    return ChainCustomizer(tuple(as_customizer(c) for c in customizers))


def when(
    predicate: SpecPredicate,
    customizer: SpecCustomizer | Callable[[ExecutionSpec], ExecutionSpec],
) -> SpecCustomizer:
    """Apply *customizer* only when ``predicate(spec)`` is true."""
    if predicate is None:
        raise SpecValidationError("Predicate cannot be None")
    if customizer is None:
        raise SpecValidationError("Customizer cannot be None")
    return ConditionalCustomizer(predicate, as_customizer(customizer))


class ToolsFlagCustomizer:
    """Injects ``--tools=<names>`` into invocations of an agent CLI.

    The flag is only added when ``command[0]`` equals *cli_command* exactly
    and the spec carries a :class:`~agentbench.exec.models.ToolConfig`.
    """

    TOOLS_FLAG_PREFIX = "--tools="

    __slots__ = ("_cli_command",)

    def __init__(self, cli_command: str = "claude-cli") -> None:
        self._cli_command = cli_command

    @property
    def cli_command(self) -> str:
        return self._cli_command

    def customize(self, spec: ExecutionSpec) -> ExecutionSpec:
        flag = self.tools_flag(spec)
        if flag is None:
            return spec

        if any(arg.startswith(self.TOOLS_FLAG_PREFIX) for arg in spec.command):
            raise CustomizerStateError(
                f"Command already contains a '{self.TOOLS_FLAG_PREFIX.rstrip('=')}' flag, "
                "cannot add another"
            )

        logger.debug("Injecting tools flag for %s: %s", self._cli_command, flag)
        return spec.to_builder().command([*spec.command, flag]).build()

    def tools_flag(self, spec: ExecutionSpec) -> str | None:
        """The flag this customizer would append to *spec*, or ``None``."""
        if spec.command[0] != self._cli_command or spec.tools is None:
            return None
        return self.TOOLS_FLAG_PREFIX + spec.tools.tools_value

    def __repr__(self) -> str:
        return f"ToolsFlagCustomizer(cli_command={self._cli_command!r})"
