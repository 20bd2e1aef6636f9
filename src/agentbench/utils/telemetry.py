"""OpenTelemetry tracing helpers for agentbench.

Thin wrapper around the OpenTelemetry API so sandboxes can call
``get_tracer()`` without caring whether the SDK is installed.  Without the SDK
the API hands out no-op tracers.

Usage::

    from agentbench.utils.telemetry import get_tracer

    _tracer = get_tracer(__name__)

    with _tracer.start_as_current_span("sandbox.execute") as span:
        span.set_attribute(ATTR_BACKEND, "local")

To activate real tracing, call :func:`configure_telemetry` once at startup
(requires the ``otel`` extra: ``pip install agentbench[otel]``).
"""

from __future__ import annotations

from typing import Any

from opentelemetry import trace

# ---------------------------------------------------------------------------
# Semantic attribute keys used by sandbox instrumentation
# ---------------------------------------------------------------------------

ATTR_BACKEND = "agentbench.sandbox.backend"
ATTR_EXECUTABLE = "agentbench.exec.executable"
ATTR_ARG_COUNT = "agentbench.exec.arg_count"
ATTR_TIMEOUT = "agentbench.exec.timeout"
ATTR_EXIT_CODE = "agentbench.exec.exit_code"
ATTR_DURATION = "agentbench.exec.duration"
ATTR_TIMED_OUT = "agentbench.exec.timed_out"

_INSTRUMENTATION_NAME = "agentbench"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a :class:`~opentelemetry.trace.Tracer` for *name*.

    If the OpenTelemetry SDK has not been configured the returned tracer
    is a no-op.
    """
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(
    *,
    service_name: str = "agentbench",
    export_to_console: bool = True,
) -> None:
    """Configure OpenTelemetry tracing (requires ``agentbench[otel]``).

    Raises
    ------
    ImportError
        If the ``opentelemetry-sdk`` package is not installed.
    """
    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace.export import SimpleSpanProcessor  # pyright: ignore[reportMissingImports]
    except ImportError as exc:
        msg = (
            "opentelemetry-sdk is required for configure_telemetry(). "
            "Install it with: pip install agentbench[otel]"
        )
        raise ImportError(msg) from exc

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)

    if export_to_console:
        _add_console_exporter(provider, SimpleSpanProcessor)

    trace.set_tracer_provider(provider)


def _add_console_exporter(provider: Any, processor_cls: Any) -> None:
    """Attach the console exporter (JSON to stdout)."""
    from opentelemetry.sdk.trace.export import ConsoleSpanExporter  # pyright: ignore[reportMissingImports]

    provider.add_span_processor(processor_cls(ConsoleSpanExporter()))
