"""Optional Logfire/OpenTelemetry tracing for pipeline runs.

When enabled, every pipeline run becomes a ``pipeline_run`` span with one
child span per stage, and PydanticAI calls made by the summarizer are
instrumented automatically. When disabled (the default) or when logfire
is not installed, every helper here is a no-op.

Requirements:
    pip install logfire

Enable via configuration:
    ENABLE_LOGFIRE=true
    LOGFIRE_TOKEN=your-token  # Optional for cloud dashboard

Usage:
    >>> setup_tracing(enabled=True, service_name="trendwire")
    >>> with trace_operation("stage.fetch", {"run_id": run_id}) as attrs:
    ...     attrs["chars"] = len(text)
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator

logger = logging.getLogger(__name__)


@dataclass
class TracingContext:
    """Tracing state for the process."""
    enabled: bool = False
    service_name: str = "trendwire"
    token: str = ""
    _logfire_configured: bool = field(default=False, init=False)


_context = TracingContext()


def setup_tracing(
    enabled: bool = False,
    service_name: str = "trendwire",
    token: str = "",
) -> TracingContext:
    """Configure Logfire and instrument PydanticAI.

    Args:
        enabled: Whether to enable tracing
        service_name: Service name reported on spans
        token: Logfire authentication token

    Returns:
        TracingContext for the session
    """
    _context.enabled = enabled
    _context.service_name = service_name
    _context.token = token

    if not enabled:
        logger.debug("Tracing disabled")
        return _context

    try:
        import logfire

        logfire.configure(service_name=service_name, token=token or None)
        logfire.instrument_pydantic_ai()
        _context._logfire_configured = True
        logger.info("Logfire tracing enabled | service=%s", service_name)

    except ImportError:
        logger.warning("Logfire not installed. Tracing disabled.")
        _context.enabled = False
    except Exception as e:
        logger.error("Failed to configure Logfire: %s", e)
        _context.enabled = False

    return _context


@contextmanager
def trace_operation(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[dict[str, Any], None, None]:
    """Wrap a block in a span when tracing is active.

    Yields:
        Dictionary whose entries are attached to the span on exit
    """
    span_attrs = attributes or {}
    start = time.perf_counter()
    result_attrs: dict[str, Any] = {}

    try:
        if _context.enabled and _context._logfire_configured:
            import logfire

            with logfire.span(name, **span_attrs) as span:
                yield result_attrs
                for key, value in result_attrs.items():
                    span.set_attribute(key, value)
        else:
            yield result_attrs
    finally:
        logger.debug("Operation '%s' completed in %.2fs", name, time.perf_counter() - start)
