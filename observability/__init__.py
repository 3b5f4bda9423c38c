"""Observability infrastructure: structured logging and optional tracing.

setup_logging:
    Console plus rotating file logging with run/stage context.

set_run_context / set_stage_context / clear_context:
    Context variables injected into every log record.

setup_tracing / trace_operation:
    Optional Logfire spans (ENABLE_LOGFIRE=true, requires logfire).
"""

from observability.logging import clear_context, set_run_context, set_stage_context, setup_logging
from observability.tracing import TracingContext, setup_tracing, trace_operation

__all__ = [
    "setup_logging",
    "set_run_context",
    "set_stage_context",
    "clear_context",
    "setup_tracing",
    "trace_operation",
    "TracingContext",
]
