"""
Logging setup: JSON lines for deployments, plain text for local runs.

Structured fields passed with ``extra=`` (audit records, stock restoration)
become top-level JSON keys, and records emitted inside a span carry its
trace and span ids.
"""
import logging
import sys
from opentelemetry import trace
from pythonjsonlogger.json import JsonFormatter

# Chatty at INFO; raised to WARNING unless the service runs at DEBUG
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "passlib")


class TraceContextFilter(logging.Filter):
    """Attach the current trace/span ids so logs can be joined with traces"""

    def filter(self, record: logging.LogRecord) -> bool:
        context = trace.get_current_span().get_span_context()
        if context.is_valid:
            record.trace_id = format(context.trace_id, "032x")
            record.span_id = format(context.span_id, "016x")
        return True


def _json_formatter(service_name: str) -> JsonFormatter:
    formatter = JsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
        rename_fields={"asctime": "timestamp", "name": "logger", "levelname": "level"},
        static_fields={"service": service_name},
    )
    formatter.default_time_format = "%Y-%m-%dT%H:%M:%S"
    formatter.default_msec_format = "%s.%03dZ"
    return formatter


def setup_logging(service_name: str, log_level: str = "INFO", log_format: str = "json") -> logging.Logger:
    """
    Configure the root logger for the service

    Args:
        service_name: Name stamped on every JSON record
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Format (json or text)
    """
    level = getattr(logging, log_level.upper())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(TraceContextFilter())
    if log_format.lower() == "json":
        handler.setFormatter(_json_formatter(service_name))
    else:
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    root.info(f"Logging initialized for {service_name} at level {log_level}")
    return root
