"""Observability module with structured logging."""

from observability.logger import TraceLogger, trace_logger

__all__ = ["TraceLogger", "trace_logger"]
