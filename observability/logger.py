"""
Structured logging with trace IDs for observability.
Journey builds, scoring runs, workflow triggers, actions and errors are logged.
"""

import logging
import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, List
from pathlib import Path
from contextlib import contextmanager
from pythonjsonlogger import jsonlogger

from config import settings


class TraceLogger:
    """Structured logger with trace ID support for lead analytics and automation."""

    def __init__(self, name: str = "leadgen_analytics"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, settings.log_level))

        if not self.logger.handlers:
            if settings.log_file:
                # Ensure log directory exists
                log_file_path = Path(settings.log_file)
                log_file_path.parent.mkdir(parents=True, exist_ok=True)

                # File handler with JSON formatting
                file_handler = logging.FileHandler(settings.log_file)
                json_formatter = jsonlogger.JsonFormatter(
                    fmt='%(asctime)s %(name)s %(levelname)s %(message)s',
                    rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
                )
                file_handler.setFormatter(json_formatter)
                self.logger.addHandler(file_handler)

            # Console handler with readable formatting
            console_handler = logging.StreamHandler()
            console_formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        self._current_trace_id: Optional[str] = None

    def generate_trace_id(self) -> str:
        """Generate a new trace ID."""
        return str(uuid.uuid4())

    @contextmanager
    def trace(self, trace_id: Optional[str] = None):
        """Context manager for trace ID."""
        old_trace_id = self._current_trace_id
        self._current_trace_id = trace_id or self.generate_trace_id()
        try:
            yield self._current_trace_id
        finally:
            self._current_trace_id = old_trace_id

    def _log(self, level: str, event: str, **kwargs):
        """Internal log method with trace ID."""
        log_data = {
            "trace_id": self._current_trace_id or "unknown",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": event,
            **kwargs
        }

        log_method = getattr(self.logger, level.lower())
        log_method(json.dumps(log_data, default=str), extra=log_data)

    def journey_built(
        self,
        lead_id: int,
        total_touchpoints: int,
        conversion_path: str,
        **kwargs
    ):
        """Log lead journey construction."""
        if not settings.enable_trace_logging:
            return
        self._log(
            "debug",
            "journey_built",
            lead_id=lead_id,
            total_touchpoints=total_touchpoints,
            conversion_path=conversion_path,
            **kwargs
        )

    def attribution_calculated(
        self,
        campaign_id: int,
        model: str,
        contributing_leads: int,
        channel_credits: Dict[str, float],
        **kwargs
    ):
        """Log attribution run."""
        self._log(
            "info",
            "attribution_calculated",
            campaign_id=campaign_id,
            model=model,
            contributing_leads=contributing_leads,
            channel_credits=channel_credits,
            **kwargs
        )

    def priority_scored(
        self,
        lead_id: int,
        score: float,
        urgency: str,
        recommended_action: str,
        **kwargs
    ):
        """Log priority score calculation."""
        if not settings.enable_trace_logging:
            return
        self._log(
            "debug",
            "priority_scored",
            lead_id=lead_id,
            score=score,
            urgency=urgency,
            recommended_action=recommended_action,
            **kwargs
        )

    def trigger_evaluated(
        self,
        rule_id: int,
        lead_id: int,
        trigger_type: str,
        triggered: bool,
        **kwargs
    ):
        """Log workflow trigger evaluation."""
        if not settings.enable_trace_logging:
            return
        self._log(
            "debug",
            "trigger_evaluated",
            rule_id=rule_id,
            lead_id=lead_id,
            trigger_type=trigger_type,
            triggered=triggered,
            **kwargs
        )

    def action_executed(
        self,
        rule_id: int,
        lead_id: int,
        action_type: str,
        success: bool,
        error: Optional[str] = None,
        **kwargs
    ):
        """Log workflow action execution."""
        self._log(
            "info" if success else "warning",
            "action_executed",
            rule_id=rule_id,
            lead_id=lead_id,
            action_type=action_type,
            success=success,
            error=error,
            **kwargs
        )

    def workflow_run_completed(
        self,
        rule_id: int,
        processed: int,
        executed: int,
        failed: int,
        duration_ms: float,
        **kwargs
    ):
        """Log completion of one rule sweep."""
        self._log(
            "info",
            "workflow_run_completed",
            rule_id=rule_id,
            processed=processed,
            executed=executed,
            failed=failed,
            duration_ms=duration_ms,
            **kwargs
        )

    def tool_called(
        self,
        tool_name: str,
        parameters: Dict[str, Any],
        **kwargs
    ):
        """Log tool invocation."""
        self._log(
            "info",
            "tool_called",
            tool_name=tool_name,
            parameters=parameters,
            **kwargs
        )

    def tool_result(
        self,
        tool_name: str,
        success: bool,
        data: Optional[Dict] = None,
        error: Optional[str] = None,
        retry_count: int = 0,
        **kwargs
    ):
        """Log tool result."""
        self._log(
            "info" if success else "warning",
            "tool_result",
            tool_name=tool_name,
            success=success,
            data=data,
            error=error,
            retry_count=retry_count,
            **kwargs
        )

    def store_updated(
        self,
        entity: str,
        entity_id: Any,
        operation: str,
        **kwargs
    ):
        """Log a write to the lead history store."""
        self._log(
            "info",
            "store_updated",
            entity=entity,
            entity_id=entity_id,
            operation=operation,
            **kwargs
        )

    def error_occurred(
        self,
        error_type: str,
        error_message: str,
        context: Optional[Dict] = None,
        **kwargs
    ):
        """Log error."""
        self._log(
            "error",
            "error_occurred",
            error_type=error_type,
            error_message=error_message,
            context=context or {},
            **kwargs
        )

    def info(self, message: str, **kwargs):
        """Info level log."""
        self._log("info", "info", detail=message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Warning level log."""
        self._log("warning", "warning", detail=message, **kwargs)


# Global logger instance
trace_logger = TraceLogger()
