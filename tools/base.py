"""
Base tool abstraction with structured result handling.
All tools return ToolResult with success/failure status.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Any, Optional
from tenacity import Retrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from observability import trace_logger


@dataclass
class ToolResult:
    """Structured result from tool execution."""
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    retry_allowed: bool = False


class TransientError(Exception):
    """Exception for transient errors that should be retried."""

    def __init__(self, message: str = "", result: Optional[ToolResult] = None):
        super().__init__(message)
        self.result = result


class Tool(ABC):
    """Abstract base class for all outbound tools."""

    def __init__(self, name: str, max_retries: int = 3, backoff_multiplier: float = 1.0):
        self.name = name
        self.retry_count = 0
        self.max_retries = max_retries
        self.backoff_multiplier = backoff_multiplier

    @abstractmethod
    def execute(self, **kwargs) -> ToolResult:
        """Execute tool with parameters."""
        pass

    def _attempt(self, **kwargs) -> ToolResult:
        trace_logger.tool_called(
            tool_name=self.name,
            parameters=kwargs,
            retry_count=self.retry_count
        )

        result = self.execute(**kwargs)

        trace_logger.tool_result(
            tool_name=self.name,
            success=result.success,
            data=result.data,
            error=result.error,
            retry_count=self.retry_count
        )

        if not result.success and result.retry_allowed:
            raise TransientError(result.error or "transient failure", result=result)
        return result

    def execute_with_retry(self, **kwargs) -> ToolResult:
        """
        Execute tool with automatic retry on transient failures.

        Retries up to max_retries times with exponential backoff.
        Only retries if result indicates retry_allowed=True.
        """
        self.retry_count = 0
        retryer = Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.backoff_multiplier, max=30),
            retry=retry_if_exception_type(TransientError),
            reraise=True
        )

        try:
            for attempt in retryer:
                with attempt:
                    self.retry_count = attempt.retry_state.attempt_number - 1
                    result = self._attempt(**kwargs)
            return result

        except TransientError as e:
            # Max retries exceeded
            return e.result or ToolResult(success=False, error=str(e), retry_allowed=False)

        except Exception as e:
            error_msg = f"Tool execution exception: {str(e)}"
            trace_logger.error_occurred(
                error_type="tool_execution_exception",
                error_message=error_msg,
                context={"tool": self.name, "params": kwargs}
            )
            return ToolResult(
                success=False,
                error=error_msg,
                retry_allowed=False  # Don't retry on exceptions
            )
