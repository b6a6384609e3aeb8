"""
Owner notification tool.
Records notifications about leads; a transport callable (chat webhook,
email, ...) performs real delivery when configured.
"""

from typing import Optional, Callable, Dict, Any, List
from datetime import datetime, timezone
import uuid

from tools.base import Tool, ToolResult
from observability import trace_logger


class NotificationTool(Tool):
    """Notifies a campaign or rule owner about a lead."""

    def __init__(
        self,
        transport: Optional[Callable[[Dict[str, Any]], None]] = None,
        max_retries: int = 3,
        backoff_multiplier: float = 1.0
    ):
        super().__init__(
            name="notification_tool",
            max_retries=max_retries,
            backoff_multiplier=backoff_multiplier
        )
        self.transport = transport
        self.notifications: List[dict] = []

    def execute(self, action: str = "notify", **kwargs) -> ToolResult:
        if action != "notify":
            return ToolResult(
                success=False,
                error=f"Unknown notification action: {action}",
                retry_allowed=False
            )

        try:
            return self._notify(**kwargs)
        except (ConnectionError, TimeoutError) as e:
            return ToolResult(
                success=False,
                error=f"Notification failed: {str(e)}",
                retry_allowed=True
            )

    def _notify(
        self,
        lead_id: int,
        message: str,
        owner_id: Optional[int] = None,
        rule_id: Optional[int] = None
    ) -> ToolResult:
        notification = {
            "notification_id": str(uuid.uuid4()),
            "owner_id": owner_id,
            "lead_id": lead_id,
            "rule_id": rule_id,
            "message": message,
            "created_at": datetime.now(timezone.utc).isoformat()
        }

        if self.transport:
            self.transport(notification)

        self.notifications.append(notification)
        trace_logger.info("Owner notified", lead_id=lead_id, owner_id=owner_id)

        return ToolResult(
            success=True,
            data={"notification_id": notification["notification_id"]}
        )
