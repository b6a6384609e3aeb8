"""Outbound tool integrations with error handling."""

from tools.base import Tool, ToolResult, TransientError
from tools.email import EmailTool, EMAIL_TEMPLATES, SendGridTransport
from tools.notification import NotificationTool

__all__ = [
    "Tool", "ToolResult", "TransientError",
    "EmailTool", "EMAIL_TEMPLATES", "SendGridTransport", "NotificationTool"
]
