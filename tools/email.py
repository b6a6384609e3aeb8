"""
Email tool for dispatching outreach and workflow emails.
Records every sent email; a transport callable performs real delivery.
SendGridTransport is used when SENDGRID_API_KEY is configured.
"""

from typing import Optional, List, Callable, Dict, Any
from datetime import datetime, timezone
import uuid

import sendgrid
from python_http_client.exceptions import HTTPError
from sendgrid.helpers.mail import Mail

from config import settings
from tools.base import Tool, ToolResult
from observability import trace_logger


EMAIL_TEMPLATES = {
    "initial_outreach": "Quick introduction",
    "follow_up": "Following up",
    "meeting_request": "Time for a quick call?",
    "breakup": "Should I close your file?",
    "thank_you": "Thanks for your time",
    "proposal": "Your proposal",
}


def _delivery_error(status_code: Optional[int], reason: str) -> Exception:
    """Rate limits and provider outages are retryable, anything else is not."""
    message = f"SendGrid returned {status_code}: {reason}"
    if status_code is None or status_code == 429 or status_code >= 500:
        return ConnectionError(message)
    return PermissionError(message)


class SendGridTransport:
    """Delivers messages through the SendGrid v3 mail API."""

    def __init__(self, api_key: Optional[str] = None, client=None):
        self.client = client or sendgrid.SendGridAPIClient(api_key=api_key or settings.sendgrid_api_key)

    def __call__(self, message: Dict[str, Any]) -> None:
        mail = Mail(
            from_email=message["from"],
            to_emails=message["to"],
            subject=message["subject"],
            plain_text_content=message["body"]
        )
        try:
            response = self.client.send(mail)
        except HTTPError as e:
            raise _delivery_error(getattr(e, "status_code", None), str(e)) from e

        if response.status_code not in (200, 201, 202):
            raise _delivery_error(response.status_code, str(response.body))


class EmailTool(Tool):
    """Email sending tool."""

    def __init__(
        self,
        transport: Optional[Callable[[Dict[str, Any]], None]] = None,
        max_retries: Optional[int] = None,
        backoff_multiplier: float = 1.0
    ):
        super().__init__(
            name="email_tool",
            max_retries=settings.email_max_retries if max_retries is None else max_retries,
            backoff_multiplier=backoff_multiplier
        )
        if transport is None and settings.sendgrid_api_key:
            transport = SendGridTransport(settings.sendgrid_api_key)
        self.transport = transport
        # Store sent emails (for testing/verification)
        self.sent_emails = []

    def execute(self, action: str, **kwargs) -> ToolResult:
        """
        Execute email action.

        Args:
            action: Action to perform (send, send_followup, send_template)
            **kwargs: Action-specific parameters

        Returns:
            ToolResult with operation outcome
        """
        actions = {
            "send": self._send_email,
            "send_followup": self._send_followup,
            "send_template": self._send_template
        }

        handler = actions.get(action)
        if not handler:
            return ToolResult(
                success=False,
                error=f"Unknown email action: {action}",
                retry_allowed=False
            )

        try:
            return handler(**kwargs)
        except (ConnectionError, TimeoutError) as e:
            return ToolResult(
                success=False,
                error=f"Email operation failed: {str(e)}",
                retry_allowed=True  # API calls can be retried
            )
        except Exception as e:
            return ToolResult(
                success=False,
                error=f"Email operation failed: {str(e)}",
                retry_allowed=False
            )

    def _send_email(
        self,
        to_email: str,
        subject: str,
        body: str,
        from_email: Optional[str] = None,
        cc: Optional[List[str]] = None
    ) -> ToolResult:
        """Send an email."""
        if not to_email:
            return ToolResult(success=False, error="Missing recipient", retry_allowed=False)

        email_id = str(uuid.uuid4())
        email = {
            "email_id": email_id,
            "to": to_email,
            "from": from_email or settings.sendgrid_from_email or "outreach@company.com",
            "cc": cc or [],
            "subject": subject,
            "body": body,
            "sent_at": datetime.now(timezone.utc).isoformat(),
            "status": "sent"
        }

        if self.transport:
            self.transport(email)

        self.sent_emails.append(email)

        trace_logger.info(
            "Email sent successfully",
            email_id=email_id,
            to=to_email,
            subject=subject
        )

        return ToolResult(
            success=True,
            data={
                "email_id": email_id,
                "status": "sent",
                "sent_at": email["sent_at"]
            }
        )

    def _send_followup(
        self,
        to_email: str,
        lead_name: Optional[str] = None,
        context: Optional[str] = None
    ) -> ToolResult:
        """Send a follow-up email built from the follow-up template."""
        name = lead_name or "there"
        body = f"""Hi {name},

I wanted to follow up on my previous note. {context or "Happy to answer any questions you might have."}

Would you be open to a brief call this week?

Best regards,
Sales Team
"""

        return self._send_email(
            to_email=to_email,
            subject=EMAIL_TEMPLATES["follow_up"],
            body=body
        )

    def _send_template(
        self,
        to_email: str,
        template: str,
        lead_name: Optional[str] = None,
        company_name: Optional[str] = None
    ) -> ToolResult:
        """Send one of the named workflow templates."""
        if template == "follow_up":
            return self._send_followup(to_email=to_email, lead_name=lead_name)

        subject = EMAIL_TEMPLATES.get(template)
        if subject is None:
            return ToolResult(success=False, error=f"Unknown email template: {template}")

        body = f"Hi {lead_name or 'there'},\n\n{subject} regarding {company_name or 'your team'}.\n\nBest regards,\nSales Team\n"
        return self._send_email(to_email=to_email, subject=subject, body=body)

    def get_sent_emails(self, to_email: Optional[str] = None) -> List[dict]:
        """Get sent emails, optionally filtered by recipient."""
        if to_email:
            return [e for e in self.sent_emails if e["to"] == to_email]
        return self.sent_emails
