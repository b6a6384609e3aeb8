"""
Workflow action execution.

Each invocation produces exactly one activity record or lead mutation (or
one owner notification). Real outbound dispatch happens in the engine's
dispatcher, not here.
"""

from dataclasses import dataclass
from typing import Optional

from config import settings
from history import LeadHistoryStore
from models import Lead, WorkflowRule, ActionResult, LeadStatus
from tools import NotificationTool
from observability import trace_logger
from analytics.common import enum_value
from workflows.triggers import config_value


@dataclass(frozen=True)
class AutomationPrincipal:
    """Identity recorded on records written by automation."""
    user_id: Optional[int] = None
    name: str = "workflow-automation"

    @classmethod
    def from_settings(cls) -> "AutomationPrincipal":
        return cls(user_id=settings.automation_user_id, name=settings.automation_actor_name)


class WorkflowActionExecutor:
    """Applies a rule's action to a lead whose trigger fired."""

    def __init__(
        self,
        store: LeadHistoryStore,
        principal: Optional[AutomationPrincipal] = None,
        notifier: Optional[NotificationTool] = None
    ):
        self.store = store
        self.principal = principal or AutomationPrincipal.from_settings()
        self.notifier = notifier

    def execute_action(self, rule: WorkflowRule, lead: Lead) -> ActionResult:
        """
        Execute the rule's action for one lead.

        Unknown action types are reported as failed; store errors propagate
        to the caller, which records them per lead.
        """
        action_type = enum_value(rule.action_type)
        handlers = {
            "send_email": self._schedule_email,
            "make_call": self._schedule_call,
            "update_status": self._update_status,
            "notify_owner": self._notify_owner,
        }

        handler = handlers.get(action_type)
        if handler is None:
            result = ActionResult(
                rule_id=rule.id,
                lead_id=lead.id,
                action_type=str(action_type),
                status="failed",
                error=f"Unknown action type: {action_type}"
            )
        else:
            result = handler(rule, lead)

        trace_logger.action_executed(
            rule_id=rule.id,
            lead_id=lead.id,
            action_type=result.action_type,
            success=result.status == "success",
            error=result.error
        )
        return result

    def _create_pending_activity(self, rule: WorkflowRule, lead: Lead, activity_type: str, description: str):
        return self.store.create_activity(
            lead_id=lead.id,
            campaign_id=rule.campaign_id,
            activity_type=activity_type,
            user_id=self.principal.user_id,
            created_by=self.principal.name,
            subject=rule.name,
            description=description,
            status="pending"
        )

    def _schedule_email(self, rule: WorkflowRule, lead: Lead) -> ActionResult:
        activity = self._create_pending_activity(rule, lead, "email", "Automated workflow email")
        return ActionResult(
            rule_id=rule.id,
            lead_id=lead.id,
            action_type="send_email",
            status="success",
            detail=f"Email queued for {lead.contact_email or 'lead without email'}",
            data={
                "activity_id": activity.id,
                "to_email": lead.contact_email,
                "template": config_value(rule.action_config, "emailTemplate", "email_template", "template")
            }
        )

    def _schedule_call(self, rule: WorkflowRule, lead: Lead) -> ActionResult:
        activity = self._create_pending_activity(rule, lead, "call", "Automated workflow call")
        return ActionResult(
            rule_id=rule.id,
            lead_id=lead.id,
            action_type="make_call",
            status="success",
            detail=f"Call queued for {lead.contact_phone or 'lead without phone'}",
            data={"activity_id": activity.id, "phone": lead.contact_phone}
        )

    def _update_status(self, rule: WorkflowRule, lead: Lead) -> ActionResult:
        new_status = config_value(rule.action_config, "newStatus", "new_status")
        if new_status not in {s.value for s in LeadStatus}:
            return ActionResult(
                rule_id=rule.id,
                lead_id=lead.id,
                action_type="update_status",
                status="failed",
                error=f"Invalid target status: {new_status}"
            )

        previous = enum_value(lead.status)
        self.store.update_lead(lead.id, status=new_status)
        return ActionResult(
            rule_id=rule.id,
            lead_id=lead.id,
            action_type="update_status",
            status="success",
            detail=f"Status {previous} -> {new_status}",
            data={"previous_status": previous, "new_status": new_status}
        )

    def _notify_owner(self, rule: WorkflowRule, lead: Lead) -> ActionResult:
        message = config_value(
            rule.action_config, "message",
            default=f"Workflow '{rule.name or rule.id}' fired for {lead.company_name}"
        )

        if self.notifier is None:
            trace_logger.info(
                "No notifier configured; owner notification skipped",
                rule_id=rule.id,
                lead_id=lead.id
            )
            return ActionResult(
                rule_id=rule.id,
                lead_id=lead.id,
                action_type="notify_owner",
                status="success",
                detail="No notifier configured"
            )

        result = self.notifier.execute_with_retry(
            action="notify",
            lead_id=lead.id,
            message=message,
            owner_id=rule.user_id,
            rule_id=rule.id
        )
        return ActionResult(
            rule_id=rule.id,
            lead_id=lead.id,
            action_type="notify_owner",
            status="success" if result.success else "failed",
            detail=message,
            error=result.error,
            data=result.data or {}
        )
