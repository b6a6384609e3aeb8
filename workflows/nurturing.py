"""
Multi-step lead nurturing sequences.

A sequence is an ordered list of steps; each step waits for its trigger
(relative to the time the step started) and then performs one action.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from history import LeadHistoryStore, LeadNotFoundError
from models import Lead, CommunicationLog, Activity, LeadStatus, StepExecutionResult
from tools import EmailTool
from observability import trace_logger
from analytics.common import as_utc, days_between, enum_value, utcnow
from workflows.actions import AutomationPrincipal
from workflows.triggers import config_value


WORKFLOW_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "cold_outreach": {
        "name": "Cold Outreach Sequence",
        "description": "Standard 5-touch cold outreach campaign",
        "steps": [
            {
                "id": "step1",
                "trigger": {"type": "time_delay", "delay_days": 0},
                "action": {"type": "send_email", "email_type": "initial_outreach"},
                "next_step_id": "step2",
            },
            {
                "id": "step2",
                "trigger": {"type": "email_not_opened", "wait_days": 3},
                "action": {"type": "send_email", "email_type": "follow_up"},
                "next_step_id": "step3",
            },
            {
                "id": "step3",
                "trigger": {"type": "email_not_opened", "wait_days": 4},
                "action": {"type": "make_call", "call_type": "qualification"},
                "next_step_id": "step4",
            },
            {
                "id": "step4",
                "trigger": {"type": "call_no_answer", "wait_days": 2},
                "action": {"type": "send_email", "email_type": "follow_up"},
                "next_step_id": "step5",
            },
            {
                "id": "step5",
                "trigger": {"type": "email_not_opened", "wait_days": 7},
                "action": {"type": "send_email", "email_type": "breakup"},
            },
        ],
    },
    "warm_lead_nurture": {
        "name": "Warm Lead Nurture",
        "description": "For leads who showed initial interest",
        "steps": [
            {
                "id": "step1",
                "trigger": {"type": "email_opened"},
                "action": {"type": "update_status", "new_status": "responded"},
                "next_step_id": "step2",
            },
            {
                "id": "step2",
                "trigger": {"type": "time_delay", "delay_days": 1},
                "action": {"type": "make_call", "call_type": "follow_up"},
                "next_step_id": "step3",
            },
            {
                "id": "step3",
                "trigger": {"type": "call_completed"},
                "action": {"type": "send_email", "email_type": "meeting_request"},
            },
        ],
    },
    "post_demo": {
        "name": "Post-Demo Follow-up",
        "description": "After a product demo has been completed",
        "steps": [
            {
                "id": "step1",
                "trigger": {"type": "time_delay", "delay_days": 1},
                "action": {"type": "send_email", "email_type": "thank_you"},
                "next_step_id": "step2",
            },
            {
                "id": "step2",
                "trigger": {"type": "time_delay", "delay_days": 3},
                "action": {"type": "make_call", "call_type": "follow_up"},
                "next_step_id": "step3",
            },
            {
                "id": "step3",
                "trigger": {"type": "time_delay", "delay_days": 7},
                "action": {"type": "send_email", "email_type": "proposal"},
            },
        ],
    },
}

NO_ANSWER_MARKERS = ("no answer", "voicemail")


def _emails_since(communications: Sequence[CommunicationLog], started_at: datetime) -> List[CommunicationLog]:
    emails = [
        c for c in communications
        if enum_value(c.communication_type) == "email"
        and c.sent_at is not None
        and as_utc(c.sent_at) >= started_at
    ]
    return sorted(emails, key=lambda c: as_utc(c.sent_at))


def _calls_since(activities: Sequence[Activity], started_at: datetime) -> List[Activity]:
    calls = [
        a for a in activities
        if enum_value(a.activity_type) == "call"
        and a.created_at is not None
        and as_utc(a.created_at) >= started_at
    ]
    return sorted(calls, key=lambda a: as_utc(a.created_at))


def check_step_trigger(
    lead: Lead,
    communications: Sequence[CommunicationLog],
    activities: Sequence[Activity],
    trigger: Dict[str, Any],
    step_started_at: datetime,
    now: Optional[datetime] = None
) -> bool:
    """
    Decide whether a nurturing step's trigger is satisfied.

    Email and call triggers only look at interactions since the step started.
    """
    now = now or utcnow()
    started_at = as_utc(step_started_at)
    trigger_type = trigger.get("type")

    if trigger_type == "time_delay":
        delay = config_value(trigger, "delay_days", "delayDays", default=0)
        return days_between(started_at, now) >= delay

    if trigger_type == "email_opened":
        return any(enum_value(e.status) == "opened" for e in _emails_since(communications, started_at))

    if trigger_type == "email_replied":
        return any(enum_value(e.status) == "replied" for e in _emails_since(communications, started_at))

    if trigger_type == "email_not_opened":
        emails = _emails_since(communications, started_at)
        if not emails:
            return False
        latest = emails[-1]
        wait = config_value(trigger, "wait_days", "waitDays", default=0)
        return (
            days_between(latest.sent_at, now) >= wait
            and enum_value(latest.status) not in ("opened", "clicked")
        )

    if trigger_type == "call_completed":
        return len(_calls_since(activities, started_at)) > 0

    if trigger_type == "call_no_answer":
        calls = _calls_since(activities, started_at)
        if not calls:
            return False
        latest = calls[-1]
        wait = config_value(trigger, "wait_days", "waitDays", default=0)
        description = (latest.description or "").lower()
        no_answer = any(marker in description for marker in NO_ANSWER_MARKERS)
        return days_between(latest.created_at, now) >= wait and no_answer

    if trigger_type == "status_change":
        return enum_value(lead.status) == config_value(trigger, "to_status", "toStatus")

    return False


class NurturingRunner:
    """Executes nurturing steps and enrols leads into sequences."""

    def __init__(
        self,
        store: Optional[LeadHistoryStore] = None,
        principal: Optional[AutomationPrincipal] = None,
        email_tool: Optional[EmailTool] = None
    ):
        self.store = store or LeadHistoryStore()
        self.principal = principal or AutomationPrincipal.from_settings()
        self.email_tool = email_tool

    def _get_lead(self, lead_id: int) -> Lead:
        lead = self.store.get_lead_by_id(lead_id)
        if not lead:
            raise LeadNotFoundError(lead_id)
        return lead

    def _log_activity(self, lead: Lead, activity_type: str, description: str, now: datetime, completed: bool):
        return self.store.create_activity(
            lead_id=lead.id,
            campaign_id=lead.campaign_id,
            activity_type=activity_type,
            user_id=self.principal.user_id,
            created_by=self.principal.name,
            description=description,
            status="completed" if completed else "pending",
            completed_at=now if completed else None,
            created_at=now
        )

    def check_step(
        self,
        lead_id: int,
        trigger: Dict[str, Any],
        step_started_at: datetime,
        now: Optional[datetime] = None
    ) -> bool:
        """Fetch the lead's history and evaluate a step trigger."""
        lead = self._get_lead(lead_id)
        return check_step_trigger(
            lead,
            self.store.get_communication_logs_by_lead_id(lead_id),
            self.store.get_activities_by_lead_id(lead_id),
            trigger,
            step_started_at,
            now=now
        )

    def execute_step(self, lead_id: int, step: Dict[str, Any], now: Optional[datetime] = None) -> StepExecutionResult:
        """
        Perform a step's action for a lead.

        Raises LeadNotFoundError for unknown leads; action failures are
        logged and reported in the result.
        """
        now = now or utcnow()
        lead = self._get_lead(lead_id)
        action = step.get("action", {})
        action_type = action.get("type", "unknown")

        try:
            if action_type == "send_email":
                email_type = config_value(action, "email_type", "emailType", default="follow_up")
                self.store.create_communication_log(
                    lead_id=lead.id,
                    campaign_id=lead.campaign_id,
                    communication_type="email",
                    direction="outbound",
                    content=f"Workflow email: {email_type}",
                    status="sent",
                    sent_at=now,
                    created_at=now
                )
                self._log_activity(lead, "email", f"Workflow sent {email_type} email", now, completed=True)
                if self.email_tool and lead.contact_email:
                    self.email_tool.execute_with_retry(
                        action="send_template",
                        to_email=lead.contact_email,
                        template=email_type,
                        lead_name=lead.contact_name,
                        company_name=lead.company_name
                    )

            elif action_type == "make_call":
                call_type = config_value(action, "call_type", "callType", default="follow_up")
                self._log_activity(lead, "call", f"Workflow initiated {call_type} call", now, completed=False)

            elif action_type == "send_sms":
                self.store.create_communication_log(
                    lead_id=lead.id,
                    campaign_id=lead.campaign_id,
                    communication_type="sms",
                    direction="outbound",
                    content=action.get("message"),
                    status="sent",
                    sent_at=now,
                    created_at=now
                )

            elif action_type == "update_status":
                new_status = config_value(action, "new_status", "newStatus")
                self.store.update_lead(lead.id, status=LeadStatus(new_status))

            elif action_type == "add_tag":
                self._log_activity(lead, "note", f"Tagged: {action.get('tag')}", now, completed=True)

            elif action_type == "create_task":
                description = config_value(action, "task_description", "taskDescription")
                self._log_activity(lead, "task", f"Task created: {description}", now, completed=False)

            else:
                return StepExecutionResult(
                    lead_id=lead.id,
                    step_id=step.get("id", ""),
                    action_type=action_type,
                    success=False,
                    error="Unknown action type"
                )

        except Exception as e:
            trace_logger.error_occurred(
                error_type="nurturing_step_error",
                error_message=str(e),
                context={"lead_id": lead.id, "step_id": step.get("id"), "action_type": action_type}
            )
            return StepExecutionResult(
                lead_id=lead.id,
                step_id=step.get("id", ""),
                action_type=action_type,
                success=False,
                error=str(e)
            )

        trace_logger.info(
            "Nurturing step executed",
            lead_id=lead.id,
            step_id=step.get("id"),
            action_type=action_type
        )
        return StepExecutionResult(
            lead_id=lead.id,
            step_id=step.get("id", ""),
            action_type=action_type,
            success=True,
            next_step_id=step.get("next_step_id")
        )

    def enroll_lead(self, lead_id: int, template: str, now: Optional[datetime] = None) -> StepExecutionResult:
        """Enrol a lead into a template sequence by running its first step."""
        sequence = WORKFLOW_TEMPLATES.get(template)
        if sequence is None:
            raise ValueError(f"Unknown workflow template: {template}")

        return self.execute_step(lead_id, sequence["steps"][0], now=now)
