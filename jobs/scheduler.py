"""
Background job scheduler for workflow sweeps, time-based rules and follow-ups.
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.jobstores.base import JobLookupError
from datetime import datetime
from typing import List, Optional

from history import LeadHistoryStore
from models import Lead, WorkflowRule, ActionResult
from tools import EmailTool
from workflows import WorkflowEngine, WorkflowActionExecutor, SWEEP_TRIGGER_TYPES, config_value
from workflows.triggers import whole_days_since
from analytics.common import as_utc, enum_value, utcnow
from config import settings
from observability import trace_logger

# Leads the daily follow-up check never flags
FOLLOWUP_EXCLUDED_STATUSES = frozenset({"converted", "rejected"})


def rule_job_id(rule_id: int) -> str:
    return f"workflow_{rule_id}"


class JobScheduler:
    """Background job scheduler."""

    def __init__(
        self,
        store: Optional[LeadHistoryStore] = None,
        engine: Optional[WorkflowEngine] = None,
        email_tool: Optional[EmailTool] = None
    ):
        self.scheduler = BackgroundScheduler(timezone="UTC")
        self.store = store or LeadHistoryStore()
        self.email_tool = email_tool or EmailTool()
        self.engine = engine or WorkflowEngine(
            self.store,
            WorkflowActionExecutor(self.store),
            dispatcher=self.dispatch
        )

    def start(self):
        """Start the scheduler."""
        if not settings.enable_background_jobs:
            trace_logger.info("Background jobs disabled")
            return

        self.scheduler.add_job(
            func=self.run_workflow_sweep,
            trigger=IntervalTrigger(
                minutes=settings.workflow_check_interval_minutes
            ),
            id="workflow_sweep",
            name="Evaluate inactivity and status workflows",
            replace_existing=True
        )

        self.scheduler.add_job(
            func=self.check_followups,
            trigger=CronTrigger(hour=settings.followup_check_hour, minute=0),
            id="check_followups",
            name="Daily follow-up check",
            replace_existing=True
        )

        for rule in self.store.get_active_workflow_rules(["time_based"]):
            self.schedule_time_based_rule(rule)

        self.scheduler.start()
        trace_logger.info("Job scheduler started")

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown()
        trace_logger.info("Job scheduler stopped")

    def run_workflow_sweep(self):
        """One tick over every active inactivity and status_change rule."""
        try:
            runs = self.engine.run_active_rules(SWEEP_TRIGGER_TYPES)
            trace_logger.info(
                "Workflow sweep finished",
                rules=len(runs),
                executed=sum(r.executed for r in runs),
                failed=sum(r.failed for r in runs)
            )
            return runs

        except Exception as e:
            trace_logger.error_occurred(
                error_type="workflow_sweep_error",
                error_message=str(e)
            )
            return []

    def schedule_time_based_rule(self, rule: WorkflowRule) -> bool:
        """
        Register a cron job for a time_based rule.

        Returns False (and logs) when the rule has no valid cron schedule.
        """
        schedule = config_value(rule.trigger_config, "schedule")
        try:
            trigger = CronTrigger.from_crontab(schedule, timezone="UTC")
        except (TypeError, ValueError, AttributeError) as e:
            trace_logger.error_occurred(
                error_type="invalid_cron_schedule",
                error_message=str(e),
                context={"rule_id": rule.id, "schedule": schedule}
            )
            return False

        self.scheduler.add_job(
            func=self.run_scheduled_rule,
            trigger=trigger,
            args=[rule.id],
            id=rule_job_id(rule.id),
            name=f"Workflow {rule.name or rule.id}",
            replace_existing=True
        )
        trace_logger.info("Time-based workflow scheduled", rule_id=rule.id, schedule=schedule)
        return True

    def run_scheduled_rule(self, rule_id: int):
        """Cron callback; the rule is re-read so deactivation takes effect."""
        rule = self.store.get_workflow_rule_by_id(rule_id)
        if not rule or not rule.is_active:
            self.stop_workflow(rule_id)
            return None

        try:
            return self.engine.run_rule(rule)
        except Exception as e:
            trace_logger.error_occurred(
                error_type="scheduled_workflow_error",
                error_message=str(e),
                context={"rule_id": rule_id}
            )
            return None

    def stop_workflow(self, rule_id: int) -> bool:
        """Remove a rule's cron job. Returns False if none was scheduled."""
        try:
            self.scheduler.remove_job(rule_job_id(rule_id))
        except JobLookupError:
            return False

        trace_logger.info("Workflow stopped", rule_id=rule_id)
        return True

    def check_followups(self, now: Optional[datetime] = None) -> List[int]:
        """
        Find leads whose latest completed activity is older than the
        follow-up threshold.

        Leads without any completed activity are left to the inactivity
        workflows.
        """
        now = now or utcnow()
        due: List[int] = []

        try:
            for lead in self.store.get_all_leads():
                if enum_value(lead.status) in FOLLOWUP_EXCLUDED_STATUSES:
                    continue

                completed = [
                    as_utc(a.completed_at)
                    for a in self.store.get_activities_by_lead_id(lead.id)
                    if a.completed_at is not None
                ]
                if not completed:
                    continue

                days = whole_days_since(max(completed), now)
                if days >= settings.followup_inactivity_days:
                    trace_logger.info("Lead needs follow-up", lead_id=lead.id, days_inactive=days)
                    due.append(lead.id)

        except Exception as e:
            trace_logger.error_occurred(
                error_type="followup_check_error",
                error_message=str(e)
            )

        return due

    def dispatch(self, rule: WorkflowRule, lead: Lead, result: ActionResult) -> Optional[dict]:
        """Hand a fired send_email action to the email tool."""
        if result.action_type != "send_email":
            return None
        if not lead.contact_email:
            return {"email_sent": False, "email_error": "Lead has no contact email"}

        sent = self.email_tool.execute_with_retry(
            action="send_template",
            to_email=lead.contact_email,
            template=result.data.get("template") or "follow_up",
            lead_name=lead.contact_name,
            company_name=lead.company_name
        )

        if not sent.success:
            return {"email_sent": False, "email_error": sent.error}

        self.store.update_lead(lead.id, last_contacted_at=utcnow())
        return {"email_sent": True, "email_id": sent.data["email_id"]}


# Singleton instance
job_scheduler = JobScheduler()
