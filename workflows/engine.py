"""
Workflow trigger engine.

Sweeps a rule over every lead of its campaign, runs the action for leads
whose trigger fired and records one execution row per attempt.
"""

import time
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Set, Tuple

from config import settings
from history import LeadHistoryStore, WorkflowRuleNotFoundError
from models import Lead, WorkflowRule, ActionResult, WorkflowRunResult, WorkflowStats
from observability import trace_logger
from analytics.common import as_utc, enum_value, map_in_order, require_campaign, utcnow
from workflows.actions import WorkflowActionExecutor
from workflows.triggers import check_trigger_condition, config_value

# Called with (rule, lead, result) after a successful action
Dispatcher = Callable[[WorkflowRule, Lead, ActionResult], Optional[dict]]

# Rules evaluated by the interval sweep; time_based rules run from their cron jobs
SWEEP_TRIGGER_TYPES = ("inactivity", "status_change")


class WorkflowEngine:
    """Evaluates workflow rules and executes their actions."""

    def __init__(
        self,
        store: Optional[LeadHistoryStore] = None,
        executor: Optional[WorkflowActionExecutor] = None,
        dispatcher: Optional[Dispatcher] = None,
        max_workers: Optional[int] = None
    ):
        self.store = store or LeadHistoryStore()
        self.executor = executor or WorkflowActionExecutor(self.store)
        self.dispatcher = dispatcher
        self.max_workers = max_workers or settings.max_workers

    def _in_cooldown(self, rule: WorkflowRule, lead: Lead, now: datetime) -> bool:
        cooldown_hours = config_value(rule.trigger_config, "cooldownHours", "cooldown_hours")
        if not cooldown_hours:
            return False

        last = self.store.get_last_successful_execution(rule.id, lead.id)
        if last is None:
            return False
        return as_utc(now) - as_utc(last.executed_at) < timedelta(hours=float(cooldown_hours))

    def process_lead(self, rule: WorkflowRule, lead: Lead, now: datetime) -> Optional[ActionResult]:
        """
        Check and execute one rule for one lead.

        Returns None when the trigger did not fire. Failures are caught,
        logged and recorded so the sweep can continue with the next lead.
        """
        trigger_type = enum_value(rule.trigger_type)
        try:
            activities = (
                self.store.get_activities_by_lead_id(lead.id)
                if trigger_type == "inactivity" else []
            )
            triggered = check_trigger_condition(rule, lead, activities, now=now)
            trace_logger.trigger_evaluated(
                rule_id=rule.id,
                lead_id=lead.id,
                trigger_type=trigger_type,
                triggered=triggered
            )
            if not triggered:
                return None

            if self._in_cooldown(rule, lead, now):
                result = ActionResult(
                    rule_id=rule.id,
                    lead_id=lead.id,
                    action_type=enum_value(rule.action_type),
                    status="skipped",
                    detail="Within cooldown window"
                )
            else:
                result = self.executor.execute_action(rule, lead)
                if result.status == "success" and self.dispatcher:
                    dispatched = self.dispatcher(rule, lead, result)
                    if dispatched:
                        result.data.update(dispatched)

        except Exception as e:
            trace_logger.error_occurred(
                error_type="workflow_action_error",
                error_message=str(e),
                context={"rule_id": rule.id, "lead_id": lead.id}
            )
            result = ActionResult(
                rule_id=rule.id,
                lead_id=lead.id,
                action_type=enum_value(rule.action_type),
                status="failed",
                error=str(e)
            )

        try:
            self.store.record_workflow_execution(
                workflow_id=rule.id,
                lead_id=lead.id,
                status=result.status,
                error_message=result.error,
                details={"action_type": result.action_type, "detail": result.detail, **result.data},
                executed_at=now
            )
        except Exception as e:
            # The action itself has already been committed
            trace_logger.error_occurred(
                error_type="workflow_record_error",
                error_message=str(e),
                context={"rule_id": rule.id, "lead_id": lead.id, "status": result.status}
            )
        return result

    def run_rule(
        self,
        rule: WorkflowRule,
        now: Optional[datetime] = None,
        fired: Optional[Set[Tuple[int, int]]] = None
    ) -> WorkflowRunResult:
        """
        Evaluate a rule against every lead of its campaign.

        Args:
            rule: Rule to evaluate
            now: Reference time (defaults to current UTC time)
            fired: (rule_id, lead_id) pairs already handled in this tick

        Returns:
            WorkflowRunResult with per-lead outcomes
        """
        now = now or utcnow()
        fired = set() if fired is None else fired
        started = time.perf_counter()

        leads = []
        for lead in self.store.get_leads_by_campaign_id(rule.campaign_id):
            key = (rule.id, lead.id)
            if key in fired:
                continue
            fired.add(key)
            leads.append(lead)

        outcomes = map_in_order(
            lambda lead: self.process_lead(rule, lead, now),
            leads,
            max_workers=self.max_workers
        )
        results = [r for r in outcomes if r is not None]

        run = WorkflowRunResult(
            rule_id=rule.id,
            campaign_id=rule.campaign_id,
            processed=len(leads),
            triggered=len(results),
            executed=sum(1 for r in results if r.status == "success"),
            failed=sum(1 for r in results if r.status == "failed"),
            skipped=sum(1 for r in results if r.status == "skipped"),
            results=results
        )

        trace_logger.workflow_run_completed(
            rule_id=rule.id,
            processed=run.processed,
            executed=run.executed,
            failed=run.failed,
            duration_ms=(time.perf_counter() - started) * 1000,
            skipped=run.skipped
        )
        return run

    def run_rule_by_id(self, rule_id: int, now: Optional[datetime] = None) -> WorkflowRunResult:
        """Manually run one rule. Raises WorkflowRuleNotFoundError."""
        rule = self.store.get_workflow_rule_by_id(rule_id)
        if not rule:
            raise WorkflowRuleNotFoundError(rule_id)
        if not rule.is_active:
            return WorkflowRunResult(
                rule_id=rule.id,
                campaign_id=rule.campaign_id,
                error="Workflow rule is inactive"
            )
        return self.run_rule(rule, now=now)

    def run_active_rules(
        self,
        trigger_types: Optional[Iterable[str]] = SWEEP_TRIGGER_TYPES,
        now: Optional[datetime] = None
    ) -> list:
        """
        One tick: evaluate every active rule of the given trigger types.

        A rule that fails as a whole is reported with its error and does not
        stop the remaining rules.
        """
        now = now or utcnow()
        fired: Set[Tuple[int, int]] = set()
        runs = []

        with trace_logger.trace():
            for rule in self.store.get_active_workflow_rules(trigger_types):
                try:
                    runs.append(self.run_rule(rule, now=now, fired=fired))
                except Exception as e:
                    trace_logger.error_occurred(
                        error_type="workflow_rule_error",
                        error_message=str(e),
                        context={"rule_id": rule.id}
                    )
                    runs.append(WorkflowRunResult(
                        rule_id=rule.id,
                        campaign_id=rule.campaign_id,
                        error=str(e)
                    ))

        return runs

    def get_workflow_stats(self, campaign_id: int) -> WorkflowStats:
        """Rule and execution counts for a campaign."""
        require_campaign(self.store, campaign_id)
        rules = self.store.get_workflow_rules_by_campaign_id(campaign_id)
        executions = self.store.get_workflow_executions(campaign_id)
        statuses = [enum_value(e.status) for e in executions]

        return WorkflowStats(
            total_workflows=len(rules),
            active_workflows=sum(1 for r in rules if r.is_active),
            total_executions=len(executions),
            successful_executions=statuses.count("success"),
            failed_executions=statuses.count("failed"),
            skipped_executions=statuses.count("skipped")
        )
