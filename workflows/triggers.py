"""
Workflow trigger evaluation.

Rules are stateless between ticks: every evaluation recomputes the trigger
from the lead's current record and activity history.
"""

import math
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from apscheduler.triggers.cron import CronTrigger

from models import Lead, Activity, WorkflowRule
from analytics.common import SECONDS_PER_DAY, as_utc, enum_value, utcnow


def config_value(config: Optional[Dict[str, Any]], *keys: str, default=None):
    """First present key wins; accepts camelCase and snake_case spellings."""
    config = config or {}
    for key in keys:
        if config.get(key) is not None:
            return config[key]
    return default


def target_status(config: Optional[Dict[str, Any]]) -> Optional[str]:
    # fromStatus is informational only
    return config_value(config, "targetStatus", "target_status", "toStatus", "to_status")


def whole_days_since(moment: datetime, now: datetime) -> int:
    return math.floor((as_utc(now) - as_utc(moment)).total_seconds() / SECONDS_PER_DAY)


def check_inactivity(lead: Lead, activities: Sequence[Activity], days: float, now: datetime) -> bool:
    """
    True when the lead has gone `days` whole days without a completed activity.

    Activities without completed_at are ignored; a lead with none left is
    measured from its creation date.
    """
    completed = [as_utc(a.completed_at) for a in activities if a.completed_at is not None]
    if not completed:
        return whole_days_since(lead.created_at, now) >= days
    return whole_days_since(max(completed), now) >= days


def check_trigger_condition(
    rule: WorkflowRule,
    lead: Lead,
    activities: Sequence[Activity] = (),
    now: Optional[datetime] = None
) -> bool:
    """
    Decide whether a rule fires for a lead.

    Args:
        rule: Workflow rule to evaluate
        lead: Lead the rule is evaluated against
        activities: Lead activities (only used by inactivity rules)
        now: Reference time (defaults to current UTC time)

    Returns:
        True if the rule's action should run for this lead
    """
    now = now or utcnow()
    trigger_type = enum_value(rule.trigger_type)
    config = rule.trigger_config or {}

    if trigger_type == "inactivity":
        days = config_value(config, "days")
        if days is None:
            return False
        return check_inactivity(lead, activities, float(days), now)

    if trigger_type == "status_change":
        wanted = target_status(config)
        return wanted is not None and enum_value(lead.status) == wanted

    if trigger_type == "time_based":
        # Timing is gated by the rule's cron job
        return True

    return False


def validate_trigger_config(trigger_type: str, config: Optional[Dict[str, Any]]) -> None:
    """Raise ValueError when a rule's trigger config cannot be evaluated."""
    config = config or {}

    if trigger_type == "inactivity":
        days = config_value(config, "days")
        if days is None:
            raise ValueError("inactivity trigger requires 'days'")
        try:
            if float(days) < 0:
                raise ValueError("'days' must be non-negative")
        except TypeError:
            raise ValueError("'days' must be a number")

    elif trigger_type == "status_change":
        if target_status(config) is None:
            raise ValueError("status_change trigger requires 'targetStatus'")

    elif trigger_type == "time_based":
        schedule = config_value(config, "schedule")
        if not schedule:
            raise ValueError("time_based trigger requires a cron 'schedule'")
        CronTrigger.from_crontab(schedule)

    else:
        raise ValueError(f"Unknown trigger type: {trigger_type}")

    cooldown = config_value(config, "cooldownHours", "cooldown_hours")
    if cooldown is not None and float(cooldown) < 0:
        raise ValueError("'cooldown_hours' must be non-negative")
