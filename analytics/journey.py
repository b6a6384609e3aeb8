"""
Lead journey builder.

Merges a lead's communication logs and activities into one time-ordered
touchpoint sequence and derives the summary statistics used by attribution,
funnel and prioritization.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from config import settings
from history import LeadHistoryStore, LeadNotFoundError
from models import Lead, CommunicationLog, Activity, Touchpoint, LeadJourney
from observability import trace_logger
from analytics.common import as_utc, days_between, enum_value, utcnow

PATH_SEPARATOR = " → "


def _label(value: str) -> str:
    return value[:1].upper() + value[1:]


def communication_to_touchpoint(comm: CommunicationLog) -> Touchpoint:
    return Touchpoint(
        id=comm.id,
        timestamp=as_utc(comm.sent_at or comm.created_at),
        channel=enum_value(comm.communication_type),
        type="outreach" if enum_value(comm.direction) == "outbound" else "response",
        status=enum_value(comm.status) or "unknown",
        content=comm.content or None,
    )


def activity_to_touchpoint(activity: Activity) -> Touchpoint:
    activity_type = enum_value(activity.activity_type)
    return Touchpoint(
        id=activity.id,
        timestamp=as_utc(activity.created_at),
        # Activities carry no channel; only calls map to one
        channel="call" if activity_type == "call" else "other",
        type=activity_type,
        status="completed",
        content=activity.description or None,
    )


def build_touchpoints(
    communications: Sequence[CommunicationLog],
    activities: Sequence[Activity],
) -> List[Touchpoint]:
    """Merge both sources and sort ascending by timestamp.

    sorted() is stable, so on equal timestamps communications stay ahead of
    activities and each source keeps its own order.
    """
    touchpoints = [communication_to_touchpoint(c) for c in communications]
    touchpoints.extend(activity_to_touchpoint(a) for a in activities)
    return sorted(touchpoints, key=lambda tp: tp.timestamp)


def build_conversion_path(touchpoints: Sequence[Touchpoint], status: str) -> str:
    """Collapse consecutive same-channel touchpoints, then append the status."""
    steps: List[str] = []
    for tp in touchpoints:
        step = _label(tp.channel)
        if not steps or steps[-1] != step:
            steps.append(step)
    steps.append(_label(status))
    return PATH_SEPARATOR.join(steps)


def assemble_journey(
    lead: Lead,
    communications: Sequence[CommunicationLog],
    activities: Sequence[Activity],
    now: Optional[datetime] = None,
) -> LeadJourney:
    """Pure journey derivation from an already-fetched snapshot."""
    now = now or utcnow()
    touchpoints = build_touchpoints(communications, activities)
    status = enum_value(lead.status)

    created_at = as_utc(lead.created_at)
    first_touch = touchpoints[0].timestamp if touchpoints else created_at
    last_touch = touchpoints[-1].timestamp if touchpoints else created_at

    def count(channel: str) -> int:
        return sum(1 for tp in touchpoints if tp.channel == channel)

    return LeadJourney(
        lead_id=lead.id,
        lead_name=lead.contact_name or "Unknown",
        company_name=lead.company_name,
        current_status=status,
        confidence_score=lead.confidence_score or 0,
        touchpoints=touchpoints,
        first_touch=first_touch,
        last_touch=last_touch,
        total_touchpoints=len(touchpoints),
        email_touchpoints=count("email"),
        call_touchpoints=count("call"),
        sms_touchpoints=count("sms"),
        days_since_first_touch=max(0.0, days_between(first_touch, now)),
        conversion_path=build_conversion_path(touchpoints, status),
    )


class JourneyBuilder:
    """Builds lead journeys from the history store. No caching."""

    def __init__(self, store: Optional[LeadHistoryStore] = None, max_workers: Optional[int] = None):
        self.store = store or LeadHistoryStore()
        self.max_workers = max_workers or settings.max_workers

    def journey_for_lead(self, lead: Lead, now: Optional[datetime] = None) -> LeadJourney:
        """Build the journey for an already-fetched lead."""
        journey = assemble_journey(
            lead,
            self.store.get_communication_logs_by_lead_id(lead.id),
            self.store.get_activities_by_lead_id(lead.id),
            now=now,
        )

        trace_logger.journey_built(
            lead_id=lead.id,
            total_touchpoints=journey.total_touchpoints,
            conversion_path=journey.conversion_path
        )
        return journey

    def build_journey(self, lead_id: int, now: Optional[datetime] = None) -> LeadJourney:
        """
        Build the complete journey for a lead.

        Args:
            lead_id: Lead to build the journey for
            now: Reference time for day counts (defaults to current UTC time)

        Returns:
            LeadJourney with ordered touchpoints and summary statistics

        Raises:
            LeadNotFoundError: if the lead does not exist
        """
        lead = self.store.get_lead_by_id(lead_id)
        if not lead:
            raise LeadNotFoundError(lead_id)
        return self.journey_for_lead(lead, now=now)
