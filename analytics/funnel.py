"""
Conversion funnel and channel performance for a campaign.
"""

from typing import List, Optional, Sequence

from config import settings
from history import LeadHistoryStore
from models import Lead, CommunicationLog, FunnelStage, ChannelPerformance
from analytics.common import (
    CONVERTED_STATUSES, SECONDS_PER_HOUR, as_utc, enum_value, map_in_order,
    percentage, require_campaign
)

# (stage label, exact lead status; None = every lead)
FUNNEL_STAGES = (
    ("Total Leads", None),
    ("Contacted", "contacted"),
    ("Responded", "responded"),
    ("Qualified", "qualified"),
    ("Converted", "converted"),
)

PERFORMANCE_CHANNELS = ("email", "call", "sms")


def compute_conversion_funnel(leads: Sequence[Lead]) -> List[FunnelStage]:
    """Stage counts are exact status matches, not cumulative."""
    total = len(leads)
    funnel: List[FunnelStage] = []
    previous_count = total

    for stage, status in FUNNEL_STAGES:
        if status is None:
            count = total
        else:
            count = sum(1 for lead in leads if enum_value(lead.status) == status)

        funnel.append(FunnelStage(
            stage=stage,
            count=count,
            percentage=percentage(count, total),
            dropoff=previous_count - count,
        ))
        previous_count = count

    return funnel


def _avg_response_hours(comms: Sequence[CommunicationLog]) -> float:
    hours = [
        (as_utc(c.created_at) - as_utc(c.sent_at)).total_seconds() / SECONDS_PER_HOUR
        for c in comms
        if enum_value(c.status) == "replied" and c.sent_at and c.created_at
    ]
    return sum(hours) / len(hours) if hours else 0.0


def compute_channel_performance(
    leads: Sequence[Lead],
    communications: Sequence[CommunicationLog],
    basis: str = "communication",
) -> List[ChannelPerformance]:
    """
    Per-channel send/open/click/reply/conversion rates.

    Args:
        leads: Campaign leads
        communications: All communications of those leads
        basis: "communication" counts converted communications over sent
            communications; "lead" counts converted leads over leads reached
            on the channel

    Returns:
        One ChannelPerformance per channel (email, call, sms)
    """
    if basis not in ("communication", "lead"):
        raise ValueError(f"Unknown conversion basis: {basis}")

    converted_ids = {lead.id for lead in leads if enum_value(lead.status) in CONVERTED_STATUSES}
    performance: List[ChannelPerformance] = []

    for channel in PERFORMANCE_CHANNELS:
        channel_comms = [c for c in communications if enum_value(c.communication_type) == channel]
        statuses = [enum_value(c.status) for c in channel_comms]

        total_sent = len(channel_comms)
        total_opened = statuses.count("opened")
        total_clicked = statuses.count("clicked")
        total_replied = statuses.count("replied")

        if basis == "communication":
            converted = sum(1 for c in channel_comms if c.lead_id in converted_ids)
            conversion_rate = percentage(converted, total_sent)
        else:
            reached = {c.lead_id for c in channel_comms}
            conversion_rate = percentage(len(reached & converted_ids), len(reached))

        performance.append(ChannelPerformance(
            channel=channel,
            total_sent=total_sent,
            total_opened=total_opened,
            total_clicked=total_clicked,
            total_replied=total_replied,
            open_rate=percentage(total_opened, total_sent),
            click_rate=percentage(total_clicked, total_sent),
            reply_rate=percentage(total_replied, total_sent),
            conversion_rate=conversion_rate,
            avg_time_to_response=_avg_response_hours(channel_comms),
        ))

    return performance


class FunnelAnalyzer:
    """Campaign funnel and channel performance backed by the history store."""

    def __init__(self, store: Optional[LeadHistoryStore] = None, max_workers: Optional[int] = None):
        self.store = store or LeadHistoryStore()
        self.max_workers = max_workers or settings.max_workers

    def get_conversion_funnel(self, campaign_id: int) -> List[FunnelStage]:
        require_campaign(self.store, campaign_id)
        return compute_conversion_funnel(self.store.get_leads_by_campaign_id(campaign_id))

    def get_channel_performance(self, campaign_id: int, basis: Optional[str] = None) -> List[ChannelPerformance]:
        require_campaign(self.store, campaign_id)
        leads = self.store.get_leads_by_campaign_id(campaign_id)

        per_lead: List[List[CommunicationLog]] = map_in_order(
            lambda lead: self.store.get_communication_logs_by_lead_id(lead.id),
            leads,
            max_workers=self.max_workers
        )
        communications = [comm for comms in per_lead for comm in comms]

        return compute_channel_performance(
            leads,
            communications,
            basis=basis or settings.channel_conversion_basis
        )
