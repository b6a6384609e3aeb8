"""
Attribution engine.

Distributes conversion credit across the channels that touched each
qualified or converted lead of a campaign.
"""

from collections import defaultdict
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional

from config import settings
from history import LeadHistoryStore
from models import AttributionResult, ConversionPath, LeadJourney, Touchpoint
from observability import trace_logger
from analytics.common import CONVERTED_STATUSES, enum_value, map_in_order, percentage, require_campaign
from analytics.journey import JourneyBuilder


class AttributionModelName(str, Enum):
    """Supported credit assignment rules."""
    FIRST_TOUCH = "first_touch"
    LAST_TOUCH = "last_touch"
    MULTI_TOUCH = "multi_touch"
    TIME_DECAY = "time_decay"


BASE_CHANNELS = ("email", "call", "sms", "other")


def _touch_weights(touchpoints: List[Touchpoint], model: AttributionModelName) -> List[float]:
    """Credit per touchpoint for one lead. Empty journeys earn nothing."""
    n = len(touchpoints)
    if n == 0:
        return []

    if model is AttributionModelName.FIRST_TOUCH:
        return [1.0] + [0.0] * (n - 1)
    if model is AttributionModelName.LAST_TOUCH:
        return [0.0] * (n - 1) + [1.0]
    if model is AttributionModelName.MULTI_TOUCH:
        return [1.0 / n] * n

    # time decay: later touchpoints weigh more, weights sum to 1
    total_weight = n * (n + 1) / 2
    return [(idx + 1) / total_weight for idx in range(n)]


def assign_credit(journeys: Iterable[LeadJourney], model) -> Dict[str, float]:
    """
    Accumulate channel credit over the given journeys.

    Args:
        journeys: Journeys of contributing leads
        model: AttributionModelName or its string value

    Returns:
        Mapping channel -> credit, seeded with email/call/sms/other
    """
    model = AttributionModelName(model)
    credits: Dict[str, float] = {channel: 0.0 for channel in BASE_CHANNELS}

    for journey in journeys:
        weights = _touch_weights(journey.touchpoints, model)
        for tp, weight in zip(journey.touchpoints, weights):
            if weight:
                credits[tp.channel] = credits.get(tp.channel, 0.0) + weight

    return credits


class AttributionEngine:
    """Campaign-level attribution and conversion path analysis."""

    def __init__(
        self,
        store: Optional[LeadHistoryStore] = None,
        journey_builder: Optional[JourneyBuilder] = None
    ):
        self.store = store or LeadHistoryStore()
        self.journeys = journey_builder or JourneyBuilder(self.store)

    def _converted_journeys(self, leads, now: Optional[datetime]) -> List[LeadJourney]:
        converted = [lead for lead in leads if enum_value(lead.status) in CONVERTED_STATUSES]
        return map_in_order(
            lambda lead: self.journeys.journey_for_lead(lead, now=now),
            converted,
            max_workers=self.journeys.max_workers
        )

    def calculate_attribution(
        self,
        campaign_id: int,
        model: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> AttributionResult:
        """Assign channel credit over the campaign's qualified/converted leads."""
        model = AttributionModelName(model or settings.default_attribution_model)
        require_campaign(self.store, campaign_id)

        leads = self.store.get_leads_by_campaign_id(campaign_id)
        journeys = self._converted_journeys(leads, now)
        credits = assign_credit(journeys, model)
        contributing = sum(1 for j in journeys if j.touchpoints)

        trace_logger.attribution_calculated(
            campaign_id=campaign_id,
            model=model.value,
            contributing_leads=contributing,
            channel_credits=credits
        )

        return AttributionResult(
            model=model.value,
            channel_credits=credits,
            contributing_leads=contributing
        )

    def get_top_conversion_paths(
        self,
        campaign_id: int,
        limit: int = 10,
        now: Optional[datetime] = None
    ) -> List[ConversionPath]:
        """Most frequent conversion paths among qualified/converted leads."""
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        require_campaign(self.store, campaign_id)
        leads = self.store.get_leads_by_campaign_id(campaign_id)

        stats = defaultdict(lambda: {"count": 0, "total_days": 0.0})
        for journey in self._converted_journeys(leads, now):
            entry = stats[journey.conversion_path or "Unknown"]
            entry["count"] += 1
            entry["total_days"] += journey.days_since_first_touch

        paths = [
            ConversionPath(
                path=path,
                count=entry["count"],
                avg_days_to_convert=entry["total_days"] / entry["count"],
                conversion_rate=percentage(entry["count"], len(leads)),
            )
            for path, entry in stats.items()
        ]
        paths.sort(key=lambda p: p.count, reverse=True)
        return paths[:limit]
