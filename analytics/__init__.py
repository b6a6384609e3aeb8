"""Lead journey, attribution, funnel and prioritization analytics."""

from analytics.journey import JourneyBuilder, assemble_journey, build_touchpoints, build_conversion_path
from analytics.attribution import AttributionEngine, AttributionModelName, assign_credit
from analytics.funnel import FunnelAnalyzer, compute_conversion_funnel, compute_channel_performance
from analytics.prioritization import PriorityScorer, score_lead, urgency_for

__all__ = [
    "JourneyBuilder", "assemble_journey", "build_touchpoints", "build_conversion_path",
    "AttributionEngine", "AttributionModelName", "assign_credit",
    "FunnelAnalyzer", "compute_conversion_funnel", "compute_channel_performance",
    "PriorityScorer", "score_lead", "urgency_for"
]
