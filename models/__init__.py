"""Data models and schemas."""

from models.lead import (
    Base, Campaign, Lead, CommunicationLog, Activity, ScrapedData,
    LeadStatus, CommunicationType, CommunicationDirection,
    CommunicationStatus, ActivityType, ActivityStatus
)
from models.workflow import (
    WorkflowRule, WorkflowExecution, TriggerType, ActionType, ExecutionStatus
)
from models.schemas import (
    Touchpoint, LeadJourney, AttributionResult, ConversionPath,
    FunnelStage, ChannelPerformance, PriorityScore, PrioritizedLead,
    PrioritySummary, DailyTopLeads, WorkflowRuleCreate, WorkflowRuleUpdate,
    WorkflowRuleRead, ActionResult, WorkflowRunResult, WorkflowStats,
    StepExecutionResult, HealthResponse
)

__all__ = [
    "Base", "Campaign", "Lead", "CommunicationLog", "Activity", "ScrapedData",
    "LeadStatus", "CommunicationType", "CommunicationDirection",
    "CommunicationStatus", "ActivityType", "ActivityStatus",
    "WorkflowRule", "WorkflowExecution", "TriggerType", "ActionType",
    "ExecutionStatus",
    "Touchpoint", "LeadJourney", "AttributionResult", "ConversionPath",
    "FunnelStage", "ChannelPerformance", "PriorityScore", "PrioritizedLead",
    "PrioritySummary", "DailyTopLeads", "WorkflowRuleCreate",
    "WorkflowRuleUpdate", "WorkflowRuleRead", "ActionResult",
    "WorkflowRunResult", "WorkflowStats", "StepExecutionResult", "HealthResponse"
]
