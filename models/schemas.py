"""
Pydantic schemas for derived analytics results and API payloads.
"""

from pydantic import BaseModel, Field
from typing import Dict, Any, Optional, List, Literal
from datetime import datetime, timezone


Urgency = Literal["high", "medium", "low"]


class Touchpoint(BaseModel):
    """Single timestamped interaction derived from a communication or activity."""
    id: int
    timestamp: datetime
    channel: str = Field(..., description="email, call, sms, web or other")
    type: str = Field(..., description="outreach, response, call, note, ...")
    status: str = Field(..., description="sent, opened, replied, completed, unknown, ...")
    content: Optional[str] = None


class LeadJourney(BaseModel):
    """Ordered touchpoint history for one lead plus summary statistics."""
    lead_id: int
    lead_name: str
    company_name: str
    current_status: str
    confidence_score: int
    touchpoints: List[Touchpoint]
    first_touch: datetime
    last_touch: datetime
    total_touchpoints: int
    email_touchpoints: int
    call_touchpoints: int
    sms_touchpoints: int
    days_since_first_touch: float
    conversion_path: str


class AttributionResult(BaseModel):
    """Channel credit under a selected attribution model."""
    model: str
    channel_credits: Dict[str, float]
    contributing_leads: int = 0


class ConversionPath(BaseModel):
    path: str
    count: int
    avg_days_to_convert: float
    conversion_rate: float


class FunnelStage(BaseModel):
    stage: str
    count: int
    percentage: float
    dropoff: int


class ChannelPerformance(BaseModel):
    channel: str
    total_sent: int
    total_opened: int
    total_clicked: int
    total_replied: int
    open_rate: float
    click_rate: float
    reply_rate: float
    conversion_rate: float
    avg_time_to_response: float = Field(..., description="Hours")


class PriorityScore(BaseModel):
    """Urgency score and next action for one lead."""
    score: float = Field(..., ge=0.0, le=100.0)
    reasons: List[str] = Field(default_factory=list)
    recommended_action: str
    urgency: Urgency
    days_since_last_contact: float


class PrioritizedLead(BaseModel):
    lead_id: int
    company_name: str
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    status: str
    confidence_score: int
    priority_score: float
    reasons: List[str]
    recommended_action: str
    urgency: Urgency
    last_contacted_at: Optional[datetime] = None
    days_since_last_contact: float


class PrioritySummary(BaseModel):
    total_active: int
    high_priority: int
    medium_priority: int
    low_priority: int
    needs_follow_up: int
    needs_re_engagement: int


class DailyTopLeads(BaseModel):
    date: datetime
    top_leads: List[PrioritizedLead]
    summary: PrioritySummary


class WorkflowRuleCreate(BaseModel):
    """Request to create a workflow rule."""
    campaign_id: int
    name: Optional[str] = None
    user_id: Optional[int] = None
    trigger_type: Literal["time_based", "status_change", "inactivity"]
    trigger_config: Dict[str, Any] = Field(default_factory=dict)
    action_type: Literal["send_email", "make_call", "update_status", "notify_owner"]
    action_config: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class WorkflowRuleUpdate(BaseModel):
    name: Optional[str] = None
    trigger_config: Optional[Dict[str, Any]] = None
    action_config: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None


class WorkflowRuleRead(BaseModel):
    id: int
    campaign_id: int
    name: Optional[str]
    user_id: Optional[int]
    trigger_type: str
    trigger_config: Dict[str, Any]
    action_type: str
    action_config: Dict[str, Any]
    is_active: bool
    created_at: Optional[str]


class ActionResult(BaseModel):
    """Outcome of a workflow action for a single lead."""
    rule_id: int
    lead_id: int
    action_type: str
    status: Literal["success", "failed", "skipped"]
    detail: Optional[str] = None
    error: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class WorkflowRunResult(BaseModel):
    """Per-lead outcome of evaluating one rule over its campaign."""
    rule_id: int
    campaign_id: int
    processed: int = 0
    triggered: int = 0
    executed: int = 0
    failed: int = 0
    skipped: int = 0
    results: List[ActionResult] = Field(default_factory=list)
    error: Optional[str] = None


class WorkflowStats(BaseModel):
    total_workflows: int
    active_workflows: int
    total_executions: int
    successful_executions: int
    failed_executions: int
    skipped_executions: int


class StepExecutionResult(BaseModel):
    """Outcome of running one nurturing step for a lead."""
    lead_id: int
    step_id: str
    action_type: str
    success: bool
    next_step_id: Optional[str] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(default="healthy")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = Field(default="1.0.0")
