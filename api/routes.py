"""
API routes for lead analytics and workflow automation.
"""

from functools import lru_cache
from fastapi import APIRouter, Depends, HTTPException
from typing import Dict, List, Optional

from models import (
    LeadJourney, AttributionResult, ConversionPath, FunnelStage,
    ChannelPerformance, PriorityScore, PrioritizedLead, DailyTopLeads,
    WorkflowRuleCreate, WorkflowRuleUpdate, WorkflowRuleRead,
    WorkflowRunResult, WorkflowStats, StepExecutionResult, HealthResponse
)
from history import LeadHistoryStore, LeadNotFoundError, WorkflowRuleNotFoundError
from analytics import JourneyBuilder, AttributionEngine, FunnelAnalyzer, PriorityScorer
from analytics.common import enum_value, require_campaign
from workflows import WorkflowEngine, WorkflowActionExecutor, NurturingRunner, validate_trigger_config
from jobs import JobScheduler, job_scheduler
from observability import trace_logger


router = APIRouter()


@lru_cache(maxsize=1)
def get_store() -> LeadHistoryStore:
    return LeadHistoryStore()


def get_scheduler() -> JobScheduler:
    return job_scheduler


# Leads

@router.get("/leads/{lead_id}")
def get_lead(lead_id: int, store: LeadHistoryStore = Depends(get_store)) -> Dict:
    """Lead record with its communication and activity history."""
    lead = store.get_lead_by_id(lead_id)
    if not lead:
        raise LeadNotFoundError(lead_id)

    return {
        "lead": lead.to_dict(),
        "communications": [c.to_dict() for c in store.get_communication_logs_by_lead_id(lead_id)],
        "activities": [a.to_dict() for a in store.get_activities_by_lead_id(lead_id)],
    }


@router.get("/leads/{lead_id}/journey", response_model=LeadJourney)
def get_lead_journey(lead_id: int, store: LeadHistoryStore = Depends(get_store)) -> LeadJourney:
    """Ordered touchpoint history for a lead."""
    return JourneyBuilder(store).build_journey(lead_id)


@router.get("/leads/{lead_id}/priority", response_model=PriorityScore)
def get_lead_priority(lead_id: int, store: LeadHistoryStore = Depends(get_store)) -> PriorityScore:
    return PriorityScorer(store).calculate_priority_score(lead_id)


@router.post("/leads/{lead_id}/nurturing/{template}", response_model=StepExecutionResult)
def enroll_lead(
    lead_id: int,
    template: str,
    store: LeadHistoryStore = Depends(get_store),
    scheduler: JobScheduler = Depends(get_scheduler)
) -> StepExecutionResult:
    """Enrol a lead into a nurturing sequence and run its first step."""
    runner = NurturingRunner(store, email_tool=scheduler.email_tool)
    return runner.enroll_lead(lead_id, template)


# Campaign analytics

@router.get("/campaigns/{campaign_id}")
def get_campaign(campaign_id: int, store: LeadHistoryStore = Depends(get_store)) -> Dict:
    return require_campaign(store, campaign_id).to_dict()


@router.get("/campaigns/{campaign_id}/attribution", response_model=AttributionResult)
def get_attribution(
    campaign_id: int,
    model: Optional[str] = None,
    store: LeadHistoryStore = Depends(get_store)
) -> AttributionResult:
    return AttributionEngine(store).calculate_attribution(campaign_id, model)


@router.get("/campaigns/{campaign_id}/conversion-paths", response_model=List[ConversionPath])
def get_conversion_paths(
    campaign_id: int,
    limit: int = 10,
    store: LeadHistoryStore = Depends(get_store)
) -> List[ConversionPath]:
    return AttributionEngine(store).get_top_conversion_paths(campaign_id, limit=limit)


@router.get("/campaigns/{campaign_id}/funnel", response_model=List[FunnelStage])
def get_funnel(campaign_id: int, store: LeadHistoryStore = Depends(get_store)) -> List[FunnelStage]:
    return FunnelAnalyzer(store).get_conversion_funnel(campaign_id)


@router.get("/campaigns/{campaign_id}/channel-performance", response_model=List[ChannelPerformance])
def get_channel_performance(
    campaign_id: int,
    basis: Optional[str] = None,
    store: LeadHistoryStore = Depends(get_store)
) -> List[ChannelPerformance]:
    return FunnelAnalyzer(store).get_channel_performance(campaign_id, basis=basis)


@router.get("/campaigns/{campaign_id}/leads/prioritized", response_model=List[PrioritizedLead])
def get_prioritized_leads(
    campaign_id: int,
    limit: Optional[int] = None,
    store: LeadHistoryStore = Depends(get_store)
) -> List[PrioritizedLead]:
    return PriorityScorer(store).get_prioritized_leads(campaign_id, limit=limit)


@router.get("/campaigns/{campaign_id}/leads/daily-top", response_model=DailyTopLeads)
def get_daily_top_leads(campaign_id: int, store: LeadHistoryStore = Depends(get_store)) -> DailyTopLeads:
    return PriorityScorer(store).get_daily_top_leads(campaign_id)


@router.get("/campaigns/{campaign_id}/leads/urgent", response_model=List[PrioritizedLead])
def get_urgent_leads(campaign_id: int, store: LeadHistoryStore = Depends(get_store)) -> List[PrioritizedLead]:
    return PriorityScorer(store).get_urgent_leads(campaign_id)


@router.get("/campaigns/{campaign_id}/leads/by-action", response_model=Dict[str, List[PrioritizedLead]])
def get_leads_by_action(
    campaign_id: int,
    store: LeadHistoryStore = Depends(get_store)
) -> Dict[str, List[PrioritizedLead]]:
    return PriorityScorer(store).get_leads_by_action(campaign_id)


# Workflows

@router.post("/workflows", response_model=WorkflowRuleRead, status_code=201)
def create_workflow(
    request: WorkflowRuleCreate,
    store: LeadHistoryStore = Depends(get_store),
    scheduler: JobScheduler = Depends(get_scheduler)
) -> WorkflowRuleRead:
    """
    Create a workflow rule.

    Time-based rules are registered with the scheduler straight away.
    """
    require_campaign(store, request.campaign_id)
    validate_trigger_config(request.trigger_type, request.trigger_config)

    rule = store.create_workflow_rule(**request.model_dump())
    if rule.is_active and request.trigger_type == "time_based":
        scheduler.schedule_time_based_rule(rule)

    return WorkflowRuleRead(**rule.to_dict())


@router.get("/campaigns/{campaign_id}/workflows", response_model=List[WorkflowRuleRead])
def list_workflows(campaign_id: int, store: LeadHistoryStore = Depends(get_store)) -> List[WorkflowRuleRead]:
    require_campaign(store, campaign_id)
    return [WorkflowRuleRead(**r.to_dict()) for r in store.get_workflow_rules_by_campaign_id(campaign_id)]


@router.patch("/workflows/{rule_id}", response_model=WorkflowRuleRead)
def update_workflow(
    rule_id: int,
    request: WorkflowRuleUpdate,
    store: LeadHistoryStore = Depends(get_store),
    scheduler: JobScheduler = Depends(get_scheduler)
) -> WorkflowRuleRead:
    """Update a rule; deactivating a time-based rule stops its cron job."""
    rule = store.get_workflow_rule_by_id(rule_id)
    if not rule:
        raise WorkflowRuleNotFoundError(rule_id)

    changes = {k: v for k, v in request.model_dump(exclude_unset=True).items() if v is not None}
    trigger_type = enum_value(rule.trigger_type)
    if "trigger_config" in changes:
        validate_trigger_config(trigger_type, changes["trigger_config"])

    rule = store.update_workflow_rule(rule_id, **changes)

    if trigger_type == "time_based":
        if rule.is_active:
            scheduler.schedule_time_based_rule(rule)
        else:
            scheduler.stop_workflow(rule_id)

    return WorkflowRuleRead(**rule.to_dict())


@router.post("/workflows/{rule_id}/run", response_model=WorkflowRunResult)
def run_workflow(
    rule_id: int,
    store: LeadHistoryStore = Depends(get_store),
    scheduler: JobScheduler = Depends(get_scheduler)
) -> WorkflowRunResult:
    """Manually run one rule over its campaign."""
    engine = WorkflowEngine(store, WorkflowActionExecutor(store), dispatcher=scheduler.dispatch)
    try:
        return engine.run_rule_by_id(rule_id)
    except WorkflowRuleNotFoundError:
        raise
    except Exception as e:
        trace_logger.error_occurred(
            error_type="workflow_run_error",
            error_message=str(e),
            context={"rule_id": rule_id}
        )
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/campaigns/{campaign_id}/workflows/stats", response_model=WorkflowStats)
def get_workflow_stats(campaign_id: int, store: LeadHistoryStore = Depends(get_store)) -> WorkflowStats:
    return WorkflowEngine(store, WorkflowActionExecutor(store)).get_workflow_stats(campaign_id)


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version="1.0.0"
    )
