"""
Lead history store using SQL database.
Supplies leads, communication logs, activities, scraped intelligence and
workflow rules, and records the writes made by workflow automation.
"""

from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from typing import Optional, List, Iterable
from datetime import datetime, timezone

from config import settings
from models import (
    Base, Campaign, Lead, CommunicationLog, Activity, ScrapedData,
    LeadStatus, WorkflowRule, WorkflowExecution, ExecutionStatus
)
from observability import trace_logger


def _engine_kwargs(database_url: str) -> dict:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return {}

    kwargs = {"connect_args": {"check_same_thread": False}}
    if not url.database or url.database == ":memory:":
        # Share one connection so every session sees the same in-memory db
        kwargs["poolclass"] = StaticPool
    else:
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return kwargs


class LeadHistoryStore:
    """SQL-based store for lead history and workflow rules."""

    def __init__(self, database_url: str = None):
        """Initialize the store with a database connection."""
        self.database_url = database_url or settings.database_url
        self.engine = create_engine(self.database_url, **_engine_kwargs(self.database_url))
        self.SessionLocal = sessionmaker(bind=self.engine)

        # Create tables
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def get_session(self) -> Session:
        """Get database session context manager."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            trace_logger.error_occurred(
                error_type="database_error",
                error_message=str(e)
            )
            raise
        finally:
            session.close()

    def _add(self, session: Session, obj, entity: str, **log_fields):
        session.add(obj)
        session.commit()
        session.refresh(obj)
        session.expunge(obj)

        trace_logger.store_updated(
            entity=entity,
            entity_id=obj.id,
            operation=f"create_{entity}",
            **log_fields
        )
        return obj

    @staticmethod
    def _detach_all(session: Session, rows: Iterable) -> list:
        rows = list(rows)
        for row in rows:
            session.expunge(row)
        return rows

    # Campaigns and leads

    def create_campaign(self, name: str, client_id: Optional[int] = None) -> Campaign:
        """Create a campaign."""
        with self.get_session() as session:
            campaign = Campaign(
                name=name,
                client_id=client_id,
                created_at=datetime.now(timezone.utc)
            )
            return self._add(session, campaign, "campaign")

    def get_campaign_by_id(self, campaign_id: int) -> Optional[Campaign]:
        """Get campaign by ID."""
        with self.get_session() as session:
            campaign = session.get(Campaign, campaign_id)
            if campaign:
                session.expunge(campaign)
            return campaign

    def create_lead(
        self,
        campaign_id: int,
        company_name: str,
        status: str = "new",
        created_at: Optional[datetime] = None,
        **fields
    ) -> Lead:
        """Create a new lead."""
        with self.get_session() as session:
            lead = Lead(
                campaign_id=campaign_id,
                company_name=company_name,
                status=LeadStatus(status),
                created_at=created_at or datetime.now(timezone.utc),
                **fields
            )
            return self._add(session, lead, "lead", campaign_id=campaign_id)

    def get_lead_by_id(self, lead_id: int) -> Optional[Lead]:
        """Get lead by ID."""
        with self.get_session() as session:
            lead = session.query(Lead).filter(Lead.id == lead_id).first()
            if lead:
                session.expunge(lead)
            return lead

    def get_leads_by_campaign_id(self, campaign_id: int) -> List[Lead]:
        """Get all leads of a campaign in creation order."""
        with self.get_session() as session:
            leads = (
                session.query(Lead)
                .filter(Lead.campaign_id == campaign_id)
                .order_by(Lead.id.asc())
                .all()
            )
            return self._detach_all(session, leads)

    def get_all_leads(self) -> List[Lead]:
        """Get every lead across campaigns."""
        with self.get_session() as session:
            return self._detach_all(session, session.query(Lead).order_by(Lead.id.asc()).all())

    def update_lead(self, lead_id: int, **kwargs) -> Optional[Lead]:
        """Update lead fields."""
        if "status" in kwargs and kwargs["status"] is not None:
            kwargs["status"] = LeadStatus(kwargs["status"])

        with self.get_session() as session:
            lead = session.query(Lead).filter(Lead.id == lead_id).first()
            if not lead:
                return None

            for key, value in kwargs.items():
                if hasattr(lead, key):
                    setattr(lead, key, value)

            session.commit()
            session.refresh(lead)
            session.expunge(lead)

            trace_logger.store_updated(
                entity="lead",
                entity_id=lead_id,
                operation="update_lead",
                fields=list(kwargs.keys())
            )

            return lead

    # Lead history

    def create_communication_log(self, lead_id: int, campaign_id: int, **fields) -> CommunicationLog:
        """Record an email, call or SMS exchanged with a lead."""
        with self.get_session() as session:
            fields.setdefault("created_at", datetime.now(timezone.utc))
            log = CommunicationLog(lead_id=lead_id, campaign_id=campaign_id, **fields)
            return self._add(
                session, log, "communication_log",
                lead_id=lead_id,
                communication_type=str(fields.get("communication_type"))
            )

    def get_communication_logs_by_lead_id(self, lead_id: int) -> List[CommunicationLog]:
        """Get all communications for a lead in recorded order."""
        with self.get_session() as session:
            logs = (
                session.query(CommunicationLog)
                .filter(CommunicationLog.lead_id == lead_id)
                .order_by(CommunicationLog.id.asc())
                .all()
            )
            return self._detach_all(session, logs)

    def create_activity(self, lead_id: int, campaign_id: int, activity_type: str, **fields) -> Activity:
        """Record an activity on a lead."""
        with self.get_session() as session:
            fields.setdefault("created_at", datetime.now(timezone.utc))
            activity = Activity(
                lead_id=lead_id,
                campaign_id=campaign_id,
                activity_type=activity_type,
                **fields
            )
            return self._add(
                session, activity, "activity",
                lead_id=lead_id,
                activity_type=str(activity_type),
                created_by=fields.get("created_by")
            )

    def get_activities_by_lead_id(self, lead_id: int) -> List[Activity]:
        """Get all activities for a lead in recorded order."""
        with self.get_session() as session:
            activities = (
                session.query(Activity)
                .filter(Activity.lead_id == lead_id)
                .order_by(Activity.created_at.asc(), Activity.id.asc())
                .all()
            )
            return self._detach_all(session, activities)

    def create_scraped_data(self, lead_id: int, source_url: str, **fields) -> ScrapedData:
        """Store a scraped intelligence snapshot."""
        with self.get_session() as session:
            row = ScrapedData(lead_id=lead_id, source_url=source_url, **fields)
            return self._add(session, row, "scraped_data", lead_id=lead_id)

    def get_scraped_data_by_lead_id(self, lead_id: int) -> List[ScrapedData]:
        """Get scraped snapshots for a lead, newest first."""
        with self.get_session() as session:
            rows = (
                session.query(ScrapedData)
                .filter(ScrapedData.lead_id == lead_id)
                .order_by(ScrapedData.scraped_at.desc(), ScrapedData.id.desc())
                .all()
            )
            return self._detach_all(session, rows)

    # Workflow rules

    def create_workflow_rule(
        self,
        campaign_id: int,
        trigger_type: str,
        action_type: str,
        trigger_config: Optional[dict] = None,
        action_config: Optional[dict] = None,
        name: Optional[str] = None,
        user_id: Optional[int] = None,
        is_active: bool = True
    ) -> WorkflowRule:
        """Create a workflow rule."""
        with self.get_session() as session:
            rule = WorkflowRule(
                campaign_id=campaign_id,
                name=name,
                user_id=user_id,
                trigger_type=trigger_type,
                trigger_config=trigger_config or {},
                action_type=action_type,
                action_config=action_config or {},
                is_active=is_active
            )
            return self._add(
                session, rule, "workflow_rule",
                campaign_id=campaign_id,
                trigger_type=str(trigger_type),
                action_type=str(action_type)
            )

    def get_workflow_rule_by_id(self, rule_id: int) -> Optional[WorkflowRule]:
        with self.get_session() as session:
            rule = session.get(WorkflowRule, rule_id)
            if rule:
                session.expunge(rule)
            return rule

    def update_workflow_rule(self, rule_id: int, **kwargs) -> Optional[WorkflowRule]:
        """Update rule fields; deactivation is done through is_active."""
        with self.get_session() as session:
            rule = session.get(WorkflowRule, rule_id)
            if not rule:
                return None

            for key, value in kwargs.items():
                if hasattr(rule, key):
                    setattr(rule, key, value)

            session.commit()
            session.refresh(rule)
            session.expunge(rule)

            trace_logger.store_updated(
                entity="workflow_rule",
                entity_id=rule_id,
                operation="update_workflow_rule",
                fields=list(kwargs.keys())
            )
            return rule

    def get_workflow_rules_by_campaign_id(self, campaign_id: int) -> List[WorkflowRule]:
        with self.get_session() as session:
            rules = (
                session.query(WorkflowRule)
                .filter(WorkflowRule.campaign_id == campaign_id)
                .order_by(WorkflowRule.id.asc())
                .all()
            )
            return self._detach_all(session, rules)

    def get_active_workflow_rules(self, trigger_types: Optional[Iterable[str]] = None) -> List[WorkflowRule]:
        """Get active rules, optionally restricted to some trigger types."""
        with self.get_session() as session:
            query = session.query(WorkflowRule).filter(WorkflowRule.is_active.is_(True))
            if trigger_types is not None:
                query = query.filter(WorkflowRule.trigger_type.in_(list(trigger_types)))
            return self._detach_all(session, query.order_by(WorkflowRule.id.asc()).all())

    def record_workflow_execution(
        self,
        workflow_id: int,
        lead_id: int,
        status: str,
        error_message: Optional[str] = None,
        details: Optional[dict] = None,
        executed_at: Optional[datetime] = None
    ) -> WorkflowExecution:
        """Append an execution record for a rule/lead pair."""
        with self.get_session() as session:
            execution = WorkflowExecution(
                workflow_id=workflow_id,
                lead_id=lead_id,
                status=ExecutionStatus(status),
                error_message=error_message,
                details=details or {},
                executed_at=executed_at or datetime.now(timezone.utc)
            )
            return self._add(
                session, execution, "workflow_execution",
                workflow_id=workflow_id,
                lead_id=lead_id,
                status=str(status)
            )

    def get_workflow_executions(self, campaign_id: int) -> List[WorkflowExecution]:
        """Get execution records for all rules of a campaign."""
        with self.get_session() as session:
            rows = (
                session.query(WorkflowExecution)
                .join(WorkflowRule, WorkflowRule.id == WorkflowExecution.workflow_id)
                .filter(WorkflowRule.campaign_id == campaign_id)
                .order_by(WorkflowExecution.executed_at.asc(), WorkflowExecution.id.asc())
                .all()
            )
            return self._detach_all(session, rows)

    def get_last_successful_execution(self, workflow_id: int, lead_id: int) -> Optional[WorkflowExecution]:
        with self.get_session() as session:
            execution = (
                session.query(WorkflowExecution)
                .filter(
                    WorkflowExecution.workflow_id == workflow_id,
                    WorkflowExecution.lead_id == lead_id,
                    WorkflowExecution.status == ExecutionStatus.SUCCESS
                )
                .order_by(WorkflowExecution.executed_at.desc(), WorkflowExecution.id.desc())
                .first()
            )
            if execution:
                session.expunge(execution)
            return execution
