"""
SQLAlchemy models for workflow automation rules and their execution log.
"""

from enum import Enum as PyEnum
from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, Boolean, ForeignKey

from models.lead import Base, enum_column, utc_now


class TriggerType(str, PyEnum):
    """Condition that fires a workflow rule."""
    TIME_BASED = "time_based"
    STATUS_CHANGE = "status_change"
    INACTIVITY = "inactivity"


class ActionType(str, PyEnum):
    """Effect applied when a workflow rule fires."""
    SEND_EMAIL = "send_email"
    MAKE_CALL = "make_call"
    UPDATE_STATUS = "update_status"
    NOTIFY_OWNER = "notify_owner"


class ExecutionStatus(str, PyEnum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class WorkflowRule(Base):
    """Declarative trigger/action rule scoped to a campaign."""

    __tablename__ = "workflows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=False, index=True)
    user_id = Column(Integer)  # owner
    name = Column(String(255))

    # {"days": 7} | {"targetStatus": "qualified"} | {"schedule": "0 9 * * *"}
    trigger_type = enum_column(TriggerType, nullable=False)
    trigger_config = Column(JSON, nullable=False, default=dict)

    # {"newStatus": "contacted"} | {"emailTemplate": "follow_up"}
    action_type = enum_column(ActionType, nullable=False)
    action_config = Column(JSON, nullable=False, default=dict)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False
    )

    def to_dict(self):
        """Convert to dictionary."""
        return {
            "id": self.id,
            "campaign_id": self.campaign_id,
            "user_id": self.user_id,
            "name": self.name,
            "trigger_type": self.trigger_type.value if self.trigger_type else None,
            "trigger_config": self.trigger_config or {},
            "action_type": self.action_type.value if self.action_type else None,
            "action_config": self.action_config or {},
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class WorkflowExecution(Base):
    """One attempt to apply a rule's action to a lead."""

    __tablename__ = "workflow_executions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    workflow_id = Column(Integer, ForeignKey("workflows.id"), nullable=False, index=True)
    lead_id = Column(Integer, nullable=False, index=True)
    status = enum_column(ExecutionStatus, nullable=False)
    error_message = Column(Text)
    details = Column("metadata", JSON, default=dict)
    executed_at = Column(DateTime(timezone=True), default=utc_now, nullable=False, index=True)
