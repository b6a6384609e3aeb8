"""
SQLAlchemy models for the lead history store.
Represents campaigns, leads, communication logs, activities and scraped
company intelligence.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, String, Integer, DateTime, Text, JSON, ForeignKey, Enum
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def enum_column(enum_cls, **kwargs) -> Column:
    """Enum column persisted by value so plain strings bind as well."""
    return Column(
        Enum(
            enum_cls,
            values_callable=lambda members: [m.value for m in members],
            native_enum=False,
            validate_strings=True,
        ),
        **kwargs
    )


class LeadStatus(str, PyEnum):
    """Lead lifecycle status."""
    NEW = "new"
    CONTACTED = "contacted"
    RESPONDED = "responded"
    QUALIFIED = "qualified"
    UNQUALIFIED = "unqualified"
    CONVERTED = "converted"
    REJECTED = "rejected"


class CommunicationType(str, PyEnum):
    """Channel of a logged communication."""
    EMAIL = "email"
    CALL = "call"
    SMS = "sms"


class CommunicationDirection(str, PyEnum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"


class CommunicationStatus(str, PyEnum):
    """Delivery/engagement status of a communication."""
    SENT = "sent"
    DELIVERED = "delivered"
    OPENED = "opened"
    CLICKED = "clicked"
    REPLIED = "replied"
    BOUNCED = "bounced"
    FAILED = "failed"


class ActivityType(str, PyEnum):
    EMAIL = "email"
    CALL = "call"
    SMS = "sms"
    NOTE = "note"
    TASK = "task"
    MEETING = "meeting"


class ActivityStatus(str, PyEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Campaign(Base):
    """Outreach campaign owning a set of leads."""

    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, nullable=True, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    def to_dict(self):
        """Convert to dictionary."""
        return {
            "id": self.id,
            "client_id": self.client_id,
            "name": self.name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Lead(Base):
    """Lead model representing a prospective B2B customer."""

    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=False, index=True)

    # Company
    company_name = Column(String(255), nullable=False)
    company_website = Column(String(500))
    company_industry = Column(String(255))
    company_size = Column(Integer)
    company_revenue = Column(Integer)
    company_location = Column(String(255))

    # Contact
    contact_name = Column(String(255))
    contact_email = Column(String(320))
    contact_phone = Column(String(50))
    contact_job_title = Column(String(255))

    # ICP fit, 0-100
    confidence_score = Column(Integer, default=0)
    status = enum_column(LeadStatus, default=LeadStatus.NEW, nullable=False, index=True)
    notes = Column(Text)

    # Timestamps
    last_contacted_at = Column(DateTime(timezone=True))
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
            "company_name": self.company_name,
            "company_industry": self.company_industry,
            "company_size": self.company_size,
            "company_location": self.company_location,
            "contact_name": self.contact_name,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "contact_job_title": self.contact_job_title,
            "confidence_score": self.confidence_score,
            "status": self.status.value if self.status else None,
            "last_contacted_at": self.last_contacted_at.isoformat() if self.last_contacted_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class CommunicationLog(Base):
    """Email, call or SMS exchanged with a lead."""

    __tablename__ = "communication_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False, index=True)
    campaign_id = Column(Integer, nullable=False, index=True)

    communication_type = enum_column(CommunicationType, nullable=False)
    direction = enum_column(CommunicationDirection, nullable=False)

    subject = Column(String(500))
    content = Column(Text)
    status = enum_column(
        CommunicationStatus,
        default=CommunicationStatus.SENT,
        nullable=False
    )
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, default=dict)

    sent_at = Column(DateTime(timezone=True))
    delivered_at = Column(DateTime(timezone=True))
    opened_at = Column(DateTime(timezone=True))
    clicked_at = Column(DateTime(timezone=True))
    replied_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    def to_dict(self):
        """Convert to dictionary."""
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "communication_type": self.communication_type.value if self.communication_type else None,
            "direction": self.direction.value if self.direction else None,
            "subject": self.subject,
            "status": self.status.value if self.status else None,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Activity(Base):
    """Logged activity on a lead (call, note, task, ...)."""

    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), index=True)
    campaign_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer)
    created_by = Column(String(100), default="user")  # user or automation actor

    activity_type = enum_column(ActivityType, nullable=False)
    subject = Column(String(500))
    description = Column(Text)
    status = enum_column(ActivityStatus, default=ActivityStatus.PENDING, nullable=False)

    scheduled_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False, index=True)

    def to_dict(self):
        """Convert to dictionary."""
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "campaign_id": self.campaign_id,
            "user_id": self.user_id,
            "created_by": self.created_by,
            "activity_type": self.activity_type.value if self.activity_type else None,
            "description": self.description,
            "status": self.status.value if self.status else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ScrapedData(Base):
    """Company intelligence snapshot scraped for a lead."""

    __tablename__ = "scraped_data"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False, index=True)

    source_url = Column(String(500), nullable=False)
    data_type = Column(String(50), default="company_info")  # company_info, job_posting, news, ...

    raw_data = Column(JSON, default=dict)
    processed_data = Column(JSON, default=dict)

    scraped_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
