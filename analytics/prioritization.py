"""
Lead prioritization.

Combines ICP fit, engagement, buying signals, contact recency and lifecycle
status into a 0-100 urgency score with a recommended next action.
"""

import json
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from config import settings
from history import LeadHistoryStore, LeadNotFoundError
from models import (
    Lead, CommunicationLog, Activity, ScrapedData, PriorityScore,
    PrioritizedLead, PrioritySummary, DailyTopLeads
)
from observability import trace_logger
from analytics.common import as_utc, days_between, enum_value, map_in_order, require_campaign, utcnow

NEVER_CONTACTED_DAYS = 999.0

HIGH_URGENCY_THRESHOLD = 70
MEDIUM_URGENCY_THRESHOLD = 40

FUNDING_KEYWORDS = ("funding", "series", "investment")
GROWTH_KEYWORDS = ("expanding", "growth")

# Leads with these statuses are out of the working queue
INACTIVE_STATUSES = frozenset({"unqualified", "rejected", "converted"})
DISQUALIFIED_STATUSES = frozenset({"unqualified", "rejected"})

ACTION_CALL = "Make a phone call"
ACTION_FOLLOW_UP = "Send follow-up email"
ACTION_RE_ENGAGE = "Re-engage with new approach"
ACTION_INITIAL_OUTREACH = "Send initial outreach email"
ACTION_SCHEDULE_MEETING = "Schedule demo or meeting"
ACTION_REVIEW = "Review lead"


def urgency_for(score: float) -> str:
    if score >= HIGH_URGENCY_THRESHOLD:
        return "high"
    if score >= MEDIUM_URGENCY_THRESHOLD:
        return "medium"
    return "low"


def _hiring_signals(snapshot: ScrapedData) -> list:
    processed = snapshot.processed_data or {}
    return processed.get("hiring_signals") or processed.get("hiringSignals") or []


def _recommend_action(
    status: str,
    email_replies: int,
    email_opens: int,
    calls: int,
    days_since_contact: float,
    contacted: bool
) -> str:
    """First matching rule wins."""
    if email_replies > 0 and calls == 0:
        return ACTION_CALL
    if email_opens > 0 and email_replies == 0 and days_since_contact >= 3:
        return ACTION_FOLLOW_UP
    if contacted and days_since_contact > 14:
        return ACTION_RE_ENGAGE
    if status == "new":
        return ACTION_INITIAL_OUTREACH
    if status == "qualified":
        return ACTION_SCHEDULE_MEETING
    return ACTION_REVIEW


def score_lead(
    lead: Lead,
    communications: Sequence[CommunicationLog],
    activities: Sequence[Activity],
    scraped_data: Sequence[ScrapedData],
    now: Optional[datetime] = None
) -> PriorityScore:
    """
    Score one lead from an already-fetched snapshot.

    Points are additive and clamped to [0, 100] at the end. Unqualified and
    rejected leads always score 0.

    Args:
        lead: Lead record
        communications: Lead communication logs
        activities: Lead activities
        scraped_data: Scraped snapshots, newest first
        now: Reference time (defaults to current UTC time)

    Returns:
        PriorityScore with reasons, urgency and recommended action
    """
    now = now or utcnow()
    status = enum_value(lead.status)
    score = 0.0
    reasons: List[str] = []

    # ICP fit (0-40)
    confidence = lead.confidence_score or 0
    score += confidence * 0.4
    if confidence >= 80:
        reasons.append(f"High ICP match ({confidence}% confidence)")

    # Engagement (replies subsume opens)
    email_statuses = [
        enum_value(c.status) for c in communications
        if enum_value(c.communication_type) == "email"
    ]
    email_opens = email_statuses.count("opened")
    email_replies = email_statuses.count("replied")
    calls = sum(1 for a in activities if enum_value(a.activity_type) == "call")

    if email_replies > 0:
        score += 30
        reasons.append(f"Replied to {email_replies} email(s)")
    elif email_opens > 0:
        score += 15
        reasons.append(f"Opened {email_opens} email(s)")

    if calls > 0:
        score += 10
        reasons.append(f"{calls} call(s) made")

    # Buying signals from the latest snapshot only
    if scraped_data:
        latest = scraped_data[0]
        hiring_signals = _hiring_signals(latest)
        if hiring_signals:
            score += 20
            reasons.append(f"{len(hiring_signals)} hiring signal(s) detected")

        content = json.dumps(latest.raw_data or {}, default=str).lower()
        if any(keyword in content for keyword in FUNDING_KEYWORDS):
            score += 10
            reasons.append("Recent funding mentioned")
        if any(keyword in content for keyword in GROWTH_KEYWORDS):
            score += 5
            reasons.append("Company growth mentioned")

    # Recency; the never-contacted sentinel does not take part
    contacted = lead.last_contacted_at is not None
    if contacted:
        days_since_contact = days_between(as_utc(lead.last_contacted_at), now)
        if days_since_contact < 1:
            score -= 10
            reasons.append("Contacted very recently (give them space)")
        elif 3 <= days_since_contact <= 7:
            score += 10
            reasons.append("Optimal follow-up timing (3-7 days)")
        elif days_since_contact > 14:
            score += 5
            reasons.append(f"No contact in {int(days_since_contact)} days (re-engage)")
    else:
        days_since_contact = NEVER_CONTACTED_DAYS

    # Lifecycle status; disqualification wins over everything above
    if status == "responded":
        score += 15
        reasons.append("Lead has responded (warm)")
    elif status == "qualified":
        score += 20
        reasons.append("Lead is qualified (hot)")
    elif status in DISQUALIFIED_STATUSES:
        score = 0
        reasons.append("Lead is unqualified or rejected")

    score = max(0.0, min(100.0, score))

    return PriorityScore(
        score=score,
        reasons=reasons,
        recommended_action=_recommend_action(
            status, email_replies, email_opens, calls, days_since_contact, contacted
        ),
        urgency=urgency_for(score),
        days_since_last_contact=days_since_contact,
    )


class PriorityScorer:
    """Scores and ranks leads using data from the history store."""

    def __init__(self, store: Optional[LeadHistoryStore] = None, max_workers: Optional[int] = None):
        self.store = store or LeadHistoryStore()
        self.max_workers = max_workers or settings.max_workers

    def score(self, lead: Lead, now: Optional[datetime] = None) -> PriorityScore:
        """Fetch the lead's history and score it."""
        result = score_lead(
            lead,
            self.store.get_communication_logs_by_lead_id(lead.id),
            self.store.get_activities_by_lead_id(lead.id),
            self.store.get_scraped_data_by_lead_id(lead.id),
            now=now
        )

        trace_logger.priority_scored(
            lead_id=lead.id,
            score=result.score,
            urgency=result.urgency,
            recommended_action=result.recommended_action
        )
        return result

    def calculate_priority_score(self, lead_id: int, now: Optional[datetime] = None) -> PriorityScore:
        """Score a single lead by id. Raises LeadNotFoundError."""
        lead = self.store.get_lead_by_id(lead_id)
        if not lead:
            raise LeadNotFoundError(lead_id)
        return self.score(lead, now=now)

    def _prioritize(self, lead: Lead, now: Optional[datetime]) -> PrioritizedLead:
        priority = self.score(lead, now=now)
        return PrioritizedLead(
            lead_id=lead.id,
            company_name=lead.company_name,
            contact_name=lead.contact_name,
            contact_email=lead.contact_email,
            status=enum_value(lead.status),
            confidence_score=lead.confidence_score or 0,
            priority_score=priority.score,
            reasons=priority.reasons,
            recommended_action=priority.recommended_action,
            urgency=priority.urgency,
            last_contacted_at=as_utc(lead.last_contacted_at),
            days_since_last_contact=priority.days_since_last_contact,
        )

    def get_prioritized_leads(
        self,
        campaign_id: int,
        limit: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[PrioritizedLead]:
        """Active campaign leads ranked by priority score, highest first."""
        require_campaign(self.store, campaign_id)
        if limit is None:
            limit = settings.prioritization_default_limit
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")

        active = [
            lead for lead in self.store.get_leads_by_campaign_id(campaign_id)
            if enum_value(lead.status) not in INACTIVE_STATUSES
        ]
        prioritized = map_in_order(
            lambda lead: self._prioritize(lead, now),
            active,
            max_workers=self.max_workers
        )

        # sorted() keeps campaign order for equal scores
        prioritized = sorted(prioritized, key=lambda p: p.priority_score, reverse=True)
        return prioritized[:limit]

    def get_daily_top_leads(self, campaign_id: int, now: Optional[datetime] = None) -> DailyTopLeads:
        """Top ten leads of the day plus a queue summary."""
        prioritized = self.get_prioritized_leads(campaign_id, limit=100, now=now)

        summary = PrioritySummary(
            total_active=len(prioritized),
            high_priority=sum(1 for p in prioritized if p.urgency == "high"),
            medium_priority=sum(1 for p in prioritized if p.urgency == "medium"),
            low_priority=sum(1 for p in prioritized if p.urgency == "low"),
            needs_follow_up=sum(1 for p in prioritized if "follow-up" in p.recommended_action.lower()),
            needs_re_engagement=sum(1 for p in prioritized if "re-engage" in p.recommended_action.lower()),
        )

        return DailyTopLeads(
            date=now or utcnow(),
            top_leads=prioritized[:10],
            summary=summary
        )

    def get_urgent_leads(self, campaign_id: int, now: Optional[datetime] = None) -> List[PrioritizedLead]:
        """High urgency, stale (>14 days) or freshly responded leads."""
        return [
            p for p in self.get_prioritized_leads(campaign_id, limit=100, now=now)
            if p.urgency == "high"
            or (p.last_contacted_at is not None and p.days_since_last_contact > 14)
            or p.status == "responded"
        ]

    def get_leads_by_action(self, campaign_id: int, now: Optional[datetime] = None) -> Dict[str, List[PrioritizedLead]]:
        grouped: Dict[str, List[PrioritizedLead]] = defaultdict(list)
        for p in self.get_prioritized_leads(campaign_id, limit=100, now=now):
            grouped[p.recommended_action].append(p)
        return dict(grouped)
