import os

# Must be set before config.settings is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("ENABLE_BACKGROUND_JOBS", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone

import pytest

from history import LeadHistoryStore
from models import Base, Campaign, Lead


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def days_before(days: float, hours: float = 0) -> datetime:
    return NOW - timedelta(days=days, hours=hours)


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def store() -> Generator[LeadHistoryStore, None, None]:
    history = LeadHistoryStore("sqlite:///:memory:")
    try:
        yield history
    finally:
        Base.metadata.drop_all(bind=history.engine)
        history.engine.dispose()


@pytest.fixture()
def campaign(store: LeadHistoryStore) -> Campaign:
    return store.create_campaign(name="Test campaign")


@pytest.fixture()
def make_lead(store: LeadHistoryStore, campaign: Campaign) -> Callable[..., Lead]:
    counter = {"n": 0}

    def _make(**fields) -> Lead:
        counter["n"] += 1
        fields.setdefault("company_name", f"Company {counter['n']}")
        fields.setdefault("contact_name", f"Contact {counter['n']}")
        fields.setdefault("contact_email", f"contact{counter['n']}@example.com")
        fields.setdefault("created_at", days_before(30))
        return store.create_lead(campaign_id=fields.pop("campaign_id", campaign.id), **fields)

    return _make


@pytest.fixture()
def add_email(store: LeadHistoryStore) -> Callable[..., object]:
    def _add(lead: Lead, sent_at: datetime, status: str = "sent", direction: str = "outbound", **fields):
        fields.setdefault("created_at", sent_at)
        return store.create_communication_log(
            lead_id=lead.id,
            campaign_id=lead.campaign_id,
            communication_type=fields.pop("communication_type", "email"),
            direction=direction,
            status=status,
            sent_at=sent_at,
            **fields
        )

    return _add


@pytest.fixture()
def add_activity(store: LeadHistoryStore) -> Callable[..., object]:
    def _add(lead: Lead, activity_type: str, created_at: datetime, **fields):
        return store.create_activity(
            lead_id=lead.id,
            campaign_id=lead.campaign_id,
            activity_type=activity_type,
            created_at=created_at,
            **fields
        )

    return _add
