import pytest

from history import LeadHistoryStore
from models import LeadStatus
from tests.conftest import days_before


def test_file_database_creates_parent_directory(tmp_path):
    db_path = tmp_path / "nested" / "leads.db"

    store = LeadHistoryStore(f"sqlite:///{db_path}")
    campaign = store.create_campaign(name="On disk")

    assert db_path.exists()
    assert store.get_campaign_by_id(campaign.id).name == "On disk"
    store.engine.dispose()


def test_update_lead_coerces_status(store, make_lead):
    lead = make_lead(status="new")

    updated = store.update_lead(lead.id, status="contacted", notes="Called reception")

    assert updated.status is LeadStatus.CONTACTED
    assert updated.notes == "Called reception"
    assert store.update_lead(9999, status="contacted") is None


def test_update_lead_rejects_unknown_status(store, make_lead):
    lead = make_lead()

    with pytest.raises(ValueError):
        store.update_lead(lead.id, status="won")


def test_leads_are_scoped_to_their_campaign(store, campaign, make_lead):
    other = store.create_campaign(name="Other")
    mine = make_lead()
    make_lead(campaign_id=other.id)

    assert [lead.id for lead in store.get_leads_by_campaign_id(campaign.id)] == [mine.id]
    assert len(store.get_all_leads()) == 2


def test_scraped_data_newest_first(store, make_lead):
    lead = make_lead()
    old = store.create_scraped_data(lead.id, "https://a.example.com", scraped_at=days_before(5))
    new = store.create_scraped_data(lead.id, "https://b.example.com", scraped_at=days_before(1))

    assert [row.id for row in store.get_scraped_data_by_lead_id(lead.id)] == [new.id, old.id]


def test_active_rules_filtered_by_trigger_type(store, campaign):
    inactivity = store.create_workflow_rule(campaign.id, "inactivity", "send_email", {"days": 3})
    store.create_workflow_rule(campaign.id, "time_based", "make_call", {"schedule": "0 9 * * *"})
    store.create_workflow_rule(campaign.id, "inactivity", "send_email", {"days": 5}, is_active=False)

    assert [r.id for r in store.get_active_workflow_rules(["inactivity"])] == [inactivity.id]
    assert len(store.get_active_workflow_rules()) == 2


def test_workflow_executions_are_scoped_by_campaign(store, campaign, make_lead):
    lead = make_lead()
    other = store.create_campaign(name="Other")
    rule = store.create_workflow_rule(campaign.id, "inactivity", "send_email", {"days": 3})
    foreign = store.create_workflow_rule(other.id, "inactivity", "send_email", {"days": 3})

    store.record_workflow_execution(rule.id, lead.id, "success", executed_at=days_before(2))
    latest = store.record_workflow_execution(rule.id, lead.id, "success", executed_at=days_before(1))
    store.record_workflow_execution(rule.id, lead.id, "failed", error_message="boom")
    store.record_workflow_execution(foreign.id, lead.id, "success")

    assert len(store.get_workflow_executions(campaign.id)) == 3
    assert store.get_last_successful_execution(rule.id, lead.id).id == latest.id
