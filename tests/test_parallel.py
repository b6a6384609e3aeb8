from collections.abc import Generator

import pytest

from analytics import PriorityScorer
from history import LeadHistoryStore
from workflows import AutomationPrincipal, WorkflowActionExecutor, WorkflowEngine
from tests.conftest import days_before


LEAD_FIXTURES = [
    {"status": "new", "confidence_score": 40},
    {"status": "qualified", "confidence_score": 90, "last_contacted_at": days_before(2)},
    {"status": "contacted", "confidence_score": 55, "last_contacted_at": days_before(20)},
    {"status": "qualified", "confidence_score": 70},
    {"status": "new", "confidence_score": 40},
    {"status": "responded", "confidence_score": 65, "last_contacted_at": days_before(6)},
    {"status": "qualified", "confidence_score": 30, "last_contacted_at": days_before(12)},
    {"status": "rejected", "confidence_score": 95},
]


@pytest.fixture()
def file_stores(tmp_path) -> Generator[tuple, None, None]:
    # File-backed so worker threads get their own connections
    stores = (
        LeadHistoryStore(f"sqlite:///{tmp_path / 'sequential.db'}"),
        LeadHistoryStore(f"sqlite:///{tmp_path / 'parallel.db'}"),
    )
    try:
        yield stores
    finally:
        for history in stores:
            history.engine.dispose()


def _seed(store: LeadHistoryStore):
    campaign = store.create_campaign(name="Parallel campaign")
    for n, fields in enumerate(LEAD_FIXTURES):
        lead = store.create_lead(
            campaign_id=campaign.id,
            company_name=f"Company {n}",
            contact_email=f"contact{n}@example.com",
            created_at=days_before(30),
            **fields
        )
        store.create_communication_log(
            lead_id=lead.id,
            campaign_id=campaign.id,
            communication_type="email",
            direction="outbound",
            status="opened" if n % 2 else "sent",
            sent_at=days_before(10 - n),
            created_at=days_before(10 - n),
        )
    return campaign


def test_parallel_prioritization_matches_sequential(file_stores, now):
    store = file_stores[0]
    campaign = _seed(store)

    sequential = PriorityScorer(store, max_workers=1).get_prioritized_leads(campaign.id, now=now)
    parallel = PriorityScorer(store, max_workers=4).get_prioritized_leads(campaign.id, now=now)

    assert len(sequential) == 7
    assert [p.model_dump() for p in parallel] == [p.model_dump() for p in sequential]


def test_parallel_workflow_run_matches_sequential(file_stores, now):
    outcomes = []
    for store, workers in zip(file_stores, (1, 4)):
        campaign = _seed(store)
        rule = store.create_workflow_rule(
            campaign_id=campaign.id,
            trigger_type="status_change",
            trigger_config={"targetStatus": "qualified"},
            action_type="make_call"
        )
        engine = WorkflowEngine(
            store,
            WorkflowActionExecutor(store, AutomationPrincipal(user_id=3)),
            max_workers=workers
        )
        run = engine.run_rule(rule, now=now)
        calls = {
            lead.id: len(store.get_activities_by_lead_id(lead.id))
            for lead in store.get_leads_by_campaign_id(campaign.id)
        }
        outcomes.append((run, calls, len(store.get_workflow_executions(campaign.id))))

    (sequential, seq_calls, seq_records), (parallel, par_calls, par_records) = outcomes
    assert (parallel.processed, parallel.executed, parallel.failed) == (8, 3, 0)
    assert (parallel.processed, parallel.executed, parallel.failed) == (
        sequential.processed, sequential.executed, sequential.failed
    )
    assert [(r.lead_id, r.status, r.action_type) for r in parallel.results] == [
        (r.lead_id, r.status, r.action_type) for r in sequential.results
    ]
    assert par_calls == seq_calls
    assert par_records == seq_records == 3
