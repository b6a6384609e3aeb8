import pytest

from analytics import PriorityScorer, urgency_for
from analytics.prioritization import (
    ACTION_CALL, ACTION_FOLLOW_UP, ACTION_INITIAL_OUTREACH, ACTION_RE_ENGAGE,
    ACTION_REVIEW, ACTION_SCHEDULE_MEETING, NEVER_CONTACTED_DAYS
)
from history import LeadNotFoundError
from tests.conftest import days_before


def test_hot_qualified_lead_with_reply(store, make_lead, add_email, now):
    lead = make_lead(confidence_score=90, status="qualified", last_contacted_at=days_before(5))
    add_email(lead, days_before(5), status="replied")

    result = PriorityScorer(store).calculate_priority_score(lead.id, now=now)

    # 36 (ICP) + 30 (reply) + 10 (3-7 day window) + 20 (qualified)
    assert result.score == pytest.approx(96.0)
    assert result.urgency == "high"
    assert result.recommended_action == ACTION_CALL
    assert "High ICP match (90% confidence)" in result.reasons
    assert result.days_since_last_contact == pytest.approx(5.0)


def test_never_contacted_new_lead(store, make_lead, now):
    lead = make_lead(confidence_score=50, status="new")

    result = PriorityScorer(store).calculate_priority_score(lead.id, now=now)

    assert result.score == pytest.approx(20.0)
    assert result.reasons == []
    assert result.urgency == "low"
    assert result.days_since_last_contact == NEVER_CONTACTED_DAYS
    assert result.recommended_action == ACTION_INITIAL_OUTREACH


@pytest.mark.parametrize("status", ["unqualified", "rejected"])
def test_disqualified_leads_always_score_zero(store, make_lead, add_email, add_activity, now, status):
    lead = make_lead(confidence_score=100, status=status, last_contacted_at=days_before(4))
    add_email(lead, days_before(4), status="replied")
    add_activity(lead, "call", days_before(3))

    result = PriorityScorer(store).calculate_priority_score(lead.id, now=now)

    assert result.score == 0
    assert result.urgency == "low"


def test_buying_signals_from_latest_snapshot_only(store, make_lead, now):
    lead = make_lead(confidence_score=0, status="contacted", last_contacted_at=days_before(2))
    store.create_scraped_data(
        lead_id=lead.id,
        source_url="https://old.example.com",
        raw_data={"about": "Series A funding"},
        processed_data={},
        scraped_at=days_before(20)
    )
    store.create_scraped_data(
        lead_id=lead.id,
        source_url="https://new.example.com",
        raw_data={"news": "Company is Expanding fast after new Investment"},
        processed_data={"hiringSignals": ["SDR", "AE"]},
        scraped_at=days_before(1)
    )

    result = PriorityScorer(store).calculate_priority_score(lead.id, now=now)

    # 20 (hiring) + 10 (funding) + 5 (growth)
    assert result.score == pytest.approx(35.0)
    assert "2 hiring signal(s) detected" in result.reasons


def test_recently_contacted_lead_is_penalised(store, make_lead, now):
    lead = make_lead(confidence_score=50, status="contacted", last_contacted_at=days_before(0, 6))

    result = PriorityScorer(store).calculate_priority_score(lead.id, now=now)

    assert result.score == pytest.approx(10.0)
    assert "Contacted very recently (give them space)" in result.reasons
    assert result.recommended_action == ACTION_REVIEW


def test_score_is_clamped_at_zero(store, make_lead, now):
    lead = make_lead(confidence_score=0, status="contacted", last_contacted_at=days_before(0, 1))

    result = PriorityScorer(store).calculate_priority_score(lead.id, now=now)

    assert result.score == 0.0


def test_opened_without_reply_suggests_follow_up(store, make_lead, add_email, now):
    lead = make_lead(confidence_score=60, status="contacted", last_contacted_at=days_before(4))
    add_email(lead, days_before(4), status="opened")

    result = PriorityScorer(store).calculate_priority_score(lead.id, now=now)

    # 24 + 15 (open) + 10 (window)
    assert result.score == pytest.approx(49.0)
    assert result.urgency == "medium"
    assert result.recommended_action == ACTION_FOLLOW_UP


def test_stale_contact_suggests_re_engagement(store, make_lead, now):
    lead = make_lead(confidence_score=50, status="contacted", last_contacted_at=days_before(20))

    result = PriorityScorer(store).calculate_priority_score(lead.id, now=now)

    assert result.score == pytest.approx(25.0)
    assert result.recommended_action == ACTION_RE_ENGAGE


def test_qualified_lead_without_engagement_gets_meeting(store, make_lead, now):
    lead = make_lead(confidence_score=50, status="qualified", last_contacted_at=days_before(10))

    result = PriorityScorer(store).calculate_priority_score(lead.id, now=now)

    assert result.recommended_action == ACTION_SCHEDULE_MEETING


def test_replied_and_called_lead_is_not_asked_to_call_again(store, make_lead, add_email, add_activity, now):
    lead = make_lead(confidence_score=50, status="responded", last_contacted_at=days_before(2))
    add_email(lead, days_before(3), status="replied")
    add_activity(lead, "call", days_before(2))

    result = PriorityScorer(store).calculate_priority_score(lead.id, now=now)

    # 20 + 30 + 10 (call) + 15 (responded)
    assert result.score == pytest.approx(75.0)
    assert result.recommended_action == ACTION_REVIEW


@pytest.mark.parametrize("score, urgency", [(0, "low"), (39.9, "low"), (40, "medium"), (69.9, "medium"), (70, "high"), (100, "high")])
def test_urgency_tiers(score, urgency):
    assert urgency_for(score) == urgency


def test_unknown_lead_raises(store):
    with pytest.raises(LeadNotFoundError):
        PriorityScorer(store).calculate_priority_score(404)


def test_prioritized_leads_are_filtered_sorted_and_truncated(store, campaign, make_lead, now):
    low = make_lead(confidence_score=10, status="new")
    high = make_lead(confidence_score=90, status="qualified")
    tie_first = make_lead(confidence_score=50, status="new")
    tie_second = make_lead(confidence_score=50, status="new")
    for status in ("converted", "rejected", "unqualified"):
        make_lead(confidence_score=100, status=status)

    scorer = PriorityScorer(store)
    ranked = scorer.get_prioritized_leads(campaign.id, now=now)

    assert [p.lead_id for p in ranked] == [high.id, tie_first.id, tie_second.id, low.id]
    assert [p.lead_id for p in scorer.get_prioritized_leads(campaign.id, limit=2, now=now)] == [high.id, tie_first.id]


def test_prioritized_leads_limit_bounds(store, campaign, make_lead, now):
    for score in (30, 60, 90):
        make_lead(confidence_score=score, status="new")
    scorer = PriorityScorer(store)

    assert scorer.get_prioritized_leads(campaign.id, limit=0, now=now) == []
    assert len(scorer.get_prioritized_leads(campaign.id, limit=None, now=now)) == 3
    with pytest.raises(ValueError):
        scorer.get_prioritized_leads(campaign.id, limit=-1, now=now)


def test_urgent_leads(store, campaign, make_lead, now):
    hot = make_lead(confidence_score=100, status="qualified", last_contacted_at=days_before(5))
    stale = make_lead(confidence_score=10, status="contacted", last_contacted_at=days_before(30))
    warm = make_lead(confidence_score=10, status="responded", last_contacted_at=days_before(2))
    make_lead(confidence_score=10, status="new")

    urgent = PriorityScorer(store).get_urgent_leads(campaign.id, now=now)

    assert {p.lead_id for p in urgent} == {hot.id, stale.id, warm.id}


def test_leads_grouped_by_action(store, campaign, make_lead, now):
    new_lead = make_lead(status="new")
    stale = make_lead(status="contacted", last_contacted_at=days_before(30))

    grouped = PriorityScorer(store).get_leads_by_action(campaign.id, now=now)

    assert [p.lead_id for p in grouped[ACTION_INITIAL_OUTREACH]] == [new_lead.id]
    assert [p.lead_id for p in grouped[ACTION_RE_ENGAGE]] == [stale.id]


def test_daily_top_leads_summary(store, campaign, make_lead, add_email, now):
    for i in range(12):
        make_lead(confidence_score=5 * i, status="new")
    opened = make_lead(confidence_score=50, status="contacted", last_contacted_at=days_before(4))
    add_email(opened, days_before(4), status="opened")
    make_lead(confidence_score=50, status="contacted", last_contacted_at=days_before(20))

    daily = PriorityScorer(store).get_daily_top_leads(campaign.id, now=now)

    assert daily.date == now
    assert len(daily.top_leads) == 10
    assert daily.summary.total_active == 14
    assert daily.summary.needs_follow_up == 1
    assert daily.summary.needs_re_engagement == 1
    assert daily.summary.high_priority + daily.summary.medium_priority + daily.summary.low_priority == 14
