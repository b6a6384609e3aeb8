from datetime import timedelta

import pytest

from analytics import FunnelAnalyzer
from history import CampaignNotFoundError
from tests.conftest import days_before


def _seed_statuses(make_lead, statuses):
    return [make_lead(status=status) for status in statuses]


def test_funnel_counts_exact_statuses(store, campaign, make_lead):
    _seed_statuses(
        make_lead,
        ["qualified"] * 3 + ["converted"] * 2 + ["contacted"] * 2 + ["responded", "new", "rejected"]
    )

    funnel = FunnelAnalyzer(store).get_conversion_funnel(campaign.id)

    assert [s.stage for s in funnel] == ["Total Leads", "Contacted", "Responded", "Qualified", "Converted"]
    assert [s.count for s in funnel] == [10, 2, 1, 3, 2]
    assert funnel[3].count == 3
    assert funnel[3].percentage == pytest.approx(30.0)
    assert [s.dropoff for s in funnel] == [0, 8, 1, -2, 1]
    assert funnel[0].count - funnel[-1].count == sum(s.dropoff for s in funnel)


def test_empty_campaign_funnel(store, campaign):
    funnel = FunnelAnalyzer(store).get_conversion_funnel(campaign.id)

    assert all(s.count == 0 and s.percentage == 0 for s in funnel)


def test_channel_performance_rates(store, campaign, make_lead, add_email):
    converted = make_lead(status="converted")
    add_email(converted, days_before(10), status="opened")
    add_email(converted, days_before(9), status="replied", created_at=days_before(9) + timedelta(hours=4))
    cold = make_lead(status="contacted")
    add_email(cold, days_before(8), status="clicked")
    add_email(cold, days_before(7), status="sent")
    add_email(cold, days_before(6), status="sent", communication_type="sms")

    performance = {p.channel: p for p in FunnelAnalyzer(store).get_channel_performance(campaign.id)}

    email = performance["email"]
    assert email.total_sent == 4
    assert email.total_opened == 1
    assert email.total_clicked == 1
    assert email.total_replied == 1
    assert email.open_rate == pytest.approx(25.0)
    assert email.reply_rate == pytest.approx(25.0)
    assert email.conversion_rate == pytest.approx(50.0)
    assert email.avg_time_to_response == pytest.approx(4.0)

    assert performance["sms"].total_sent == 1
    assert performance["sms"].conversion_rate == 0.0

    call = performance["call"]
    assert call.total_sent == 0
    assert call.open_rate == 0.0
    assert call.avg_time_to_response == 0.0


def test_channel_performance_lead_basis(store, campaign, make_lead, add_email):
    converted = make_lead(status="qualified")
    for days in (10, 9, 8):
        add_email(converted, days_before(days))
    cold = make_lead(status="contacted")
    add_email(cold, days_before(5))

    analyzer = FunnelAnalyzer(store)
    by_communication = {p.channel: p for p in analyzer.get_channel_performance(campaign.id)}
    by_lead = {p.channel: p for p in analyzer.get_channel_performance(campaign.id, basis="lead")}

    assert by_communication["email"].conversion_rate == pytest.approx(75.0)
    assert by_lead["email"].conversion_rate == pytest.approx(50.0)


def test_unknown_basis_is_rejected(store, campaign):
    with pytest.raises(ValueError):
        FunnelAnalyzer(store).get_channel_performance(campaign.id, basis="visits")


def test_unknown_campaign_raises(store):
    with pytest.raises(CampaignNotFoundError):
        FunnelAnalyzer(store).get_conversion_funnel(42)
