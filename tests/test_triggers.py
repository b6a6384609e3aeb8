import pytest

from workflows import check_trigger_condition, validate_trigger_config
from tests.conftest import days_before


def _rule(store, campaign, trigger_type, trigger_config, action_type="send_email"):
    return store.create_workflow_rule(
        campaign_id=campaign.id,
        trigger_type=trigger_type,
        trigger_config=trigger_config,
        action_type=action_type
    )


def test_inactivity_without_activities_uses_creation_date(store, campaign, make_lead, now):
    rule = _rule(store, campaign, "inactivity", {"days": 7})
    lead = make_lead(created_at=days_before(10))

    assert check_trigger_condition(rule, lead, [], now=now) is True


def test_inactivity_with_recent_completed_activity(store, campaign, make_lead, add_activity, now):
    rule = _rule(store, campaign, "inactivity", {"days": 7})
    lead = make_lead(created_at=days_before(10))
    activity = add_activity(lead, "call", days_before(2), status="completed", completed_at=days_before(2))

    assert check_trigger_condition(rule, lead, [activity], now=now) is False


def test_inactivity_counts_whole_days(store, campaign, make_lead, add_activity, now):
    rule = _rule(store, campaign, "inactivity", {"days": 7})
    lead = make_lead(created_at=days_before(30))
    almost = add_activity(lead, "call", days_before(7), completed_at=days_before(6, 23))
    assert check_trigger_condition(rule, lead, [almost], now=now) is False

    exact = add_activity(lead, "call", days_before(8), completed_at=days_before(7))
    assert check_trigger_condition(rule, lead, [exact], now=now) is True


def test_inactivity_ignores_incomplete_activities(store, campaign, make_lead, add_activity, now):
    rule = _rule(store, campaign, "inactivity", {"days": 7})
    lead = make_lead(created_at=days_before(10))
    pending = add_activity(lead, "email", days_before(1), status="pending")

    assert check_trigger_condition(rule, lead, [pending], now=now) is True


def test_status_change_is_level_triggered(store, campaign, make_lead, now):
    rule = _rule(store, campaign, "status_change", {"targetStatus": "qualified"})

    assert check_trigger_condition(rule, make_lead(status="qualified"), now=now) is True
    assert check_trigger_condition(rule, make_lead(status="contacted"), now=now) is False


@pytest.mark.parametrize("config", [
    {"toStatus": "qualified"},
    {"fromStatus": "contacted", "to_status": "qualified"},
    {"target_status": "qualified"},
])
def test_status_change_config_spellings(store, campaign, make_lead, now, config):
    rule = _rule(store, campaign, "status_change", config)

    assert check_trigger_condition(rule, make_lead(status="qualified"), now=now) is True


def test_time_based_always_fires(store, campaign, make_lead, now):
    rule = _rule(store, campaign, "time_based", {"schedule": "0 9 * * *"})

    assert check_trigger_condition(rule, make_lead(), now=now) is True


def test_validate_trigger_config_accepts_valid_configs():
    validate_trigger_config("inactivity", {"days": 3})
    validate_trigger_config("status_change", {"targetStatus": "qualified", "cooldown_hours": 12})
    validate_trigger_config("time_based", {"schedule": "*/15 9-17 * * 1-5"})


@pytest.mark.parametrize("trigger_type, config", [
    ("inactivity", {}),
    ("inactivity", {"days": -1}),
    ("status_change", {"fromStatus": "new"}),
    ("time_based", {}),
    ("time_based", {"schedule": "every day"}),
    ("time_based", {"schedule": "61 9 * * *"}),
    ("status_change", {"targetStatus": "qualified", "cooldownHours": -5}),
    ("webhook", {}),
])
def test_validate_trigger_config_rejects_invalid_configs(trigger_type, config):
    with pytest.raises(ValueError):
        validate_trigger_config(trigger_type, config)
