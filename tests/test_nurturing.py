import pytest

from history import LeadNotFoundError
from tools import EmailTool
from workflows import WORKFLOW_TEMPLATES, NurturingRunner, check_step_trigger
from workflows import AutomationPrincipal
from tests.conftest import days_before


@pytest.fixture()
def runner(store):
    return NurturingRunner(store, principal=AutomationPrincipal(user_id=1, name="nurture-bot"))


def test_templates_chain_their_steps():
    for template in WORKFLOW_TEMPLATES.values():
        steps = template["steps"]
        ids = [step["id"] for step in steps]
        for step, following in zip(steps, ids[1:]):
            assert step["next_step_id"] == following
        assert "next_step_id" not in steps[-1]


def test_time_delay(make_lead, now):
    lead = make_lead()
    trigger = {"type": "time_delay", "delay_days": 3}

    assert check_step_trigger(lead, [], [], trigger, days_before(3), now=now) is True
    assert check_step_trigger(lead, [], [], trigger, days_before(2), now=now) is False


def test_email_opened_only_counts_emails_since_step_start(make_lead, add_email, now):
    lead = make_lead()
    old = add_email(lead, days_before(10), status="opened")
    recent = add_email(lead, days_before(2), status="sent")
    trigger = {"type": "email_opened"}

    assert check_step_trigger(lead, [old, recent], [], trigger, days_before(5), now=now) is False
    assert check_step_trigger(lead, [old, recent], [], trigger, days_before(12), now=now) is True


def test_email_not_opened(make_lead, add_email, now):
    lead = make_lead()
    trigger = {"type": "email_not_opened", "wait_days": 3}
    unopened = add_email(lead, days_before(4), status="delivered")
    clicked = add_email(lead, days_before(4), status="clicked")
    fresh = add_email(lead, days_before(1), status="sent")

    assert check_step_trigger(lead, [], [], trigger, days_before(5), now=now) is False
    assert check_step_trigger(lead, [unopened], [], trigger, days_before(5), now=now) is True
    assert check_step_trigger(lead, [clicked], [], trigger, days_before(5), now=now) is False
    assert check_step_trigger(lead, [unopened, fresh], [], trigger, days_before(5), now=now) is False


def test_email_replied(make_lead, add_email, now):
    lead = make_lead()
    replied = add_email(lead, days_before(1), status="replied")

    assert check_step_trigger(lead, [replied], [], {"type": "email_replied"}, days_before(2), now=now) is True


def test_call_triggers(make_lead, add_activity, now):
    lead = make_lead()
    answered = add_activity(lead, "call", days_before(3), description="Great discovery call")
    missed = add_activity(lead, "call", days_before(3), description="No answer, left voicemail")
    no_answer = {"type": "call_no_answer", "wait_days": 2}

    assert check_step_trigger(lead, [], [answered], {"type": "call_completed"}, days_before(4), now=now) is True
    assert check_step_trigger(lead, [], [], {"type": "call_completed"}, days_before(4), now=now) is False
    assert check_step_trigger(lead, [], [missed], no_answer, days_before(4), now=now) is True
    assert check_step_trigger(lead, [], [answered], no_answer, days_before(4), now=now) is False


def test_status_change_step_trigger(make_lead, now):
    trigger = {"type": "status_change", "fromStatus": "contacted", "toStatus": "responded"}

    assert check_step_trigger(make_lead(status="responded"), [], [], trigger, days_before(1), now=now) is True
    assert check_step_trigger(make_lead(status="contacted"), [], [], trigger, days_before(1), now=now) is False


def test_unknown_step_trigger(make_lead, now):
    assert check_step_trigger(make_lead(), [], [], {"type": "webinar_attended"}, days_before(1), now=now) is False


def test_enroll_in_cold_outreach_sends_first_email(store, make_lead, now):
    email_tool = EmailTool(max_retries=0)
    runner = NurturingRunner(store, principal=AutomationPrincipal(user_id=1, name="nurture-bot"), email_tool=email_tool)
    lead = make_lead(contact_email="jane@acme.example.com")

    result = runner.enroll_lead(lead.id, "cold_outreach", now=now)

    assert result.success is True
    assert result.next_step_id == "step2"
    comms = store.get_communication_logs_by_lead_id(lead.id)
    assert [(c.communication_type.value, c.content) for c in comms] == [("email", "Workflow email: initial_outreach")]
    activities = store.get_activities_by_lead_id(lead.id)
    assert activities[0].description == "Workflow sent initial_outreach email"
    assert activities[0].created_by == "nurture-bot"
    assert email_tool.get_sent_emails("jane@acme.example.com")[0]["subject"] == "Quick introduction"


def test_step_actions(store, make_lead, runner, now):
    lead = make_lead(status="contacted")

    runner.execute_step(lead.id, {"id": "a", "action": {"type": "make_call", "call_type": "qualification"}}, now=now)
    runner.execute_step(lead.id, {"id": "b", "action": {"type": "send_sms", "message": "Hi!"}}, now=now)
    runner.execute_step(lead.id, {"id": "c", "action": {"type": "add_tag", "tag": "vip"}}, now=now)
    runner.execute_step(lead.id, {"id": "d", "action": {"type": "create_task", "task_description": "Send deck"}}, now=now)
    result = runner.execute_step(lead.id, {"id": "e", "action": {"type": "update_status", "new_status": "responded"}}, now=now)

    assert result.success is True
    descriptions = [a.description for a in store.get_activities_by_lead_id(lead.id)]
    assert descriptions == ["Workflow initiated qualification call", "Tagged: vip", "Task created: Send deck"]
    sms = store.get_communication_logs_by_lead_id(lead.id)
    assert [(c.communication_type.value, c.content) for c in sms] == [("sms", "Hi!")]
    assert store.get_lead_by_id(lead.id).status.value == "responded"


def test_step_failures_are_reported(make_lead, runner, now):
    lead = make_lead()

    unknown = runner.execute_step(lead.id, {"id": "x", "action": {"type": "assign_to_user", "user_id": 4}}, now=now)
    bad_status = runner.execute_step(lead.id, {"id": "y", "action": {"type": "update_status", "new_status": "won"}}, now=now)

    assert unknown.success is False
    assert unknown.error == "Unknown action type"
    assert bad_status.success is False


def test_enroll_rejects_unknown_template_and_lead(make_lead, runner):
    with pytest.raises(ValueError):
        runner.enroll_lead(make_lead().id, "webinar")
    with pytest.raises(LeadNotFoundError):
        runner.enroll_lead(999, "post_demo")


def test_check_step_reads_history_from_store(store, make_lead, add_email, runner, now):
    lead = make_lead()
    add_email(lead, days_before(1), status="opened")

    assert runner.check_step(lead.id, {"type": "email_opened"}, days_before(2), now=now) is True
