from datetime import date, datetime, time

import pytest
from pydantic import ValidationError

from app.core.errors import Conflict, ServiceUnavailable
from app.modules.reminders.repository import ReminderLogRepository
from app.modules.reminders.schemas import ReminderConfigCreate, ReminderConfigUpdate
from app.modules.reminders.service import ReminderConfigService, ReminderDispatcher, compose, is_due
from helpers import Clock, make_appointment, make_patient

DAY = date(2025, 3, 10)

DAY_BEFORE = ReminderConfigCreate(
    reminder_type="24_hour",
    hours_before=24,
    subject_template="Reminder: {{appointment_date}}",
    body_template="Hi {{patient_name}}, see you at {{appointment_time}} for {{reason}}.",
)
SAME_DAY = ReminderConfigCreate(
    reminder_type="day_of",
    hours_before=2,
    subject_template="Today at {{appointment_time}}",
    body_template="Hi {{patient_name}}, your visit is in two hours.",
)


async def setup(s, mailer, *configs):
    svc = ReminderConfigService(s, mailer)
    for c in configs or (DAY_BEFORE,):
        await svc.create(c)
    p = await make_patient(s)
    appt = await make_appointment(s, p, DAY, time(14, 0), duration=45, reason="Cleaning")
    return p, appt


def test_due_window_is_half_open():
    class A:
        starts_at = datetime(2025, 3, 10, 14, 0)
    assert is_due(A, 24, datetime(2025, 3, 9, 14, 0), 2)
    assert is_due(A, 24, datetime(2025, 3, 9, 15, 59), 2)
    assert not is_due(A, 24, datetime(2025, 3, 9, 16, 0), 2)
    assert not is_due(A, 24, datetime(2025, 3, 9, 13, 59), 2)


def test_reminder_sent_once_inside_window(run_db, mailer):
    async def scenario(s):
        _, appt = await setup(s, mailer, DAY_BEFORE, SAME_DAY)
        clock = Clock(datetime(2025, 3, 9, 14, 5))
        dispatcher = ReminderDispatcher(s, mailer, clock)

        results = await dispatcher.process()
        assert results == {"processed": 1, "sent": 1, "failed": 0, "skipped": 0, "errors": []}
        sent = mailer.sent[0]
        assert sent["subject"] == "Reminder: Monday, March 10, 2025"
        assert sent["text"] == "Hi Jane Doe, see you at 2:00 PM for Cleaning."
        assert appt.reminder_24h_sent_at is not None
        assert appt.reminder_day_of_sent_at is None
        assert appt.reminder_count == 1
        assert appt.reminder_status == "sent"

        clock.now = datetime(2025, 3, 9, 15, 0)
        again = await dispatcher.process()
        assert again["sent"] == 0
        assert again["skipped"] == 1
        assert len(mailer.sent) == 1

        [log] = await ReminderLogRepository(s).for_appointment(appt.id)
        assert log.status == "sent" and log.resend_message_id == "msg-1"
    run_db(scenario)


def test_same_day_reminder_is_independent(run_db, mailer):
    async def scenario(s):
        _, appt = await setup(s, mailer, DAY_BEFORE, SAME_DAY)
        dispatcher = ReminderDispatcher(s, mailer, Clock(datetime(2025, 3, 9, 14, 30)))
        await dispatcher.process()
        res = await dispatcher.process(now=datetime(2025, 3, 10, 12, 10))
        assert res["sent"] == 1
        assert appt.reminder_day_of_sent_at is not None
        assert appt.reminder_count == 2
        assert mailer.sent[-1]["subject"] == "Today at 2:00 PM"
    run_db(scenario)


def test_missed_window_is_skipped(run_db, mailer):
    async def scenario(s):
        _, appt = await setup(s, mailer)
        res = await ReminderDispatcher(s, mailer, Clock(datetime(2025, 3, 9, 17, 0))).process()
        assert res["processed"] == 1 and res["skipped"] == 1 and res["sent"] == 0
        assert appt.reminder_24h_sent_at is None
    run_db(scenario)


def test_failure_is_logged_and_retried(run_db, mailer):
    async def scenario(s):
        _, appt = await setup(s, mailer)
        mailer.failing.add("jane@example.com")
        dispatcher = ReminderDispatcher(s, mailer, Clock(datetime(2025, 3, 9, 14, 5)))
        res = await dispatcher.process()
        assert res["failed"] == 1
        assert res["errors"] == ["Failed to send 24_hour reminder to Jane Doe"]
        assert appt.reminder_24h_sent_at is None

        mailer.failing.clear()
        res = await dispatcher.process(now=datetime(2025, 3, 9, 15, 0))
        assert res["sent"] == 1
        statuses = [l.status for l in await ReminderLogRepository(s).for_appointment(appt.id)]
        assert statuses == ["failed", "sent"]
    run_db(scenario)


def test_skips_cancelled_and_email_less(run_db, mailer):
    async def scenario(s):
        p, _ = await setup(s, mailer)
        silent = await make_patient(s, first="No", last="Mail", email=None)
        await make_appointment(s, silent, DAY, time(14, 30))
        await make_appointment(s, p, DAY, time(15, 0), status="cancelled")
        res = await ReminderDispatcher(s, mailer, Clock(datetime(2025, 3, 9, 14, 45))).process()
        assert res["processed"] == 2
        assert res["sent"] == 1
        assert res["skipped"] == 1
    run_db(scenario)


def test_disabled_configs_do_nothing(run_db, mailer):
    async def scenario(s):
        await setup(s, mailer)
        svc = ReminderConfigService(s, mailer)
        [config] = (await svc.list_with_stats())["configs"]
        await svc.update(config.id, ReminderConfigUpdate(is_enabled=False))
        res = await ReminderDispatcher(s, mailer, Clock(datetime(2025, 3, 9, 14, 5))).process()
        assert res["processed"] == 0
        assert mailer.sent == []
    run_db(scenario)


def test_dispatch_requires_mailer(run_db):
    async def scenario(s):
        with pytest.raises(ServiceUnavailable):
            await ReminderDispatcher(s, None).process()
    run_db(scenario)


def test_test_send_never_stamps_and_is_excluded_from_stats(run_db, mailer):
    async def scenario(s):
        _, appt = await setup(s, mailer)
        svc = ReminderConfigService(s, mailer)
        [config] = (await svc.list_with_stats())["configs"]
        message_id, target = await svc.send_test(config.id, appt.id, "frontdesk@example.com")
        assert target == "frontdesk@example.com"
        assert message_id == "msg-1"
        assert mailer.sent[0]["subject"].startswith("[TEST] ")
        assert appt.reminder_24h_sent_at is None
        [log] = await ReminderLogRepository(s).for_appointment(appt.id)
        assert log.reminder_type == "test_24_hour"

        await ReminderDispatcher(s, mailer, Clock(datetime(2025, 3, 9, 14, 5))).process()
        stats = (await svc.list_with_stats())["statistics"]
        assert stats["total_sent"] == 1
        assert stats["by_type"]["24_hour"] == 1
    run_db(scenario)


def test_config_rules(run_db, mailer):
    async def scenario(s):
        svc = ReminderConfigService(s, mailer)
        await svc.create(DAY_BEFORE)
        with pytest.raises(Conflict):
            await svc.create(DAY_BEFORE)
    run_db(scenario)
    with pytest.raises(ValidationError):
        ReminderConfigCreate(reminder_type="custom", hours_before=4, subject_template="Hi {{nickname}}", body_template="Body text long enough")
    with pytest.raises(ValidationError):
        ReminderConfigCreate(reminder_type="custom", hours_before=200, subject_template="Hi", body_template="Body text long enough")


def test_compose_escapes_html(run_db, mailer):
    async def scenario(s):
        p, appt = await setup(s, mailer)
        appt.reason = "<script>x</script>"
        config = (await ReminderConfigService(s, mailer).list_with_stats())["configs"][0]
        subject, page, text = compose(config, appt)
        assert "<script>" in text
        assert "<script>" not in page
        assert "&lt;script&gt;" in page
    run_db(scenario)


def test_status_counts_upcoming(run_db, mailer):
    async def scenario(s):
        await setup(s, mailer)
        status = await ReminderDispatcher(s, mailer, Clock(datetime(2025, 3, 9, 8, 0))).status()
        assert status["upcoming_appointments"] == 1
        assert status["email_configured"] is True
    run_db(scenario)
