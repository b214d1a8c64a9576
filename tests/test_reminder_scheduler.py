"""
Reminder scheduler: timer registration, durable rows, at-most-once delivery
and rebuilding the registry after a restart.
"""
from datetime import datetime, time, timedelta, timezone

import pytest

from app.models.appointment import Appointment, AppointmentState, AppointmentType
from app.models.reminder import Reminder
from app.services.reminder_scheduler import ReminderScheduler
from app.utils.dates import combine_local, from_db_utc, now_local

from conftest import upcoming

MONDAY = 0


@pytest.fixture
def appointment(db_session, patient, professional):
    appointment = Appointment(
        patient_id=patient.id,
        professional_id=professional.id,
        date=upcoming(MONDAY),
        start_time=time(9),
        end_time=time(9, 30),
        type=AppointmentType.NORMAL.value,
        state=AppointmentState.CONFIRMED.value,
        express_accepted=False,
    )
    db_session.add(appointment)
    db_session.commit()
    db_session.refresh(appointment)
    return appointment


def _schedule(reminder_scheduler, appointment, patient):
    reminder_scheduler.schedule(
        appointment.id,
        patient.full_name,
        patient.email,
        "Laura López (Cardiología)",
        appointment.date,
        appointment.start_time,
    )


class TestSchedule:

    def test_registers_pair_at_lead_and_start(self, reminder_scheduler, appointment, patient):
        _schedule(reminder_scheduler, appointment, patient)

        start = combine_local(appointment.date, time(9))
        assert reminder_scheduler.fire_times(appointment.id) == {
            f"reminder-{appointment.id}": start - timedelta(hours=1),
            f"reminder-{appointment.id}-stateAdvance": start,
        }

    def test_persists_reminder_row(self, reminder_scheduler, db_session, appointment, patient):
        _schedule(reminder_scheduler, appointment, patient)

        row = db_session.get(Reminder, appointment.id)
        assert row.email == patient.email
        assert row.sent is False
        assert row.label == f"reminder-{appointment.id}"
        assert row.send_time == time(8)
        expected = combine_local(appointment.date, time(8))
        assert from_db_utc(row.send_at) == expected

    def test_rescheduling_keeps_a_single_pair(self, reminder_scheduler, appointment, patient):
        _schedule(reminder_scheduler, appointment, patient)
        _schedule(reminder_scheduler, appointment, patient)

        assert reminder_scheduler.job_ids() == sorted([
            f"reminder-{appointment.id}",
            f"reminder-{appointment.id}-stateAdvance",
        ])

    def test_start_within_lead_skips_email(self, reminder_scheduler, db_session, appointment, patient):
        soon = (now_local() + timedelta(minutes=30)).replace(second=0, microsecond=0)

        reminder_scheduler.schedule(
            appointment.id, patient.full_name, patient.email, "Laura López",
            soon.date(), soon.time(),
        )

        assert reminder_scheduler.job_ids() == [f"reminder-{appointment.id}-stateAdvance"]
        assert db_session.get(Reminder, appointment.id).sent is True

    def test_custom_lead(self, session_factory, notifier, appointment, patient):
        scheduler = ReminderScheduler(session_factory, notifier, lead=timedelta(minutes=30))
        _schedule(scheduler, appointment, patient)

        start = combine_local(appointment.date, time(9))
        assert scheduler.fire_times(appointment.id)[f"reminder-{appointment.id}"] == start - timedelta(minutes=30)


class TestCancel:

    def test_cancel_removes_jobs_and_row(self, reminder_scheduler, db_session, appointment, patient):
        _schedule(reminder_scheduler, appointment, patient)

        assert reminder_scheduler.cancel(appointment.id) is True

        assert not reminder_scheduler.has_jobs(appointment.id)
        db_session.expire_all()
        assert db_session.get(Reminder, appointment.id) is None

    def test_cancel_is_idempotent(self, reminder_scheduler, appointment, patient):
        _schedule(reminder_scheduler, appointment, patient)
        reminder_scheduler.cancel(appointment.id)

        assert reminder_scheduler.cancel(appointment.id) is False
        assert reminder_scheduler.cancel(9999) is False

    def test_cancel_only_touches_its_own_pair(self, reminder_scheduler, db_session, appointment, patient, professional):
        other = Appointment(
            patient_id=patient.id,
            professional_id=professional.id,
            date=appointment.date,
            start_time=time(11),
            end_time=time(11, 30),
            type=AppointmentType.NORMAL.value,
            state=AppointmentState.PENDING.value,
            express_accepted=False,
        )
        db_session.add(other)
        db_session.commit()
        _schedule(reminder_scheduler, appointment, patient)
        _schedule(reminder_scheduler, other, patient)

        reminder_scheduler.cancel(appointment.id)

        assert reminder_scheduler.has_jobs(other.id)


class TestSendReminder:

    def test_sends_once(self, reminder_scheduler, notifier, db_session, appointment, patient):
        _schedule(reminder_scheduler, appointment, patient)

        reminder_scheduler.send_reminder(appointment.id, patient.full_name, patient.email, "Laura López")
        reminder_scheduler.send_reminder(appointment.id, patient.full_name, patient.email, "Laura López")

        notifier.send_reminder.assert_called_once_with(patient.email, patient.full_name, "Laura López")
        db_session.expire_all()
        assert db_session.get(Reminder, appointment.id).sent is True

    def test_missing_row_for_active_appointment_still_sends(self, reminder_scheduler, notifier, appointment, patient):
        reminder_scheduler.send_reminder(appointment.id, patient.full_name, patient.email, "Laura López")

        notifier.send_reminder.assert_called_once()

    def test_notifier_failure_is_swallowed(self, reminder_scheduler, notifier, appointment, patient):
        _schedule(reminder_scheduler, appointment, patient)
        notifier.send_reminder.side_effect = RuntimeError("SES down")

        reminder_scheduler.send_reminder(appointment.id, patient.full_name, patient.email, "Laura López")


class TestAdvanceState:

    def test_marks_realized_and_drops_row(self, reminder_scheduler, db_session, appointment, patient):
        _schedule(reminder_scheduler, appointment, patient)

        reminder_scheduler.advance_state(appointment.id)

        db_session.expire_all()
        assert db_session.get(Appointment, appointment.id).state == AppointmentState.REALIZED.value
        assert db_session.get(Reminder, appointment.id) is None

    def test_cancelled_appointment_stays_cancelled(self, reminder_scheduler, db_session, appointment, patient):
        _schedule(reminder_scheduler, appointment, patient)
        appointment.state = AppointmentState.CANCELLED.value
        db_session.commit()

        reminder_scheduler.advance_state(appointment.id)

        db_session.expire_all()
        assert db_session.get(Appointment, appointment.id).state == AppointmentState.CANCELLED.value


class TestReloadPending:

    def test_reload_rebuilds_identical_timers(self, reminder_scheduler, session_factory, notifier, appointment, patient):
        _schedule(reminder_scheduler, appointment, patient)
        before = reminder_scheduler.fire_times(appointment.id)

        restarted = ReminderScheduler(session_factory, notifier)
        assert restarted.reload_pending() == 1

        assert restarted.fire_times(appointment.id) == before

    def test_reload_rebuilds_every_pending_appointment(
        self, reminder_scheduler, session_factory, notifier, db_session, appointment, patient, professional
    ):
        appointments = [appointment]
        for hour in (11, 13):
            extra = Appointment(
                patient_id=patient.id,
                professional_id=professional.id,
                date=appointment.date,
                start_time=time(hour),
                end_time=time(hour, 30),
                type=AppointmentType.NORMAL.value,
                state=AppointmentState.CONFIRMED.value,
                express_accepted=False,
            )
            db_session.add(extra)
            db_session.commit()
            appointments.append(extra)

        before = {}
        for booked in appointments:
            _schedule(reminder_scheduler, booked, patient)
            before.update(reminder_scheduler.fire_times(booked.id))

        restarted = ReminderScheduler(session_factory, notifier)
        assert restarted.reload_pending() == len(appointments)

        assert restarted.job_ids() == sorted(before)
        reminders = [job_id for job_id in restarted.job_ids() if not job_id.endswith("-stateAdvance")]
        assert len(reminders) == len(appointments)
        after = {}
        for booked in appointments:
            after.update(restarted.fire_times(booked.id))
        assert after == before

    def test_sent_reminder_only_gets_state_advance(self, reminder_scheduler, session_factory, notifier, appointment, patient):
        _schedule(reminder_scheduler, appointment, patient)
        reminder_scheduler.send_reminder(appointment.id, patient.full_name, patient.email, "Laura López")

        restarted = ReminderScheduler(session_factory, notifier)
        assert restarted.reload_pending() == 0

        assert restarted.job_ids() == [f"reminder-{appointment.id}-stateAdvance"]

    def test_passed_send_time_only_gets_state_advance(self, session_factory, notifier, db_session, appointment, patient):
        db_session.add(Reminder(
            appointment_id=appointment.id,
            send_at=datetime.now(timezone.utc) - timedelta(minutes=5),
            email=patient.email,
            send_time=time(8),
            label=f"reminder-{appointment.id}",
            sent=False,
        ))
        db_session.commit()

        restarted = ReminderScheduler(session_factory, notifier)
        assert restarted.reload_pending() == 0
        assert restarted.job_ids() == [f"reminder-{appointment.id}-stateAdvance"]

    def test_inactive_appointments_are_cleaned_up(self, reminder_scheduler, session_factory, notifier, db_session, appointment, patient):
        _schedule(reminder_scheduler, appointment, patient)
        appointment.state = AppointmentState.CANCELLED.value
        db_session.commit()

        restarted = ReminderScheduler(session_factory, notifier)
        assert restarted.reload_pending() == 0

        assert restarted.job_ids() == []
        db_session.expire_all()
        assert db_session.get(Reminder, appointment.id) is None
