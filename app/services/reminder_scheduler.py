"""
Reminder Scheduler

Owns the process-wide registry of one-shot timers. Every active appointment
has at most one pair of APScheduler jobs:

- ``reminder-{id}``               fires ``REMINDER_LEAD_MINUTES`` before the start
                                  and e-mails the patient
- ``reminder-{id}-stateAdvance``  fires at the start and marks the appointment
                                  realized

The ``recordatorio`` table is the durable side of the pair. The in-memory
registry is only a cache of what should fire next and is rebuilt from that
table by ``reload_pending()`` when the process boots.

Delivery is at-most-once: the reminder row is claimed (``enviado``) before the
e-mail goes out, so a crash between claim and send loses that reminder rather
than sending it twice after a reload.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Dict, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from sqlalchemy.orm import Session, aliased

from app.config import settings
from app.models.appointment import Appointment, CANCELLABLE_STATES
from app.models.reminder import Reminder
from app.models.user import User
from app.services.appointment_service import advance_to_realized, describe_professional
from app.services.notification_service import NotificationService
from app.utils.dates import clinic_tz, combine_local, from_db_utc, to_utc

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """Schedules, cancels and restores reminder pairs keyed by appointment id"""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        notifier: NotificationService,
        scheduler: Optional[AsyncIOScheduler] = None,
        lead: Optional[timedelta] = None,
    ):
        self.session_factory = session_factory
        self.notifier = notifier
        self.scheduler = scheduler or AsyncIOScheduler(timezone=clinic_tz())
        self.lead = lead if lead is not None else timedelta(minutes=settings.REMINDER_LEAD_MINUTES)

    # ------------------------------------------------------------------
    # Keys and times
    # ------------------------------------------------------------------

    @staticmethod
    def job_id(appointment_id: int) -> str:
        return f"reminder-{appointment_id}"

    @staticmethod
    def state_job_id(appointment_id: int) -> str:
        return f"reminder-{appointment_id}-stateAdvance"

    def reminder_time(self, day: date, start_time: time) -> datetime:
        return combine_local(day, start_time) - self.lead

    # ------------------------------------------------------------------
    # Lifecycle of the timer loop
    # ------------------------------------------------------------------

    def start(self):
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("🚀 Reminder scheduler started")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("🛑 Reminder scheduler stopped")

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def _remove_job(self, job_id: str) -> bool:
        try:
            self.scheduler.remove_job(job_id)
            return True
        except JobLookupError:
            return False

    def _register(
        self,
        appointment_id: int,
        patient_name: str,
        patient_email: str,
        professional_info: str,
        start_at: datetime,
        with_email: bool,
    ):
        # At most one pair per appointment
        self._remove_job(self.job_id(appointment_id))
        self._remove_job(self.state_job_id(appointment_id))

        if with_email:
            self.scheduler.add_job(
                self.send_reminder,
                DateTrigger(run_date=start_at - self.lead),
                id=self.job_id(appointment_id),
                name=f"Reminder e-mail for appointment {appointment_id}",
                args=[appointment_id, patient_name, patient_email, professional_info],
                misfire_grace_time=int(self.lead.total_seconds()) or None,
                replace_existing=True,
            )

        self.scheduler.add_job(
            self.advance_state,
            DateTrigger(run_date=start_at),
            id=self.state_job_id(appointment_id),
            name=f"Mark appointment {appointment_id} realized",
            args=[appointment_id],
            misfire_grace_time=None,
            replace_existing=True,
        )

    def has_jobs(self, appointment_id: int) -> bool:
        return (
            self.scheduler.get_job(self.job_id(appointment_id)) is not None
            or self.scheduler.get_job(self.state_job_id(appointment_id)) is not None
        )

    def fire_times(self, appointment_id: int) -> Dict[str, datetime]:
        times = {}
        for job_id in (self.job_id(appointment_id), self.state_job_id(appointment_id)):
            job = self.scheduler.get_job(job_id)
            if job is not None:
                times[job_id] = job.trigger.run_date
        return times

    def job_ids(self) -> List[str]:
        return sorted(job.id for job in self.scheduler.get_jobs())

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def schedule(
        self,
        appointment_id: int,
        patient_name: str,
        patient_email: str,
        professional_info: str,
        day: date,
        start_time: time,
    ):
        start_at = combine_local(day, start_time)
        send_at = start_at - self.lead
        now = datetime.now(clinic_tz())
        with_email = send_at > now

        self._register(appointment_id, patient_name, patient_email, professional_info, start_at, with_email)
        if with_email:
            logger.info(f"🕒 Reminder for appointment {appointment_id} scheduled at {send_at.isoformat()}")
        else:
            logger.warning(
                f"⚠️ Appointment {appointment_id} starts in less than {self.lead}; no reminder e-mail will be sent"
            )

        db = self.session_factory()
        try:
            db.merge(Reminder(
                appointment_id=appointment_id,
                send_at=to_utc(send_at),
                email=patient_email,
                send_time=send_at.time().replace(tzinfo=None),
                label=self.job_id(appointment_id),
                sent=not with_email,
            ))
            db.commit()
        except Exception as e:
            db.rollback()
            # The timers stay registered; they just won't survive a restart
            logger.error(
                f"❌ Could not persist reminder for appointment {appointment_id}, "
                f"timers are held in memory only: {e}"
            )
        finally:
            db.close()

    def cancel(self, appointment_id: int) -> bool:
        """Drop both timers and the reminder row. Returns False when no timer was registered."""
        removed_email = self._remove_job(self.job_id(appointment_id))
        removed_state = self._remove_job(self.state_job_id(appointment_id))
        # The row can outlive its timers when the process restarted without a reload
        self._delete_row(appointment_id)

        if not (removed_email or removed_state):
            logger.info(f"No scheduled reminder found for appointment {appointment_id}")
            return False

        logger.info(f"Reminder and state advance for appointment {appointment_id} cancelled")
        return True

    def reload_pending(self) -> int:
        """
        Re-register timers from the reminder table. Returns the number of
        reminder e-mails re-armed.

        Rows whose send time is still ahead get both timers. Rows whose send
        time already passed only get the state advance, which fires straight
        away when the appointment start is also behind us.
        """
        now = datetime.now(timezone.utc)
        patient = aliased(User)
        professional = aliased(User)

        db = self.session_factory()
        try:
            rows = (
                db.query(Reminder, Appointment, patient, professional)
                .join(Appointment, Appointment.id == Reminder.appointment_id)
                .join(patient, patient.id == Appointment.patient_id)
                .join(professional, professional.id == Appointment.professional_id)
                .all()
            )

            reminders = 0
            stale = []
            for reminder, appointment, patient_row, professional_row in rows:
                if appointment.state not in CANCELLABLE_STATES or appointment.date is None:
                    stale.append(reminder)
                    continue

                start_at = combine_local(appointment.date, appointment.start_time)
                with_email = not reminder.sent and from_db_utc(reminder.send_at) >= now
                self._register(
                    appointment.id,
                    patient_row.full_name,
                    reminder.email,
                    describe_professional(professional_row),
                    start_at,
                    with_email,
                )
                if with_email:
                    reminders += 1

            for reminder in stale:
                db.delete(reminder)
            if stale:
                db.commit()
                logger.info(f"🧹 Removed {len(stale)} reminder rows of inactive appointments")
        finally:
            db.close()

        logger.info(f"🔄 Reloaded {reminders} pending reminders ({len(rows) - len(stale)} appointments)")
        return reminders

    # ------------------------------------------------------------------
    # Job bodies. A fired timer has no caller, so nothing here raises.
    # ------------------------------------------------------------------

    def send_reminder(self, appointment_id: int, patient_name: str, patient_email: str, professional_info: str):
        db = self.session_factory()
        try:
            claimed = db.query(Reminder).filter(
                Reminder.appointment_id == appointment_id,
                Reminder.sent.is_(False),
            ).update({Reminder.sent: True}, synchronize_session=False)
            db.commit()

            if not claimed:
                if db.get(Reminder, appointment_id) is not None:
                    logger.info(f"Reminder for appointment {appointment_id} already sent, skipping")
                    return
                appointment = db.get(Appointment, appointment_id)
                if appointment is None or appointment.state not in CANCELLABLE_STATES:
                    logger.info(f"Appointment {appointment_id} no longer active, reminder skipped")
                    return
                logger.warning(f"⚠️ No reminder row for appointment {appointment_id}, sending from memory")
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Could not claim reminder for appointment {appointment_id}, sending anyway: {e}")
        finally:
            db.close()

        try:
            if self.notifier.send_reminder(patient_email, patient_name, professional_info):
                logger.info(f"📧 Reminder sent for appointment {appointment_id}")
            else:
                logger.error(f"❌ Reminder e-mail for appointment {appointment_id} was not delivered")
        except Exception as e:
            logger.error(f"❌ Error sending reminder for appointment {appointment_id}: {e}")

    def advance_state(self, appointment_id: int):
        db = self.session_factory()
        try:
            if advance_to_realized(db, appointment_id):
                logger.info(f"🔄 Appointment {appointment_id} marked realized")
            else:
                logger.info(f"Appointment {appointment_id} was not active at start time, state left unchanged")
            db.query(Reminder).filter(Reminder.appointment_id == appointment_id).delete(synchronize_session=False)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Error advancing state of appointment {appointment_id}: {e}")
        finally:
            db.close()

    def _delete_row(self, appointment_id: int):
        db = self.session_factory()
        try:
            db.query(Reminder).filter(Reminder.appointment_id == appointment_id).delete(synchronize_session=False)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Could not delete reminder row for appointment {appointment_id}: {e}")
        finally:
            db.close()
