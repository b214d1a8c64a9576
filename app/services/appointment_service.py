"""
Appointment Lifecycle

State machine for a single appointment ("turno"):

    pending ──> confirmed ──> realized
       │            │
       └────────────┴──> cancelled

Express appointments add the ``express_accepted`` gate: the professional
proposes a concrete time (accept) before the patient can confirm.

Every multi-row write (appointment + payment) happens in one transaction.
Reminder scheduling and e-mails run after the commit and are best-effort:
their failure never undoes a booking that already succeeded.
"""

import logging
from datetime import date, time
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.error_handling import (
    AlreadyAccepted,
    ExpressNotAllowed,
    InternalError,
    InvalidTransition,
    NotAccepted,
    NotFound,
    PatientBlocked,
    SlotTaken,
    ValidationFailed,
)
from app.core.logging import log_audit
from app.models.appointment import (
    Appointment,
    AppointmentState,
    AppointmentType,
    CANCELLABLE_STATES,
)
from app.models.payment import Payment, PaymentState
from app.models.user import Block, User, ROLE_PROFESSIONAL
from app.services import slot_validator
from app.utils.dates import combine_local, now_local

logger = logging.getLogger(__name__)


def describe_professional(professional: User) -> str:
    label = professional.full_name
    if professional.specialty:
        label += f" ({professional.specialty})"
    return label


def advance_to_realized(db: Session, appointment_id: int) -> bool:
    """
    Move an appointment that is still active to ``realized``.

    The state check lives inside the UPDATE itself, so a cancellation that
    committed first always wins over the scheduler's start-time job.
    """
    updated = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.state.in_(CANCELLABLE_STATES),
    ).update({Appointment.state: AppointmentState.REALIZED.value}, synchronize_session=False)
    db.commit()

    if updated:
        log_audit("appointment_realized", None, {"appointment_id": appointment_id})
    return bool(updated)


class AppointmentService:
    def __init__(self, db: Session, scheduler, notifier):
        self.db = db
        self.scheduler = scheduler
        self.notifier = notifier

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_professional(self, email: str) -> User:
        professional = self.db.query(User).filter(
            User.email == email,
            User.role == ROLE_PROFESSIONAL,
        ).first()
        if professional is None:
            raise NotFound("Profesional no encontrado")
        return professional

    def _get_owned(self, appointment_id: int, user: User) -> Appointment:
        """Appointment the user takes part in; anything else is reported as missing."""
        appointment = self.db.get(Appointment, appointment_id)
        if appointment is None or user.id not in (appointment.patient_id, appointment.professional_id):
            raise NotFound()
        return appointment

    def _ensure_not_blocked(self, professional_id: int, patient_id: int):
        blocked = self.db.query(Block.id).filter(
            Block.professional_id == professional_id,
            Block.patient_id == patient_id,
        ).first()
        if blocked is not None:
            raise PatientBlocked()

    @staticmethod
    def _ensure_future(day: date, start: time):
        if combine_local(day, start) <= now_local():
            raise ValidationFailed("No se pueden reservar turnos en el pasado")

    def list_for(self, user: User) -> List[Appointment]:
        return self.db.query(Appointment).filter(
            or_(Appointment.patient_id == user.id, Appointment.professional_id == user.id)
        ).order_by(Appointment.date, Appointment.start_time).all()

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def _new_payment(self, appointment: Appointment) -> Payment:
        return Payment(
            appointment_id=appointment.id,
            amount=settings.DEFAULT_APPOINTMENT_PRICE,
            state=PaymentState.PENDING.value,
        )

    def _lock_professional(self, professional_id: int):
        # Serializes concurrent bookings of the same professional (no-op on SQLite)
        self.db.query(User.id).filter(User.id == professional_id).with_for_update().first()

    def _commit(self, action: str, appointment_id: Optional[int] = None):
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"{action}: slot taken at commit time (appointment {appointment_id})")
            raise SlotTaken()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ {action} failed for appointment {appointment_id}: {e}")
            raise InternalError()

    def _schedule_reminders(self, appointment: Appointment, patient: User, professional: User):
        try:
            self.scheduler.schedule(
                appointment.id,
                patient.full_name,
                patient.email,
                describe_professional(professional),
                appointment.date,
                appointment.start_time,
            )
        except Exception as e:
            logger.error(f"❌ Could not schedule reminders for appointment {appointment.id}: {e}")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def book_normal(self, patient: User, professional_email: str, day: date, start: time, end: time) -> Appointment:
        professional = self._get_professional(professional_email)
        self._ensure_not_blocked(professional.id, patient.id)
        self._ensure_future(day, start)
        slot_validator.ensure_bookable(self.db, professional.id, day, start, end)

        try:
            self._lock_professional(professional.id)
            # Re-check under the lock; the earlier read may be stale
            if slot_validator.has_overlap(self.db, professional.id, day, start, end):
                self.db.rollback()
                raise SlotTaken()

            appointment = Appointment(
                patient_id=patient.id,
                professional_id=professional.id,
                date=day,
                start_time=start,
                end_time=end,
                type=AppointmentType.NORMAL.value,
                state=AppointmentState.PENDING.value,
                express_accepted=False,
            )
            self.db.add(appointment)
            self.db.flush()
            self.db.add(self._new_payment(appointment))
        except IntegrityError:
            self.db.rollback()
            raise SlotTaken()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Error creating appointment: {e}")
            raise InternalError("Error al crear turno")
        self._commit("Booking", appointment.id)
        self.db.refresh(appointment)

        log_audit("appointment_created", patient.id, {
            "appointment_id": appointment.id,
            "professional_id": professional.id,
            "type": appointment.type,
        })

        self._schedule_reminders(appointment, patient, professional)
        self.notifier.send_confirmation(
            patient.email, patient.full_name, appointment, describe_professional(professional)
        )
        return appointment

    def request_express(self, patient: User, professional_email: str) -> Appointment:
        professional = self._get_professional(professional_email)
        self._ensure_not_blocked(professional.id, patient.id)

        check = slot_validator.can_request_express(self.db, professional.id, now_local())
        if not check.ok:
            raise ExpressNotAllowed()

        appointment = Appointment(
            patient_id=patient.id,
            professional_id=professional.id,
            type=AppointmentType.EXPRESS.value,
            state=AppointmentState.PENDING.value,
            express_accepted=False,
        )
        self.db.add(appointment)
        self._commit("Express request")
        self.db.refresh(appointment)

        log_audit("appointment_created", patient.id, {
            "appointment_id": appointment.id,
            "professional_id": professional.id,
            "type": appointment.type,
        })
        self.notifier.send_express_request(professional.email, professional.full_name, patient.full_name)
        return appointment

    def accept_express(
        self, professional: User, appointment_id: int, day: date, start: time, end: time
    ) -> Appointment:
        appointment = self._get_owned(appointment_id, professional)
        if appointment.professional_id != professional.id:
            raise NotFound()
        if not appointment.is_express:
            raise InvalidTransition()
        # Once accepted the proposal is fixed, whatever state the appointment reached since
        if appointment.express_accepted:
            raise AlreadyAccepted()
        if appointment.state != AppointmentState.PENDING.value:
            raise InvalidTransition()
        if start >= end:
            raise ValidationFailed("La hora de inicio debe ser anterior a la hora de fin")
        self._ensure_future(day, start)

        self._lock_professional(professional.id)
        if slot_validator.has_overlap(self.db, professional.id, day, start, end, exclude_id=appointment.id):
            self.db.rollback()
            raise SlotTaken()

        appointment.date = day
        appointment.start_time = start
        appointment.end_time = end
        appointment.express_accepted = True
        self._commit("Express accept", appointment.id)

        log_audit("express_accepted", professional.id, {"appointment_id": appointment.id})

        patient = self.db.get(User, appointment.patient_id)
        self.notifier.send_express_accepted(
            patient.email, patient.full_name, appointment, describe_professional(professional)
        )
        return appointment

    def confirm(self, user: User, appointment_id: int) -> Appointment:
        appointment = self._get_owned(appointment_id, user)

        if appointment.is_express:
            if not appointment.express_accepted:
                raise NotAccepted()
            if appointment.state != AppointmentState.PENDING.value:
                raise InvalidTransition()
            self._ensure_future(appointment.date, appointment.start_time)

            appointment.state = AppointmentState.CONFIRMED.value
            existing = self.db.query(Payment.id).filter(Payment.appointment_id == appointment.id).first()
            if existing is None:
                self.db.add(self._new_payment(appointment))
            self._commit("Express confirm", appointment.id)

            log_audit("appointment_confirmed", user.id, {"appointment_id": appointment.id, "type": "express"})

            patient = self.db.get(User, appointment.patient_id)
            professional = self.db.get(User, appointment.professional_id)
            self._schedule_reminders(appointment, patient, professional)
            self.notifier.send_confirmation(
                patient.email, patient.full_name, appointment, describe_professional(professional)
            )
            return appointment

        # Normal bookings are confirmed by the professional; payment and reminders already exist
        if user.id != appointment.professional_id:
            raise NotFound()
        if appointment.state != AppointmentState.PENDING.value:
            raise InvalidTransition()
        appointment.state = AppointmentState.CONFIRMED.value
        self._commit("Confirm", appointment.id)
        log_audit("appointment_confirmed", user.id, {"appointment_id": appointment.id, "type": "normal"})
        return appointment

    def cancel(self, user: User, appointment_id: int) -> Appointment:
        appointment = self._get_owned(appointment_id, user)
        if appointment.state not in CANCELLABLE_STATES:
            raise InvalidTransition("Solo se pueden cancelar turnos pendientes o confirmados")

        updated = self.db.query(Appointment).filter(
            Appointment.id == appointment.id,
            Appointment.state.in_(CANCELLABLE_STATES),
        ).update({Appointment.state: AppointmentState.CANCELLED.value}, synchronize_session=False)
        if not updated:
            # The start-time job got there first
            self.db.rollback()
            raise InvalidTransition("Solo se pueden cancelar turnos pendientes o confirmados")
        self._commit("Cancel", appointment.id)
        self.db.refresh(appointment)

        log_audit("appointment_cancelled", user.id, {"appointment_id": appointment.id})

        try:
            self.scheduler.cancel(appointment.id)
        except Exception as e:
            logger.error(f"❌ Could not cancel reminders for appointment {appointment.id}: {e}")

        counterpart_id = (
            appointment.professional_id if user.id == appointment.patient_id else appointment.patient_id
        )
        counterpart = self.db.get(User, counterpart_id)
        if counterpart is not None:
            self.notifier.send_cancellation(counterpart.email, counterpart.full_name, appointment)
        return appointment
