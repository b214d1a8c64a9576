import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.error_handling import InvalidTransition, NotFound
from app.core.logging import log_audit
from app.database import get_db
from app.dependencies import get_current_patient, get_current_professional
from app.models.appointment import Appointment
from app.models.payment import Payment, PaymentState
from app.models.user import User
from app.utils.dates import now_local

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pagos"])


class PayRequest(BaseModel):
    turnoId: int


def serialize_payment(payment: Payment, appointment: Appointment) -> dict:
    return {
        "id": payment.id,
        "turnoId": payment.appointment_id,
        "monto": payment.amount,
        "estado": payment.state,
        "fechaPago": payment.paid_on.isoformat() if payment.paid_on else None,
        "fechaTurno": appointment.date.isoformat() if appointment.date else None,
        "paciente_ID": appointment.patient_id,
        "profesional_ID": appointment.professional_id,
    }


@router.get("/VerPagos")
async def list_patient_payments(
    current_user: User = Depends(get_current_patient),
    db: Session = Depends(get_db)
):
    rows = db.query(Payment, Appointment).join(
        Appointment, Appointment.id == Payment.appointment_id
    ).filter(Appointment.patient_id == current_user.id).order_by(Payment.id).all()
    return {"message": "Pagos encontrados", "result": [serialize_payment(p, a) for p, a in rows]}


@router.get("/VerPagosProfesional")
async def list_professional_payments(
    current_user: User = Depends(get_current_professional),
    db: Session = Depends(get_db)
):
    rows = db.query(Payment, Appointment).join(
        Appointment, Appointment.id == Payment.appointment_id
    ).filter(Appointment.professional_id == current_user.id).order_by(Payment.id).all()
    return {"message": "Pagos encontrados", "result": [serialize_payment(p, a) for p, a in rows]}


@router.put("/PagarTurno")
async def pay_appointment(
    body: PayRequest,
    current_user: User = Depends(get_current_patient),
    db: Session = Depends(get_db)
):
    row = db.query(Payment, Appointment).join(
        Appointment, Appointment.id == Payment.appointment_id
    ).filter(
        Payment.appointment_id == body.turnoId,
        Appointment.patient_id == current_user.id,
    ).first()
    if row is None:
        raise NotFound("Pago no encontrado")

    payment, appointment = row
    if payment.state == PaymentState.PAID.value:
        raise InvalidTransition("El turno ya fue pagado")

    payment.state = PaymentState.PAID.value
    payment.paid_on = now_local().date()
    db.commit()
    db.refresh(payment)

    log_audit("payment_registered", current_user.id, {
        "appointment_id": appointment.id,
        "amount": payment.amount,
    })
    logger.info(f"💳 Payment registered for appointment {appointment.id}")
    return {"message": "Pago registrado", "result": True, "turnoId": appointment.id}
