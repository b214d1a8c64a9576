from datetime import date, time
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from app.core.error_handling import ValidationFailed
from app.dependencies import (
    get_appointment_service,
    get_current_patient,
    get_current_professional,
    get_current_user,
)
from app.models.appointment import AppointmentType
from app.models.user import User
from app.services.appointment_service import AppointmentService

router = APIRouter(tags=["turnos"])


class NewAppointmentRequest(BaseModel):
    emailProfesional: str
    fecha: date
    hora_inicio: time
    hora_fin: time
    tipo: Optional[str] = AppointmentType.NORMAL.value


class ExpressRequest(BaseModel):
    emailProfesional: str


class AcceptExpressRequest(BaseModel):
    turnoId: int
    fecha: date
    inicio: time
    fin: time


class AppointmentIdRequest(BaseModel):
    turnoId: int


def serialize_appointment(appointment) -> dict:
    return {
        "id": appointment.id,
        "paciente_ID": appointment.patient_id,
        "profesional_ID": appointment.professional_id,
        "fecha": appointment.date.isoformat() if appointment.date else None,
        "hora_inicio": appointment.start_time.strftime("%H:%M") if appointment.start_time else None,
        "hora_fin": appointment.end_time.strftime("%H:%M") if appointment.end_time else None,
        "tipo": appointment.type,
        "estado": appointment.state,
        "express_aceptado": appointment.express_accepted,
    }


@router.post("/nuevoTurno", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    body: NewAppointmentRequest,
    current_user: User = Depends(get_current_patient),
    service: AppointmentService = Depends(get_appointment_service),
):
    if body.tipo == AppointmentType.EXPRESS.value:
        raise ValidationFailed("Los turnos express se solicitan en /nuevoTurnoExpress")

    appointment = service.book_normal(
        current_user, body.emailProfesional, body.fecha, body.hora_inicio, body.hora_fin
    )
    return {"message": "Turno creado exitosamente", "result": True, "turnoId": appointment.id}


@router.post("/nuevoTurnoExpress", status_code=status.HTTP_201_CREATED)
@router.post("/solicitarNuevoTurnoExpress", status_code=status.HTTP_201_CREATED)
async def request_express_appointment(
    body: ExpressRequest,
    current_user: User = Depends(get_current_patient),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.request_express(current_user, body.emailProfesional)
    return {"message": "Turno express solicitado", "result": True, "turnoId": appointment.id}


@router.put("/aceptarTurnoExpress")
async def accept_express_appointment(
    body: AcceptExpressRequest,
    current_user: User = Depends(get_current_professional),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.accept_express(current_user, body.turnoId, body.fecha, body.inicio, body.fin)
    return {"message": "Turno express aceptado", "result": True, "turnoId": appointment.id}


@router.put("/confirmarTurnoExpress")
async def confirm_express_appointment(
    body: AppointmentIdRequest,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.confirm(current_user, body.turnoId)
    return {"message": "Turno confirmado", "result": True, "turnoId": appointment.id}


@router.put("/confirmarTurno")
async def confirm_appointment(
    body: AppointmentIdRequest,
    current_user: User = Depends(get_current_professional),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.confirm(current_user, body.turnoId)
    return {"message": "Turno confirmado", "result": True, "turnoId": appointment.id}


@router.put("/cancelarTurno")
async def cancel_appointment(
    body: AppointmentIdRequest,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.cancel(current_user, body.turnoId)
    return {"message": "Turno cancelado", "result": True, "turnoId": appointment.id}


@router.get("/verMisTurnos")
async def list_my_appointments(
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointments = service.list_for(current_user)
    return {"message": "Turnos encontrados", "result": [serialize_appointment(a) for a in appointments]}
