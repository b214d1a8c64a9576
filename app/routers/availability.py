from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.error_handling import NotFound
from app.database import get_db
from app.dependencies import get_current_professional, get_current_user
from app.models.user import User, ROLE_PROFESSIONAL
from app.services import availability_service
from app.utils.dates import WEEKDAY_NAMES

router = APIRouter(tags=["disponibilidad"])


class Interval(BaseModel):
    inicio: str
    fin: str


class ScheduleRequest(BaseModel):
    horarios: Dict[str, Optional[List[Interval]]]


@router.post("/establecerDisponibilidadProfesional", status_code=status.HTTP_201_CREATED)
async def set_availability(
    body: ScheduleRequest,
    current_user: User = Depends(get_current_professional),
    db: Session = Depends(get_db)
):
    horarios = {
        day: [interval.model_dump() for interval in intervals or []]
        for day, intervals in body.horarios.items()
    }
    windows = availability_service.replace_schedule(db, current_user.id, horarios)
    return {"message": "Disponibilidad actualizada", "result": True, "cantidad": len(windows)}


@router.get("/verDisponibilidad")
async def get_availability(
    emailProfesional: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    professional = db.query(User).filter(
        User.email == emailProfesional,
        User.role == ROLE_PROFESSIONAL,
    ).first()
    if professional is None:
        raise NotFound("Profesional no encontrado")

    horarios = {name: [] for name in WEEKDAY_NAMES}
    for window in availability_service.list_windows(db, professional.id):
        horarios[WEEKDAY_NAMES[window.weekday]].append({
            "inicio": window.start_time.strftime("%H:%M"),
            "fin": window.end_time.strftime("%H:%M"),
        })
    return {"message": "Disponibilidad encontrada", "result": horarios}
