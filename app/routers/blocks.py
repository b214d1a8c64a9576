from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.error_handling import NotFound, ValidationFailed
from app.core.logging import log_audit
from app.database import get_db
from app.dependencies import get_current_patient, get_current_professional
from app.models.user import Block, User, ROLE_PATIENT

router = APIRouter(tags=["bloqueos"])


class BlockRequest(BaseModel):
    emailPaciente: str
    motivo: Optional[str] = None


class UnblockRequest(BaseModel):
    emailPaciente: str


def _get_patient(db: Session, email: str) -> User:
    patient = db.query(User).filter(User.email == email, User.role == ROLE_PATIENT).first()
    if patient is None:
        raise NotFound("Paciente no encontrado")
    return patient


@router.post("/bloquearUsuario", status_code=status.HTTP_201_CREATED)
async def block_patient(
    body: BlockRequest,
    current_user: User = Depends(get_current_professional),
    db: Session = Depends(get_db)
):
    patient = _get_patient(db, body.emailPaciente)
    db.add(Block(professional_id=current_user.id, patient_id=patient.id, reason=body.motivo))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationFailed("El paciente ya está bloqueado")

    log_audit("patient_blocked", current_user.id, {"patient_id": patient.id})
    return {"message": "Paciente bloqueado", "result": True}


@router.delete("/desbloquearUsuario")
async def unblock_patient(
    body: UnblockRequest,
    current_user: User = Depends(get_current_professional),
    db: Session = Depends(get_db)
):
    patient = _get_patient(db, body.emailPaciente)
    deleted = db.query(Block).filter(
        Block.professional_id == current_user.id,
        Block.patient_id == patient.id,
    ).delete(synchronize_session=False)
    db.commit()
    if not deleted:
        raise NotFound("El paciente no estaba bloqueado")

    log_audit("patient_unblocked", current_user.id, {"patient_id": patient.id})
    return {"message": "Paciente desbloqueado", "result": True}


@router.get("/verBloqueados")
async def list_blocked(
    current_user: User = Depends(get_current_professional),
    db: Session = Depends(get_db)
):
    rows = db.query(Block, User).join(User, User.id == Block.patient_id).filter(
        Block.professional_id == current_user.id
    ).order_by(Block.id).all()
    return {
        "message": "Pacientes bloqueados",
        "result": [
            {
                "email": patient.email,
                "nombre": patient.full_name,
                "motivo": block.reason,
            }
            for block, patient in rows
        ],
    }


@router.get("/verProfesionalesQueMeTienenBloqueado")
async def list_blocking_professionals(
    current_user: User = Depends(get_current_patient),
    db: Session = Depends(get_db)
):
    rows = db.query(Block, User).join(User, User.id == Block.professional_id).filter(
        Block.patient_id == current_user.id
    ).order_by(Block.id).all()
    return {
        "message": "Profesionales que tienen bloqueado al usuario",
        "result": [
            {
                "email": professional.email,
                "nombre": professional.full_name,
                "motivo": block.reason,
                "fecha": block.created_at,
            }
            for block, professional in rows
        ],
    }
