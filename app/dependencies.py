from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from app.database import get_db
from app.utils.security import verify_token
from app.models.user import User, ROLE_PATIENT, ROLE_PROFESSIONAL
from app.services.appointment_service import AppointmentService
from app.services.notification_service import NotificationService
from app.services.reminder_scheduler import ReminderScheduler

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="logIn")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Token inválido",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = verify_token(token)
    if payload is None:
        raise credentials_exception

    # Tokens issued by the login service carry "id"; "sub" is accepted too
    user_id = payload.get("id", payload.get("sub"))
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise credentials_exception

    user = db.get(User, user_id)
    if user is None:
        raise credentials_exception

    return user


def require_role(role: str):
    """
    Dependency factory that creates a role-checking dependency.
    Usage: current_user = Depends(require_role(ROLE_PATIENT))
    """
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Solo usuarios con rol {role} pueden acceder a este recurso"
            )
        return current_user
    return role_checker


get_current_patient = require_role(ROLE_PATIENT)
get_current_professional = require_role(ROLE_PROFESSIONAL)


def get_reminder_scheduler(request: Request) -> ReminderScheduler:
    return request.app.state.reminder_scheduler


def get_notifier(request: Request) -> NotificationService:
    return request.app.state.notifier


def get_appointment_service(
    db: Session = Depends(get_db),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
    notifier: NotificationService = Depends(get_notifier),
) -> AppointmentService:
    return AppointmentService(db, scheduler, notifier)
