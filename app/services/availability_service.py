"""
Availability Service

A professional's weekly schedule is replaced wholesale on every submission:
delete all windows, insert the new set, in one transaction. Windows are not
checked against each other.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.error_handling import InternalError, ValidationFailed
from app.models.availability import Availability
from app.utils.dates import parse_time, parse_weekday

logger = logging.getLogger(__name__)


def replace_schedule(db: Session, professional_id: int, horarios: Dict[str, Optional[List[dict]]]) -> List[Availability]:
    windows = []
    try:
        for day_name, intervals in (horarios or {}).items():
            weekday = parse_weekday(day_name)
            for interval in intervals or []:
                start = parse_time(interval["inicio"])
                end = parse_time(interval["fin"])
                if start >= end:
                    raise ValueError(f"{day_name}: {interval['inicio']} no es anterior a {interval['fin']}")
                windows.append(Availability(
                    professional_id=professional_id,
                    weekday=weekday,
                    start_time=start,
                    end_time=end,
                ))
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationFailed(f"Horarios inválidos: {e}")

    if not windows:
        raise ValidationFailed("No se proporcionaron horarios válidos")

    try:
        db.query(Availability).filter(Availability.professional_id == professional_id).delete(
            synchronize_session=False
        )
        db.add_all(windows)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error replacing availability for professional {professional_id}: {e}")
        raise InternalError("Error al actualizar disponibilidad")

    logger.info(f"Availability replaced for professional {professional_id}: {len(windows)} windows")
    return windows


def list_windows(db: Session, professional_id: int) -> List[Availability]:
    return db.query(Availability).filter(
        Availability.professional_id == professional_id
    ).order_by(Availability.weekday, Availability.start_time).all()
