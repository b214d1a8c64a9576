from sqlalchemy import Column, Integer, Time, ForeignKey, Index
from app.database import Base


class Availability(Base):
    """Weekly recurring window; weekday follows date.weekday() (0=Monday)."""
    __tablename__ = "disponibilidad"

    id = Column("ID", Integer, primary_key=True, autoincrement=True)
    professional_id = Column("profesional_ID", Integer, ForeignKey("usuario.ID"), nullable=False)
    weekday = Column("dia_semana", Integer, nullable=False)
    start_time = Column("hora_inicio", Time, nullable=False)
    end_time = Column("hora_fin", Time, nullable=False)

    __table_args__ = (
        Index("idx_disponibilidad_profesional_dia", "profesional_ID", "dia_semana"),
    )
