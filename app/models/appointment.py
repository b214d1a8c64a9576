from sqlalchemy import Column, String, DateTime, Date, Time, Integer, Boolean, ForeignKey, Index, text
from sqlalchemy.sql import func
from app.database import Base
import enum


class AppointmentState(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    REALIZED = "realized"


class AppointmentType(str, enum.Enum):
    NORMAL = "normal"
    EXPRESS = "express"


CANCELLABLE_STATES = (AppointmentState.PENDING.value, AppointmentState.CONFIRMED.value)


class Appointment(Base):
    __tablename__ = "turno"

    id = Column("ID", Integer, primary_key=True, autoincrement=True)
    patient_id = Column("paciente_ID", Integer, ForeignKey("usuario.ID"), nullable=False, index=True)
    professional_id = Column("profesional_ID", Integer, ForeignKey("usuario.ID"), nullable=False, index=True)

    # Null only while an express request waits for the professional's proposal
    date = Column("fecha", Date, nullable=True)
    start_time = Column("hora_inicio", Time, nullable=True)
    end_time = Column("hora_fin", Time, nullable=True)

    type = Column("tipo", String, nullable=False, default=AppointmentType.NORMAL.value)
    state = Column("estado", String, nullable=False, default=AppointmentState.PENDING.value)
    express_accepted = Column("express_aceptado", Boolean, nullable=False, default=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_turno_profesional_fecha", "profesional_ID", "fecha"),
        # Backstop for two requests racing for the identical slot
        Index(
            "uq_turno_profesional_inicio",
            "profesional_ID", "fecha", "hora_inicio",
            unique=True,
            postgresql_where=text("estado <> 'cancelled'"),
            sqlite_where=text("estado <> 'cancelled'"),
        ),
    )

    @property
    def is_express(self) -> bool:
        return self.type == AppointmentType.EXPRESS.value
