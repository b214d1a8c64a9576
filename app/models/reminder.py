from sqlalchemy import Column, String, DateTime, Time, Integer, Boolean, ForeignKey
from app.database import Base


class Reminder(Base):
    """
    Durable half of a reminder pair. Exists while the appointment's timers are
    outstanding so the scheduler can rebuild them after a restart.
    """
    __tablename__ = "recordatorio"

    appointment_id = Column("turno_ID", Integer, ForeignKey("turno.ID"), primary_key=True)
    # Stored in UTC
    send_at = Column("fecha_envio", DateTime(timezone=True), nullable=False, index=True)
    email = Column(String, nullable=False)
    send_time = Column("hora_envio", Time, nullable=False)
    label = Column("mensaje", String, nullable=False)
    # Claimed right before the e-mail goes out
    sent = Column("enviado", Boolean, nullable=False, default=False)
