from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from app.database import Base


ROLE_PATIENT = "paciente"
ROLE_PROFESSIONAL = "profesional"


class User(Base):
    __tablename__ = "usuario"

    id = Column("ID", Integer, primary_key=True, autoincrement=True)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column("nombre", String, nullable=True)
    last_name = Column("apellido", String, nullable=True)
    role = Column("rol", String, nullable=False)
    specialty = Column("especialidad", String, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part) or self.email


class Block(Base):
    """A professional refusing bookings from a given patient."""
    __tablename__ = "bloqueo"

    id = Column("ID", Integer, primary_key=True, autoincrement=True)
    professional_id = Column("profesional_ID", Integer, ForeignKey("usuario.ID"), nullable=False, index=True)
    patient_id = Column("paciente_ID", Integer, ForeignKey("usuario.ID"), nullable=False, index=True)
    reason = Column("motivo", Text, nullable=True)
    created_at = Column("fecha", DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("profesional_ID", "paciente_ID", name="uq_bloqueo_par"),
    )
