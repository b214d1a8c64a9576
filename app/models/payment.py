from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.database import Base
import enum


class PaymentState(str, enum.Enum):
    PENDING = "pendiente"
    PAID = "pagado"


class Payment(Base):
    __tablename__ = "pago"

    id = Column("ID", Integer, primary_key=True, autoincrement=True)
    appointment_id = Column("turno_ID", Integer, ForeignKey("turno.ID"), nullable=False, unique=True)
    amount = Column("monto", Integer, nullable=False)
    state = Column("estado", String, nullable=False, default=PaymentState.PENDING.value)
    paid_on = Column("fecha", Date, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
