from app.models.user import User, Block
from app.models.availability import Availability
from app.models.appointment import Appointment, AppointmentState, AppointmentType
from app.models.payment import Payment, PaymentState
from app.models.reminder import Reminder

__all__ = [
    "User",
    "Block",
    "Availability",
    "Appointment",
    "AppointmentState",
    "AppointmentType",
    "Payment",
    "PaymentState",
    "Reminder",
]
