"""
Notification Service - appointment e-mails via AWS SES

Fire-and-forget from the caller's point of view: every public method catches
its own failures, logs them and returns False. Without AWS credentials the
service runs in dev mode and only logs what it would have sent.
"""

import logging
from typing import Optional

import boto3

from app.config import settings
from app.core.logging import SecureLogger

logger = logging.getLogger(__name__)


def _appointment_line(appointment) -> str:
    if appointment is None or appointment.date is None:
        return "a coordinar"
    when = f"{appointment.date.strftime('%d/%m/%Y')} a las {appointment.start_time.strftime('%H:%M')}"
    if appointment.end_time is not None:
        when += f" hasta las {appointment.end_time.strftime('%H:%M')}"
    return when


class NotificationService:
    def __init__(self, ses_client=None):
        if ses_client is not None:
            self.ses_client = ses_client
        elif settings.is_mail_configured():
            self.ses_client = boto3.client(
                'ses',
                region_name=settings.AWS_REGION,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY
            )
        else:
            self.ses_client = None

    def _send(self, to: str, subject: str, body: str) -> bool:
        if not to:
            logger.warning(f"Skipping '{subject}': recipient has no e-mail")
            return False

        if not self.ses_client:
            SecureLogger.log(logger, logging.INFO, f"[DEV] Would send '{subject}' to {to}")
            return True

        html = f"""
        <html>
        <body style="font-family: 'Segoe UI', Arial, sans-serif; color: #222;">
            <div style="background: #0a3d91; padding: 24px 0; text-align: center;">
                <h1 style="color: #fff; margin: 0;">MediTurnos</h1>
            </div>
            <div style="padding: 32px 24px; font-size: 16px;">{body}</div>
            <p style="color: #888; font-size: 12px; text-align: center;">
                Este correo fue enviado automáticamente, por favor no responder.
            </p>
        </body>
        </html>
        """

        try:
            self.ses_client.send_email(
                Source=settings.SES_SENDER,
                Destination={'ToAddresses': [to]},
                Message={
                    'Subject': {'Data': subject},
                    'Body': {'Html': {'Data': html}}
                }
            )
            SecureLogger.log(logger, logging.INFO, f"📧 '{subject}' sent to {to}")
            return True
        except Exception as e:
            SecureLogger.log(logger, logging.ERROR, f"❌ Error sending '{subject}' to {to}: {e}")
            return False

    def send_reminder(self, email: str, patient_name: str, professional_info: str) -> bool:
        return self._send(
            email,
            "Recordatorio de turno",
            f"<p>Hola {patient_name}, te recordamos que en una hora tenés turno con "
            f"<b>{professional_info}</b>.</p>",
        )

    def send_confirmation(self, email: str, name: str, appointment, professional_info: Optional[str] = None) -> bool:
        with_whom = f" con <b>{professional_info}</b>" if professional_info else ""
        return self._send(
            email,
            "Turno registrado",
            f"<p>Hola {name}, tu turno{with_whom} quedó registrado para el "
            f"{_appointment_line(appointment)}.</p>",
        )

    def send_cancellation(self, email: str, name: str, appointment) -> bool:
        return self._send(
            email,
            "Turno cancelado",
            f"<p>Hola {name}, el turno del {_appointment_line(appointment)} fue cancelado.</p>",
        )

    def send_express_request(self, email: str, professional_name: str, patient_name: str) -> bool:
        return self._send(
            email,
            "Nueva solicitud de turno express",
            f"<p>Hola {professional_name}, {patient_name} solicitó un turno express. "
            f"Ingresá a MediTurnos para proponer un horario.</p>",
        )

    def send_express_accepted(self, email: str, name: str, appointment, professional_info: str) -> bool:
        return self._send(
            email,
            "Tu turno express fue aceptado",
            f"<p>Hola {name}, <b>{professional_info}</b> propuso atenderte el "
            f"{_appointment_line(appointment)}. Confirmá el turno para reservarlo.</p>",
        )
