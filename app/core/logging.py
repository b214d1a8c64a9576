"""
Secure Logging Utility

- Patient e-mails and bearer tokens never reach the logs verbatim
- One [AUDIT] JSON line per appointment state transition, block and payment
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

# APScheduler logs every job add/remove at INFO
logging.getLogger("apscheduler").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class SecureLogger:
    """Scrubs contact data and credentials before a message is emitted"""

    EMAIL = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')
    BEARER = re.compile(r'(?i)bearer\s+[A-Za-z0-9._\-]+')
    JWT = re.compile(r'\beyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\b')
    SECRET_KEYS = ("password", "secret", "token", "authorization")

    @classmethod
    def sanitize_message(cls, message: str) -> str:
        message = cls.BEARER.sub('Bearer [token]', message)
        message = cls.JWT.sub('[token]', message)
        message = cls.EMAIL.sub(cls._mask_email, message)

        # Stack traces go to exc_info, never into the message itself
        if '\n' in message:
            message = message.split('\n')[0] + ' [stack trace truncated]'
        return message

    @staticmethod
    def _mask_email(match: "re.Match") -> str:
        """ana.garcia@mail.com -> a***@mail.com, keeps the domain for delivery debugging"""
        local, domain = match.group(0).split('@', 1)
        return f"{local[:1]}***@{domain}"

    @classmethod
    def sanitize_details(cls, details: Dict[str, Any]) -> Dict[str, Any]:
        clean = {}
        for key, value in details.items():
            if any(word in key.lower() for word in cls.SECRET_KEYS):
                clean[key] = "[redacted]"
            elif isinstance(value, str):
                clean[key] = cls.sanitize_message(value)
            else:
                clean[key] = value
        return clean

    @classmethod
    def log(cls, logger: logging.Logger, level: int, message: str, *args, **kwargs):
        logger.log(level, cls.sanitize_message(message), *args, **kwargs)


def log_error(message: str, logger_name: Optional[str] = None, exc_info: bool = False, **kwargs):
    logger = get_logger(logger_name or __name__)
    if exc_info:
        kwargs['exc_info'] = True
    SecureLogger.log(logger, logging.ERROR, message, **kwargs)


def log_audit(event_type: str, user_id: Optional[int], details: Dict[str, Any]):
    """
    Emit one structured audit line.

    Args:
        event_type: appointment_created, appointment_cancelled, payment_registered, ...
        user_id: Acting user, None for events fired by the reminder scheduler
        details: Event payload; e-mails are masked and credential-like keys dropped
    """
    audit_entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "user_id": user_id,
        "details": SecureLogger.sanitize_details(details),
    }
    get_logger("audit").info(f"[AUDIT] {json.dumps(audit_entry, default=str)}")
