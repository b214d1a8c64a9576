"""
Error Handling & Sanitization
Typed booking failures and leak-free internal errors

- Business-rule conflicts map to 400 with a distinguishable error code
- Missing or foreign resources map to 404
- Anything unexpected becomes a generic 500 with an error_id; details only in logs
"""

import logging
import uuid
from typing import Optional, Dict, Any
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logging import log_error

logger = logging.getLogger(__name__)


class AppointmentError(Exception):
    """Base class for failures reported to the caller"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "AppointmentError"
    default_message = "No se pudo procesar el turno"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(AppointmentError):
    code = "ValidationError"
    default_message = "Faltan datos obligatorios"


class NoAvailability(AppointmentError):
    code = "NoAvailability"
    default_message = "El profesional no tiene disponibilidad en ese horario"


class SlotTaken(AppointmentError):
    code = "SlotTaken"
    default_message = "Ya existe un turno en ese horario"


class AlreadyAccepted(AppointmentError):
    code = "AlreadyAccepted"
    default_message = "El turno express ya fue aceptado"


class NotAccepted(AppointmentError):
    code = "NotAccepted"
    default_message = "El turno express todavía no fue aceptado por el profesional"


class InvalidTransition(AppointmentError):
    code = "InvalidTransition"
    default_message = "El turno no admite esa operación en su estado actual"


class ExpressNotAllowed(AppointmentError):
    code = "ExpressNotAllowed"
    default_message = "El profesional está atendiendo en su horario habitual, solicite un turno normal"


class PatientBlocked(AppointmentError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "PatientBlocked"
    default_message = "El profesional no acepta turnos de este paciente"


class NotFound(AppointmentError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NotFound"
    default_message = "Turno no encontrado"


class InternalError(AppointmentError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "InternalError"
    default_message = "Error interno"


class ErrorSanitizer:
    """Sanitizes errors to prevent information leakage"""

    @staticmethod
    def sanitize_error(error: Exception) -> Dict[str, Any]:
        """
        Build the client-facing body for an error

        Typed booking failures keep their message; everything else is
        replaced by a generic message so store internals never leak.
        """
        if isinstance(error, AppointmentError) and not isinstance(error, InternalError):
            return {
                "message": error.message,
                "result": False,
                "error": error.code,
                "status_code": error.status_code,
            }

        return {
            "message": InternalError.default_message,
            "result": False,
            "error": InternalError.code,
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "error_id": ErrorSanitizer._generate_error_id(),
        }

    @staticmethod
    def _generate_error_id() -> str:
        """Generate a unique error ID for tracking"""
        return str(uuid.uuid4())[:8]


def _to_response(body: Dict[str, Any]) -> JSONResponse:
    status_code = body.pop("status_code")
    return JSONResponse(status_code=status_code, content=body)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Catches anything the routers did not translate and answers with a
    sanitized 500 while the full traceback goes to the log
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            body = ErrorSanitizer.sanitize_error(e)
            log_error(
                f"Unhandled exception [{body.get('error_id')}] on {request.url.path}: "
                f"{type(e).__name__}: {e}",
                logger_name="error_handler",
                exc_info=True
            )
            return _to_response(body)


async def appointment_error_handler(request: Request, exc: AppointmentError) -> JSONResponse:
    body = ErrorSanitizer.sanitize_error(exc)
    if body["error"] == InternalError.code:
        log_error(
            f"Internal error [{body['error_id']}] on {request.url.path}: {exc.message}",
            logger_name="error_handler"
        )
    else:
        logger.info(f"{request.url.path} rejected: {exc.code}")
    return _to_response(body)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()]
    logger.info(f"{request.url.path} rejected: invalid fields {fields}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "message": ValidationFailed.default_message,
            "result": False,
            "error": ValidationFailed.code,
            "fields": fields,
        },
    )


HTTP_ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: "Unauthorized",
    status.HTTP_403_FORBIDDEN: "Forbidden",
    status.HTTP_404_NOT_FOUND: NotFound.code,
    status.HTTP_405_METHOD_NOT_ALLOWED: "MethodNotAllowed",
}


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Auth, role and routing failures raised by FastAPI itself, in the same body as every other error"""
    logger.info(f"{request.url.path} rejected: HTTP {exc.status_code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "message": exc.detail,
            "result": False,
            "error": HTTP_ERROR_CODES.get(exc.status_code, "HTTPError"),
        },
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_exception_handler(AppointmentError, appointment_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
