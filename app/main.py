from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from app.config import settings
from app.core.error_handling import register_exception_handlers
from app.core.logging import get_logger
from app.database import Base, SessionLocal, engine
from app.services.notification_service import NotificationService
from app.services.reminder_scheduler import ReminderScheduler
from app.routers import (
    appointments,
    availability,
    blocks,
    payments,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Creates tables, builds the notifier and reminder scheduler, and restores
    every outstanding reminder from the database before serving requests.
    """
    logger.info("🚀 Starting MediTurnos backend...")

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("✅ Database tables created")
    except Exception as e:
        logger.error(f"❌ Failed to create tables: {e}")

    notifier = NotificationService()
    reminder_scheduler = ReminderScheduler(SessionLocal, notifier)
    app.state.notifier = notifier
    app.state.reminder_scheduler = reminder_scheduler

    if settings.SCHEDULER_ENABLED:
        reminder_scheduler.start()
        try:
            restored = reminder_scheduler.reload_pending()
            logger.info(f"✅ {restored} reminders restored")
        except Exception as e:
            logger.error(f"❌ Could not restore pending reminders: {e}")
    else:
        logger.warning("⚠️  Reminder scheduler disabled (SCHEDULER_ENABLED=false)")

    yield

    logger.info("🛑 Shutting down MediTurnos backend...")
    reminder_scheduler.shutdown()
    logger.info("✅ Shutdown complete")


app = FastAPI(
    title="MediTurnos",
    description="Turnos médicos: reservas, turnos express, recordatorios y pagos",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(appointments.router)
app.include_router(availability.router)
app.include_router(payments.router)
app.include_router(blocks.router)


@app.get("/")
async def root():
    return {
        "message": "MediTurnos API",
        "version": "1.0.0",
        "status": "operational"
    }


@app.get("/ping")
async def ping():
    return {"message": "pong", "result": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
