import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL", "sqlite:///./mediturnos.db")

    # Every wall-clock computation (weekday, reminders, express checks) uses this zone
    TIMEZONE: str = os.getenv("TIMEZONE", "America/Argentina/Buenos_Aires")

    REMINDER_LEAD_MINUTES: int = int(os.getenv("REMINDER_LEAD_MINUTES", "60"))
    SCHEDULER_ENABLED: bool = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"

    DEFAULT_APPOINTMENT_PRICE: int = int(os.getenv("DEFAULT_APPOINTMENT_PRICE", "5000"))

    SESSION_SECRET: Optional[str] = os.getenv("SESSION_SECRET")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")

    AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")
    AWS_ACCESS_KEY_ID: Optional[str] = os.getenv("AWS_ACCESS_KEY_ID")
    AWS_SECRET_ACCESS_KEY: Optional[str] = os.getenv("AWS_SECRET_ACCESS_KEY")
    SES_SENDER: str = os.getenv("SES_SENDER", "MediTurnos <noreply@mediturnos.com>")

    CORS_ORIGINS: list = ["http://localhost:5173", "https://mediturnos-eta.vercel.app"]

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def validate_database_url(self):
        if not self.DATABASE_URL:
            raise ValueError(
                "DATABASE_URL environment variable is required for database operations. "
                "Please set it to your PostgreSQL connection string."
            )

    def is_mail_configured(self) -> bool:
        return bool(self.AWS_ACCESS_KEY_ID and self.AWS_SECRET_ACCESS_KEY)

    class Config:
        env_file = ".env"


settings = Settings()
