"""
Application Configuration Settings
"""

from pydantic_settings import BaseSettings
from typing import List, Literal
import os


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Fund Approval System"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./fund_approval.db"

    # JWT (tokens are issued by the identity service, we only verify them)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Approval routing
    APPROVALS_ALLOW_FALLBACK_LOOKUP: bool = True
    APPROVALS_RESUBMIT_REENTRY: Literal["restart", "resume"] = "restart"

    # Delegations
    DELEGATION_MAX_HOPS: int = 5
    DELEGATION_MAX_DAYS: int = 30

    # SMTP Configuration
    SMTP_SERVER: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    FROM_EMAIL: str = ""
    FROM_NAME: str = "Fund Approval System"

    # Email outbox drainer
    EMAIL_OUTBOX_WORKER_ENABLED: bool = False
    EMAIL_OUTBOX_POLL_SECONDS: int = 8
    EMAIL_OUTBOX_BATCH_SIZE: int = 20
    EMAIL_OUTBOX_MAX_ATTEMPTS: int = 5

    # Links rendered into approver emails
    FRONTEND_BASE_URL: str = "http://localhost:3000"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8000"  # Comma-separated string

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert comma-separated string to list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Create settings instance
settings = Settings()


os.makedirs("logs", exist_ok=True)
