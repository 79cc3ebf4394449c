import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class LeavePolicySettings(BaseModel):
    """
    Organisation-wide leave policy constants.

    Passed explicitly into the leave services; nothing in the engine reads
    these from module state.
    """
    default_category: str = Field(default=os.getenv("LEAVE_DEFAULT_CATEGORY", "Core"))
    probation_category: str = Field(default=os.getenv("LEAVE_PROBATION_CATEGORY", "Core Probation"))
    contractual_category: str = Field(default=os.getenv("LEAVE_CONTRACTUAL_CATEGORY", "Contractual"))
    director_keyword: str = "director"

    # Probation / contractual accrual: 1 casual leave per 45 days of service
    days_per_casual_accrual: int = 45
    contractual_privilege_per_month: float = 1.0

    # Year-end close
    fresh_casual_entitlement: float = 8.0
    privilege_accrual_divisor: float = 12.0
    privilege_cap: float = 300.0
    sick_annual_credit_units: float = 20.0
    sick_cap_units: float = 480.0

    # Sick leave is accounted in half-day units
    sick_units_per_day: int = 2


class SMTPSettings(BaseModel):
    host: str = Field(default=os.getenv("SMTP_HOST", "localhost"))
    port: int = Field(default=int(os.getenv("SMTP_PORT", "465")))
    user: str = Field(default=os.getenv("SMTP_USER", ""))
    password: str = Field(default=os.getenv("SMTP_PASSWORD", ""))
    from_email: str = Field(default=os.getenv("SMTP_FROM", ""))
    from_name: str = "HRMS System"
    use_ssl: bool = Field(default=_env_flag("SMTP_USE_SSL", "true"))
    timeout_seconds: int = 10


class Config(BaseModel):
    app_name: str = "HRMS Leave API"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./database.db")

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS: comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

    rate_limit_enabled: bool = _env_flag("RATE_LIMIT_ENABLED", "true")
    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))

    # Leave documents (medical certificates etc.)
    upload_dir: str = os.getenv("UPLOAD_DIR", "uploads/leave_docs")
    document_url_path: str = os.getenv("DOCUMENT_URL_PATH", "/admin/leave_docs")

    # Notifications
    notifications_enabled: bool = _env_flag("NOTIFICATIONS_ENABLED", "true")
    smtp: SMTPSettings = SMTPSettings()

    # Seed the default leave configuration on startup when the table is empty
    seed_leave_configuration: bool = _env_flag("SEED_LEAVE_CONFIGURATION", "true")

    leave_policy: LeavePolicySettings = LeavePolicySettings()

    # Admin-type flag value granting organisation-wide report access
    admin_type_flag: Optional[str] = "1"


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment == "production":
    if settings.notifications_enabled and not (settings.smtp.user and settings.smtp.password):
        raise RuntimeError(
            "FATAL: SMTP_USER and SMTP_PASSWORD must be set when notifications are enabled in production."
        )
elif settings.notifications_enabled and not settings.smtp.user:
    _logger.warning("⚠ SMTP credentials not configured, leave emails will be skipped.")
