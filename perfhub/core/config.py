import os
import logging
from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Set
from dotenv import load_dotenv

load_dotenv()

# Mirrors the ".indexOn" rules the realtime database is deployed with.
DEFAULT_STORE_INDEXES = (
    "users:role,email;"
    "employees:userId;"
    "goals:employeeId;"
    "feedbacks:employeeId;"
    "performanceMetrics:employeeId;"
    "notifications:userId"
)


def parse_indexes(raw: str) -> Dict[str, Set[str]]:
    """Parse ``collection:field,field;collection:field`` into a mapping."""
    indexes: Dict[str, Set[str]] = {}
    for chunk in raw.split(";"):
        if ":" not in chunk:
            continue
        collection, fields = chunk.split(":", 1)
        names = {f.strip() for f in fields.split(",") if f.strip()}
        if collection.strip() and names:
            indexes.setdefault(collection.strip(), set()).update(names)
    return indexes


def parse_weights(raw: str) -> Dict[str, float]:
    weights = {}
    for pair in raw.split(","):
        if "=" not in pair:
            continue
        name, value = pair.split("=", 1)
        weights[name.strip()] = float(value)
    return weights


class StoreSettings(BaseModel):
    backend: str = Field(default=os.getenv("STORE_BACKEND", "sql"))
    indexes: Dict[str, Set[str]] = Field(
        default_factory=lambda: parse_indexes(os.getenv("STORE_INDEXES", DEFAULT_STORE_INDEXES))
    )
    firebase_credentials: Optional[str] = Field(default=os.getenv("FIREBASE_CREDENTIALS"))
    firebase_database_url: Optional[str] = Field(default=os.getenv("FIREBASE_DATABASE_URL"))


class ScoringSettings(BaseModel):
    scale_max: int = int(os.getenv("SCORE_SCALE_MAX", "5"))
    # Empty means every rating dimension weighs the same.
    weights: Dict[str, float] = Field(default_factory=lambda: parse_weights(os.getenv("SCORE_WEIGHTS", "")))


class Config(BaseModel):
    app_name: str = "PerfHub"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database (identity tables, and records when STORE_BACKEND=sql)
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./perfhub.db")

    # Record store
    store: StoreSettings = StoreSettings()

    # Auth
    secret_key: str = os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 24 hours
    refresh_token_expire_days: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

    # Bootstrap admin, created at startup when no admin profile exists
    bootstrap_admin_email: Optional[str] = os.getenv("BOOTSTRAP_ADMIN_EMAIL")
    bootstrap_admin_password: Optional[str] = os.getenv("BOOTSTRAP_ADMIN_PASSWORD")
    bootstrap_admin_name: str = os.getenv("BOOTSTRAP_ADMIN_NAME", "System Administrator")

    # Profile photos
    media_dir: str = os.getenv("MEDIA_DIR", "./media")
    media_url: str = os.getenv("MEDIA_URL", "/media")

    # Transient notifications pushed to realtime clients
    toast_seconds: float = float(os.getenv("TOAST_SECONDS", "5"))
    toast_close_seconds: float = float(os.getenv("TOAST_CLOSE_SECONDS", "2"))
    # When false, a feedback clear that fails to write stays hidden on the client
    rollback_failed_deletions: bool = os.getenv("ROLLBACK_FAILED_DELETIONS", "true").lower() == "true"

    scoring: ScoringSettings = ScoringSettings()

    version: str = "1.0.0"
    build_id: str = os.getenv("BUILD_ID", "local")
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173,"
                "http://127.0.0.1:3000,http://127.0.0.1:5173",
            ).split(",")
            if o.strip()
        ]
    )

    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))

    # Feature Flags
    enable_demo_notifications: bool = os.getenv("ENABLE_DEMO_NOTIFICATIONS", "false").lower() == "true"


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    _critical_missing = []
    if "dev-only" in settings.secret_key or "change-it" in settings.secret_key:
        _critical_missing.append("SECRET_KEY")
    if settings.store.backend == "firebase" and not settings.store.firebase_database_url:
        _critical_missing.append("FIREBASE_DATABASE_URL")
    if _critical_missing:
        raise RuntimeError(
            f"FATAL: The following settings must be provided for non-development environments: "
            f"{', '.join(_critical_missing)}. Set them as environment variables."
        )
else:
    if "dev-only" in settings.secret_key:
        _logger.warning("⚠ Using insecure default SECRET_KEY; only acceptable in development.")
