"""
Runtime configuration.

Settings are read from the environment once at startup (``Settings.from_env``)
and handed to ``create_app``. Components get the values they need through
their constructors instead of reading ``os.environ`` themselves.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import List

logger = logging.getLogger(__name__)

DEV_JWT_SECRET = "dev-secret-change-in-production"

# Closed set of study result categories stored in history
HISTORY_TYPES = ("explain", "summarize", "flashcards")


def _b(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "on", "y")


def _i(name: str, default: int) -> int:
    try:
        return int(float(os.getenv(name, str(default))))
    except ValueError:
        logger.warning("Invalid integer for %s, using default %s", name, default)
        return default


def _f(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        logger.warning("Invalid number for %s, using default %s", name, default)
        return default


def normalize_database_url(url: str) -> str:
    # Heroku/Render style URLs are not accepted by SQLAlchemy 1.4+
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


@dataclass
class Settings:
    database_url: str = "sqlite:///./study_helper.db"

    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    token_lifetime_days: int = 30
    bcrypt_rounds: int = 10

    default_daily_limit: int = 100
    usage_window_hours: int = 24
    max_input_chars: int = 5000
    strict_quota: bool = False

    groq_api_key: str = ""
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_model: str = "llama-3.3-70b-versatile"
    groq_temperature: float = 0.7
    groq_max_tokens: int = 1024
    groq_timeout_seconds: float = 30.0

    allowed_origins: List[str] = field(default_factory=lambda: ["*"])

    # Per-IP throttles: (max requests, window seconds)
    throttle_enabled: bool = True
    throttle_auth: tuple = (5, 15 * 60)
    throttle_ai: tuple = (10, 60)
    throttle_api: tuple = (100, 15 * 60)

    history_retention_days: int = 90
    run_migrations: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("ALLOWED_ORIGINS", "")
        jwt_secret = os.getenv("JWT_SECRET", "")
        if not jwt_secret:
            logger.warning("JWT_SECRET is not set. Using the development secret; do not run like this in production.")
            jwt_secret = DEV_JWT_SECRET

        return cls(
            database_url=normalize_database_url(os.getenv("DATABASE_URL", cls.database_url)),
            jwt_secret=jwt_secret,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            token_lifetime_days=_i("TOKEN_LIFETIME_DAYS", cls.token_lifetime_days),
            bcrypt_rounds=_i("BCRYPT_ROUNDS", cls.bcrypt_rounds),
            default_daily_limit=_i("DEFAULT_DAILY_LIMIT", cls.default_daily_limit),
            usage_window_hours=_i("USAGE_WINDOW_HOURS", cls.usage_window_hours),
            max_input_chars=_i("MAX_INPUT_CHARS", cls.max_input_chars),
            strict_quota=_b("STRICT_QUOTA", cls.strict_quota),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            groq_base_url=os.getenv("GROQ_BASE_URL", cls.groq_base_url).rstrip("/"),
            groq_model=os.getenv("GROQ_MODEL", cls.groq_model),
            groq_temperature=_f("GROQ_TEMPERATURE", cls.groq_temperature),
            groq_max_tokens=_i("GROQ_MAX_TOKENS", cls.groq_max_tokens),
            groq_timeout_seconds=_f("GROQ_TIMEOUT_SECONDS", cls.groq_timeout_seconds),
            allowed_origins=[o.strip() for o in origins.split(",") if o.strip()] or ["*"],
            throttle_enabled=_b("THROTTLE_ENABLED", cls.throttle_enabled),
            history_retention_days=_i("HISTORY_RETENTION_DAYS", cls.history_retention_days),
            run_migrations=_b("RUN_MIGRATIONS", cls.run_migrations),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
