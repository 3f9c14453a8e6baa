import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value, default=False):
    if value is None:
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def load_config() -> dict:
    """
    Build the startup configuration from the environment (and .env).

    The returned dict is applied to ``app.config`` and handed to the
    services; nothing else reads the environment directly.
    """
    return {
        "SECRET_KEY": os.getenv("SECRET_KEY", "supersecretkey"),
        "JWT_SECRET": os.getenv("JWT_SECRET", "super_jwt_secret"),
        "JWT_EXPIRES_IN_MINUTES": int(os.getenv("JWT_EXPIRES_IN_MINUTES", 60)),
        "MONGODB_URI": os.getenv("MONGODB_URI", "mongodb://localhost:27017/orders_db"),
        "MONGODB_CONNECT": _as_bool(os.getenv("MONGODB_CONNECT"), default=True),

        # Logging
        "LOG_DIR": os.getenv("LOG_DIR", "logs"),
        "LOG_TO_FILES": _as_bool(os.getenv("LOG_TO_FILES"), default=True),
        "ENABLE_SMTP_ALERTS": _as_bool(os.getenv("ENABLE_SMTP_ALERTS")),
        "SMTP_HOST": os.getenv("SMTP_HOST", "smtp.gmail.com"),
        "SMTP_PORT": int(os.getenv("SMTP_PORT", 587)),
        "SMTP_FROM": os.getenv("SMTP_FROM", "noreply@orders.local"),
        "SMTP_TO": os.getenv("SMTP_TO", "admin@orders.local"),
        "SMTP_USER": os.getenv("SMTP_USER"),
        "SMTP_PASS": os.getenv("SMTP_PASS"),

        # Rate limiting
        "RATELIMIT_ENABLED": _as_bool(os.getenv("RATELIMIT_ENABLED"), default=True),
        "LIMIT_DEFAULT_HOURLY": os.getenv("LIMIT_DEFAULT_HOURLY", "200 per hour"),
        "LIMIT_DEFAULT_SECONDLY": os.getenv("LIMIT_DEFAULT_SECONDLY", "10 per second"),

        # Services
        "BULK_UPDATE_WORKERS": int(os.getenv("BULK_UPDATE_WORKERS", 4)),
        "PAYMENT_WEBHOOK_SECRET": os.getenv("PAYMENT_WEBHOOK_SECRET") or None,

        "PORT": int(os.getenv("PORT", 3003)),
    }
