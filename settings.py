"""
Runtime configuration

Every setting is read from the environment once, at import time.
"""
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str):
    return [part.strip() for part in os.getenv(name, default).split(",") if part.strip()]


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./shop.db")

SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", 60))

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))

CORS_ORIGINS = _env_list("CORS_ORIGINS", "*")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = _env_bool("LOG_JSON", True)

PORT = int(os.getenv("PORT", 8000))

SUPPORTED_PAYMENT_METHODS = _env_list(
    "SUPPORTED_PAYMENT_METHODS", "credit_card,debit_card,paypal,bank_transfer"
)
