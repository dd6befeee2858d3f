import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SERVICE_NAME = os.getenv("SERVICE_NAME", "storefront_orders")

# Database
DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5432")
DB_NAME = os.getenv("POSTGRES_DB", "storefront")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
DB_ECHO = _env_bool("DB_ECHO", False)
# Fresh connection per session; for tests and for running behind an external pooler
DB_POOL_DISABLED = _env_bool("DB_POOL_DISABLED", False)

# Transactions
CHECKOUT_TIMEOUT_SECONDS = float(os.getenv("CHECKOUT_TIMEOUT_SECONDS", "10"))
TRANSITION_TIMEOUT_SECONDS = float(os.getenv("TRANSITION_TIMEOUT_SECONDS", "10"))

# Security
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "60"))
CHECKOUT_RATE_LIMIT = os.getenv("CHECKOUT_RATE_LIMIT", "10/minute")
RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", True)
RBAC_URL = os.getenv("RBAC_URL", "")
PERMISSION_CACHE_TTL_SECONDS = float(os.getenv("PERMISSION_CACHE_TTL_SECONDS", "300"))

# Notifications
ORDER_WEBHOOK_URL = os.getenv("ORDER_WEBHOOK_URL", "")

# Observability
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "")
