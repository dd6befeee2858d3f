"""
HS256 access tokens for the two kinds of callers the core serves.

    admin    {"sub": user_id, "role": "admin", "stores": {store_id: "*" | [permission, ...]}}
    customer {"sub": customer_id, "role": "customer", "store_id": store_id}
"""
import os
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt

from shared.config import settings

SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not SECRET_KEY:
    raise ValueError("FATAL ERROR: JWT_SECRET_KEY is not set in the environment!")

ALGORITHM = "HS256"


def create_access_token(data: dict, expires_delta: timedelta = None) -> str:
    """Creates a JWT access token with a UTC expiration."""
    to_encode = data.copy()
    lifetime = expires_delta or timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    to_encode.update({"exp": datetime.now(timezone.utc) + lifetime})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_admin_token(user_id: str, stores: dict | None = None, **kwargs) -> str:
    return create_access_token({"sub": user_id, "role": "admin", "stores": stores or {}}, **kwargs)


def create_customer_token(customer_id: str, store_id: str, **kwargs) -> str:
    # Customers belong to exactly one store
    return create_access_token({"sub": customer_id, "role": "customer", "store_id": store_id}, **kwargs)


def verify_access_token(token: str) -> dict | None:
    """Decodes and verifies the JWT. Returns payload if valid, None if invalid/expired."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
