from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from shared.config import settings
from .jwt_handler import verify_access_token


def user_id_or_ip(request: Request) -> str:
    """
    Key function for SlowAPI.
    Extracts the subject from the bearer token or session cookie if available.
    Falls back to the client's IP address if unauthenticated.
    """
    token = None
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header.split(" ")[1]
    else:
        token = request.cookies.get("customer_token") or request.cookies.get("admin_token")

    if token:
        payload = verify_access_token(token)
        if payload and "sub" in payload:
            return f"{payload.get('role', 'user')}:{payload['sub']}"

    # Fallback to IP address (handles proxies if X-Forwarded-For is set correctly by Uvicorn)
    return f"ip:{get_remote_address(request)}"


# Initialize the Limiter with our custom key function
limiter = Limiter(key_func=user_id_or_ip, enabled=settings.RATE_LIMIT_ENABLED)
