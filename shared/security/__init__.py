from .jwt_handler import create_access_token, create_admin_token, create_customer_token, verify_access_token
from .dependencies import (
    AdminSession,
    CustomerSession,
    get_admin_session,
    get_customer_session,
    require_permission,
)
from .permissions import Permissions, build_authorizer
from .rate_limiter import limiter, user_id_or_ip

__all__ = [
    "create_access_token",
    "create_admin_token",
    "create_customer_token",
    "verify_access_token",
    "AdminSession",
    "CustomerSession",
    "get_admin_session",
    "get_customer_session",
    "require_permission",
    "Permissions",
    "build_authorizer",
    "limiter",
    "user_id_or_ip"
]
