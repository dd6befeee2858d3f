from dataclasses import dataclass, field

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer

from .jwt_handler import verify_access_token

# Defines the expected header format (Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

ADMIN_COOKIE = "admin_token"
CUSTOMER_COOKIE = "customer_token"


@dataclass(frozen=True)
class AdminSession:
    user_id: str
    stores: dict = field(default_factory=dict)


@dataclass(frozen=True)
class CustomerSession:
    customer_id: str
    store_id: str


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _decode(request: Request, token: str | None, cookie_name: str, role: str) -> dict:
    token = token or request.cookies.get(cookie_name)
    if not token:
        raise _unauthorized()

    payload = verify_access_token(token)
    if payload is None or payload.get("role") != role or not payload.get("sub"):
        raise _unauthorized()
    return payload


async def get_admin_session(request: Request, token: str = Depends(oauth2_scheme)) -> AdminSession:
    """Dependency to validate an admin JWT (header or cookie)."""
    payload = _decode(request, token, ADMIN_COOKIE, "admin")
    session = AdminSession(user_id=str(payload["sub"]), stores=payload.get("stores") or {})
    # Store in request state for downstream use (like rate limiting)
    request.state.user_id = session.user_id
    return session


async def get_customer_session(
    request: Request, store_id: str, token: str = Depends(oauth2_scheme)
) -> CustomerSession:
    """Dependency to validate a customer JWT bound to the store in the path."""
    payload = _decode(request, token, CUSTOMER_COOKIE, "customer")
    if payload.get("store_id") != store_id:
        raise _unauthorized("Unauthorized")
    session = CustomerSession(customer_id=str(payload["sub"]), store_id=store_id)
    request.state.user_id = session.customer_id
    return session


def require_permission(permission: str):
    """
    Dependency factory: resolves the admin session and asks the app's
    Authorizer whether it holds `permission` on the store in the path.
    """
    async def dependency(
        request: Request,
        store_id: str,
        session: AdminSession = Depends(get_admin_session),
    ) -> AdminSession:
        authorizer = request.app.state.authorizer
        if not await authorizer.authorize(session, store_id, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return session

    return dependency
