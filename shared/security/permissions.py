"""
Authorization seam for the order and stock core.

The core never stores roles. It asks an Authorizer whether an admin session
may perform an action on a store, and the Authorizer is chosen at startup:

- ClaimsAuthorizer trusts per-store grants embedded in the admin token.
- HttpAuthorizer asks an external RBAC service.
- CachingAuthorizer memoizes either one through a PermissionCache whose
  clock and TTL are injected, and which the app clears on shutdown.
"""
import time
from typing import Callable, Protocol

import httpx
import structlog

from shared.config import settings
from .api_key import internal_headers
from .dependencies import AdminSession

logger = structlog.get_logger(__name__)

OWNER_GRANT = "*"


class Permissions:
    VIEW_ORDERS = "orders:view"
    MANAGE_ORDERS = "orders:manage"
    VIEW_STOCK = "stock:view"
    MANAGE_STOCK = "stock:manage"
    VIEW_PRODUCTS = "products:view"
    MANAGE_PRODUCTS = "products:edit"
    VIEW_PROMOTIONS = "promotions:view"
    MANAGE_PROMOTIONS = "promotions:manage"




class Authorizer(Protocol):
    async def authorize(self, actor: AdminSession, store_id: str, permission: str) -> bool | None:
        """True or False, or None when the decision could not be made. None denies."""
        ...

    async def close(self) -> None:
        ...


class ClaimsAuthorizer:
    """Grants come from the token: {"stores": {store_id: "*" | [permission, ...]}}."""

    async def authorize(self, actor: AdminSession, store_id: str, permission: str) -> bool:
        grant = actor.stores.get(store_id)
        if grant == OWNER_GRANT:
            return True
        return isinstance(grant, (list, tuple)) and permission in grant

    async def close(self) -> None:
        return None


class HttpAuthorizer:
    """
    Delegates to an RBAC service exposing
    GET {base_url}/stores/{store_id}/users/{user_id}/permissions/{permission}
    which answers {"allowed": bool}. Transport errors, 5xx and unreadable
    bodies leave the decision undetermined (None).
    """

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(headers=internal_headers(), timeout=timeout)

    async def authorize(self, actor: AdminSession, store_id: str, permission: str) -> bool | None:
        url = f"{self.base_url}/stores/{store_id}/users/{actor.user_id}/permissions/{permission}"
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
            return bool(resp.json().get("allowed", False))
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("rbac_lookup_failed", store_id=store_id, user_id=actor.user_id,
                           permission=permission, error=str(e))
            return None

    async def close(self) -> None:
        await self._client.aclose()


class PermissionCache:
    """
    Time-boxed decisions keyed by (user, store, permission).

    Expired entries are swept whenever the cache is full; if it is still full
    afterwards the oldest entry makes room.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic, max_entries: int = 4096):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[tuple, tuple[bool, float]] = {}

    def get(self, key: tuple) -> bool | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        allowed, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return allowed

    def set(self, key: tuple, allowed: bool) -> None:
        now = self._clock()
        self._entries.pop(key, None)
        if len(self._entries) >= self.max_entries:
            self._sweep(now)
        while len(self._entries) >= self.max_entries:
            del self._entries[next(iter(self._entries))]
        self._entries[key] = (allowed, now + self.ttl_seconds)

    def _sweep(self, now: float) -> None:
        for key in [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class CachingAuthorizer:
    def __init__(self, inner: Authorizer, cache: PermissionCache):
        self.inner = inner
        self.cache = cache

    async def authorize(self, actor: AdminSession, store_id: str, permission: str) -> bool | None:
        key = (actor.user_id, store_id, permission)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        allowed = await self.inner.authorize(actor, store_id, permission)
        # Undetermined outcomes are retried on the next request
        if allowed is not None:
            self.cache.set(key, allowed)
        return allowed

    async def close(self) -> None:
        self.cache.clear()
        await self.inner.close()


def build_authorizer() -> Authorizer:
    if settings.RBAC_URL:
        cache = PermissionCache(settings.PERMISSION_CACHE_TTL_SECONDS)
        return CachingAuthorizer(HttpAuthorizer(settings.RBAC_URL), cache)
    return ClaimsAuthorizer()
