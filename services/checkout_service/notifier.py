"""
Order notifications (confirmation after checkout, receipts on request).

The payload is the serialized order as the API returns it. Which notifier
runs is decided at startup: a webhook when ORDER_WEBHOOK_URL is set,
otherwise a structured log line.
"""
from typing import Protocol

import httpx
import structlog

from shared.config import settings
from shared.observability import ecomm_notification_failures_total
from shared.security.api_key import internal_headers

logger = structlog.get_logger(__name__)

ORDER_PLACED = "order.placed"
ORDER_RECEIPT = "order.receipt"


class OrderNotifier(Protocol):
    name: str

    async def notify(self, event: str, order: dict) -> None:
        ...

    async def close(self) -> None:
        ...


class LogNotifier:
    name = "log"

    async def notify(self, event: str, order: dict) -> None:
        logger.info(
            "order_notification",
            notification_event=event,
            order_id=order.get("id"),
            customer_id=order.get("customerId"),
            final_amount=order.get("finalAmount"),
        )

    async def close(self) -> None:
        return None


class WebhookNotifier:
    name = "webhook"

    def __init__(self, url: str, client: httpx.AsyncClient | None = None, timeout: float = 5.0):
        self.url = url
        self._client = client or httpx.AsyncClient(headers=internal_headers(), timeout=timeout)

    async def notify(self, event: str, order: dict) -> None:
        resp = await self._client.post(self.url, json={"event": event, "order": order})
        resp.raise_for_status()

    async def close(self) -> None:
        await self._client.aclose()


def build_notifier() -> OrderNotifier:
    if settings.ORDER_WEBHOOK_URL:
        return WebhookNotifier(settings.ORDER_WEBHOOK_URL)
    return LogNotifier()


async def dispatch(notifier: OrderNotifier, event: str, order: dict) -> bool:
    """Best-effort delivery: failures are logged and counted, never raised."""
    try:
        await notifier.notify(event, order)
        return True
    except Exception as e:
        ecomm_notification_failures_total.labels(notifier=notifier.name).inc()
        logger.error(
            "order_notification_failed",
            notification_event=event,
            order_id=order.get("id"),
            notifier=notifier.name,
            error=str(e),
        )
        return False
