"""
OrderStatusMachine: legal order status transitions and their stock side effects.

    cart -> processing -> shipped -> completed
                 \\            \\
                  +-> cancelled <-+

`transition` never commits. It is meant to run inside one transaction with
everything else the caller writes, so a failure at any step leaves no stock
movement, history row or status change behind.
"""
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import InvalidTransition
from shared.observability import ecomm_order_transitions_total
from services.stock_service.ledger import Originator, StockLedger

from .models import Order, OrderStatus, OrderStatusHistory
from .repository import OrderRepository

logger = structlog.get_logger(__name__)

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.CART: frozenset({OrderStatus.PROCESSING}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def allowed_targets(current) -> frozenset[OrderStatus]:
    return TRANSITIONS.get(OrderStatus(current), frozenset())


def can_transition(current, target) -> bool:
    try:
        return OrderStatus(target) in allowed_targets(current)
    except ValueError:
        return False


class OrderStatusMachine:

    def __init__(self, ledger: StockLedger | None = None):
        self.ledger = ledger or StockLedger()

    async def transition(
        self,
        db: AsyncSession,
        order: Order,
        target,
        reason: str | None,
        originator: Originator,
    ) -> OrderStatusHistory:
        current = OrderStatus(order.status)
        try:
            target = OrderStatus(target)
        except ValueError:
            raise InvalidTransition(current.value, str(target), "unknown status") from None

        if target not in allowed_targets(current):
            raise InvalidTransition(current.value, target.value)

        # Resolve (and lock) every stock row before touching anything
        stock_items = {}
        if target is not OrderStatus.PROCESSING and order.items:
            stock_items = await self.ledger.resolve_many(
                db, order.store_id, [item.variant_id for item in order.items]
            )

        if not await OrderRepository.claim_status(db, order.id, current.value, target.value):
            await db.refresh(order, attribute_names=["status"])
            raise InvalidTransition(current.value, target.value, f"order is already {order.status}")
        await db.refresh(order, attribute_names=["status", "updated_at"])

        for item in order.items:
            stock_item = stock_items.get(item.variant_id)
            args = (db, item.variant_id, order.store_id, item.quantity, order.id, originator)
            if target is OrderStatus.SHIPPED:
                await self.ledger.consume_on_ship(*args, stock_item=stock_item)
            elif target is OrderStatus.COMPLETED:
                await self.ledger.finalize(*args, stock_item=stock_item)
            elif target is OrderStatus.CANCELLED:
                await self.ledger.release(*args, stock_item=stock_item)

        entry = await OrderRepository.add_history(db, OrderStatusHistory(
            order_id=order.id,
            status=target.value,
            originator_id=originator.id,
            originator_type=originator.type.value,
            reason=reason or f"Order status updated to {target.value}",
        ))

        ecomm_order_transitions_total.labels(from_status=current.value, to_status=target.value).inc()
        logger.info(
            "order_status_changed",
            order_id=order.id,
            store_id=order.store_id,
            from_status=current.value,
            to_status=target.value,
            originator_type=originator.type.value,
            originator_id=originator.id,
        )
        return entry
