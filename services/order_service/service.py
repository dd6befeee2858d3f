import math
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import settings
from shared.config.database import run_in_transaction
from shared.errors import InvalidInput, InvalidTransition, OrderNotFound
from shared.security import AdminSession
from services.stock_service.ledger import Originator

from .models import Order, OrderStatus
from .repository import OrderRepository
from .schemas import OrderStatusUpdate
from .status_machine import OrderStatusMachine, can_transition

status_machine = OrderStatusMachine()


class OrderService:

    @staticmethod
    async def get_order(db: AsyncSession, store_id: str, order_id: str) -> Order:
        order = await OrderRepository.get_order(db, order_id, store_id=store_id, refresh=True)
        if not order:
            raise OrderNotFound(order_id)
        return order

    @staticmethod
    async def list_orders(
        db: AsyncSession, store_id: str, status: Optional[str] = None, page: int = 1, limit: int = 20
    ) -> dict:
        if status is not None:
            try:
                status = OrderStatus(status).value
            except ValueError:
                raise InvalidInput(f"Invalid status {status}") from None
        orders, total = await OrderRepository.list_orders(
            db, store_id, status=status, offset=(page - 1) * limit, limit=limit
        )
        return {
            "items": orders,
            "total_count": total,
            "total_pages": math.ceil(total / limit),
            "current_page": page,
        }

    @staticmethod
    async def update_status(
        db: AsyncSession, store_id: str, order_id: str, data: OrderStatusUpdate, admin: AdminSession
    ) -> Order:
        try:
            target = OrderStatus(data.status)
        except ValueError:
            raise InvalidInput("Invalid status") from None
        if target is OrderStatus.CART:
            raise InvalidInput("Invalid status")

        async def work(tx: AsyncSession):
            order = await OrderRepository.get_order(tx, order_id, store_id=store_id, for_update=True)
            if not order:
                raise OrderNotFound(order_id)
            if target is OrderStatus.PROCESSING and can_transition(order.status, target):
                raise InvalidTransition(order.status, target.value, "orders are placed through checkout")
            await status_machine.transition(tx, order, target, data.reason, Originator.admin(admin.user_id))

        await run_in_transaction(db, work, timeout=settings.TRANSITION_TIMEOUT_SECONDS)
        return await OrderService.get_order(db, store_id, order_id)

    @staticmethod
    async def get_status_history(db: AsyncSession, store_id: str, order_id: str):
        if not await OrderRepository.get_order(db, order_id, store_id=store_id):
            raise OrderNotFound(order_id)
        return await OrderRepository.get_history(db, order_id)

    @staticmethod
    async def get_placed_orders(
        db: AsyncSession, store_id: str, customer_id: str, order_id: Optional[str] = None
    ) -> list[Order]:
        """One placed order when `order_id` is given, otherwise all of the customer's placed orders."""
        if order_id is None:
            orders, _ = await OrderRepository.list_orders(db, store_id, customer_id=customer_id)
            return orders

        order = await OrderRepository.get_order(
            db, order_id, store_id=store_id, customer_id=customer_id, refresh=True
        )
        if order is None or order.status == OrderStatus.CART.value:
            raise OrderNotFound(order_id)
        return [order]
