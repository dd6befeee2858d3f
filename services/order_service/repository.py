from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Order, OrderStatus, OrderStatusHistory


class OrderRepository:

    @staticmethod
    async def create_order(db: AsyncSession, order: Order) -> Order:
        db.add(order)
        await db.flush()
        return order

    @staticmethod
    async def get_order(
        db: AsyncSession,
        order_id: str,
        store_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        for_update: bool = False,
        refresh: bool = False,
    ) -> Optional[Order]:
        stmt = select(Order).where(Order.id == order_id)
        if store_id is not None:
            stmt = stmt.where(Order.store_id == store_id)
        if customer_id is not None:
            stmt = stmt.where(Order.customer_id == customer_id)
        if for_update:
            stmt = stmt.with_for_update(of=Order)
        if refresh:
            # Reload collections too; history/movements are written without touching them
            stmt = stmt.execution_options(populate_existing=True)
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def get_cart(db: AsyncSession, customer_id: str, store_id: str, for_update: bool = False) -> Optional[Order]:
        stmt = select(Order).where(
            Order.customer_id == customer_id,
            Order.store_id == store_id,
            Order.status == OrderStatus.CART.value,
        )
        if for_update:
            stmt = stmt.with_for_update(of=Order)
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        store_id: str,
        customer_id: Optional[str] = None,
        status: Optional[str] = None,
        include_carts: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> tuple[list[Order], int]:
        conditions = [Order.store_id == store_id]
        if customer_id is not None:
            conditions.append(Order.customer_id == customer_id)
        if status is not None:
            conditions.append(Order.status == status)
        elif not include_carts:
            conditions.append(Order.status != OrderStatus.CART.value)

        total = await db.scalar(select(func.count()).select_from(Order).where(*conditions))
        stmt = select(Order).where(*conditions).order_by(Order.created_at.desc(), Order.id).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await db.execute(stmt)
        return list(result.scalars().all()), total or 0

    @staticmethod
    async def claim_status(db: AsyncSession, order_id: str, current: str, target: str) -> bool:
        """
        Compare-and-set on the status column. Returns False when another
        transaction already moved the order away from `current`.
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == current)
            .values(status=target, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    @staticmethod
    async def add_history(db: AsyncSession, entry: OrderStatusHistory) -> OrderStatusHistory:
        db.add(entry)
        await db.flush()
        return entry

    @staticmethod
    async def get_history(db: AsyncSession, order_id: str) -> list[OrderStatusHistory]:
        result = await db.execute(
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.created_at.desc(), OrderStatusHistory.id.desc())
        )
        return list(result.scalars().all())
