from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import StockItem, StockMovement


class StockRepository:

    @staticmethod
    async def get_stock_item(
        db: AsyncSession, variant_id: str, store_id: str, for_update: bool = False
    ) -> Optional[StockItem]:
        stmt = select(StockItem).where(
            StockItem.variant_id == variant_id,
            StockItem.store_id == store_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def get_stock_items(
        db: AsyncSession, store_id: str, variant_ids: Iterable[str], for_update: bool = False
    ) -> dict[str, StockItem]:
        # Locks are taken in id order so two transactions never wait on each other in a cycle
        stmt = (
            select(StockItem)
            .where(StockItem.store_id == store_id, StockItem.variant_id.in_(set(variant_ids)))
            .order_by(StockItem.id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return {item.variant_id: item for item in result.scalars().all()}

    @staticmethod
    async def create_stock_item(db: AsyncSession, item: StockItem) -> StockItem:
        db.add(item)
        await db.flush()
        return item

    @staticmethod
    async def apply_delta(db: AsyncSession, stock_item_id: int, count_delta: int, reserved_delta: int) -> bool:
        """
        Applies both deltas in one conditional UPDATE. The row only changes if
        the result keeps 0 <= reserved <= count, so concurrent writers on the
        same row serialize in the database and can never oversell.
        Returns False when the guard rejected the change.
        """
        new_count = StockItem.count + count_delta
        new_reserved = StockItem.reserved + reserved_delta
        stmt = (
            update(StockItem)
            .where(
                StockItem.id == stock_item_id,
                new_count >= 0,
                new_reserved >= 0,
                new_reserved <= new_count,
            )
            .values(count=new_count, reserved=new_reserved)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    @staticmethod
    async def add_movement(db: AsyncSession, movement: StockMovement) -> StockMovement:
        db.add(movement)
        await db.flush()
        return movement

    @staticmethod
    async def query_movements(
        db: AsyncSession,
        store_id: str,
        variant_id: Optional[str] = None,
        order_id: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[StockMovement], int]:
        conditions = [StockItem.store_id == store_id]
        if variant_id:
            conditions.append(StockMovement.variant_id == variant_id)
        if order_id:
            conditions.append(StockMovement.order_id == order_id)

        base = select(StockMovement).join(StockItem, StockMovement.stock_item_id == StockItem.id).where(*conditions)

        total = await db.scalar(select(func.count()).select_from(base.subquery()))
        result = await db.execute(
            base.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0
