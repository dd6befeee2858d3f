import math
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import run_in_transaction
from shared.errors import OrderNotFound, StockItemNotFound
from shared.security import AdminSession
from services.order_service.repository import OrderRepository

from .ledger import Originator, StockLedger
from .repository import StockRepository
from .schemas import StockItemCreate, StockMovementCreate

ledger = StockLedger()


class StockService:

    @staticmethod
    async def list_movements(
        db: AsyncSession,
        store_id: str,
        variant_id: Optional[str] = None,
        order_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> dict:
        # Read-only audit query; no locks, concurrent writers may land between pages
        if order_id and await OrderRepository.get_order(db, order_id, store_id=store_id) is None:
            raise OrderNotFound(order_id)

        items, total = await StockRepository.query_movements(
            db, store_id, variant_id=variant_id, order_id=order_id,
            offset=(page - 1) * limit, limit=limit,
        )
        return {
            "items": items,
            "total_count": total,
            "total_pages": math.ceil(total / limit),
            "current_page": page,
        }

    @staticmethod
    async def record_movement(db: AsyncSession, store_id: str, data: StockMovementCreate, admin: AdminSession):
        async def work(tx: AsyncSession):
            movement = await ledger.adjust(
                tx, data.variant_id, store_id, data.quantity, data.type, data.reason,
                Originator.admin(admin.user_id),
            )
            item = await StockRepository.get_stock_item(tx, data.variant_id, store_id)
            return {"movement": movement, "stock_item": item}

        return await run_in_transaction(db, work)

    @staticmethod
    async def open_stock_item(db: AsyncSession, store_id: str, data: StockItemCreate, admin: AdminSession):
        async def work(tx: AsyncSession):
            return await ledger.open_stock_item(
                tx, data.variant_id, store_id, data.initial_count, Originator.admin(admin.user_id)
            )

        return await run_in_transaction(db, work)

    @staticmethod
    async def get_stock_item(db: AsyncSession, store_id: str, variant_id: str):
        item = await StockRepository.get_stock_item(db, variant_id, store_id)
        if item is None:
            raise StockItemNotFound(variant_id, store_id)
        return item
