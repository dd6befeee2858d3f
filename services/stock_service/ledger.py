"""
StockLedger: the only code allowed to change StockItem.count / reserved.

Every change goes through one guarded UPDATE (see StockRepository.apply_delta)
and is paired with a StockMovement row in the same transaction. The ledger
never commits; callers run it inside run_in_transaction together with the
order and history writes it belongs to.
"""
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import (
    InsufficientStock,
    InvalidInput,
    StockInvariantViolation,
    StockItemExists,
    StockItemMissing,
    StockItemNotFound,
)
from shared.observability import ecomm_insufficient_stock_total, ecomm_stock_movements_total

from .models import MANUAL_MOVEMENT_TYPES, MovementType, OriginatorType, StockItem, StockMovement
from .repository import StockRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Originator:
    type: OriginatorType
    id: str

    @classmethod
    def admin(cls, user_id: str) -> "Originator":
        return cls(OriginatorType.ADMIN, user_id)

    @classmethod
    def customer(cls, customer_id: str) -> "Originator":
        return cls(OriginatorType.CUSTOMER, customer_id)

    @classmethod
    def system(cls, name: str = "system") -> "Originator":
        return cls(OriginatorType.SYSTEM, name)


def _positive(quantity: int) -> int:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise InvalidInput(f"Quantity must be a positive integer, got {quantity!r}")
    return quantity


class StockLedger:

    async def resolve(self, db: AsyncSession, variant_id: str, store_id: str) -> StockItem:
        item = await StockRepository.get_stock_item(db, variant_id, store_id, for_update=True)
        if item is None:
            raise StockItemNotFound(variant_id, store_id)
        return item

    async def resolve_many(self, db: AsyncSession, store_id: str, variant_ids) -> dict[str, StockItem]:
        """Locks and returns the stock items for an order's variants, failing on the first missing one."""
        variant_ids = list(dict.fromkeys(variant_ids))
        items = await StockRepository.get_stock_items(db, store_id, variant_ids, for_update=True)
        for variant_id in variant_ids:
            if variant_id not in items:
                raise StockItemMissing(variant_id, store_id)
        return items

    async def reserve(
        self,
        db: AsyncSession,
        variant_id: str,
        store_id: str,
        quantity: int,
        order_id: Optional[str],
        originator: Originator,
        stock_item: Optional[StockItem] = None,
    ) -> StockMovement:
        quantity = _positive(quantity)
        item = stock_item or await self.resolve(db, variant_id, store_id)

        if not await StockRepository.apply_delta(db, item.id, 0, quantity):
            await db.refresh(item)
            ecomm_insufficient_stock_total.inc()
            logger.info("stock_reservation_rejected", variant_id=variant_id, store_id=store_id,
                        requested=quantity, available=item.available)
            raise InsufficientStock(variant_id, quantity, item.available)

        return await self._record(
            db, item, MovementType.RESERVED, -quantity, 0, quantity, order_id, originator,
            f"Order {order_id} - Items reserved for processing",
        )

    async def release(
        self,
        db: AsyncSession,
        variant_id: str,
        store_id: str,
        quantity: int,
        order_id: Optional[str],
        originator: Originator,
        stock_item: Optional[StockItem] = None,
        reason: Optional[str] = None,
    ) -> StockMovement:
        quantity = _positive(quantity)
        item = stock_item or await self.resolve(db, variant_id, store_id)

        if not await StockRepository.apply_delta(db, item.id, 0, -quantity):
            await db.refresh(item)
            raise StockInvariantViolation(
                f"Cannot release {quantity} units of variant {variant_id}: only {item.reserved} reserved"
            )

        return await self._record(
            db, item, MovementType.UNRESERVED, quantity, 0, -quantity, order_id, originator,
            reason or f"Order {order_id} - Cancelled and stock returned",
        )

    async def consume_on_ship(
        self,
        db: AsyncSession,
        variant_id: str,
        store_id: str,
        quantity: int,
        order_id: Optional[str],
        originator: Originator,
        stock_item: Optional[StockItem] = None,
    ) -> StockMovement:
        # Goods leave the warehouse; the reservation stays until completion
        quantity = _positive(quantity)
        item = stock_item or await self.resolve(db, variant_id, store_id)
        return await self._record(
            db, item, MovementType.SHIPPED, -quantity, 0, 0, order_id, originator,
            f"Order {order_id} - Items shipped to customer",
        )

    async def finalize(
        self,
        db: AsyncSession,
        variant_id: str,
        store_id: str,
        quantity: int,
        order_id: Optional[str],
        originator: Originator,
        stock_item: Optional[StockItem] = None,
    ) -> StockMovement:
        quantity = _positive(quantity)
        item = stock_item or await self.resolve(db, variant_id, store_id)

        if not await StockRepository.apply_delta(db, item.id, -quantity, -quantity):
            await db.refresh(item)
            raise StockInvariantViolation(
                f"Cannot finalize {quantity} units of variant {variant_id}: "
                f"count={item.count}, reserved={item.reserved}"
            )

        # Consuming a reservation leaves available stock unchanged
        return await self._record(
            db, item, MovementType.SALE, 0, -quantity, -quantity, order_id, originator,
            f"Order {order_id} - Completed, reserved stock consumed",
        )

    async def adjust(
        self,
        db: AsyncSession,
        variant_id: str,
        store_id: str,
        delta: int,
        movement_type: MovementType,
        reason: str,
        originator: Originator,
    ) -> StockMovement:
        """
        Manual correction of on-hand stock. purchase adds `delta` units,
        sale and loss remove them, adjustment applies the signed delta.
        """
        movement_type = MovementType(movement_type)
        if movement_type not in MANUAL_MOVEMENT_TYPES:
            raise InvalidInput(f"Movement type {movement_type.value} cannot be recorded manually")
        if not reason or not reason.strip():
            raise InvalidInput("A reason is required for manual stock movements")

        if movement_type is MovementType.ADJUSTMENT:
            if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
                raise InvalidInput(f"Adjustment must be a non-zero integer, got {delta!r}")
            count_delta = delta
        elif movement_type is MovementType.PURCHASE:
            count_delta = _positive(delta)
        else:
            count_delta = -_positive(delta)

        item = await self.resolve(db, variant_id, store_id)
        if not await StockRepository.apply_delta(db, item.id, count_delta, 0):
            await db.refresh(item)
            raise StockInvariantViolation(
                f"Adjusting variant {variant_id} by {count_delta} would leave count below "
                f"reserved (count={item.count}, reserved={item.reserved})"
            )

        return await self._record(db, item, movement_type, count_delta, count_delta, 0, None, originator, reason)

    async def open_stock_item(
        self,
        db: AsyncSession,
        variant_id: str,
        store_id: str,
        initial_count: int,
        originator: Originator,
    ) -> StockItem:
        if await StockRepository.get_stock_item(db, variant_id, store_id) is not None:
            raise StockItemExists(variant_id)
        if initial_count < 0:
            raise InvalidInput("Initial stock count cannot be negative")

        try:
            item = await StockRepository.create_stock_item(
                db, StockItem(variant_id=variant_id, store_id=store_id, count=0, reserved=0)
            )
        except IntegrityError:
            # A concurrent open of the same variant won the unique constraint
            raise StockItemExists(variant_id) from None
        if initial_count:
            await self.adjust(db, variant_id, store_id, initial_count, MovementType.PURCHASE,
                              "Opening balance", originator)
        return item

    async def _record(
        self,
        db: AsyncSession,
        item: StockItem,
        movement_type: MovementType,
        quantity: int,
        count_delta: int,
        reserved_delta: int,
        order_id: Optional[str],
        originator: Originator,
        reason: str,
    ) -> StockMovement:
        if count_delta or reserved_delta:
            await db.refresh(item)
        movement = await StockRepository.add_movement(db, StockMovement(
            variant_id=item.variant_id,
            stock_item_id=item.id,
            order_id=order_id,
            quantity=quantity,
            count_delta=count_delta,
            reserved_delta=reserved_delta,
            type=movement_type.value,
            reason=reason,
            originator_type=originator.type.value,
            originator_id=originator.id,
        ))
        ecomm_stock_movements_total.labels(type=movement_type.value).inc()
        logger.info(
            "stock_movement_recorded",
            movement_type=movement_type.value,
            variant_id=item.variant_id,
            store_id=item.store_id,
            order_id=order_id,
            quantity=quantity,
            count=item.count,
            reserved=item.reserved,
        )
        return movement
