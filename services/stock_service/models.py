import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
)

from shared.config.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class MovementType(str, enum.Enum):
    ADJUSTMENT = "adjustment"
    PURCHASE = "purchase"
    SALE = "sale"
    LOSS = "loss"
    RESERVED = "reserved"
    UNRESERVED = "unreserved"
    SHIPPED = "shipped"


# Types an admin may post by hand; reservation bookkeeping belongs to orders
MANUAL_MOVEMENT_TYPES = (
    MovementType.ADJUSTMENT,
    MovementType.PURCHASE,
    MovementType.SALE,
    MovementType.LOSS,
)


class OriginatorType(str, enum.Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"
    SYSTEM = "system"


class StockItem(Base):
    __tablename__ = "stock_items"
    __table_args__ = (
        UniqueConstraint("variant_id", "store_id", name="uq_stock_items_variant_store"),
        CheckConstraint("reserved >= 0", name="ck_stock_items_reserved_non_negative"),
        CheckConstraint("reserved <= count", name="ck_stock_items_reserved_within_count"),
    )

    id = Column(Integer, primary_key=True, index=True)
    variant_id = Column(String(36), nullable=False, index=True)
    store_id = Column(String(64), nullable=False, index=True)
    count = Column(Integer, nullable=False, default=0)
    reserved = Column(Integer, nullable=False, default=0)

    @property
    def available(self) -> int:
        return self.count - self.reserved


class StockMovement(Base):
    """
    Immutable ledger line. count_delta / reserved_delta are the exact changes
    applied to the stock item; quantity is their effect on available stock
    (positive = more available), except for shipped lines, which touch no
    counters and record the shipped units as a negative quantity.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_stock_item_created", "stock_item_id", "created_at"),
        Index("ix_stock_movements_order_created", "order_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    variant_id = Column(String(36), nullable=False, index=True)
    stock_item_id = Column(Integer, ForeignKey("stock_items.id"), nullable=False)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=True)
    quantity = Column(Integer, nullable=False)
    count_delta = Column(Integer, nullable=False, default=0)
    reserved_delta = Column(Integer, nullable=False, default=0)
    type = Column(String(20), nullable=False)
    reason = Column(Text, nullable=False)
    originator_type = Column(String(20), nullable=False)
    originator_id = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
