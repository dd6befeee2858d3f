import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import relationship

from shared.config.database import Base
from services.catalog_service.models import Variant
from services.promotion_service.models import Promotion, order_promotions
from services.stock_service.models import StockMovement


def _uuid():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    CART = "cart"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"
    CASH_ON_DELIVERY = "cash_on_delivery"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_id = Column(String(36), ForeignKey("variants.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False) # snapshotted when added to the cart
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    variant = relationship(Variant, lazy="selectin", viewonly=True)


class OrderStatusHistory(Base):
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    originator_id = Column(String(64), nullable=False)
    originator_type = Column(String(20), nullable=False)
    reason = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        # One open cart per customer and store
        Index(
            "uq_orders_open_cart",
            "customer_id",
            "store_id",
            unique=True,
            postgresql_where=text("status = 'cart'"),
            sqlite_where=text("status = 'cart'"),
        ),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(64), nullable=False, index=True)
    customer_id = Column(String(64), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=OrderStatus.CART.value)

    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    final_amount = Column(Numeric(12, 2), nullable=False, default=0)
    email_discount = Column(Numeric(12, 2), nullable=False, default=0)
    customer_discount = Column(Numeric(12, 2), nullable=False, default=0)
    coupon_discount = Column(Numeric(12, 2), nullable=False, default=0)

    payment_method = Column(String(32), nullable=True)
    is_paid = Column(Boolean, nullable=False, default=False)
    phone = Column(String(32), nullable=True)
    address = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        OrderItem,
        order_by=OrderItem.created_at,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    status_history = relationship(
        OrderStatusHistory,
        order_by=(OrderStatusHistory.created_at.desc(), OrderStatusHistory.id.desc()),
        lazy="selectin",
    )
    stock_movements = relationship(
        StockMovement,
        order_by=(StockMovement.created_at.desc(), StockMovement.id.desc()),
        lazy="selectin",
        viewonly=True,
    )
    promotions = relationship(Promotion, secondary=order_promotions, lazy="selectin")

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)
