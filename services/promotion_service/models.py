import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Table
from sqlalchemy.orm import relationship

from shared.config.database import Base


class PromotionType(str, enum.Enum):
    EMAIL = "email"
    COUPON = "coupon"
    CUSTOMER = "customer"


promotion_customers = Table(
    "promotion_customers",
    Base.metadata,
    Column("promotion_id", String(36), ForeignKey("promotions.id", ondelete="CASCADE"), primary_key=True),
    Column("customer_id", String(64), primary_key=True),
)

order_promotions = Table(
    "order_promotions",
    Base.metadata,
    Column("order_id", String(36), ForeignKey("orders.id", ondelete="CASCADE"), primary_key=True),
    Column("promotion_id", String(36), ForeignKey("promotions.id", ondelete="CASCADE"), primary_key=True),
)


class Promotion(Base):
    __tablename__ = "promotions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(64), nullable=False, index=True)
    code = Column(String(64), nullable=False)
    type = Column(String(20), nullable=False)
    # percentage (0-100) unless is_fixed, then a currency amount
    discount = Column(Numeric(12, 2), nullable=False)
    is_fixed = Column(Boolean, nullable=False, default=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    customer_links = relationship("PromotionCustomer", lazy="selectin", viewonly=True)

    @property
    def customer_ids(self) -> list[str]:
        return [link.customer_id for link in self.customer_links]


class PromotionCustomer(Base):
    """Read-side mapping of promotion_customers so promotions can list their audience."""
    __table__ = promotion_customers
