import uuid

from sqlalchemy import Column, String, Numeric
from shared.config.database import Base


class Variant(Base):
    """Sellable variant as seen by the order core: identity, names and list price."""
    __tablename__ = "variants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(64), nullable=False, index=True)
    product_name = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
