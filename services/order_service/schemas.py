from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from shared.schemas import CamelModel
from services.catalog_service.schemas import VariantResponse
from services.stock_service.schemas import StockMovementResponse


class OrderItemResponse(CamelModel):
    id: str
    variant_id: str
    quantity: int
    price: Decimal
    variant: Optional[VariantResponse] = None


class StatusHistoryResponse(CamelModel):
    id: int
    order_id: str
    status: str
    originator_id: str
    originator_type: str
    reason: str
    created_at: datetime


class PromotionSummary(CamelModel):
    id: str
    code: str
    type: str
    discount: Decimal
    is_fixed: bool


class OrderResponse(CamelModel):
    id: str
    store_id: str
    customer_id: Optional[str]
    status: str
    total_amount: Decimal
    final_amount: Decimal
    email_discount: Decimal
    customer_discount: Decimal
    coupon_discount: Decimal
    payment_method: Optional[str]
    is_paid: bool
    phone: Optional[str]
    address: Optional[str]
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse] = []
    status_history: List[StatusHistoryResponse] = []
    stock_movements: List[StockMovementResponse] = []
    promotions: List[PromotionSummary] = []


class OrderStatusUpdate(CamelModel):
    status: str
    reason: Optional[str] = None
