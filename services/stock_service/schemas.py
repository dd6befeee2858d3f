from datetime import datetime
from typing import Optional

from pydantic import Field

from shared.schemas import CamelModel
from .models import MovementType


class StockItemResponse(CamelModel):
    id: int
    variant_id: str
    store_id: str
    count: int
    reserved: int
    available: int


class StockItemCreate(CamelModel):
    variant_id: str
    initial_count: int = Field(default=0, ge=0)


class StockMovementResponse(CamelModel):
    id: int
    variant_id: str
    stock_item_id: int
    order_id: Optional[str]
    quantity: int
    count_delta: int
    reserved_delta: int
    type: str
    reason: str
    originator_type: str
    originator_id: str
    created_at: datetime


class StockMovementCreate(CamelModel):
    variant_id: str = Field(min_length=1)
    quantity: int
    type: MovementType
    reason: str = Field(min_length=1)


class StockAdjustmentResponse(CamelModel):
    movement: StockMovementResponse
    stock_item: StockItemResponse
