from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.schemas import Page
from shared.security import AdminSession, Permissions, require_permission

from .schemas import (
    StockAdjustmentResponse,
    StockItemCreate,
    StockItemResponse,
    StockMovementCreate,
    StockMovementResponse,
)
from .service import StockService

router = APIRouter(prefix="/stores/{store_id}", tags=["Stock"])


@router.get("/stock-movements", response_model=Page[StockMovementResponse])
async def list_stock_movements(
    store_id: str,
    variant_id: Optional[str] = Query(default=None, alias="variantId"),
    order_id: Optional[str] = Query(default=None, alias="orderId"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    _: AdminSession = Depends(require_permission(Permissions.VIEW_STOCK)),
    db: AsyncSession = Depends(get_db),
):
    return await StockService.list_movements(db, store_id, variant_id, order_id, page, limit)


@router.post("/stock-movements", response_model=StockAdjustmentResponse)
async def create_stock_movement(
    store_id: str,
    payload: StockMovementCreate,
    admin: AdminSession = Depends(require_permission(Permissions.MANAGE_STOCK)),
    db: AsyncSession = Depends(get_db),
):
    return await StockService.record_movement(db, store_id, payload, admin)


@router.post("/stock-items", response_model=StockItemResponse, status_code=status.HTTP_201_CREATED)
async def open_stock_item(
    store_id: str,
    payload: StockItemCreate,
    admin: AdminSession = Depends(require_permission(Permissions.MANAGE_STOCK)),
    db: AsyncSession = Depends(get_db),
):
    return await StockService.open_stock_item(db, store_id, payload, admin)


@router.get("/stock-items/{variant_id}", response_model=StockItemResponse)
async def get_stock_item(
    store_id: str,
    variant_id: str,
    _: AdminSession = Depends(require_permission(Permissions.VIEW_STOCK)),
    db: AsyncSession = Depends(get_db),
):
    return await StockService.get_stock_item(db, store_id, variant_id)
