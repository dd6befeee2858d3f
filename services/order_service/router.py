from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.schemas import Page
from shared.security import (
    AdminSession,
    CustomerSession,
    Permissions,
    get_customer_session,
    require_permission,
)

from .schemas import OrderResponse, OrderStatusUpdate, StatusHistoryResponse
from .service import OrderService

router = APIRouter(prefix="/stores/{store_id}/orders", tags=["Orders"])
storefront_router = APIRouter(prefix="/storefront/{store_id}/orders", tags=["Storefront"])


@router.get("", response_model=Page[OrderResponse])
async def list_orders(
    store_id: str,
    status: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    _: AdminSession = Depends(require_permission(Permissions.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.list_orders(db, store_id, status, page, limit)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    store_id: str,
    order_id: str,
    _: AdminSession = Depends(require_permission(Permissions.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.get_order(db, store_id, order_id)


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    store_id: str,
    order_id: str,
    payload: OrderStatusUpdate,
    admin: AdminSession = Depends(require_permission(Permissions.MANAGE_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.update_status(db, store_id, order_id, payload, admin)


@router.get("/{order_id}/status-history", response_model=List[StatusHistoryResponse])
async def get_status_history(
    store_id: str,
    order_id: str,
    _: AdminSession = Depends(require_permission(Permissions.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.get_status_history(db, store_id, order_id)


# --- STOREFRONT (customer's own orders) ---

@storefront_router.get("", response_model=List[OrderResponse])
async def list_my_orders(
    store_id: str,
    session: CustomerSession = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.get_placed_orders(db, store_id, session.customer_id)


@storefront_router.get("/{order_id}", response_model=OrderResponse)
async def get_my_order(
    store_id: str,
    order_id: str,
    session: CustomerSession = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db),
):
    orders = await OrderService.get_placed_orders(db, store_id, session.customer_id, order_id)
    return orders[0]
