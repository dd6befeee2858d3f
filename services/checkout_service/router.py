from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import settings
from shared.config.database import get_db
from shared.errors import NotificationFailed
from shared.security import CustomerSession, get_customer_session, limiter
from services.order_service.schemas import OrderResponse
from services.order_service.service import OrderService
from services.promotion_service.schemas import ApplyCouponRequest, CouponDiscountsResponse
from services.promotion_service.service import PromotionService

from .notifier import ORDER_PLACED, ORDER_RECEIPT, dispatch
from .schemas import CheckoutRequest, ReceiptResponse
from .service import CheckoutOrchestrator

router = APIRouter(prefix="/storefront/{store_id}", tags=["Checkout"])
orchestrator = CheckoutOrchestrator()


def _payload(order) -> dict:
    return OrderResponse.model_validate(order).model_dump(mode="json", by_alias=True)


@router.post("/checkout", response_model=OrderResponse)
@limiter.limit(settings.CHECKOUT_RATE_LIMIT)
async def checkout(
    request: Request,                          # REQUIRED: slowapi reads the caller from it
    store_id: str,
    payload: CheckoutRequest,
    background_tasks: BackgroundTasks,
    session: CustomerSession = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db),
):
    order = await orchestrator.checkout(db, session.customer_id, store_id, payload)
    # Confirmation goes out after the response; the order is already committed
    background_tasks.add_task(dispatch, request.app.state.notifier, ORDER_PLACED, _payload(order))
    return order


@router.post("/apply-coupon", response_model=CouponDiscountsResponse)
async def apply_coupon(
    store_id: str,
    payload: ApplyCouponRequest,
    session: CustomerSession = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db),
):
    return await PromotionService.apply_coupon(db, store_id, session.customer_id, payload.code)


@router.get("/checkout", response_model=List[OrderResponse])
async def get_checkout_orders(
    store_id: str,
    order_id: Optional[str] = Query(default=None, alias="orderId"),
    session: CustomerSession = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.get_placed_orders(db, store_id, session.customer_id, order_id)


@router.post("/orders/{order_id}/send-receipt", response_model=ReceiptResponse)
async def send_receipt(
    request: Request,
    store_id: str,
    order_id: str,
    session: CustomerSession = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db),
):
    [order] = await OrderService.get_placed_orders(db, store_id, session.customer_id, order_id)
    if not await dispatch(request.app.state.notifier, ORDER_RECEIPT, _payload(order)):
        raise NotificationFailed(order_id)
    return {"success": True}
