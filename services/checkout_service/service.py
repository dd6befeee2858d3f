"""
CheckoutOrchestrator: turns the customer's cart into a placed order.

Reservation, pricing, the status change and the replacement cart are one
database transaction bounded by CHECKOUT_TIMEOUT_SECONDS. Either all of it
lands or none of it does, so there is nothing to compensate afterwards.
"""
import time
from collections import defaultdict
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import settings
from shared.config.database import run_in_transaction
from shared.errors import DomainError, EmptyCart, InsufficientStock, InvalidInput
from shared.observability import (
    ecomm_checkout_duration_seconds,
    ecomm_checkout_total,
    ecomm_insufficient_stock_total,
    ecomm_open_carts,
)
from services.cart_service.service import CartService
from services.order_service.models import Order, OrderStatus, PaymentMethod
from services.order_service.pricing import compute_totals
from services.order_service.repository import OrderRepository
from services.order_service.status_machine import OrderStatusMachine
from services.promotion_service.service import PromotionService
from services.stock_service.ledger import Originator, StockLedger

from .schemas import CheckoutRequest

logger = structlog.get_logger(__name__)

PLACED_REASON = "Order placed successfully"


def _payment_method(data: CheckoutRequest) -> PaymentMethod:
    missing = data.missing_fields()
    if missing:
        raise InvalidInput("All shipping details are required")
    try:
        return PaymentMethod(data.payment_method)
    except ValueError:
        raise InvalidInput(f"Invalid payment method {data.payment_method}") from None


class CheckoutOrchestrator:

    def __init__(self, ledger: StockLedger | None = None, status_machine: OrderStatusMachine | None = None):
        self.ledger = ledger or StockLedger()
        self.status_machine = status_machine or OrderStatusMachine(self.ledger)

    async def checkout(
        self,
        db: AsyncSession,
        customer_id: str,
        store_id: str,
        data: CheckoutRequest,
        now: Optional[datetime] = None,
    ) -> Order:
        payment_method = _payment_method(data)
        originator = Originator.customer(customer_id)
        started = time.perf_counter()

        async def work(tx: AsyncSession) -> str:
            cart = await OrderRepository.get_cart(tx, customer_id, store_id, for_update=True)
            if cart is None or not cart.items:
                raise EmptyCart()

            promotions = await PromotionService.active_by_channel(
                tx, store_id, customer_id, now, coupon_code=data.coupon_code
            )

            stock_items = await self.ledger.resolve_many(tx, store_id, [item.variant_id for item in cart.items])

            # All-or-nothing: check every variant before the first reservation
            wanted = defaultdict(int)
            for item in cart.items:
                wanted[item.variant_id] += item.quantity
            for variant_id, quantity in wanted.items():
                available = stock_items[variant_id].available
                if available < quantity:
                    ecomm_insufficient_stock_total.inc()
                    raise InsufficientStock(variant_id, quantity, available)

            for item in cart.items:
                await self.ledger.reserve(
                    tx, item.variant_id, store_id, item.quantity, cart.id, originator,
                    stock_item=stock_items[item.variant_id],
                )

            totals = compute_totals(cart.items, data.requested_discounts(), promotions)

            await self.status_machine.transition(tx, cart, OrderStatus.PROCESSING, PLACED_REASON, originator)

            cart.payment_method = payment_method.value
            cart.is_paid = payment_method is not PaymentMethod.CASH_ON_DELIVERY
            cart.phone = data.phone.strip()
            cart.address = data.full_address()
            cart.total_amount = totals.total_amount
            cart.email_discount = totals.email_discount
            cart.customer_discount = totals.customer_discount
            cart.coupon_discount = totals.coupon_discount
            cart.final_amount = totals.final_amount
            cart.promotions = [p for channel in promotions.values() for p in channel]
            await tx.flush()

            await CartService.open_cart(tx, store_id, customer_id)
            return cart.id

        try:
            order_id = await run_in_transaction(db, work, timeout=settings.CHECKOUT_TIMEOUT_SECONDS)
        except DomainError as e:
            ecomm_checkout_total.labels(status="failed").inc()
            logger.info("checkout_rejected", store_id=store_id, customer_id=customer_id,
                        error=type(e).__name__, detail=e.message)
            raise
        except Exception:
            ecomm_checkout_total.labels(status="failed").inc()
            logger.exception("checkout_failed", store_id=store_id, customer_id=customer_id)
            raise
        finally:
            ecomm_checkout_duration_seconds.observe(time.perf_counter() - started)

        # open_cart counted the replacement; the consumed cart is gone
        ecomm_open_carts.dec()
        ecomm_checkout_total.labels(status="success").inc()
        order = await OrderRepository.get_order(db, order_id, refresh=True)
        logger.info(
            "checkout_completed",
            order_id=order.id,
            store_id=store_id,
            customer_id=customer_id,
            item_count=order.item_count,
            final_amount=str(order.final_amount),
            payment_method=order.payment_method,
        )
        return order
