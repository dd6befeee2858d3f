"""
The cart is the customer's single open Order in "cart" status.

It is opened lazily on first access, items snapshot the variant price when
added, and it is only ever consumed by checkout, which opens the next one.
"""
import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import run_in_transaction
from shared.errors import CartItemNotFound, VariantNotFound
from shared.observability import ecomm_open_carts
from services.catalog_service.repository import VariantRepository
from services.order_service.models import Order, OrderItem, OrderStatus, OrderStatusHistory
from services.order_service.pricing import items_total
from services.order_service.repository import OrderRepository
from services.stock_service.models import OriginatorType

from .schemas import CartItemCreate, CartItemUpdate

logger = structlog.get_logger(__name__)


def retotal(cart: Order) -> None:
    total = items_total(cart.items)
    cart.total_amount = total
    cart.final_amount = total


class CartService:

    @staticmethod
    async def open_cart(db: AsyncSession, store_id: str, customer_id: str) -> Order:
        """Creates an empty cart inside the caller's transaction."""
        cart = await OrderRepository.create_order(db, Order(
            store_id=store_id,
            customer_id=customer_id,
            status=OrderStatus.CART.value,
            total_amount=0,
            final_amount=0,
            items=[],
        ))
        await OrderRepository.add_history(db, OrderStatusHistory(
            order_id=cart.id,
            status=OrderStatus.CART.value,
            originator_id=customer_id,
            originator_type=OriginatorType.CUSTOMER.value,
            reason="Order created in cart",
        ))
        ecomm_open_carts.inc()
        logger.info("cart_opened", order_id=cart.id, store_id=store_id, customer_id=customer_id)
        return cart

    @staticmethod
    async def _locked_cart(db: AsyncSession, store_id: str, customer_id: str) -> Order:
        cart = await OrderRepository.get_cart(db, customer_id, store_id, for_update=True)
        if cart is None:
            cart = await CartService.open_cart(db, store_id, customer_id)
        return cart

    @staticmethod
    async def _mutate(db: AsyncSession, store_id: str, customer_id: str, change) -> Order:
        async def work(tx: AsyncSession):
            cart = await CartService._locked_cart(tx, store_id, customer_id)
            await change(tx, cart)
            retotal(cart)
            await tx.flush()
            return cart.id

        try:
            cart_id = await run_in_transaction(db, work)
        except IntegrityError:
            # Another request opened the cart first; retry against it once
            logger.info("cart_open_race", store_id=store_id, customer_id=customer_id)
            cart_id = await run_in_transaction(db, work)
        return await OrderRepository.get_order(db, cart_id, refresh=True)

    @staticmethod
    async def get_cart(db: AsyncSession, store_id: str, customer_id: str) -> Order:
        async def unchanged(tx, cart):
            return None

        return await CartService._mutate(db, store_id, customer_id, unchanged)

    @staticmethod
    async def add_item(db: AsyncSession, store_id: str, customer_id: str, data: CartItemCreate) -> Order:
        async def change(tx: AsyncSession, cart: Order):
            variant = await VariantRepository.get_variant(tx, data.variant_id, store_id)
            if variant is None:
                raise VariantNotFound(data.variant_id)

            for item in cart.items:
                if item.variant_id == variant.id:
                    item.quantity += data.quantity
                    return
            cart.items.append(OrderItem(variant_id=variant.id, quantity=data.quantity, price=variant.price))

        return await CartService._mutate(db, store_id, customer_id, change)

    @staticmethod
    async def update_item(
        db: AsyncSession, store_id: str, customer_id: str, item_id: str, data: CartItemUpdate
    ) -> Order:
        async def change(tx: AsyncSession, cart: Order):
            item = next((i for i in cart.items if i.id == item_id), None)
            if item is None:
                raise CartItemNotFound(item_id)
            item.quantity = data.quantity

        return await CartService._mutate(db, store_id, customer_id, change)

    @staticmethod
    async def remove_item(db: AsyncSession, store_id: str, customer_id: str, item_id: str) -> Order:
        async def change(tx: AsyncSession, cart: Order):
            item = next((i for i in cart.items if i.id == item_id), None)
            if item is None:
                raise CartItemNotFound(item_id)
            cart.items.remove(item)

        return await CartService._mutate(db, store_id, customer_id, change)
