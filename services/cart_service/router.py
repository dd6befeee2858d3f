from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import CustomerSession, get_customer_session
from services.order_service.schemas import OrderResponse

from .schemas import CartItemCreate, CartItemUpdate
from .service import CartService

router = APIRouter(prefix="/storefront/{store_id}/cart", tags=["Storefront"])


@router.get("", response_model=OrderResponse)
async def get_cart(
    store_id: str,
    session: CustomerSession = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db),
):
    """Returns the customer's open cart, opening one on first access."""
    return await CartService.get_cart(db, store_id, session.customer_id)


@router.post("/items", response_model=OrderResponse)
async def add_item(
    store_id: str,
    item: CartItemCreate,
    session: CustomerSession = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db),
):
    return await CartService.add_item(db, store_id, session.customer_id, item)


@router.patch("/items/{item_id}", response_model=OrderResponse)
async def update_item(
    store_id: str,
    item_id: str,
    payload: CartItemUpdate,
    session: CustomerSession = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db),
):
    return await CartService.update_item(db, store_id, session.customer_id, item_id, payload)


@router.delete("/items/{item_id}", response_model=OrderResponse)
async def remove_item(
    store_id: str,
    item_id: str,
    session: CustomerSession = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db),
):
    return await CartService.remove_item(db, store_id, session.customer_id, item_id)
