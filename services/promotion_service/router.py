from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import (
    AdminSession,
    CustomerSession,
    Permissions,
    get_customer_session,
    require_permission,
)

from .schemas import CustomerPromotionsResponse, PromotionCreate, PromotionResponse
from .service import PromotionService

router = APIRouter(prefix="/stores/{store_id}/promotions", tags=["Promotions"])
storefront_router = APIRouter(prefix="/storefront/{store_id}/promotions", tags=["Storefront"])


@router.post("", response_model=PromotionResponse, status_code=status.HTTP_201_CREATED)
async def create_promotion(
    store_id: str,
    payload: PromotionCreate,
    _: AdminSession = Depends(require_permission(Permissions.MANAGE_PROMOTIONS)),
    db: AsyncSession = Depends(get_db),
):
    return await PromotionService.create_promotion(db, store_id, payload)


@router.get("", response_model=List[PromotionResponse])
async def list_promotions(
    store_id: str,
    _: AdminSession = Depends(require_permission(Permissions.VIEW_PROMOTIONS)),
    db: AsyncSession = Depends(get_db),
):
    return await PromotionService.list_promotions(db, store_id)


@storefront_router.get("", response_model=CustomerPromotionsResponse)
async def get_my_promotions(
    store_id: str,
    session: CustomerSession = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db),
):
    """Active promotions held by the customer, grouped by type, with the best email/customer percentages."""
    return await PromotionService.customer_promotions(db, store_id, session.customer_id)
