from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import AdminSession, Permissions, require_permission

from .schemas import VariantCreate, VariantResponse
from .service import CatalogService

router = APIRouter(prefix="/stores/{store_id}/variants", tags=["Catalog"])


@router.post("", response_model=VariantResponse, status_code=status.HTTP_201_CREATED)
async def create_variant(
    store_id: str,
    payload: VariantCreate,
    admin: AdminSession = Depends(require_permission(Permissions.MANAGE_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService.create_variant(db, store_id, payload, admin)


@router.get("", response_model=List[VariantResponse])
async def list_variants(
    store_id: str,
    _: AdminSession = Depends(require_permission(Permissions.VIEW_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService.list_variants(db, store_id)
