from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Variant


class VariantRepository:

    @staticmethod
    async def create_variant(db: AsyncSession, variant: Variant) -> Variant:
        db.add(variant)
        await db.flush()
        return variant

    @staticmethod
    async def get_variant(db: AsyncSession, variant_id: str, store_id: str) -> Optional[Variant]:
        result = await db.execute(
            select(Variant).where(Variant.id == variant_id, Variant.store_id == store_id)
        )
        return result.scalars().first()

    @staticmethod
    async def list_variants(db: AsyncSession, store_id: str) -> list[Variant]:
        result = await db.execute(
            select(Variant).where(Variant.store_id == store_id).order_by(Variant.product_name, Variant.name)
        )
        return list(result.scalars().all())
