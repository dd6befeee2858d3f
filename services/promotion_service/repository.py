from datetime import datetime

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Promotion, PromotionType, promotion_customers


class PromotionRepository:

    @staticmethod
    async def create_promotion(db: AsyncSession, promotion: Promotion, customer_ids: list[str]) -> Promotion:
        db.add(promotion)
        await db.flush()
        if customer_ids:
            await db.execute(
                insert(promotion_customers),
                [{"promotion_id": promotion.id, "customer_id": cid} for cid in dict.fromkeys(customer_ids)],
            )
        return promotion

    @staticmethod
    async def get_promotion(db: AsyncSession, promotion_id: str) -> Promotion | None:
        result = await db.execute(
            select(Promotion).where(Promotion.id == promotion_id).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def list_promotions(db: AsyncSession, store_id: str) -> list[Promotion]:
        result = await db.execute(
            select(Promotion).where(Promotion.store_id == store_id).order_by(Promotion.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def active_for_customer(
        db: AsyncSession, store_id: str, customer_id: str, now: datetime
    ) -> list[Promotion]:
        result = await db.execute(
            select(Promotion)
            .join(promotion_customers, promotion_customers.c.promotion_id == Promotion.id)
            .where(
                promotion_customers.c.customer_id == customer_id,
                Promotion.store_id == store_id,
                Promotion.is_active.is_(True),
                Promotion.start_date <= now,
                Promotion.end_date >= now,
            )
            .order_by(Promotion.created_at)
        )
        return list(result.scalars().unique().all())

    @staticmethod
    async def find_coupon(db: AsyncSession, store_id: str, code: str, now: datetime) -> Promotion | None:
        result = await db.execute(
            select(Promotion)
            .where(
                Promotion.code == code,
                Promotion.type == PromotionType.COUPON.value,
                Promotion.store_id == store_id,
                Promotion.is_active.is_(True),
                Promotion.start_date <= now,
                Promotion.end_date >= now,
            )
            .order_by(Promotion.created_at.desc())
        )
        return result.scalars().first()
