from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import run_in_transaction
from shared.errors import InvalidInput
from .models import Promotion, PromotionType
from .repository import PromotionRepository
from .schemas import PromotionCreate

logger = structlog.get_logger(__name__)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _best_percentage(promotions) -> Decimal:
    percentages = [Decimal(p.discount) for p in promotions if not p.is_fixed]
    return max(percentages) if percentages else Decimal("0")


class PromotionService:

    @staticmethod
    async def create_promotion(db: AsyncSession, store_id: str, data: PromotionCreate) -> Promotion:
        async def work(tx: AsyncSession):
            promotion = await PromotionRepository.create_promotion(tx, Promotion(
                store_id=store_id,
                code=data.code,
                type=data.type.value,
                discount=data.discount,
                is_fixed=data.is_fixed,
                start_date=as_utc(data.start_date),
                end_date=as_utc(data.end_date),
                is_active=data.is_active,
            ), data.customer_ids)
            return promotion.id

        promotion_id = await run_in_transaction(db, work)
        return await PromotionRepository.get_promotion(db, promotion_id)

    @staticmethod
    async def list_promotions(db: AsyncSession, store_id: str) -> list[Promotion]:
        return await PromotionRepository.list_promotions(db, store_id)

    @staticmethod
    async def find_coupon(db: AsyncSession, store_id: str, code: str | None, now: datetime | None = None) -> Promotion:
        """The store's active, in-window coupon with this code. Any customer may redeem it."""
        code = (code or "").strip()
        if not code:
            raise InvalidInput("Missing coupon code")
        now = as_utc(now or datetime.now(timezone.utc))
        coupon = await PromotionRepository.find_coupon(db, store_id, code, now)
        if coupon is None:
            raise InvalidInput("Invalid or expired coupon code")
        return coupon

    @staticmethod
    async def active_by_channel(
        db: AsyncSession,
        store_id: str,
        customer_id: str,
        now: datetime | None = None,
        coupon_code: str | None = None,
    ) -> dict[str, list[Promotion]]:
        """
        Active, in-window promotions linked to the customer, grouped by type.
        A coupon code replaces the linked coupons with the coupon it names.
        """
        now = as_utc(now or datetime.now(timezone.utc))
        grouped = defaultdict(list)
        for promotion in await PromotionRepository.active_for_customer(db, store_id, customer_id, now):
            grouped[promotion.type].append(promotion)
        if coupon_code:
            grouped[PromotionType.COUPON.value] = [await PromotionService.find_coupon(db, store_id, coupon_code, now)]
        return {channel.value: grouped.get(channel.value, []) for channel in PromotionType}

    @staticmethod
    async def customer_promotions(db: AsyncSession, store_id: str, customer_id: str) -> dict:
        grouped = await PromotionService.active_by_channel(db, store_id, customer_id)
        return {
            "promotions": grouped,
            "discounts": {
                "email": _best_percentage(grouped["email"]),
                "customer": _best_percentage(grouped["customer"]),
            },
        }

    @staticmethod
    async def apply_coupon(db: AsyncSession, store_id: str, customer_id: str, code: str | None) -> dict:
        """Validates a coupon code and reports every discount the customer could claim at checkout."""
        coupon = await PromotionService.find_coupon(db, store_id, code)
        held = await PromotionService.customer_promotions(db, store_id, customer_id)
        logger.info("coupon_applied", store_id=store_id, customer_id=customer_id, code=coupon.code)
        return {
            "email_discount": held["discounts"]["email"],
            "customer_discount": held["discounts"]["customer"],
            "coupon_discount": Decimal(coupon.discount),
        }
