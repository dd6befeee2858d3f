from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, model_validator

from shared.schemas import CamelModel
from .models import PromotionType


class PromotionCreate(CamelModel):
    code: str = Field(min_length=1, max_length=64)
    type: PromotionType
    discount: Decimal = Field(gt=0)
    is_fixed: bool = False
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    customer_ids: List[str] = []

    @model_validator(mode="after")
    def check_window(self):
        if self.end_date < self.start_date:
            raise ValueError("endDate must not precede startDate")
        if not self.is_fixed and self.discount > 100:
            raise ValueError("percentage discounts cannot exceed 100")
        return self


class PromotionResponse(CamelModel):
    id: str
    store_id: str
    code: str
    type: str
    discount: Decimal
    is_fixed: bool
    start_date: datetime
    end_date: datetime
    is_active: bool
    customer_ids: List[str] = []


class GroupedPromotions(CamelModel):
    email: List[PromotionResponse] = []
    coupon: List[PromotionResponse] = []
    customer: List[PromotionResponse] = []


class BestDiscounts(CamelModel):
    email: Decimal
    customer: Decimal


class CustomerPromotionsResponse(CamelModel):
    promotions: GroupedPromotions
    discounts: BestDiscounts


class ApplyCouponRequest(CamelModel):
    # Checked by the service so a missing code is a 400
    code: Optional[str] = None


class CouponDiscountsResponse(CamelModel):
    email_discount: Decimal
    customer_discount: Decimal
    coupon_discount: Decimal
