from decimal import Decimal
from typing import Optional

from pydantic import Field

from shared.schemas import CamelModel

SHIPPING_FIELDS = ("payment_method", "phone", "address", "city", "state", "postal_code", "country")


class CheckoutRequest(CamelModel):
    # Shipping fields are checked by the orchestrator so a missing one is a 400, not a 422
    payment_method: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

    # Percentages, 0-100
    email_discount: Optional[Decimal] = Field(default=None, ge=0, le=100)
    customer_discount: Optional[Decimal] = Field(default=None, ge=0, le=100)
    coupon_discount: Optional[Decimal] = Field(default=None, ge=0, le=100)
    # Store-wide coupon; without one only coupons linked to the customer count
    coupon_code: Optional[str] = Field(default=None, max_length=64)

    def missing_fields(self) -> list[str]:
        return [name for name in SHIPPING_FIELDS if not (getattr(self, name) or "").strip()]

    def full_address(self) -> str:
        return f"{self.address}, {self.city}, {self.state} {self.postal_code}, {self.country}"

    def requested_discounts(self) -> dict:
        return {
            "email": self.email_discount,
            "customer": self.customer_discount,
            "coupon": self.coupon_discount,
        }


class ReceiptResponse(CamelModel):
    success: bool
