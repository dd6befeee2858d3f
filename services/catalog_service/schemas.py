from decimal import Decimal

from pydantic import Field

from shared.schemas import CamelModel


class VariantCreate(CamelModel):
    product_name: str = Field(min_length=1)
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0, decimal_places=2)
    initial_stock: int = Field(default=0, ge=0)


class VariantResponse(CamelModel):
    id: str
    store_id: str
    product_name: str
    name: str
    price: Decimal
