from pydantic import Field

from shared.schemas import CamelModel


class CartItemCreate(CamelModel):
    variant_id: str = Field(min_length=1)
    quantity: int = Field(default=1, gt=0)


class CartItemUpdate(CamelModel):
    quantity: int = Field(gt=0)
