from typing import Generic, List, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Wire models speak camelCase JSON but accept snake_case too."""

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class Page(CamelModel, Generic[T]):
    items: List[T]
    total_count: int
    total_pages: int
    current_page: int
