"""Product Pydantic schemas"""

from pydantic import ConfigDict, Field, field_validator
from typing import List, Optional
from decimal import Decimal

from digistore.utils.helpers import round_money

from .base import BaseSchema


class Product(BaseSchema):
    """
    Catalog product as served by the backend API.
    Unknown fields are kept so the full payload survives persistence.
    """
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    slug: str = ""
    price: Decimal = Field(..., ge=0)
    original_price: Optional[Decimal] = None
    category: Optional[str] = None
    file_type: Optional[str] = None
    thumbnail_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator('price')
    @classmethod
    def validate_price(cls, v):
        # Cents, half up like every other amount
        return round_money(v)
