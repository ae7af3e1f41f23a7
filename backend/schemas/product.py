# backend/schemas/product.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from schemas.common import ORMBase
from schemas.category import CategoryOut
from models.product import MAX_PRICE, MAX_STOCK


# Shared base attributes for product entities
class ProductBase(BaseModel):
    name: str = Field(min_length=3, max_length=255)
    description: Optional[str] = None
    price: float = Field(ge=0.01, le=MAX_PRICE)
    stock_quantity: int = Field(ge=0, le=MAX_STOCK)
    category_id: int


# Schema for creating a new product
class ProductCreate(ProductBase):
    pass


# Schema for partial product updates
class ProductUpdate(BaseModel):
    """All fields optional; only the ones sent are applied."""
    name: Optional[str] = Field(default=None, min_length=3, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0.01, le=MAX_PRICE)
    stock_quantity: Optional[int] = Field(default=None, ge=0, le=MAX_STOCK)
    category_id: Optional[int] = None


class RestockRequest(BaseModel):
    quantity: int = Field(ge=1, le=MAX_STOCK)
    reason: Optional[str] = Field(default=None, max_length=255)


# Full product representation including its category
class ProductOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    stock_quantity: int
    category_id: int
    category: Optional[CategoryOut] = None
    created_at: Optional[datetime] = None
