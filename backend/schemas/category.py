# backend/schemas/category.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from schemas.common import ORMBase


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None


# Partial update: omitted fields keep their value
class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None


class CategoryOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class CategoryWithCount(CategoryOut):
    products_count: int = 0
