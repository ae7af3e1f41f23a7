from pydantic import BaseModel, Field
from typing import List

from schemas.common import ORMBase
from schemas.product import ProductOut
from models.product import MAX_STOCK

# Request schema for adding an item to the cart or changing its quantity
class CartItemRequest(BaseModel):
    product_id: int
    quantity: int = Field(ge=1, le=MAX_STOCK)

# Response schema for a single cart line item
class CartItemOut(ORMBase):
    id: int
    product: ProductOut
    quantity: int
    subtotal: float

# Response schema for the entire cart summary
class CartOut(ORMBase):
    items: List[CartItemOut] = []
    total_items: int = 0
    total_price: float = 0.0
