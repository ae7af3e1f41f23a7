from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import datetime

from schemas.common import ORMBase
from models.order import OrderStatus
from schemas.product import ProductOut


# Output schema for an individual order line item; price is the purchase-time snapshot
class OrderItemOut(ORMBase):
    id: int
    product_id: int
    product: Optional[ProductOut] = None
    quantity: int
    price: float
    subtotal: float


# Row of the order history list
class OrderSummary(ORMBase):
    id: int
    total_amount: float
    status: OrderStatus
    status_text: str
    total_items: int
    items_count: int
    created_at: Optional[datetime] = None


# Output schema representing the full order details
class OrderResponse(ORMBase):
    id: int
    total_amount: float
    status: OrderStatus
    status_text: str
    total_items: int
    items: List[OrderItemOut]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderStats(BaseModel):
    total_orders: int
    pending_orders: int
    completed_orders: int
    cancelled_orders: int
    by_status: Dict[str, int]
    total_spent: float
