# backend/services/orders.py
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from models.order import Order, OrderItem, OrderStatus
from models.product import Product
from models.users import User
from utils.errors import NotFound

ORDERS_PER_PAGE = 10


# Only the caller's own orders, newest first
def list_orders(
    db: Session, user: User, status: Optional[OrderStatus] = None, page: int = 1, per_page: int = ORDERS_PER_PAGE
) -> Tuple[List[Order], int]:
    query = db.query(Order).filter(Order.user_id == user.id)
    if status is not None:
        query = query.filter(Order.status == status)

    total = query.count()
    rows = (
        query.options(selectinload(Order.items))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return rows, total


# Ownership is part of the lookup: someone else's order is indistinguishable from a missing one
def get_order(db: Session, user: User, order_id: int) -> Order:
    order = (
        db.query(Order)
        .options(joinedload(Order.items).joinedload(OrderItem.product).joinedload(Product.category))
        .filter(Order.id == order_id, Order.user_id == user.id)
        .first()
    )
    if not order:
        raise NotFound("Order not found or does not belong to you")
    return order


def order_stats(db: Session, user: User) -> Dict:
    by_status = {s.value: 0 for s in OrderStatus}
    rows = (
        db.query(Order.status, func.count(Order.id))
        .filter(Order.user_id == user.id)
        .group_by(Order.status)
        .all()
    )
    for status, count in rows:
        by_status[OrderStatus(status).value] = count

    total_spent = (
        db.query(func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.user_id == user.id, Order.status != OrderStatus.CANCELLED)
        .scalar()
    )

    return {
        "total_orders": sum(by_status.values()),
        "pending_orders": by_status[OrderStatus.PENDING.value],
        "completed_orders": by_status[OrderStatus.DELIVERED.value],
        "cancelled_orders": by_status[OrderStatus.CANCELLED.value],
        "by_status": by_status,
        "total_spent": Decimal(str(total_spent or 0)),
    }
