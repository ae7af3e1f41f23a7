# backend/routes/orders.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.order import OrderStatus
from models.users import User
from schemas.common import ApiResponse, PaginatedResponse, Pagination
from schemas.order import OrderResponse, OrderStats, OrderSummary
from services import checkout
from services import orders as order_service
from utils.audit import write_log, client_ip
from utils.tokenJWT import get_current_user

router = APIRouter(tags=["Orders"])


# Convert the current cart into an order
@router.post("/orders", response_model=ApiResponse[OrderResponse], status_code=status.HTTP_201_CREATED)
def create_order(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = checkout.place_order(db, current_user)
    out = OrderResponse.model_validate(order)
    write_log(db, user_id=current_user.id, action="ORDER_CREATE", resource="orders", ip=client_ip(request),
              meta={"order_id": out.id, "total_amount": out.total_amount, "items": len(out.items)})
    return {"message": "Order created", "data": out}


# List user orders, newest first
@router.get("/orders", response_model=PaginatedResponse[OrderSummary])
def list_my_orders(
    status: Optional[OrderStatus] = Query(None),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows, total = order_service.list_orders(db, current_user, status=status, page=page)
    return {
        "message": "Orders listed",
        "data": rows,
        "pagination": Pagination.build(page, order_service.ORDERS_PER_PAGE, total),
    }


# Get details of a specific order
@router.get("/orders/{order_id}", response_model=ApiResponse[OrderResponse])
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"message": "Order retrieved", "data": order_service.get_order(db, current_user, order_id)}


@router.get("/orders-stats", response_model=ApiResponse[OrderStats])
def get_order_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"message": "Order statistics", "data": order_service.order_stats(db, current_user)}
