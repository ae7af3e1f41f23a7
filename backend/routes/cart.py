# backend/routes/cart.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.cart import Cart
from models.users import User
from schemas.cart import CartItemRequest, CartOut
from schemas.common import ApiResponse
from services import cart as cart_service
from utils.audit import write_log, client_ip
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/cart", tags=["Cart"])


def _cart_to_out(cart: Cart) -> CartOut:
    # A user without a cart row gets the empty-cart value
    if cart is None:
        return CartOut()
    return CartOut.model_validate(cart)


@router.get("", response_model=ApiResponse[CartOut])
def get_cart(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    cart = cart_service.get_cart(db, current_user)
    message = "Cart retrieved" if cart and cart.items else "Cart is empty"
    return {"message": message, "data": _cart_to_out(cart)}


@router.post("/add", response_model=ApiResponse[CartOut], status_code=status.HTTP_201_CREATED)
def add_to_cart(
    payload: CartItemRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    out = _cart_to_out(cart_service.add_item(db, current_user, payload.product_id, payload.quantity))
    write_log(db, user_id=current_user.id, action="CART_ADD", resource="cart", ip=client_ip(request),
              meta={"product_id": payload.product_id, "qty": payload.quantity, "total_items": out.total_items})
    return {"message": "Product added to cart", "data": out}


@router.put("/update", response_model=ApiResponse[CartOut])
def update_cart_item(
    payload: CartItemRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    out = _cart_to_out(cart_service.update_item(db, current_user, payload.product_id, payload.quantity))
    write_log(db, user_id=current_user.id, action="CART_UPDATE", resource="cart", ip=client_ip(request),
              meta={"product_id": payload.product_id, "qty": payload.quantity})
    return {"message": "Cart updated", "data": out}


@router.delete("/remove/{product_id}", response_model=ApiResponse[CartOut])
def remove_cart_item(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    out = _cart_to_out(cart_service.remove_item(db, current_user, product_id))
    write_log(db, user_id=current_user.id, action="CART_REMOVE", resource="cart", ip=client_ip(request),
              meta={"product_id": product_id})
    return {"message": "Product removed from cart", "data": out}


@router.delete("/clear", response_model=ApiResponse[CartOut])
def clear_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    out = _cart_to_out(cart_service.clear(db, current_user))
    write_log(db, user_id=current_user.id, action="CART_CLEAR", resource="cart", ip=client_ip(request))
    return {"message": "Cart cleared", "data": out}
