# backend/services/cart.py
"""The per-user cart: one row per user, lines unique per product."""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from models.cart import Cart, CartItem
from models.product import Product
from models.users import User
from utils.errors import Conflict, InsufficientStock, NotFound, ValidationError

logger = logging.getLogger(__name__)


def get_cart(db: Session, user: User) -> Optional[Cart]:
    # Never creates a row; a user without a cart simply has none yet
    return (
        db.query(Cart)
        .options(selectinload(Cart.items).joinedload(CartItem.product).joinedload(Product.category))
        .filter(Cart.user_id == user.id)
        .populate_existing()
        .first()
    )


def _find_item(cart: Optional[Cart], product_id: int) -> Optional[CartItem]:
    if cart is None:
        return None
    for item in cart.items:
        if item.product_id == product_id:
            return item
    return None


def _require_item(cart: Optional[Cart], product_id: int) -> CartItem:
    if cart is None:
        raise NotFound("Cart not found")
    item = _find_item(cart, product_id)
    if item is None:
        raise NotFound("Product not found in cart")
    return item


def _commit(db: Session):
    try:
        db.commit()
    except IntegrityError:
        # Lost a race on the one-cart-per-user or one-line-per-product constraint
        db.rollback()
        logger.warning("Concurrent cart write rejected", exc_info=True)
        raise Conflict("The cart was modified by another request, please retry")


def add_item(db: Session, user: User, product_id: int, quantity: int) -> Cart:
    product = db.get(Product, product_id)
    if product is None:
        raise ValidationError.for_field("product_id", "The selected product does not exist.")

    cart = get_cart(db, user)
    item = _find_item(cart, product_id)
    held = item.quantity if item else 0

    if product.stock_quantity < held + quantity:
        logger.info("Cart add refused for user %s: product %s stock %s, held %s, requested %s",
                    user.id, product.id, product.stock_quantity, held, quantity)
        raise InsufficientStock(product.name, product.stock_quantity, quantity, held=held or None)

    if cart is None:
        cart = Cart(user_id=user.id)
        db.add(cart)

    if item:
        item.quantity = held + quantity
    else:
        cart.items.append(CartItem(product_id=product.id, quantity=quantity))

    _commit(db)
    return get_cart(db, user)


def update_item(db: Session, user: User, product_id: int, quantity: int) -> Cart:
    cart = get_cart(db, user)
    item = _require_item(cart, product_id)

    product = item.product
    if product.stock_quantity < quantity:
        raise InsufficientStock(product.name, product.stock_quantity, quantity)

    item.quantity = quantity
    _commit(db)
    return get_cart(db, user)


def remove_item(db: Session, user: User, product_id: int) -> Cart:
    cart = get_cart(db, user)
    item = _require_item(cart, product_id)

    cart.items.remove(item)
    db.commit()
    return get_cart(db, user)


def clear(db: Session, user: User) -> Cart:
    cart = get_cart(db, user)
    if cart is None:
        raise NotFound("Cart not found")

    db.query(CartItem).filter(CartItem.cart_id == cart.id).delete(synchronize_session=False)
    db.commit()
    return get_cart(db, user)
