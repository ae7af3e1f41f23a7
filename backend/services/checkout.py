# backend/services/checkout.py
"""Cart to order conversion.

The whole flow runs in one transaction: either the order, its items, the
stock decrements and the emptied cart all become visible, or none of them do.
Stock can never be oversold: product rows are locked while the snapshot is
read, and every decrement is a compare-and-swap on ``stock_quantity`` so a
checkout working from a stale snapshot fails instead of driving stock negative.
"""
import logging
from decimal import Decimal
from typing import List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from models.cart import Cart, CartItem
from models.order import Order, OrderItem, OrderStatus
from models.product import Product
from models.stock import StockMovement
from models.users import User
from utils.errors import ApiError, BadRequest, Conflict, EmptyCart, InsufficientStock, InternalError

logger = logging.getLogger(__name__)

# Largest total the orders.total_amount column can hold
MAX_ORDER_TOTAL = Decimal("9999999999.99")

CartLine = Tuple[CartItem, Product]


def _lock_lines(db: Session, cart: Cart) -> List[CartLine]:
    """Read each line with its product's current price and stock.

    Products are locked in id order so two checkouts sharing products cannot
    deadlock; SQLite ignores FOR UPDATE and relies on the CAS decrement.
    """
    product_ids = sorted({item.product_id for item in cart.items})
    products = {
        p.id: p
        for p in db.query(Product)
        .filter(Product.id.in_(product_ids))
        .order_by(Product.id)
        .with_for_update()
        .populate_existing()
        .all()
    }
    lines = []
    for item in cart.items:
        product = products.get(item.product_id)
        if product is None:
            raise Conflict(f"Product #{item.product_id} is no longer available")
        lines.append((item, product))
    return lines


def _decrement_stock(db: Session, product_id: int, quantity: int) -> bool:
    result = db.execute(
        Product.__table__.update()
        .where(Product.id == product_id, Product.stock_quantity >= quantity)
        .values(stock_quantity=Product.stock_quantity - quantity)
    )
    return result.rowcount == 1


def _current_stock(db: Session, product_id: int) -> int:
    return db.query(Product.stock_quantity).filter(Product.id == product_id).scalar() or 0


def _lock_cart(db: Session, user: User) -> Cart:
    """Lock the user's cart row, then read its lines fresh.

    Taken before any product lock, so a second checkout of the same cart waits
    here and then finds the lines already gone.
    """
    cart = (
        db.query(Cart)
        .filter(Cart.user_id == user.id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if cart is None:
        raise EmptyCart()
    db.expire(cart, ["items"])
    if not cart.items:
        raise EmptyCart()
    return cart


def place_order(db: Session, user: User) -> Order:
    try:
        cart = _lock_cart(db, user)
        lines = _lock_lines(db, cart)

        # Validate every line before writing anything
        for item, product in lines:
            if product.stock_quantity < item.quantity:
                raise InsufficientStock(product.name, product.stock_quantity, item.quantity)

        # Prices come from the snapshot above and are frozen into the order items
        total = sum((Decimal(product.price) * item.quantity for item, product in lines), Decimal("0.00"))
        if total > MAX_ORDER_TOTAL:
            raise BadRequest(f"Order total cannot exceed {MAX_ORDER_TOTAL}")

        order = Order(user_id=user.id, status=OrderStatus.PENDING, total_amount=total)
        db.add(order)
        db.flush()

        for item, product in lines:
            db.add(OrderItem(
                order_id=order.id,
                product_id=product.id,
                quantity=item.quantity,
                price=Decimal(product.price),
            ))
            if not _decrement_stock(db, product.id, item.quantity):
                # Another checkout took the stock after our snapshot was read
                raise InsufficientStock(product.name, _current_stock(db, product.id), item.quantity)
            db.add(StockMovement(
                product_id=product.id, user_id=user.id, order_id=order.id,
                qty=item.quantity, type="OUT", reason=f"Order #{order.id}",
            ))

        # Empty the cart; the cart row itself stays
        removed = db.query(CartItem).filter(CartItem.cart_id == cart.id).delete(synchronize_session=False)
        if removed != len(lines):
            # The same cart was checked out by another request in the meantime
            raise Conflict("Your cart changed while the order was being placed, please review it and try again")

        db.commit()
    except ApiError as exc:
        db.rollback()
        logger.warning("Checkout rejected for user %s: %s", user.id, exc.detail)
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Checkout failed for user %s", user.id)
        raise InternalError("An error occurred while creating the order")

    logger.info("Order %s placed by user %s, total %s", order.id, user.id, total)
    return (
        db.query(Order)
        .options(joinedload(Order.items).joinedload(OrderItem.product).joinedload(Product.category))
        .filter(Order.id == order.id)
        .one()
    )
