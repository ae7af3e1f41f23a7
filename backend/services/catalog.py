# backend/services/catalog.py
"""Categories and products: listing, lookup and admin mutations."""
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from models.category import Category
from models.product import MAX_STOCK, Product
from models.cart import CartItem
from models.order import OrderItem
from models.stock import StockMovement
from models.users import User
from schemas.category import CategoryCreate, CategoryUpdate
from schemas.product import ProductCreate, ProductUpdate
from utils.errors import Conflict, NotFound, ValidationError

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


# ---- CATEGORIES ----

def list_categories(db: Session) -> List[Tuple[Category, int]]:
    rows = (
        db.query(Category, func.count(Product.id))
        .outerjoin(Product, Product.category_id == Category.id)
        .group_by(Category.id)
        .order_by(Category.id)
        .all()
    )
    return [(category, count) for category, count in rows]


def get_category(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if not category:
        raise NotFound("Category not found")
    return category


def _ensure_unique_name(db: Session, name: str, exclude_id: Optional[int] = None):
    query = db.query(Category).filter(Category.name == name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise ValidationError.for_field("name", "The name has already been taken.")


def _commit_category(db: Session, category: Category) -> Category:
    try:
        db.commit()
    except IntegrityError:
        # Unique index caught a concurrent insert with the same name
        db.rollback()
        raise ValidationError.for_field("name", "The name has already been taken.")
    db.refresh(category)
    return category


def create_category(db: Session, payload: CategoryCreate) -> Category:
    _ensure_unique_name(db, payload.name)
    category = Category(name=payload.name, description=payload.description)
    db.add(category)
    return _commit_category(db, category)


def update_category(db: Session, category_id: int, payload: CategoryUpdate) -> Category:
    category = get_category(db, category_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name") is not None:
        _ensure_unique_name(db, changes["name"], exclude_id=category.id)
        category.name = changes["name"]
    if "description" in changes:
        category.description = changes["description"]
    return _commit_category(db, category)


def delete_category(db: Session, category_id: int) -> Category:
    category = get_category(db, category_id)
    products_count = db.query(func.count(Product.id)).filter(Product.category_id == category.id).scalar()
    if products_count:
        raise Conflict(
            f"Category '{category.name}' cannot be deleted: it still has {products_count} product(s). "
            "Move them to another category first."
        )
    db.delete(category)
    db.commit()
    return category


# ---- PRODUCTS ----

def list_products(
    db: Session,
    *,
    category_id: Optional[int] = None,
    search: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Product], int]:
    limit = min(limit, MAX_PAGE_SIZE)
    query = db.query(Product).options(joinedload(Product.category))

    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if search:
        query = query.filter(Product.name.ilike(f"%{search}%"))
    if min_price is not None:
        query = query.filter(Product.price >= Decimal(str(min_price)))
    if max_price is not None:
        query = query.filter(Product.price <= Decimal(str(max_price)))

    total = query.count()
    items = query.order_by(Product.id).offset((page - 1) * limit).limit(limit).all()
    return items, total


def get_product(db: Session, product_id: int) -> Product:
    product = (
        db.query(Product)
        .options(joinedload(Product.category))
        .filter(Product.id == product_id)
        .first()
    )
    if not product:
        raise NotFound("Product not found")
    return product


def _ensure_category_exists(db: Session, category_id: int):
    if db.get(Category, category_id) is None:
        raise ValidationError.for_field("category_id", "The selected category does not exist.")


def create_product(db: Session, payload: ProductCreate) -> Product:
    _ensure_category_exists(db, payload.category_id)
    product = Product(
        name=payload.name,
        description=payload.description,
        price=Decimal(str(payload.price)),
        stock_quantity=payload.stock_quantity,
        category_id=payload.category_id,
    )
    db.add(product)
    db.commit()
    return get_product(db, product.id)


def update_product(db: Session, product_id: int, payload: ProductUpdate) -> Product:
    product = get_product(db, product_id)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("category_id") is not None:
        _ensure_category_exists(db, changes["category_id"])

    for key, value in changes.items():
        if value is None and key != "description":
            continue
        if key == "price":
            value = Decimal(str(value))
        setattr(product, key, value)

    db.commit()
    return get_product(db, product_id)


def delete_product(db: Session, product_id: int) -> Product:
    product = get_product(db, product_id)
    in_orders = db.query(OrderItem.id).filter(OrderItem.product_id == product.id).first()
    if in_orders:
        raise Conflict(f"Product '{product.name}' appears in order history and cannot be deleted.")

    db.query(CartItem).filter(CartItem.product_id == product.id).delete(synchronize_session=False)
    db.query(StockMovement).filter(StockMovement.product_id == product.id).delete(synchronize_session=False)
    db.delete(product)
    db.commit()
    return product


def restock_product(db: Session, product_id: int, quantity: int, user: User, reason: Optional[str] = None) -> Product:
    product = get_product(db, product_id)
    if product.stock_quantity + quantity > MAX_STOCK:
        raise ValidationError.for_field("quantity", f"Stock cannot exceed {MAX_STOCK} units.")

    # Increment in SQL so a concurrent checkout decrement is never lost
    db.query(Product).filter(Product.id == product.id).update(
        {Product.stock_quantity: Product.stock_quantity + quantity}, synchronize_session=False
    )
    db.add(StockMovement(product_id=product.id, user_id=user.id, qty=quantity, type="IN", reason=reason or "Restock"))
    db.commit()

    logger.info("Product %s restocked by %s (user %s)", product_id, quantity, user.id)
    return get_product(db, product_id)
