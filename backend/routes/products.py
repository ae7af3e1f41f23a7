# backend/routes/products.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.common import ApiResponse, PaginatedResponse, Pagination
from schemas.product import ProductCreate, ProductUpdate, ProductOut, RestockRequest
from services import catalog
from utils.audit import write_log, client_ip
from utils.tokenJWT import admin_required

router = APIRouter(prefix="/products", tags=["Products"])


# =========================
# PRODUCT LIST
# =========================
@router.get("", response_model=PaginatedResponse[ProductOut])
def list_products(
    category_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, description="Case-insensitive match on the product name"),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    page: int = Query(1, ge=1),
    # Values above the cap are clamped, not rejected
    limit: int = Query(20, ge=1),
    db: Session = Depends(get_db),
):
    items, total = catalog.list_products(
        db, category_id=category_id, search=search, min_price=min_price,
        max_price=max_price, page=page, limit=limit,
    )
    per_page = min(limit, catalog.MAX_PAGE_SIZE)
    return {
        "message": "Products listed",
        "data": items,
        "pagination": Pagination.build(page, per_page, total),
    }


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/{product_id}", response_model=ApiResponse[ProductOut])
def get_product(product_id: int, db: Session = Depends(get_db)):
    return {"message": "Product retrieved", "data": catalog.get_product(db, product_id)}


# =========================
# ADMIN MUTATIONS
# =========================
@router.post("", response_model=ApiResponse[ProductOut], status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    product = catalog.create_product(db, payload)
    write_log(db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products",
              ip=client_ip(request), meta={"id": product.id, "name": product.name})
    return {"message": "Product created", "data": product}


@router.put("/{product_id}", response_model=ApiResponse[ProductOut])
def update_product(
    product_id: int,
    payload: ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    product = catalog.update_product(db, product_id, payload)
    write_log(db, user_id=current_user.id, action="PRODUCT_UPDATE", resource="products",
              ip=client_ip(request), meta={"id": product.id, "fields": sorted(payload.model_dump(exclude_unset=True))})
    return {"message": "Product updated", "data": product}


@router.delete("/{product_id}", response_model=ApiResponse[None])
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    catalog.delete_product(db, product_id)
    write_log(db, user_id=current_user.id, action="PRODUCT_DELETE", resource="products",
              ip=client_ip(request), meta={"id": product_id})
    return {"message": "Product deleted"}


@router.post("/{product_id}/restock", response_model=ApiResponse[ProductOut])
def restock_product(
    product_id: int,
    payload: RestockRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    product = catalog.restock_product(db, product_id, payload.quantity, current_user, payload.reason)
    write_log(db, user_id=current_user.id, action="STOCK_RESTOCK", resource="products",
              ip=client_ip(request), meta={"id": product.id, "qty": payload.quantity})
    return {"message": "Product restocked", "data": product}
