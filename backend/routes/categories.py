# backend/routes/categories.py
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.common import ApiResponse
from schemas.category import CategoryCreate, CategoryUpdate, CategoryOut, CategoryWithCount
from services import catalog
from utils.audit import write_log, client_ip
from utils.tokenJWT import admin_required

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=ApiResponse[List[CategoryWithCount]])
def list_categories(db: Session = Depends(get_db)):
    data = [
        CategoryWithCount(
            id=category.id,
            name=category.name,
            description=category.description,
            created_at=category.created_at,
            products_count=count,
        )
        for category, count in catalog.list_categories(db)
    ]
    return {"message": "Categories listed", "data": data}


@router.get("/{category_id}", response_model=ApiResponse[CategoryOut])
def get_category(category_id: int, db: Session = Depends(get_db)):
    return {"message": "Category retrieved", "data": catalog.get_category(db, category_id)}


@router.post("", response_model=ApiResponse[CategoryOut], status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    category = catalog.create_category(db, payload)
    write_log(db, user_id=current_user.id, action="CATEGORY_CREATE", resource="categories",
              ip=client_ip(request), meta={"id": category.id, "name": category.name})
    return {"message": "Category created", "data": category}


@router.put("/{category_id}", response_model=ApiResponse[CategoryOut])
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    category = catalog.update_category(db, category_id, payload)
    write_log(db, user_id=current_user.id, action="CATEGORY_UPDATE", resource="categories",
              ip=client_ip(request), meta={"id": category.id})
    return {"message": "Category updated", "data": category}


@router.delete("/{category_id}", response_model=ApiResponse[None])
def delete_category(
    category_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    catalog.delete_category(db, category_id)
    write_log(db, user_id=current_user.id, action="CATEGORY_DELETE", resource="categories",
              ip=client_ip(request), meta={"id": category_id})
    return {"message": "Category deleted"}
