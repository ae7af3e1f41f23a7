# backend/schemas/common.py
from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Envelope shared by every successful response
class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None


class Pagination(BaseModel):
    current_page: int
    last_page: int
    per_page: int
    total: int

    @classmethod
    def build(cls, page: int, per_page: int, total: int) -> "Pagination":
        last_page = max(1, -(-total // per_page))
        return cls(current_page=page, last_page=last_page, per_page=per_page, total=total)


class PaginatedResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: List[T]
    pagination: Pagination
