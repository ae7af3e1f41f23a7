# backend/utils/errors.py
"""Error taxonomy of the API.

Every error is an ``HTTPException`` so routes and services raise them the same
way FastAPI code raises ``HTTPException`` directly; ``main.py`` renders them in
the ``{success, message, errors}`` envelope.
"""
from typing import Dict, List, Optional

from fastapi import HTTPException, status


class ApiError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, List[str]]] = None, headers=None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message, headers=headers)
        self.errors = errors


class ValidationError(ApiError):
    status_code = 422
    default_message = "Validation error"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(errors={field: [message]})


class BadRequest(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class Unauthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InsufficientStock(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Insufficient stock"

    def __init__(self, product_name: str, stock: int, requested: int, held: Optional[int] = None):
        if held:
            message = f"Insufficient stock for '{product_name}'! In your cart: {held}, available: {stock}"
        else:
            message = f"Insufficient stock for '{product_name}'! Available: {stock}, requested: {requested}"
        super().__init__(message)
        self.product_name = product_name
        self.stock = stock
        self.requested = requested
        self.held = held


class EmptyCart(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Your cart is empty, an order cannot be placed"


class InternalError(ApiError):
    pass
