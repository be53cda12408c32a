# mockshop/errors.py
from typing import Any, Dict, Optional


class ShopError(Exception):
    """Base class for errors that map onto an API error envelope."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra: Dict[str, Any] = extra

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": False, "error": self.message}
        body.update(self.extra)
        return body


class ValidationError(ShopError):
    """Missing or malformed request parameter."""

    status_code = 400


class EmptyCartError(ValidationError):
    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class NotFoundError(ShopError):
    status_code = 404


class StockError(ShopError):
    """Requested quantity exceeds what the catalog can supply."""

    status_code = 400

    def __init__(self, message: str, available_stock: int, current_in_cart: Optional[int] = None):
        extra: Dict[str, Any] = {"availableStock": available_stock}
        if current_in_cart is not None:
            extra["currentInCart"] = current_in_cart
        super().__init__(message, **extra)
        self.available_stock = available_stock
        self.current_in_cart = current_in_cart


class DataLoadError(Exception):
    """Static data could not be loaded; the server must not start."""
