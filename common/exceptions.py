"""
Jomla - Custom Exceptions
==========================
Business-level exceptions that can be caught and converted to HTTP responses.
Messages are user-facing (Arabic, the store's default language).
"""

from fastapi import HTTPException


class StoreError(Exception):
    """Base exception for all business logic errors."""
    def __init__(self, message: str = "حدث خطأ"):
        self.message = message
        super().__init__(self.message)


class ValidationError(StoreError):
    """Raised when required input is missing or malformed (before any write)."""
    pass


class AuthenticationError(StoreError):
    """Raised when sign-in or sign-up fails."""
    pass


class InsufficientStockError(StoreError):
    """Raised when requested quantity exceeds the live stock."""
    def __init__(self, product_name: str = ""):
        msg = f"الكمية المطلوبة غير متوفرة: {product_name}" if product_name else "الكمية المطلوبة غير متوفرة"
        super().__init__(msg)


class AuthorizationError(StoreError):
    """Raised when the caller may not perform the action."""
    pass


class DuplicateError(StoreError):
    """Raised for unique constraint violations at the business level."""
    pass


class NotFoundError(StoreError):
    """Raised when a requested resource doesn't exist."""
    pass


class CheckoutError(StoreError):
    """Raised when an order cannot be created (all writes rolled back)."""
    def __init__(self, message: str = "حدث خطأ أثناء إنشاء الطلب"):
        super().__init__(message)


def raise_http(error: StoreError, status_code: int = 400):
    """Convert a business exception to an HTTP exception."""
    raise HTTPException(status_code=status_code, detail=error.message)
