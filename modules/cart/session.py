"""
Cart Module - Anonymous Session Identity
==========================================
A stable anonymous id for visitors who are not signed in, kept in the
``cart_session_id`` cookie. The id keys the guest's cart until sign-in,
when the guest cart is merged into the account's cart.

Cookie writes are queued on ``request.state`` and applied to the outgoing
response by the cart-session middleware in main.py, so any code holding
the request can read its own writes within the same request.
"""

import logging
import uuid
from typing import Optional

from fastapi import Request

from config.settings import CART_SESSION_COOKIE

logger = logging.getLogger("jomla.cart")


class StorageUnavailable(Exception):
    """Client-side storage cannot be read or written."""
    pass


class CookieStorage:
    """Key/value storage over the request's cookies."""

    def __init__(self, request: Optional[Request]):
        self.request = request

    def _pending(self) -> dict:
        if self.request is None:
            raise StorageUnavailable("no request bound")
        writes = getattr(self.request.state, "_cookie_writes", None)
        if writes is None:
            writes = {}
            self.request.state._cookie_writes = writes
        return writes

    def get(self, key: str) -> Optional[str]:
        pending = self._pending()
        if key in pending:
            return pending[key]
        return self.request.cookies.get(key)

    def set(self, key: str, value: str):
        self._pending()[key] = value

    def remove(self, key: str):
        # None = delete the cookie on the way out
        self._pending()[key] = None


def _is_valid_session_id(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


class CartSessionProvider:

    def __init__(self, storage, key: str = CART_SESSION_COOKIE):
        self.storage = storage
        self.key = key

    def get_session_id(self) -> str:
        """Current id without creating one ("" when absent or storage is unavailable)."""
        try:
            value = self.storage.get(self.key)
        except StorageUnavailable as e:
            logger.warning(f"Session storage unavailable: {e}")
            return ""
        return value if _is_valid_session_id(value) else ""

    def get_or_create_session_id(self) -> str:
        """Existing id, or a freshly generated and persisted UUID4."""
        try:
            existing = self.storage.get(self.key)
            if _is_valid_session_id(existing):
                return existing
            session_id = str(uuid.uuid4())
            self.storage.set(self.key, session_id)
        except StorageUnavailable as e:
            logger.warning(f"Session storage unavailable: {e}")
            return ""
        return session_id

    def clear(self):
        try:
            self.storage.remove(self.key)
        except StorageUnavailable as e:
            logger.warning(f"Session storage unavailable: {e}")


def get_cart_session(request: Request) -> CartSessionProvider:
    """FastAPI dependency: session provider bound to the current request."""
    return CartSessionProvider(CookieStorage(request))
