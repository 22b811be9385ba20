"""
Cart Module - Service Layer
==============================
CartStore: the cart of one owner (signed-in user, else anonymous session)
held as explicit state with load / mutate / subscribe.

Guest cart merge strategies:
  - NativeGuestCartMerger: merge rows in this app's transaction (default)
  - ProcedureGuestCartMerger: delegate to merge_guest_cart_to_user() in the DB

Housekeeping jobs (run by the scheduler): abandonment events and purge of
stale empty guest carts.

Services flush; the calling route owns commit/rollback.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Callable, List, Optional

from sqlalchemy import text, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from common.exceptions import StoreError, InsufficientStockError, ValidationError, NotFoundError
from common.helpers import now_utc
from common.i18n import Language
from config.settings import CART_MERGE_STRATEGY
from modules.analytics.models import EventType
from modules.analytics.service import track_event
from modules.cart.models import Cart, CartItem
from modules.catalog.service import catalog, available_stock, unit_price

logger = logging.getLogger("jomla.cart")


def validate_stock(requested: int, available: int, product_name: str = ""):
    """Reject a quantity above live stock before anything is written."""
    if requested > available:
        raise InsufficientStockError(product_name)


@dataclass
class CartLine:
    id: int
    product_id: int
    variant_item_id: Optional[int]
    quantity: int
    price: Decimal                  # snapshot taken when the line was added
    product_name_ar: str
    product_name_fr: Optional[str] = None
    variant_name_ar: Optional[str] = None
    variant_name_fr: Optional[str] = None
    image_url: Optional[str] = None
    stock: int = 0                  # live
    live_price: Optional[Decimal] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def name(self, lang: Language = Language.AR) -> str:
        if lang == Language.FR and self.product_name_fr:
            return self.product_name_fr
        return self.product_name_ar

    def variant_name(self, lang: Language = Language.AR) -> Optional[str]:
        if lang == Language.FR and self.variant_name_fr:
            return self.variant_name_fr
        return self.variant_name_ar

    @classmethod
    def from_row(cls, row: CartItem) -> "CartLine":
        product = row.product
        variant_item = row.variant_item
        return cls(
            id=row.id,
            product_id=row.product_id,
            variant_item_id=row.variant_item_id,
            quantity=row.quantity,
            price=Decimal(row.price),
            product_name_ar=product.name_ar,
            product_name_fr=product.name_fr,
            variant_name_ar=variant_item.name_ar if variant_item else None,
            variant_name_fr=variant_item.name_fr if variant_item else None,
            image_url=(variant_item.image_url if variant_item and variant_item.image_url else product.image_url),
            stock=available_stock(product, variant_item),
            live_price=unit_price(product, variant_item),
        )


# ==========================================
# Guest Cart Merge
# ==========================================

class GuestCartMerger:
    """Fold the cart of `session_id` into the cart of `user_id`."""

    def merge(self, db: Session, session_id: str, user_id: int):
        raise NotImplementedError


class NativeGuestCartMerger(GuestCartMerger):
    """
    Merge policy:
      - guest lines with no matching (product, variant) in the user cart move over
      - colliding lines keep the user's line and price snapshot; quantities are
        summed and capped at live stock, never below the user's own quantity
      - the guest cart is deleted; the user cart is created if absent
    """

    def merge(self, db: Session, session_id: str, user_id: int):
        guest = (
            db.query(Cart)
            .options(joinedload(Cart.items).joinedload(CartItem.product),
                     joinedload(Cart.items).joinedload(CartItem.variant_item))
            .filter(Cart.session_id == session_id)
            .first()
        )
        if guest is None:
            return

        user_cart = db.query(Cart).filter(Cart.user_id == user_id).first()
        if user_cart is None:
            user_cart = Cart(user_id=user_id)
            db.add(user_cart)
            db.flush()

        existing = {(item.product_id, item.variant_item_id): item for item in user_cart.items}
        moved = summed = 0
        for item in list(guest.items):
            target = existing.get((item.product_id, item.variant_item_id))
            if target is None:
                item.cart = user_cart
                existing[(item.product_id, item.variant_item_id)] = item
                moved += 1
                continue
            stock = available_stock(item.product, item.variant_item)
            target.quantity = max(target.quantity, min(target.quantity + item.quantity, stock))
            guest.items.remove(item)
            summed += 1

        db.flush()
        db.delete(guest)
        user_cart.updated_at = now_utc()
        db.flush()
        logger.info(f"Guest cart merged into user #{user_id}: {moved} moved, {summed} summed")


class ProcedureGuestCartMerger(GuestCartMerger):
    """Delegates to the database function merge_guest_cart_to_user(session_id, user_id)."""

    def merge(self, db: Session, session_id: str, user_id: int):
        db.execute(
            text("SELECT merge_guest_cart_to_user(:session_id, :user_id)"),
            {"session_id": session_id, "user_id": user_id},
        )


_MERGERS = {
    "native": NativeGuestCartMerger,
    "procedure": ProcedureGuestCartMerger,
}


def get_merger(strategy: str = CART_MERGE_STRATEGY) -> GuestCartMerger:
    merger_cls = _MERGERS.get(strategy)
    if merger_cls is None:
        logger.warning(f"Unknown CART_MERGE_STRATEGY '{strategy}', using native")
        merger_cls = NativeGuestCartMerger
    return merger_cls()


# ==========================================
# Cart Store
# ==========================================

class CartStore:
    """
    Cart state for one owner. Identity is the user id when signed in,
    otherwise the anonymous session id; with neither, the cart is empty
    and nothing is written.
    """

    def __init__(
        self,
        db: Session,
        user_id: Optional[int] = None,
        session_id: str = "",
        merger: Optional[GuestCartMerger] = None,
    ):
        self.db = db
        self.user_id = user_id
        self.session_id = session_id or ""
        self.merger = merger or get_merger()
        self.items: List[CartLine] = []
        self.cart_id: Optional[int] = None
        self.loading = False
        self._subscribers: List[Callable[["CartStore"], None]] = []

    # --- subscription ---

    def subscribe(self, callback: Callable[["CartStore"], None]) -> Callable[[], None]:
        """Register a change listener. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _notify(self):
        for callback in list(self._subscribers):
            callback(self)

    # --- queries ---

    @property
    def has_identity(self) -> bool:
        return bool(self.user_id or self.session_id)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def get_subtotal(self) -> Decimal:
        return sum((line.price * line.quantity for line in self.items), Decimal("0"))

    def find_line(self, product_id: int, variant_item_id: Optional[int] = None) -> Optional[CartLine]:
        for line in self.items:
            if line.product_id == product_id and line.variant_item_id == variant_item_id:
                return line
        return None

    def get_line(self, item_id: int) -> Optional[CartLine]:
        for line in self.items:
            if line.id == item_id:
                return line
        return None

    # --- loading ---

    def _owner_cart(self) -> Optional[Cart]:
        q = self.db.query(Cart)
        if self.user_id:
            return q.filter(Cart.user_id == self.user_id).first()
        return q.filter(Cart.session_id == self.session_id).first()

    def _fetch_lines(self) -> List[CartLine]:
        rows = (
            self.db.query(CartItem)
            .options(
                joinedload(CartItem.product),
                joinedload(CartItem.variant_item),
            )
            .filter(CartItem.cart_id == self.cart_id)
            .order_by(CartItem.id.asc())
            .all()
        )
        return [CartLine.from_row(row) for row in rows]

    def load_cart(self) -> "CartStore":
        """Find (or lazily create) the owner's cart and replace in-memory state."""
        self.loading = True
        self._notify()
        try:
            if not self.has_identity:
                self.items = []
                self.cart_id = None
                return self

            cart = self._owner_cart()
            if cart is None:
                if self.user_id:
                    cart = Cart(user_id=self.user_id)
                else:
                    cart = Cart(session_id=self.session_id)
                self.db.add(cart)
                self.db.flush()
            self.cart_id = cart.id
            self.items = self._fetch_lines()
            return self
        except SQLAlchemyError as e:
            logger.error(f"Cart load failed (user={self.user_id}, session={self.session_id}): {e}")
            raise
        finally:
            self.loading = False
            self._notify()

    def _ensure_cart(self):
        if self.cart_id is None:
            self.load_cart()
        if self.cart_id is None:
            raise StoreError("تعذر تحديد السلة")

    def _touch(self):
        self.db.query(Cart).filter(Cart.id == self.cart_id).update(
            {Cart.updated_at: now_utc()}, synchronize_session=False,
        )

    # --- mutations ---

    def add_item(
        self,
        product_id: int,
        quantity: int,
        price: Decimal,
        variant_item_id: Optional[int] = None,
    ) -> CartLine:
        """
        Add a line with a snapshotted unit price. A line with the same
        (product, variant) is merged by summing quantities.
        """
        if quantity < 1:
            raise ValidationError("الكمية غير صالحة")
        self._ensure_cart()

        existing = self.find_line(product_id, variant_item_id)
        if existing:
            self.update_quantity(existing.id, existing.quantity + quantity)
            return existing

        row = CartItem(
            cart_id=self.cart_id,
            product_id=product_id,
            variant_item_id=variant_item_id,
            quantity=quantity,
            price=price,
        )
        try:
            self.db.add(row)
            self.db.flush()
            self._touch()
        except SQLAlchemyError as e:
            logger.error(f"Cart add failed (cart #{self.cart_id}, product #{product_id}): {e}")
            raise

        line = CartLine.from_row(row)
        self.items.append(line)
        track_event(
            self.db, EventType.ADD_TO_CART,
            user_id=self.user_id, session_id=self.session_id,
            product_id=product_id, variant_item_id=variant_item_id,
            metadata={"quantity": quantity, "price": str(price)},
        )
        self._notify()
        return line

    def add_product(self, product_id: int, quantity: int = 1, variant_item_id: Optional[int] = None) -> CartLine:
        """
        Storefront entry point: resolve the live price, check live stock
        against (already in cart + requested), then add_item().
        """
        if quantity < 1:
            raise ValidationError("الكمية غير صالحة")
        self._ensure_cart()
        purchasable = catalog.resolve_purchasable(self.db, product_id, variant_item_id)
        existing = self.find_line(product_id, variant_item_id)
        in_cart = existing.quantity if existing else 0
        validate_stock(in_cart + quantity, purchasable.stock, purchasable.product.name_ar)
        return self.add_item(product_id, quantity, purchasable.price, variant_item_id)

    def check_stock(self, item_id: int, quantity: int):
        """Pre-validate a new quantity for an existing line against live stock."""
        line = self.get_line(item_id)
        if line is None:
            raise NotFoundError("العنصر غير موجود في السلة")
        validate_stock(quantity, line.stock, line.product_name_ar)

    def update_quantity(self, item_id: int, quantity: int):
        """quantity <= 0 removes the line. No stock ceiling here (see check_stock)."""
        if quantity <= 0:
            return self.remove_item(item_id)
        self._ensure_cart()
        try:
            updated = self.db.query(CartItem).filter(
                CartItem.id == item_id, CartItem.cart_id == self.cart_id,
            ).update({CartItem.quantity: quantity}, synchronize_session="fetch")
            if updated:
                self._touch()
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Cart update failed (item #{item_id}): {e}")
            raise
        if not updated:
            raise NotFoundError("العنصر غير موجود في السلة")

        line = self.get_line(item_id)
        if line:
            line.quantity = quantity
        self._notify()

    def remove_item(self, item_id: int):
        self._ensure_cart()
        try:
            deleted = self.db.query(CartItem).filter(
                CartItem.id == item_id, CartItem.cart_id == self.cart_id,
            ).delete(synchronize_session="fetch")
            if deleted:
                self._touch()
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Cart remove failed (item #{item_id}): {e}")
            raise
        self.items = [line for line in self.items if line.id != item_id]
        self._notify()

    def clear_cart(self):
        """Delete every line of the current cart. No-op when no cart is loaded."""
        if self.cart_id is None:
            return
        try:
            self.db.query(CartItem).filter(CartItem.cart_id == self.cart_id).delete(
                synchronize_session="fetch",
            )
            self._touch()
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Cart clear failed (cart #{self.cart_id}): {e}")
            raise
        self.items = []
        self._notify()

    def merge_guest_cart(self, user_id: int) -> "CartStore":
        """
        Called once right after sign-in / sign-up: fold the session's cart
        into the user's cart, switch identity to the user and reload.
        """
        if self.session_id:
            try:
                self.merger.merge(self.db, self.session_id, user_id)
            except SQLAlchemyError as e:
                logger.error(f"Guest cart merge failed (session={self.session_id}, user #{user_id}): {e}")
                raise
        self.user_id = user_id
        self.cart_id = None
        return self.load_cart()


# ==========================================
# Read helpers
# ==========================================

def count_cart_items(db: Session, user_id: Optional[int] = None, session_id: str = "") -> int:
    """Total quantity in the owner's cart without creating a cart (header badge)."""
    if not user_id and not session_id:
        return 0
    q = db.query(func.coalesce(func.sum(CartItem.quantity), 0)).join(Cart, CartItem.cart_id == Cart.id)
    if user_id:
        q = q.filter(Cart.user_id == user_id)
    else:
        q = q.filter(Cart.session_id == session_id)
    return int(q.scalar() or 0)


# ==========================================
# Housekeeping (scheduler jobs)
# ==========================================

def emit_abandonment_events(db: Session, abandon_hours: int, window_hours: int = 1) -> int:
    """
    Emit one cart_abandonment event per cart whose last change falls in
    [now - abandon_hours - window_hours, now - abandon_hours) and that still has items.
    Run every `window_hours` so each idle cart is reported once.
    """
    until = now_utc() - timedelta(hours=abandon_hours)
    since = until - timedelta(hours=window_hours)
    rows = (
        db.query(Cart.id, Cart.user_id, Cart.session_id,
                 func.count(CartItem.id), func.sum(CartItem.quantity))
        .join(CartItem, CartItem.cart_id == Cart.id)
        .filter(Cart.updated_at >= since, Cart.updated_at < until)
        .group_by(Cart.id, Cart.user_id, Cart.session_id)
        .all()
    )
    for cart_id, user_id, session_id, lines, quantity in rows:
        track_event(
            db, EventType.CART_ABANDONMENT,
            user_id=user_id, session_id=session_id,
            metadata={"cart_id": cart_id, "lines": lines, "quantity": int(quantity or 0)},
        )
    db.flush()
    return len(rows)


def purge_stale_guest_carts(db: Session, ttl_days: int) -> int:
    """Delete empty guest carts untouched for ttl_days."""
    cutoff = now_utc() - timedelta(days=ttl_days)
    stale_ids = [
        cart_id for (cart_id,) in (
            db.query(Cart.id)
            .outerjoin(CartItem, CartItem.cart_id == Cart.id)
            .filter(Cart.session_id.isnot(None), Cart.updated_at < cutoff, CartItem.id.is_(None))
            .all()
        )
    ]
    if not stale_ids:
        return 0
    db.query(Cart).filter(Cart.id.in_(stale_ids)).delete(synchronize_session=False)
    db.flush()
    return len(stale_ids)
