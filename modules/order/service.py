"""
Order Module - Service Layer
===============================
Checkout (order + items + stock + cart clear in one transaction),
order history, admin status changes.
"""

import logging
import secrets
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from common.exceptions import (
    StoreError, ValidationError, NotFoundError, CheckoutError, InsufficientStockError,
)
from common.helpers import now_utc, safe_int, generate_unique_order_number
from common.i18n import TKey
from modules.analytics.models import EventType
from modules.analytics.service import track_event
from modules.cart.service import CartStore, validate_stock
from modules.catalog.models import Product, VariantItem
from modules.catalog.service import catalog, Purchasable
from modules.order.models import Order, OrderItem, OrderStatus, STATUS_TIMESTAMPS, MAX_PHONE_LENGTH

logger = logging.getLogger("jomla.order")

REQUIRED_FIELDS = ("customer_name", "customer_phone", "wilaya_id", "commune", "address")


def new_checkout_token() -> str:
    """One token per rendered checkout form; a replayed submit reuses it."""
    return secrets.token_urlsafe(24)


def _adjust_stock(purchasable: Purchasable, delta: int):
    target = purchasable.variant_item or purchasable.product
    target.stock_quantity = (target.stock_quantity or 0) + delta


def _stock_row(db: Session, item: OrderItem):
    """
    Row holding the stock of an order line, locked, whether or not it is
    still active. None once the product or variant item was deleted.
    """
    if item.variant_item_id:
        return (
            db.query(VariantItem).filter(VariantItem.id == item.variant_item_id)
            .with_for_update().first()
        )
    if not item.product_id:
        return None
    product = db.query(Product).filter(Product.id == item.product_id).with_for_update().first()
    if product is None or product.has_variants:
        return None
    return product


class OrderService:

    # ==========================================
    # Checkout
    # ==========================================

    def validate_checkout_data(self, data: dict) -> dict:
        """Trimmed form data; raises ValidationError on an empty required field or an over-long phone."""
        cleaned = {k: (v.strip() if isinstance(v, str) else v) for k, v in data.items()}
        if any(not cleaned.get(field) for field in REQUIRED_FIELDS):
            raise ValidationError(TKey.CHECKOUT_REQUIRED_FIELDS)
        if len(cleaned["customer_phone"]) > MAX_PHONE_LENGTH:
            raise ValidationError(TKey.CHECKOUT_INVALID_PHONE)
        cleaned["wilaya_id"] = safe_int(cleaned["wilaya_id"])
        if not cleaned["wilaya_id"]:
            raise ValidationError(TKey.CHECKOUT_REQUIRED_FIELDS)
        return cleaned

    def find_by_token(self, db: Session, checkout_token: Optional[str]) -> Optional[Order]:
        if not checkout_token:
            return None
        return db.query(Order).filter(Order.checkout_token == checkout_token).first()

    def place_order(
        self,
        db: Session,
        cart: CartStore,
        data: dict,
        checkout_token: Optional[str] = None,
    ) -> Order:
        """
        Create a pending order from the cart.

        Inside one transaction: re-check live stock (rows locked where the
        database supports it), insert the order and one item per cart line
        (names and snapshot unit price denormalized), decrement stock and
        clear the cart. Commits on success. On any failure everything is
        rolled back and the cart is left untouched.

        A checkout_token that already produced an order returns that order.
        """
        existing = self.find_by_token(db, checkout_token)
        if existing:
            logger.info(f"Checkout replay for {existing.order_number}, returning existing order")
            return existing

        form = self.validate_checkout_data(data)
        wilaya = catalog.get_wilaya(db, form["wilaya_id"])
        if not wilaya:
            raise ValidationError(TKey.CHECKOUT_REQUIRED_FIELDS)

        try:
            cart.load_cart()
            if cart.is_empty:
                raise ValidationError(TKey.CART_EMPTY)

            resolved = []
            for line in cart.items:
                purchasable = catalog.resolve_purchasable(
                    db, line.product_id, line.variant_item_id, lock=True,
                )
                validate_stock(line.quantity, purchasable.stock, purchasable.product.name_ar)
                resolved.append((line, purchasable))

            subtotal = cart.get_subtotal()
            delivery_price = Decimal(wilaya.delivery_price or 0)
            order = Order(
                order_number=generate_unique_order_number(db),
                user_id=cart.user_id,
                session_id=None if cart.user_id else (cart.session_id or None),
                checkout_token=checkout_token or None,
                customer_name=form["customer_name"],
                customer_phone=form["customer_phone"],
                wilaya_id=wilaya.id,
                commune=form["commune"],
                address=form["address"],
                notes=form.get("notes") or None,
                subtotal=subtotal,
                delivery_price=delivery_price,
                total=subtotal + delivery_price,
                status=OrderStatus.PENDING.value,
            )
            db.add(order)
            db.flush()

            for line, purchasable in resolved:
                db.add(OrderItem(
                    order_id=order.id,
                    product_id=line.product_id,
                    variant_item_id=line.variant_item_id,
                    product_name=purchasable.name,
                    variant_name=purchasable.variant_name,
                    quantity=line.quantity,
                    unit_price=line.price,
                    total_price=line.price * line.quantity,
                ))
                _adjust_stock(purchasable, -line.quantity)

            cart.clear_cart()
            track_event(
                db, EventType.ORDER_PLACED,
                user_id=cart.user_id, session_id=cart.session_id, order_id=order.id,
                metadata={"order_number": order.order_number, "total": str(order.total)},
            )
            db.commit()
        except IntegrityError as e:
            db.rollback()
            duplicate = self.find_by_token(db, checkout_token)
            if duplicate:
                return duplicate
            logger.error(f"Checkout failed (integrity): {e}")
            raise CheckoutError() from e
        except StoreError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Checkout failed: {e}")
            raise CheckoutError() from e

        logger.info(f"Order {order.order_number} placed: {len(resolved)} lines, total {order.total}")
        return order

    # ==========================================
    # Queries
    # ==========================================

    def get_order(self, db: Session, order_id: int) -> Optional[Order]:
        return (
            db.query(Order)
            .options(selectinload(Order.items), joinedload(Order.wilaya))
            .filter(Order.id == order_id)
            .first()
        )

    def list_user_orders(self, db: Session, user_id: int) -> List[Order]:
        return (
            db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )

    def list_orders(self, db: Session, status: Optional[str] = None) -> List[Order]:
        """Admin listing, newest first, optionally filtered by status."""
        q = db.query(Order).options(joinedload(Order.wilaya), selectinload(Order.items))
        if status:
            q = q.filter(Order.status == status)
        return q.order_by(Order.created_at.desc(), Order.id.desc()).all()

    def can_view(self, order: Order, user=None, session_id: str = "") -> bool:
        """Owner (account or the guest session that placed it) or admin."""
        if user is not None and (user.is_admin or order.user_id == user.id):
            return True
        return bool(order.session_id and session_id and order.session_id == session_id)

    # ==========================================
    # Admin: status change
    # ==========================================

    def update_status(self, db: Session, order_id: int, status: str) -> Order:
        """
        Set any status (no transition rules). Stamps the matching timestamp.
        Entering `canceled` restocks the items; leaving it takes them again.
        """
        try:
            new_status = OrderStatus(status).value
        except ValueError:
            raise ValidationError("حالة الطلب غير صالحة")

        order = self.get_order(db, order_id)
        if not order:
            raise NotFoundError("الطلب غير موجود")

        old_status = order.status
        if old_status == new_status:
            return order

        if new_status == OrderStatus.CANCELED.value:
            self._restock(db, order, +1)
        elif old_status == OrderStatus.CANCELED.value:
            self._restock(db, order, -1)

        order.status = new_status
        ts_field = STATUS_TIMESTAMPS.get(new_status)
        if ts_field:
            setattr(order, ts_field, now_utc())

        if new_status == OrderStatus.DELIVERED.value:
            track_event(
                db, EventType.ORDER_DELIVERED,
                user_id=order.user_id, order_id=order.id,
                metadata={"order_number": order.order_number},
            )
        db.flush()
        logger.info(f"Order {order.order_number}: {old_status} -> {new_status}")
        return order

    def _restock(self, db: Session, order: Order, direction: int):
        """
        Give the order's units back (+1) or take them again (-1). Taking
        them again is refused when any line no longer has enough stock.
        """
        rows = []
        for item in order.items:
            row = _stock_row(db, item)
            if row is None:
                logger.warning(f"Order {order.order_number}: item #{item.id} no longer in the catalog, stock not adjusted")
                continue
            rows.append((item, row))

        if direction < 0:
            for item, row in rows:
                if (row.stock_quantity or 0) < item.quantity:
                    raise InsufficientStockError(item.product_name)

        for item, row in rows:
            row.stock_quantity = (row.stock_quantity or 0) + direction * item.quantity


# Singleton
order_service = OrderService()
