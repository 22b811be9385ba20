"""
Cart & Order Routes
=====================
Cart view, item add/update/remove (form + API), checkout, order history,
order confirmation.

Guests shop with the anonymous cart session; signing in merges that cart
into the account (see auth routes).
"""

import logging
from typing import Optional, Dict, Any, Union

from fastapi import APIRouter, Request, Depends, Form
from fastapi.responses import HTMLResponse, RedirectResponse, JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import StoreError, InsufficientStockError, ValidationError
from common.flash import flash
from common.helpers import safe_int, format_money
from common.i18n import TKey, get_language, t
from common.security import csrf_check
from common.templating import render
from modules.analytics.models import EventType
from modules.analytics.service import track_event
from modules.auth.deps import get_current_active_user, require_login
from modules.cart.service import CartStore
from modules.cart.session import get_cart_session
from modules.catalog.service import catalog
from modules.order.service import order_service, new_checkout_token
from modules.shop.service import shop_service

logger = logging.getLogger("jomla.cart")

router = APIRouter(tags=["cart"])


def get_cart_store(
    request: Request,
    db: Session = Depends(get_db),
    user=Depends(get_current_active_user),
) -> CartStore:
    """Cart of the signed-in user, else of the anonymous session (created on demand)."""
    if user:
        return CartStore(db, user_id=user.id)
    return CartStore(db, session_id=get_cart_session(request).get_or_create_session_id())


def _message(request: Request, message: Union[TKey, str]) -> str:
    if isinstance(message, TKey):
        return t(message, get_language(request))
    return str(message)


def _back(request: Request, default: str) -> str:
    referer = request.headers.get("referer", "")
    base = str(request.base_url)
    if referer.startswith(base):
        return "/" + referer[len(base):]
    return default


def _cart_payload(store: CartStore, request: Request) -> dict:
    lang = get_language(request)
    return {
        "cart_id": store.cart_id,
        "items": [
            {
                "id": line.id,
                "product_id": line.product_id,
                "variant_item_id": line.variant_item_id,
                "name": line.name(lang),
                "variant_name": line.variant_name(lang),
                "quantity": line.quantity,
                "price": str(line.price),
                "line_total": str(line.line_total),
                "stock": line.stock,
                "image_url": line.image_url,
            }
            for line in store.items
        ],
        "count": store.item_count,
        "subtotal": str(store.get_subtotal()),
        "subtotal_display": format_money(store.get_subtotal()),
    }


# ==========================================
# 🛒 View Cart
# ==========================================

@router.get("/cart", response_class=HTMLResponse)
async def view_cart(
    request: Request,
    db: Session = Depends(get_db),
    user=Depends(get_current_active_user),
    store: CartStore = Depends(get_cart_store),
):
    store.load_cart()
    db.commit()
    return render(request, "shop/cart.html", shop_service.page_context(
        request, db, user, cart=store, subtotal=store.get_subtotal(),
    ))


# ==========================================
# ➕➖ Cart mutations (form-based)
# ==========================================

@router.post("/cart/add")
async def add_to_cart_form(
    request: Request,
    product_id: int = Form(...),
    variant_item_id: Optional[str] = Form(None),
    quantity: int = Form(1),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    store: CartStore = Depends(get_cart_store),
):
    csrf_check(request, csrf_token)
    try:
        store.load_cart()
        store.add_product(product_id, quantity, safe_int(variant_item_id))
        db.commit()
        flash(request, TKey.CART_ADDED, "success")
    except InsufficientStockError:
        db.rollback()
        flash(request, TKey.CART_INSUFFICIENT_STOCK, "error")
    except StoreError as e:
        db.rollback()
        flash(request, e.message, "error")
    except SQLAlchemyError:
        db.rollback()
        flash(request, TKey.CART_ERROR, "error")
    return RedirectResponse(_back(request, f"/products/{product_id}"), status_code=303)


@router.post("/cart/update")
async def update_cart_form(
    request: Request,
    item_id: int = Form(...),
    quantity: int = Form(...),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    store: CartStore = Depends(get_cart_store),
):
    csrf_check(request, csrf_token)
    try:
        store.load_cart()
        if quantity > 0:
            store.check_stock(item_id, quantity)
        store.update_quantity(item_id, quantity)
        db.commit()
        flash(request, TKey.CART_UPDATED if quantity > 0 else TKey.CART_REMOVED, "success")
    except InsufficientStockError:
        db.rollback()
        flash(request, TKey.CART_INSUFFICIENT_STOCK, "error")
    except StoreError as e:
        db.rollback()
        flash(request, e.message, "error")
    except SQLAlchemyError:
        db.rollback()
        flash(request, TKey.CART_ERROR, "error")
    return RedirectResponse("/cart", status_code=303)


@router.post("/cart/remove")
async def remove_from_cart_form(
    request: Request,
    item_id: int = Form(...),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    store: CartStore = Depends(get_cart_store),
):
    csrf_check(request, csrf_token)
    try:
        store.load_cart()
        store.remove_item(item_id)
        db.commit()
        flash(request, TKey.CART_REMOVED, "success")
    except (StoreError, SQLAlchemyError):
        db.rollback()
        flash(request, TKey.CART_ERROR, "error")
    return RedirectResponse("/cart", status_code=303)


# ==========================================
# 🔌 Cart API (AJAX)
# ==========================================

@router.get("/api/cart")
async def api_get_cart(
    request: Request,
    db: Session = Depends(get_db),
    store: CartStore = Depends(get_cart_store),
):
    store.load_cart()
    db.commit()
    return JSONResponse(_cart_payload(store, request))


def _api_error(request: Request, db: Session, message: Union[TKey, str], status_code: int = 400):
    db.rollback()
    return JSONResponse({"status": "error", "message": _message(request, message)}, status_code=status_code)


@router.post("/api/cart/add")
async def api_add_to_cart(
    data: Dict[str, Any],
    request: Request,
    db: Session = Depends(get_db),
    store: CartStore = Depends(get_cart_store),
):
    csrf_check(request, request.headers.get("X-CSRF-Token"))
    product_id = safe_int(data.get("product_id"))
    quantity = safe_int(data.get("quantity")) or 1
    if not product_id:
        return _api_error(request, db, TKey.PRODUCT_NOT_FOUND)
    try:
        store.load_cart()
        store.add_product(product_id, quantity, safe_int(data.get("variant_item_id")))
        db.commit()
    except InsufficientStockError:
        return _api_error(request, db, TKey.CART_INSUFFICIENT_STOCK)
    except StoreError as e:
        return _api_error(request, db, e.message)
    except SQLAlchemyError:
        return _api_error(request, db, TKey.CART_ERROR, status_code=500)
    payload = _cart_payload(store, request)
    payload.update(status="success", message=_message(request, TKey.CART_ADDED))
    return JSONResponse(payload)


@router.post("/api/cart/update")
async def api_update_cart(
    data: Dict[str, Any],
    request: Request,
    db: Session = Depends(get_db),
    store: CartStore = Depends(get_cart_store),
):
    csrf_check(request, request.headers.get("X-CSRF-Token"))
    item_id = safe_int(data.get("item_id"))
    quantity = safe_int(data.get("quantity"))
    if item_id is None or quantity is None:
        return _api_error(request, db, TKey.CART_ERROR)
    try:
        store.load_cart()
        if quantity > 0:
            store.check_stock(item_id, quantity)
        store.update_quantity(item_id, quantity)
        db.commit()
    except InsufficientStockError:
        return _api_error(request, db, TKey.CART_INSUFFICIENT_STOCK)
    except StoreError as e:
        return _api_error(request, db, e.message)
    except SQLAlchemyError:
        return _api_error(request, db, TKey.CART_ERROR, status_code=500)
    payload = _cart_payload(store, request)
    payload.update(status="success")
    return JSONResponse(payload)


# ==========================================
# ✅ Checkout
# ==========================================

@router.get("/checkout", response_class=HTMLResponse)
async def checkout_page(
    request: Request,
    db: Session = Depends(get_db),
    user=Depends(get_current_active_user),
    store: CartStore = Depends(get_cart_store),
):
    store.load_cart()
    if store.is_empty:
        db.commit()
        return RedirectResponse("/cart", status_code=302)

    track_event(
        db, EventType.CHECKOUT_STARTED,
        user_id=store.user_id, session_id=store.session_id,
        metadata={"subtotal": str(store.get_subtotal()), "lines": len(store.items)},
    )
    db.commit()

    prefill = {
        "customer_name": (user.full_name or "") if user else "",
        "customer_phone": (user.phone_number or "") if user else "",
    }
    return render(request, "shop/checkout.html", shop_service.page_context(
        request, db, user,
        cart=store,
        subtotal=store.get_subtotal(),
        wilayas=catalog.list_wilayas(db),
        form=prefill,
        checkout_token=new_checkout_token(),
    ))


@router.post("/checkout")
async def checkout_submit(
    request: Request,
    customer_name: str = Form(""),
    customer_phone: str = Form(""),
    wilaya_id: str = Form(""),
    commune: str = Form(""),
    address: str = Form(""),
    notes: str = Form(""),
    checkout_token: str = Form(""),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    store: CartStore = Depends(get_cart_store),
):
    csrf_check(request, csrf_token)
    data = {
        "customer_name": customer_name,
        "customer_phone": customer_phone,
        "wilaya_id": wilaya_id,
        "commune": commune,
        "address": address,
        "notes": notes,
    }
    try:
        order = order_service.place_order(db, store, data, checkout_token=checkout_token or None)
    except ValidationError as e:
        flash(request, e.message, "error")
        return RedirectResponse("/cart" if e.message == TKey.CART_EMPTY else "/checkout", status_code=303)
    except StoreError as e:
        flash(request, e.message, "error")
        return RedirectResponse("/checkout", status_code=303)

    flash(request, TKey.CHECKOUT_SUCCESS, "success")
    return RedirectResponse(f"/orders/{order.id}/confirmation", status_code=303)


# ==========================================
# 📦 Orders
# ==========================================

@router.get("/orders", response_class=HTMLResponse)
async def my_orders(
    request: Request,
    db: Session = Depends(get_db),
    user=Depends(require_login),
):
    orders = order_service.list_user_orders(db, user.id)
    return render(request, "shop/orders.html", shop_service.page_context(
        request, db, user, orders=orders,
    ))


@router.get("/orders/{order_id}/confirmation", response_class=HTMLResponse)
async def order_confirmation(
    request: Request,
    order_id: int,
    db: Session = Depends(get_db),
    user=Depends(get_current_active_user),
):
    order = order_service.get_order(db, order_id)
    session_id = get_cart_session(request).get_session_id()
    if not order or not order_service.can_view(order, user, session_id):
        return render(request, "404.html", shop_service.page_context(request, db, user), status_code=404)
    return render(request, "shop/order_confirmation.html", shop_service.page_context(
        request, db, user, order=order,
    ))
