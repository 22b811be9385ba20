"""
Auth Module - Routes
=====================
Sign-in, sign-up, sign-out.

After a successful sign-in or sign-up the guest cart of this browser is
merged into the account's cart, exactly once per event.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request, Depends, Form
from fastapi.responses import RedirectResponse, HTMLResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import StoreError
from common.flash import flash
from common.i18n import TKey
from common.security import csrf_check, create_token, get_cookie_kwargs
from common.templating import render
from modules.auth.deps import get_current_active_user, AUTH_COOKIE
from modules.auth.service import auth_service
from modules.cart.service import CartStore, get_merger
from modules.cart.session import get_cart_session, CartSessionProvider
from modules.shop.service import shop_service

logger = logging.getLogger("jomla.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


def _safe_next_url(url: str) -> str:
    """Only allow relative paths as redirect targets (prevent open redirect)."""
    if not url or not url.startswith("/") or url.startswith("//"):
        return "/"
    return url


def _merge_guest_cart(request: Request, db: Session, provider: CartSessionProvider, user_id: int):
    """Fold this browser's guest cart into the account. A failure is flashed, not fatal."""
    store = CartStore(db, session_id=provider.get_session_id(), merger=get_merger())
    try:
        store.merge_guest_cart(user_id)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Guest cart merge failed for user #{user_id}: {e}")
        flash(request, TKey.CART_ERROR, "error")


def _signed_in_response(user, next_url: str) -> RedirectResponse:
    target = "/admin" if user.is_admin else _safe_next_url(next_url)
    response = RedirectResponse(target, status_code=303)
    response.set_cookie(AUTH_COOKIE, create_token({"sub": str(user.id)}), **get_cookie_kwargs())
    return response


# ==========================================
# Sign-in
# ==========================================

@router.get("/login", response_class=HTMLResponse)
async def login_page(
    request: Request,
    next: str = "",
    db: Session = Depends(get_db),
    user=Depends(get_current_active_user),
):
    if user:
        return RedirectResponse(user.primary_redirect, status_code=302)
    return render(request, "auth/login.html", shop_service.page_context(
        request, db, None, next_url=next, email="",
    ))


@router.post("/login")
async def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    next: str = Form(""),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    provider: CartSessionProvider = Depends(get_cart_session),
):
    csrf_check(request, csrf_token)
    try:
        user = auth_service.authenticate(db, email, password)
    except StoreError as e:
        flash(request, e.message, "error")
        return RedirectResponse(f"/auth/login?next={_safe_next_url(next)}", status_code=303)

    _merge_guest_cart(request, db, provider, user.id)
    flash(request, TKey.AUTH_LOGIN_SUCCESS, "success")
    logger.info(f"User #{user.id} signed in")
    return _signed_in_response(user, next)


# ==========================================
# Sign-up
# ==========================================

@router.get("/signup", response_class=HTMLResponse)
async def signup_page(
    request: Request,
    db: Session = Depends(get_db),
    user=Depends(get_current_active_user),
):
    if user:
        return RedirectResponse(user.primary_redirect, status_code=302)
    return render(request, "auth/signup.html", shop_service.page_context(request, db, None))


@router.post("/signup")
async def signup_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    full_name: str = Form(""),
    phone_number: str = Form(""),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    provider: CartSessionProvider = Depends(get_cart_session),
):
    csrf_check(request, csrf_token)
    try:
        user = auth_service.signup(db, email, password, full_name=full_name, phone_number=phone_number)
        db.commit()
    except StoreError as e:
        db.rollback()
        flash(request, e.message, "error")
        return RedirectResponse("/auth/signup", status_code=303)

    _merge_guest_cart(request, db, provider, user.id)
    flash(request, TKey.AUTH_SIGNUP_SUCCESS, "success")
    return _signed_in_response(user, "/")


# ==========================================
# Sign-out
# ==========================================

@router.api_route("/logout", methods=["GET", "POST"])
async def logout(
    request: Request,
    provider: CartSessionProvider = Depends(get_cart_session),
):
    """Clear the auth cookie and the anonymous cart session id."""
    provider.clear()
    response = RedirectResponse("/", status_code=303)
    response.delete_cookie(AUTH_COOKIE)
    return response
