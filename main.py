"""
Jomla - Application Entry Point
=================================
FastAPI app initialization, middleware, and router registration.
"""

import logging
import re as _re
import time as _time
import urllib.parse
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.responses import HTMLResponse, RedirectResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError
from apscheduler.schedulers.background import BackgroundScheduler

from config import settings
from config.database import SessionLocal, Base, engine
from common.flash import flash, set_flash_cookie, clear_flash_cookie, pending_messages, FLASH_COOKIE
from common.helpers import now_utc, get_real_ip
from common.i18n import TKey
from common.security import decode_token, new_csrf_token
from common.templating import render

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logging.getLogger("jomla").setLevel(settings.LOG_LEVEL)

scheduler_logger = logging.getLogger("jomla.scheduler")
request_logger_log = logging.getLogger("jomla.requests")


# ==========================================
# Import ALL models so Alembic/Base can see them
# ==========================================
from modules.user.models import User  # noqa: F401
from modules.admin.models import StoreSettings, HomePageContent, RequestLog  # noqa: F401
from modules.catalog.models import Category, Product, ProductVariant, VariantItem  # noqa: F401
from modules.cart.models import Cart, CartItem  # noqa: F401
from modules.order.models import Wilaya, Order, OrderItem  # noqa: F401
from modules.analytics.models import AnalyticsEvent  # noqa: F401

from modules.admin.settings_store import SettingsStore


# ==========================================
# Import routers
# ==========================================
from modules.auth.routes import router as auth_router
from modules.shop.routes import router as shop_router
from modules.cart.routes import router as cart_router
from modules.catalog.admin_routes import router as catalog_admin_router
from modules.order.admin_routes import router as order_admin_router
from modules.admin.routes import router as admin_router


# ==========================================
# Exception handler: 401 → login, 403 → away, 404 → page
# ==========================================

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Redirect 401 to login, bounce 403 off admin pages, render 404 for browser requests."""
    is_html = "text/html" in request.headers.get("accept", "")
    path = str(request.url.path)

    if exc.status_code == 401 and is_html:
        if request.method == "POST":
            parsed = urllib.parse.urlparse(request.headers.get("referer", "/"))
            next_url = parsed.path + (f"?{parsed.query}" if parsed.query else "")
        else:
            next_url = path + (f"?{request.url.query}" if request.url.query else "")
        return RedirectResponse(f"/auth/login?next={urllib.parse.quote(next_url, safe='')}", status_code=302)

    if exc.status_code == 403 and is_html:
        if path.startswith("/admin"):
            flash(request, TKey.MSG_UNAUTHORIZED, "error")
            response = RedirectResponse("/", status_code=302)
            set_flash_cookie(response, pending_messages(request))
            return response
        return render(request, "403.html", {"detail": exc.detail}, status_code=403)

    if exc.status_code == 404 and is_html:
        return render(request, "404.html", status_code=404)

    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


# ==========================================
# Background Scheduler
# ==========================================

def _cleanup_old_request_logs():
    """Background job: delete request logs older than the retention window."""
    db = SessionLocal()
    try:
        cutoff = now_utc() - timedelta(days=settings.REQUEST_LOG_RETENTION_DAYS)
        deleted = db.query(RequestLog).filter(RequestLog.created_at < cutoff).delete()
        if deleted:
            db.commit()
            scheduler_logger.info(f"Deleted {deleted} old request logs (>{settings.REQUEST_LOG_RETENTION_DAYS} days)")
    except SQLAlchemyError as e:
        db.rollback()
        scheduler_logger.error(f"Log cleanup error: {e}")
    finally:
        db.close()


def _cart_housekeeping():
    """Background job: abandonment events, then purge of stale empty guest carts."""
    from modules.cart.service import emit_abandonment_events, purge_stale_guest_carts
    db = SessionLocal()
    try:
        abandoned = emit_abandonment_events(db, settings.CART_ABANDON_HOURS)
        purged = purge_stale_guest_carts(db, settings.GUEST_CART_TTL_DAYS)
        db.commit()
        if abandoned or purged:
            scheduler_logger.info(f"Cart housekeeping: {abandoned} abandoned, {purged} guest carts purged")
    except SQLAlchemyError as e:
        db.rollback()
        scheduler_logger.error(f"Cart housekeeping error: {e}")
    finally:
        db.close()


scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)
    app.state.store_settings = SettingsStore()

    if settings.SCHEDULER_ENABLED:
        scheduler.add_job(_cleanup_old_request_logs, "interval", hours=6, id="log_cleanup", replace_existing=True)
        scheduler.add_job(_cart_housekeeping, "interval", hours=1, id="cart_housekeeping", replace_existing=True)
        scheduler.start()
        scheduler_logger.info("Background scheduler started (logs: 6h, carts: 1h)")
    yield
    if scheduler.running:
        scheduler.shutdown()
        scheduler_logger.info("Background scheduler stopped")


# ==========================================
# Create App
# ==========================================
app = FastAPI(
    title="Jomla",
    description="متجر جملة لإكسسوارات الهواتف",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
)

app.mount("/static", StaticFiles(directory="static"), name="static")
app.add_exception_handler(StarletteHTTPException, http_exception_handler)


# ==========================================
# Middleware: Flash Messages
# ==========================================
@app.middleware("http")
async def flash_message_middleware(request: Request, call_next):
    """Transfer flash messages from request.state to response cookie."""
    response = await call_next(request)
    messages = pending_messages(request)
    if messages:
        set_flash_cookie(response, messages)
    elif request.method == "GET" and request.cookies.get(FLASH_COOKIE):
        # Shown on this GET, clear the cookie
        clear_flash_cookie(response)
    return response


# ==========================================
# Middleware: Cart session cookie
# ==========================================
@app.middleware("http")
async def cart_session_cookie(request: Request, call_next):
    """Apply cookie writes queued by CookieStorage (anonymous cart session id)."""
    response = await call_next(request)
    writes = getattr(request.state, "_cookie_writes", None) or {}
    for key, value in writes.items():
        if value is None:
            response.delete_cookie(key)
        else:
            response.set_cookie(
                key, value,
                max_age=settings.CART_SESSION_MAX_AGE,
                httponly=True,
                secure=settings.COOKIE_SECURE,
                samesite=settings.COOKIE_SAMESITE,
            )
    return response


# ==========================================
# Middleware: CSRF Cookie Refresh
# ==========================================
@app.middleware("http")
async def csrf_cookie_refresh(request: Request, call_next):
    """Ensure every HTML GET response carries a CSRF cookie."""
    response = await call_next(request)
    if request.method == "GET" and "text/html" in response.headers.get("content-type", ""):
        if not request.cookies.get("csrf_token"):
            already_set = any(
                b"csrf_token" in value
                for name, value in response.headers.raw
                if name == b"set-cookie"
            )
            if not already_set:
                response.set_cookie("csrf_token", new_csrf_token(), httponly=True, samesite="lax")
    return response


# ==========================================
# Middleware: No-Cache for Admin pages
# ==========================================
@app.middleware("http")
async def no_cache_admin(request: Request, call_next):
    """Prevent browser caching on admin pages so lists and stats are always fresh."""
    response = await call_next(request)
    if request.url.path.startswith("/admin"):
        ct = response.headers.get("content-type", "")
        if "text/html" in ct or "application/json" in ct:
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
    return response


# ==========================================
# Middleware: Maintenance Mode
# ==========================================
@app.middleware("http")
async def maintenance_check(request: Request, call_next):
    if settings.MAINTENANCE_MODE:
        path = request.url.path
        bypass = request.cookies.get("maintenance_bypass")
        if path.startswith("/static") or path == "/health" or bypass == settings.MAINTENANCE_SECRET:
            return await call_next(request)
        return HTMLResponse(
            "<div style='text-align:center;padding:100px;font-family:sans-serif;'>"
            "<h1>المتجر قيد الصيانة</h1>"
            "<p>Boutique en maintenance, merci de revenir dans quelques minutes.</p>"
            "</div>",
            status_code=503,
        )
    return await call_next(request)


# ==========================================
# Middleware: Request Audit Log
# ==========================================
_SKIP_PATHS = ("/static/", "/health", "/favicon.ico")
_SENSITIVE_KEYS = _re.compile(
    r'(password|csrf_token|checkout_token|secret|token)=[^&]*',
    _re.IGNORECASE,
)


def _identify_user(request: Request):
    """(user_id, is_admin) from the JWT cookie; role is looked up only when signed in."""
    token = request.cookies.get("auth_token")
    payload = decode_token(token) if token else None
    if not payload:
        return None, False
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None, False
    db = SessionLocal()
    try:
        role = db.query(User.role).filter(User.id == user_id).scalar()
    finally:
        db.close()
    return user_id, role == "admin"


def _mask_body(raw: bytes, content_type: str):
    """Decode and mask a request body for the audit log."""
    if not raw:
        return None
    ct = (content_type or "").lower()
    if "multipart/form-data" in ct:
        return "[multipart/form-data: file upload]"
    text = raw[:10_000].decode("utf-8", errors="replace")
    text = _SENSITIVE_KEYS.sub(lambda m: m.group(0).split("=")[0] + "=***", text)
    return text[:2000] if text else None


if settings.REQUEST_LOG_ENABLED:
    @app.middleware("http")
    async def request_logger(request: Request, call_next):
        """Log every HTTP request to the database for audit purposes."""
        path = request.url.path
        if any(path.startswith(p) for p in _SKIP_PATHS):
            return await call_next(request)

        start = _time.time()
        body_preview = None
        if request.method in ("POST", "PUT", "PATCH"):
            body_preview = _mask_body(await request.body(), request.headers.get("content-type"))

        response = await call_next(request)
        elapsed_ms = int((_time.time() - start) * 1000)

        log_db = SessionLocal()
        try:
            user_id, is_admin = _identify_user(request)
            log_db.add(RequestLog(
                method=request.method,
                path=path[:500],
                query_string=str(request.url.query)[:2000] if request.url.query else None,
                status_code=response.status_code,
                ip_address=get_real_ip(request)[:45] or None,
                user_agent=(request.headers.get("user-agent") or "")[:500],
                user_id=user_id,
                is_admin=1 if is_admin else 0,
                body_preview=body_preview,
                response_time_ms=elapsed_ms,
            ))
            log_db.commit()
        except SQLAlchemyError as e:
            # Audit logging must not fail the request it describes
            log_db.rollback()
            request_logger_log.warning(f"Request log write failed for {path}: {e}")
        finally:
            log_db.close()
        return response


# ==========================================
# Register Routers
# ==========================================
app.include_router(auth_router)
app.include_router(catalog_admin_router)
app.include_router(order_admin_router)
app.include_router(admin_router)
app.include_router(cart_router)
app.include_router(shop_router)


# ==========================================
# Health check
# ==========================================
@app.get("/health")
async def health():
    return {"status": "ok", "version": "1.0.0"}
