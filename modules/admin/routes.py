"""
Admin Module - Dashboard, Settings & Logs Routes
===================================================
Dashboard statistics, store branding + home page content, request audit log.
"""

from typing import Optional
from fastapi import APIRouter, Request, Depends, Form, File, UploadFile, Query
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy import func as sa_func
from sqlalchemy.orm import Session

from config.database import get_db
from common.security import csrf_check
from common.templating import render
from modules.admin.actions import admin_action
from modules.admin.dashboard_service import dashboard_service
from modules.admin.models import RequestLog
from modules.admin.settings_store import (
    get_or_create_settings, get_or_create_home_content,
    update_store_settings, update_home_content,
)
from modules.auth.deps import require_admin

router = APIRouter(tags=["admin"])


def _refresh_store_cache(request: Request):
    store = getattr(request.app.state, "store_settings", None)
    if store is not None:
        store.invalidate()


# ==========================================
# 📊 Dashboard
# ==========================================

@router.get("/admin", response_class=HTMLResponse)
async def admin_dashboard(request: Request, db: Session = Depends(get_db), user=Depends(require_admin)):
    return render(request, "admin/dashboard.html", {
        "user": user,
        "stats": dashboard_service.get_overview_stats(db),
        "best_sellers": dashboard_service.get_best_sellers(db),
        "by_wilaya": dashboard_service.get_revenue_by_wilaya(db),
        "recent_orders": dashboard_service.get_recent_orders(db),
        "active_page": "dashboard",
    })


# ==========================================
# ⚙️ Store settings & home content
# ==========================================

@router.get("/admin/settings", response_class=HTMLResponse)
async def settings_page(request: Request, db: Session = Depends(get_db), user=Depends(require_admin)):
    store_row = get_or_create_settings(db)
    home_row = get_or_create_home_content(db)
    db.commit()
    return render(request, "admin/settings.html", {
        "user": user,
        "store_row": store_row,
        "home_row": home_row,
        "active_page": "settings",
    })


@router.post("/admin/settings/update")
async def save_store_settings(
    request: Request,
    store_name_ar: str = Form(""),
    store_name_fr: str = Form(""),
    primary_color: str = Form(""),
    secondary_color: str = Form(""),
    contact_phone: str = Form(""),
    contact_email: str = Form(""),
    logo: Optional[UploadFile] = File(None),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    data = {
        "store_name_ar": store_name_ar, "store_name_fr": store_name_fr,
        "primary_color": primary_color, "secondary_color": secondary_color,
        "contact_phone": contact_phone, "contact_email": contact_email,
    }
    if admin_action(request, db, lambda: update_store_settings(db, data, logo)):
        _refresh_store_cache(request)
    return RedirectResponse("/admin/settings", status_code=303)


@router.post("/admin/settings/home")
async def save_home_content(
    request: Request,
    hero_title_ar: str = Form(""),
    hero_title_fr: str = Form(""),
    hero_subtitle_ar: str = Form(""),
    hero_subtitle_fr: str = Form(""),
    cta_text_ar: str = Form(""),
    cta_text_fr: str = Form(""),
    hero_image: Optional[UploadFile] = File(None),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    data = {
        "hero_title_ar": hero_title_ar, "hero_title_fr": hero_title_fr,
        "hero_subtitle_ar": hero_subtitle_ar, "hero_subtitle_fr": hero_subtitle_fr,
        "cta_text_ar": cta_text_ar, "cta_text_fr": cta_text_fr,
    }
    if admin_action(request, db, lambda: update_home_content(db, data, hero_image)):
        _refresh_store_cache(request)
    return RedirectResponse("/admin/settings", status_code=303)


# ==========================================
# 📋 Request Audit Log
# ==========================================

@router.get("/admin/logs", response_class=HTMLResponse)
async def admin_logs(
    request: Request,
    page: int = 1,
    method: str = Query(None),
    path_search: str = Query(None),
    errors_only: bool = Query(False),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    per_page = 50
    q = db.query(RequestLog)
    if method:
        q = q.filter(RequestLog.method == method.upper())
    if path_search:
        q = q.filter(RequestLog.path.ilike(f"%{path_search}%"))
    if errors_only:
        q = q.filter(RequestLog.status_code >= 400)

    total = q.count()
    total_pages = max(1, (total + per_page - 1) // per_page)
    page = min(max(1, page), total_pages)
    logs = q.order_by(RequestLog.created_at.desc()).offset((page - 1) * per_page).limit(per_page).all()

    stats = {
        "total": db.query(sa_func.count(RequestLog.id)).scalar() or 0,
        "errors": db.query(sa_func.count(RequestLog.id)).filter(RequestLog.status_code >= 400).scalar() or 0,
    }
    return render(request, "admin/logs.html", {
        "user": user,
        "logs": logs,
        "stats": stats,
        "page": page,
        "total_pages": total_pages,
        "method_filter": method or "",
        "path_search": path_search or "",
        "errors_only": errors_only,
        "active_page": "logs",
    })
