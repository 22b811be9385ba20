"""
Order Module - Admin Routes
==============================
Order management for admin: list (filter by status), detail, status change.
"""

from typing import Optional

from fastapi import APIRouter, Request, Depends, Form, Query
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from config.database import get_db
from common.i18n import TKey
from common.security import csrf_check
from common.templating import render
from modules.admin.actions import admin_action
from modules.auth.deps import require_admin
from modules.order.service import order_service
from modules.order.models import OrderStatus

router = APIRouter(tags=["order-admin"])


@router.get("/admin/orders", response_class=HTMLResponse)
async def admin_orders(
    request: Request,
    status: str = Query(""),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    status_filter = status if status in {s.value for s in OrderStatus} else ""
    orders = order_service.list_orders(db, status=status_filter or None)
    return render(request, "admin/orders.html", {
        "user": user,
        "orders": orders,
        "status_filter": status_filter,
        "order_statuses": list(OrderStatus),
        "active_page": "orders",
    })


@router.get("/admin/orders/{order_id}", response_class=HTMLResponse)
async def admin_order_detail(
    request: Request,
    order_id: int,
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    order = order_service.get_order(db, order_id)
    if not order:
        return RedirectResponse("/admin/orders", status_code=303)
    return render(request, "admin/order_detail.html", {
        "user": user,
        "order": order,
        "order_statuses": list(OrderStatus),
        "active_page": "orders",
    })


@router.post("/admin/orders/{order_id}/status")
async def update_order_status(
    request: Request,
    order_id: int,
    status: str = Form(...),
    next: str = Form(""),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    """Any status may move to any other; the matching timestamp is stamped."""
    csrf_check(request, csrf_token)
    admin_action(
        request, db,
        lambda: order_service.update_status(db, order_id, status),
        success=TKey.ADMIN_STATUS_UPDATED,
    )
    target = next if next.startswith("/admin/orders") else "/admin/orders"
    return RedirectResponse(target, status_code=303)
