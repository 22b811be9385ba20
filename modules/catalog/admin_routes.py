"""
Catalog Module - Admin Routes
===============================
CRUD for Categories, Products, Variant groups and Variant items.
All routes require an admin account.
"""

from typing import Optional
from fastapi import APIRouter, Request, Depends, Form, File, UploadFile, Query
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from config.database import get_db
from common.flash import flash
from common.helpers import safe_int
from common.i18n import TKey
from common.security import csrf_check
from common.templating import render
from modules.admin.actions import admin_action, checkbox
from modules.auth.deps import require_admin
from modules.catalog.service import category_service, product_service, variant_service

router = APIRouter(tags=["catalog-admin"])


def _confirmed(request: Request, confirm: Optional[str]) -> bool:
    """Deletes need an explicit confirm=yes from the confirmation step."""
    if (confirm or "").lower() == "yes":
        return True
    flash(request, TKey.ADMIN_CONFIRM_DELETE, "warning")
    return False


# ==========================================
# 🗂️ Categories
# ==========================================

@router.get("/admin/categories", response_class=HTMLResponse)
async def list_categories(request: Request, db: Session = Depends(get_db), user=Depends(require_admin)):
    categories = category_service.list_all(db)
    return render(request, "admin/categories.html", {
        "user": user, "categories": categories, "active_page": "categories",
    })


@router.post("/admin/categories/add")
async def add_category(
    request: Request,
    name_ar: str = Form(""), name_fr: str = Form(""),
    slug: str = Form(""), description: str = Form(""),
    display_order: str = Form("0"),
    is_active: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    data = {
        "name_ar": name_ar, "name_fr": name_fr, "slug": slug, "description": description,
        "display_order": display_order, "is_active": checkbox(is_active),
    }
    admin_action(request, db, lambda: category_service.create(db, data, image))
    return RedirectResponse("/admin/categories", status_code=303)


@router.get("/admin/categories/edit/{category_id}", response_class=HTMLResponse)
async def edit_category_form(
    request: Request, category_id: int,
    db: Session = Depends(get_db), user=Depends(require_admin),
):
    category = category_service.get_by_id(db, category_id)
    if not category:
        return RedirectResponse("/admin/categories", status_code=303)
    return render(request, "admin/category_form.html", {
        "user": user, "category": category, "active_page": "categories",
    })


@router.post("/admin/categories/update/{category_id}")
async def update_category(
    request: Request, category_id: int,
    name_ar: str = Form(""), name_fr: str = Form(""),
    slug: str = Form(""), description: str = Form(""),
    display_order: str = Form("0"),
    is_active: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    data = {
        "name_ar": name_ar, "name_fr": name_fr, "slug": slug, "description": description,
        "display_order": display_order, "is_active": checkbox(is_active),
    }
    admin_action(request, db, lambda: category_service.update(db, category_id, data, image))
    return RedirectResponse("/admin/categories", status_code=303)


@router.post("/admin/categories/toggle/{category_id}")
async def toggle_category(
    request: Request, category_id: int,
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db), user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    admin_action(request, db, lambda: category_service.toggle_active(db, category_id))
    return RedirectResponse("/admin/categories", status_code=303)


@router.post("/admin/categories/delete/{category_id}")
async def delete_category(
    request: Request, category_id: int,
    confirm: Optional[str] = Form(None),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db), user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    if _confirmed(request, confirm):
        admin_action(request, db, lambda: category_service.delete(db, category_id), success=TKey.ADMIN_DELETED)
    return RedirectResponse("/admin/categories", status_code=303)


# ==========================================
# 📦 Products
# ==========================================

def _product_data(
    name_ar, name_fr, description, category_id, has_variants, price, stock_quantity, is_active,
) -> dict:
    return {
        "name_ar": name_ar, "name_fr": name_fr, "description": description,
        "category_id": category_id, "has_variants": checkbox(has_variants),
        "price": price, "stock_quantity": stock_quantity, "is_active": checkbox(is_active),
    }


@router.get("/admin/products", response_class=HTMLResponse)
async def list_products(
    request: Request,
    category_id: str = Query(""),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    cat_id = safe_int(category_id)
    return render(request, "admin/products.html", {
        "user": user,
        "products": product_service.list_all(db, category_id=cat_id),
        "categories": category_service.list_all(db),
        "category_filter": cat_id,
        "active_page": "products",
    })


@router.post("/admin/products/add")
async def add_product(
    request: Request,
    name_ar: str = Form(""), name_fr: str = Form(""), description: str = Form(""),
    category_id: str = Form(""),
    has_variants: Optional[str] = Form(None),
    price: str = Form(""), stock_quantity: str = Form(""),
    is_active: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    data = _product_data(name_ar, name_fr, description, category_id, has_variants, price, stock_quantity, is_active)
    product = admin_action(request, db, lambda: product_service.create(db, data, image))
    if product and product.has_variants:
        return RedirectResponse(f"/admin/products/edit/{product.id}", status_code=303)
    return RedirectResponse("/admin/products", status_code=303)


@router.get("/admin/products/edit/{product_id}", response_class=HTMLResponse)
async def edit_product_form(
    request: Request, product_id: int,
    db: Session = Depends(get_db), user=Depends(require_admin),
):
    product = product_service.get_by_id(db, product_id)
    if not product:
        return RedirectResponse("/admin/products", status_code=303)
    return render(request, "admin/product_form.html", {
        "user": user, "product": product, "categories": category_service.list_all(db),
        "active_page": "products",
    })


@router.post("/admin/products/update/{product_id}")
async def update_product(
    request: Request, product_id: int,
    name_ar: str = Form(""), name_fr: str = Form(""), description: str = Form(""),
    category_id: str = Form(""),
    has_variants: Optional[str] = Form(None),
    price: str = Form(""), stock_quantity: str = Form(""),
    is_active: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    data = _product_data(name_ar, name_fr, description, category_id, has_variants, price, stock_quantity, is_active)
    admin_action(request, db, lambda: product_service.update(db, product_id, data, image))
    return RedirectResponse(f"/admin/products/edit/{product_id}", status_code=303)


@router.post("/admin/products/toggle/{product_id}")
async def toggle_product(
    request: Request, product_id: int,
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db), user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    admin_action(request, db, lambda: product_service.toggle_active(db, product_id))
    return RedirectResponse("/admin/products", status_code=303)


@router.post("/admin/products/delete/{product_id}")
async def delete_product(
    request: Request, product_id: int,
    confirm: Optional[str] = Form(None),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db), user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    if _confirmed(request, confirm):
        admin_action(request, db, lambda: product_service.delete(db, product_id), success=TKey.ADMIN_DELETED)
    return RedirectResponse("/admin/products", status_code=303)


# ==========================================
# 🎨 Variants
# ==========================================

@router.post("/admin/products/{product_id}/variants/add")
async def add_variant(
    request: Request, product_id: int,
    name_ar: str = Form(""), name_fr: str = Form(""), display_order: str = Form("0"),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db), user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    data = {"name_ar": name_ar, "name_fr": name_fr, "display_order": display_order}
    admin_action(request, db, lambda: variant_service.add_variant(db, product_id, data))
    return RedirectResponse(f"/admin/products/edit/{product_id}", status_code=303)


@router.post("/admin/variants/update/{variant_id}")
async def update_variant(
    request: Request, variant_id: int,
    product_id: int = Form(...),
    name_ar: str = Form(""), name_fr: str = Form(""), display_order: str = Form("0"),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db), user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    data = {"name_ar": name_ar, "name_fr": name_fr, "display_order": display_order}
    admin_action(request, db, lambda: variant_service.update_variant(db, variant_id, data))
    return RedirectResponse(f"/admin/products/edit/{product_id}", status_code=303)


@router.post("/admin/variants/delete/{variant_id}")
async def delete_variant(
    request: Request, variant_id: int,
    product_id: int = Form(...),
    confirm: Optional[str] = Form(None),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db), user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    if _confirmed(request, confirm):
        admin_action(request, db, lambda: variant_service.delete_variant(db, variant_id), success=TKey.ADMIN_DELETED)
    return RedirectResponse(f"/admin/products/edit/{product_id}", status_code=303)


def _item_data(name_ar, name_fr, description, price, stock_quantity, sku, display_order, is_active=None) -> dict:
    data = {
        "name_ar": name_ar, "name_fr": name_fr, "description": description,
        "price": price, "stock_quantity": stock_quantity, "sku": sku,
        "display_order": display_order,
    }
    if is_active is not None:
        data["is_active"] = checkbox(is_active)
    return data


@router.post("/admin/variants/{variant_id}/items/add")
async def add_variant_item(
    request: Request, variant_id: int,
    product_id: int = Form(...),
    name_ar: str = Form(""), name_fr: str = Form(""), description: str = Form(""),
    price: str = Form(""), stock_quantity: str = Form("0"), sku: str = Form(""),
    display_order: str = Form("0"),
    is_active: Optional[str] = Form("on"),
    image: Optional[UploadFile] = File(None),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db), user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    data = _item_data(name_ar, name_fr, description, price, stock_quantity, sku, display_order, is_active)
    admin_action(request, db, lambda: variant_service.add_item(db, variant_id, data, image))
    return RedirectResponse(f"/admin/products/edit/{product_id}", status_code=303)


@router.post("/admin/variant-items/update/{item_id}")
async def update_variant_item(
    request: Request, item_id: int,
    product_id: int = Form(...),
    name_ar: str = Form(""), name_fr: str = Form(""), description: str = Form(""),
    price: str = Form(""), stock_quantity: str = Form("0"), sku: str = Form(""),
    display_order: str = Form("0"),
    image: Optional[UploadFile] = File(None),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db), user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    data = _item_data(name_ar, name_fr, description, price, stock_quantity, sku, display_order)
    admin_action(request, db, lambda: variant_service.update_item(db, item_id, data, image))
    return RedirectResponse(f"/admin/products/edit/{product_id}", status_code=303)


@router.post("/admin/variant-items/toggle/{item_id}")
async def toggle_variant_item(
    request: Request, item_id: int,
    product_id: int = Form(...),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db), user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    admin_action(request, db, lambda: variant_service.toggle_item(db, item_id))
    return RedirectResponse(f"/admin/products/edit/{product_id}", status_code=303)


@router.post("/admin/variant-items/delete/{item_id}")
async def delete_variant_item(
    request: Request, item_id: int,
    product_id: int = Form(...),
    confirm: Optional[str] = Form(None),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db), user=Depends(require_admin),
):
    csrf_check(request, csrf_token)
    if _confirmed(request, confirm):
        admin_action(request, db, lambda: variant_service.delete_item(db, item_id), success=TKey.ADMIN_DELETED)
    return RedirectResponse(f"/admin/products/edit/{product_id}", status_code=303)
