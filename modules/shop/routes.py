"""
Shop Module - Routes
======================
Public storefront: home, product listing, category and product detail
pages, language switch.
"""

from fastapi import APIRouter, Request, Depends
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from config.database import get_db
from config.settings import LANGUAGE_COOKIE, COOKIE_SECURE
from common.i18n import parse_language
from common.templating import render
from modules.analytics.models import EventType
from modules.auth.deps import get_current_active_user
from modules.catalog.service import catalog
from modules.shop.service import shop_service

router = APIRouter(tags=["shop"])


def _safe_back_url(request: Request) -> str:
    """Same-site referer path, else home."""
    referer = request.headers.get("referer", "")
    base = str(request.base_url)
    if referer.startswith(base):
        path = "/" + referer[len(base):]
        return path if not path.startswith("//") else "/"
    return "/"


@router.get("/", response_class=HTMLResponse)
async def home_page(
    request: Request,
    db: Session = Depends(get_db),
    user=Depends(get_current_active_user),
):
    shop_service.track_view(request, db, user)
    categories = catalog.list_categories(db)
    featured = catalog.list_products(db)[:8]
    return render(request, "shop/home.html", shop_service.page_context(
        request, db, user, categories=categories, products=featured,
    ))


@router.get("/products", response_class=HTMLResponse)
async def products_page(
    request: Request,
    db: Session = Depends(get_db),
    user=Depends(get_current_active_user),
):
    shop_service.track_view(request, db, user)
    products = catalog.list_products(db)
    return render(request, "shop/products.html", shop_service.page_context(
        request, db, user, products=products, category=None,
    ))


@router.get("/category/{slug}", response_class=HTMLResponse)
async def category_page(
    request: Request,
    slug: str,
    db: Session = Depends(get_db),
    user=Depends(get_current_active_user),
):
    category = catalog.get_category_by_slug(db, slug)
    if not category:
        return render(request, "shop/category_not_found.html",
                      shop_service.page_context(request, db, user), status_code=404)

    shop_service.track_view(request, db, user)
    products = catalog.list_products(db, category_id=category.id)
    return render(request, "shop/products.html", shop_service.page_context(
        request, db, user, products=products, category=category,
    ))


@router.get("/products/{product_id}", response_class=HTMLResponse)
async def product_detail(
    request: Request,
    product_id: int,
    db: Session = Depends(get_db),
    user=Depends(get_current_active_user),
):
    product = catalog.get_product_detail(db, product_id)
    if not product:
        return render(request, "shop/product_not_found.html",
                      shop_service.page_context(request, db, user), status_code=404)

    variant_groups = catalog.variants_for_display(product)
    shop_service.track_view(request, db, user, EventType.PRODUCT_VIEW, product_id=product.id)
    return render(request, "shop/product_detail.html", shop_service.page_context(
        request, db, user, product=product, variant_groups=variant_groups,
    ))


@router.get("/lang/{code}")
async def switch_language(request: Request, code: str):
    """Persist the language preference (unknown codes fall back to Arabic)."""
    lang = parse_language(code)
    response = RedirectResponse(_safe_back_url(request), status_code=303)
    response.set_cookie(
        LANGUAGE_COOKIE, lang.value,
        max_age=60 * 60 * 24 * 365, samesite="lax", secure=COOKIE_SECURE,
    )
    return response
