"""Admin: access control, catalog CRUD, order status changes, settings."""

import uuid
from decimal import Decimal

import pytest

from common.exceptions import InsufficientStockError
from modules.admin.models import StoreSettings
from modules.analytics.models import AnalyticsEvent, EventType
from modules.cart.service import CartStore
from modules.catalog.models import Category, Product, VariantItem
from modules.order.models import Order
from modules.order.service import order_service

from conftest import HTML, login, checkout_form


def admin_client(client, make_user):
    admin = make_user(admin=True)
    response = login(client, admin.email)
    assert response.headers["location"] == "/admin"
    return client


# ==========================================
# Access control
# ==========================================

def test_anonymous_admin_goes_to_login(client):
    response = client.get("/admin", headers=HTML, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/auth/login?next=%2Fadmin"


def test_customer_is_bounced_with_flash(client, make_user):
    customer = make_user()
    login(client, customer.email)
    response = client.get("/admin/products", headers=HTML, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/"
    assert "_flash" in response.cookies


def test_customer_api_gets_403(client, make_user):
    customer = make_user()
    login(client, customer.email)
    assert client.get("/admin/orders").status_code == 403


def test_admin_pages_render(client, make_user, product):
    admin_client(client, make_user)
    for path in ("/admin", "/admin/categories", "/admin/products", "/admin/orders",
                 "/admin/settings", "/admin/logs", f"/admin/products/edit/{product.id}"):
        response = client.get(path, headers=HTML)
        assert response.status_code == 200, path


# ==========================================
# Catalog CRUD
# ==========================================

def test_create_category_and_product(client, db, make_user):
    admin_client(client, make_user)
    client.post("/admin/categories/add", data={
        "name_ar": "كوابل", "name_fr": "Câbles", "slug": "", "display_order": "1", "is_active": "on",
    }, follow_redirects=False)
    db.rollback()
    category = db.query(Category).filter(Category.name_ar == "كوابل").one()
    assert category.slug == "cables"

    client.post("/admin/products/add", data={
        "name_ar": "كابل", "category_id": str(category.id), "price": "250", "stock_quantity": "30",
        "is_active": "on",
    }, follow_redirects=False)
    db.rollback()
    product = db.query(Product).filter(Product.name_ar == "كابل").one()
    assert product.price == Decimal("250")
    assert product.stock_quantity == 30
    assert product.is_active


def test_category_requires_arabic_name(client, db, make_user):
    admin_client(client, make_user)
    response = client.post("/admin/categories/add", data={"name_ar": " ", "name_fr": "X"}, follow_redirects=False)
    assert response.status_code == 303
    db.rollback()
    assert db.query(Category).count() == 0


def test_variant_product_clears_flat_price(client, db, make_user, category):
    admin_client(client, make_user)
    response = client.post("/admin/products/add", data={
        "name_ar": "غطاء", "category_id": str(category.id), "has_variants": "on",
        "price": "300", "stock_quantity": "9", "is_active": "on",
    }, follow_redirects=False)
    db.rollback()
    product = db.query(Product).filter(Product.name_ar == "غطاء").one()
    assert response.headers["location"] == f"/admin/products/edit/{product.id}"
    assert product.price is None and product.stock_quantity is None

    client.post(f"/admin/products/{product.id}/variants/add",
                data={"name_ar": "اللون", "display_order": "0"}, follow_redirects=False)
    db.rollback()
    variant = product.variants[0]
    client.post(f"/admin/variants/{variant.id}/items/add", data={
        "product_id": str(product.id), "name_ar": "أحمر", "price": "320", "stock_quantity": "7", "sku": "CS-RED",
    }, follow_redirects=False)
    db.rollback()
    item = db.query(VariantItem).filter(VariantItem.sku == "CS-RED").one()
    assert item.price == Decimal("320")
    assert product.display_price == Decimal("320")


def test_toggled_category_disappears_from_storefront_only(client, db, make_user, category, make_product):
    make_product(name_ar="شاحن-مخفي")
    admin_client(client, make_user)
    assert client.get("/category/chargers", headers=HTML).status_code == 200
    assert "شاحن-مخفي" in client.get("/products", headers=HTML).text

    client.post(f"/admin/categories/toggle/{category.id}", follow_redirects=False)

    assert client.get("/category/chargers", headers=HTML).status_code == 404
    assert "شاحن-مخفي" not in client.get("/products", headers=HTML).text
    assert "شواحن" in client.get("/admin/categories", headers=HTML).text


def test_delete_needs_confirmation_and_cascades(client, db, make_user, category, product):
    admin_client(client, make_user)

    client.post(f"/admin/categories/delete/{category.id}", follow_redirects=False)
    db.rollback()
    assert db.query(Category).count() == 1

    client.post(f"/admin/categories/delete/{category.id}", data={"confirm": "yes"}, follow_redirects=False)
    db.rollback()
    assert db.query(Category).count() == 0
    assert db.query(Product).count() == 0


# ==========================================
# Orders
# ==========================================

def place(db, wilaya, product, quantity=2):
    store = CartStore(db, session_id=str(uuid.uuid4())).load_cart()
    store.add_product(product.id, quantity)
    db.commit()
    return order_service.place_order(db, store, checkout_form(wilaya.id))


def test_status_change_stamps_time_and_tracks_delivery(client, db, make_user, wilaya, product):
    order = place(db, wilaya, product)
    order_id = order.id
    admin_client(client, make_user)

    response = client.post(f"/admin/orders/{order_id}/status",
                           data={"status": "delivered", "next": f"/admin/orders/{order_id}"},
                           follow_redirects=False)
    assert response.headers["location"] == f"/admin/orders/{order_id}"

    db.rollback()
    order = db.get(Order, order_id)
    assert order.status == "delivered"
    assert order.delivered_at is not None
    assert db.query(AnalyticsEvent).filter(
        AnalyticsEvent.event_type == EventType.ORDER_DELIVERED.value,
        AnalyticsEvent.order_id == order_id,
    ).count() == 1


def test_cancel_restocks_and_reopen_takes_stock_again(db, wilaya, product):
    order = place(db, wilaya, product, quantity=2)
    db.refresh(product)
    assert product.stock_quantity == 3

    order_service.update_status(db, order.id, "canceled")
    db.commit()
    db.refresh(product)
    assert product.stock_quantity == 5
    assert order.canceled_at is not None

    order_service.update_status(db, order.id, "confirmed")
    db.commit()
    db.refresh(product)
    assert product.stock_quantity == 3


def test_reopening_canceled_order_refuses_to_oversell(db, wilaya, make_product):
    scarce = make_product(stock=2)
    first = place(db, wilaya, scarce, quantity=2)
    first_id = first.id
    order_service.update_status(db, first_id, "canceled")
    db.commit()

    place(db, wilaya, scarce, quantity=2)
    db.refresh(scarce)
    assert scarce.stock_quantity == 0

    with pytest.raises(InsufficientStockError):
        order_service.update_status(db, first_id, "confirmed")
    db.rollback()

    assert db.get(Order, first_id).status == "canceled"
    db.refresh(scarce)
    assert scarce.stock_quantity == 0


def test_cancel_returns_stock_of_deactivated_product(db, wilaya, product):
    order = place(db, wilaya, product, quantity=2)
    product.is_active = False
    db.commit()

    order_service.update_status(db, order.id, "canceled")
    db.commit()
    db.refresh(product)
    assert product.stock_quantity == 5


def test_reopen_through_admin_route_flashes_and_keeps_status(client, db, make_user, wilaya, make_product):
    scarce = make_product(stock=1)
    order = place(db, wilaya, scarce, quantity=1)
    order_id = order.id
    order_service.update_status(db, order_id, "canceled")
    scarce.stock_quantity = 0
    db.commit()
    admin_client(client, make_user)

    response = client.post(f"/admin/orders/{order_id}/status", data={"status": "pending"},
                           follow_redirects=False)
    assert response.status_code == 303
    assert "_flash" in response.cookies

    db.rollback()
    assert db.get(Order, order_id).status == "canceled"


def test_unknown_status_is_rejected(client, db, make_user, wilaya, product):
    order = place(db, wilaya, product)
    order_id = order.id
    admin_client(client, make_user)
    client.post(f"/admin/orders/{order_id}/status", data={"status": "shipped"}, follow_redirects=False)
    db.rollback()
    assert db.get(Order, order_id).status == "pending"


def test_status_filter(client, db, make_user, wilaya, product):
    place(db, wilaya, product, quantity=1)
    admin_client(client, make_user)
    assert client.get("/admin/orders?status=pending", headers=HTML).status_code == 200
    assert client.get("/admin/orders?status=bogus", headers=HTML).status_code == 200


# ==========================================
# Settings
# ==========================================

def test_settings_update_refreshes_storefront(client, db, make_user):
    admin_client(client, make_user)
    client.get("/", headers=HTML)

    client.post("/admin/settings/update", data={
        "store_name_ar": "متجر الاختبار", "store_name_fr": "Boutique Test",
        "primary_color": "#112233", "secondary_color": "#445566",
    }, follow_redirects=False)

    db.rollback()
    row = db.query(StoreSettings).one()
    assert row.primary_color == "#112233"
    page = client.get("/", headers=HTML).text
    assert "متجر الاختبار" in page
    assert "#112233" in page


def test_settings_reject_bad_color(client, db, make_user):
    admin_client(client, make_user)
    client.post("/admin/settings/update", data={
        "store_name_ar": "متجر", "primary_color": "red",
    }, follow_redirects=False)
    db.rollback()
    row = db.query(StoreSettings).first()
    assert row is None or row.primary_color == "#0f766e"
