"""Checkout: totals, stock, atomic rollback, replayed submits, order access."""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from common.exceptions import CheckoutError, ValidationError, InsufficientStockError
from common.i18n import TKey
from modules.analytics.models import AnalyticsEvent, EventType
from modules.cart.models import CartItem
from modules.cart.service import CartStore
from modules.order.models import Order, OrderItem, OrderStatus
from modules.order.service import order_service

from conftest import HTML, checkout_form


def filled_cart(db, *lines):
    store = CartStore(db, session_id=str(uuid.uuid4())).load_cart()
    for product, quantity in lines:
        store.add_product(product.id, quantity)
    db.commit()
    return store


def test_total_is_subtotal_plus_delivery(db, wilaya, product, make_product):
    cable = make_product(price="25.00", stock=10, name_ar="كابل")
    store = filled_cart(db, (product, 3), (cable, 2))

    order = order_service.place_order(db, store, checkout_form(wilaya.id))

    assert order.subtotal == Decimal("350.00")
    assert order.delivery_price == Decimal("400.00")
    assert order.total == Decimal("750.00")
    assert order.status == OrderStatus.PENDING.value
    items = db.query(OrderItem).filter(OrderItem.order_id == order.id).order_by(OrderItem.id).all()
    assert [(i.product_name, i.quantity, i.unit_price, i.total_price) for i in items] == [
        ("شاحن", 3, Decimal("100.00"), Decimal("300.00")),
        ("كابل", 2, Decimal("25.00"), Decimal("50.00")),
    ]
    assert order.session_id == store.session_id


def test_checkout_decrements_stock_and_clears_cart(db, wilaya, product):
    store = filled_cart(db, (product, 2))
    order_service.place_order(db, store, checkout_form(wilaya.id))

    db.refresh(product)
    assert product.stock_quantity == 3
    assert store.is_empty
    assert db.query(CartItem).count() == 0
    assert db.query(AnalyticsEvent).filter(
        AnalyticsEvent.event_type == EventType.ORDER_PLACED.value,
    ).count() == 1


def test_variant_line_uses_item_name_and_stock(db, wilaya, variant_product):
    black = variant_product.variants[0].items[0]
    store = CartStore(db, session_id=str(uuid.uuid4())).load_cart()
    store.add_product(variant_product.id, 2, black.id)
    db.commit()

    order = order_service.place_order(db, store, checkout_form(wilaya.id))

    item = order.items[0]
    assert item.variant_item_id == black.id
    assert item.variant_name == "أسود"
    assert item.unit_price == Decimal("350.00")
    db.refresh(black)
    assert black.stock_quantity == 2


def test_order_keeps_snapshot_price(db, wilaya, product):
    store = filled_cart(db, (product, 1))
    product.price = Decimal("180.00")
    db.commit()

    order = order_service.place_order(db, store, checkout_form(wilaya.id))
    assert order.subtotal == Decimal("100.00")


def test_phone_longer_than_column_is_a_validation_error(db, wilaya, product):
    store = filled_cart(db, (product, 1))
    with pytest.raises(ValidationError) as exc:
        order_service.place_order(db, store, checkout_form(wilaya.id, customer_phone="0" * 21))
    assert exc.value.message == TKey.CHECKOUT_INVALID_PHONE
    assert db.query(Order).count() == 0
    assert db.query(CartItem).count() == 1


def test_total_does_not_depend_on_line_order(db, wilaya, product, make_product):
    cable = make_product(price="25.00", stock=10, name_ar="كابل")
    forward = filled_cart(db, (product, 2), (cable, 3))
    backward = filled_cart(db, (cable, 3), (product, 2))
    assert forward.get_subtotal() == backward.get_subtotal() == Decimal("275.00")

    first = order_service.place_order(db, forward, checkout_form(wilaya.id))
    second = order_service.place_order(db, backward, checkout_form(wilaya.id))
    assert first.subtotal == second.subtotal
    assert first.total == second.total == Decimal("675.00")


def test_missing_fields_are_rejected_before_any_write(db, wilaya, product):
    store = filled_cart(db, (product, 1))
    with pytest.raises(ValidationError) as exc:
        order_service.place_order(db, store, checkout_form(wilaya.id, address="  "))
    assert exc.value.message == TKey.CHECKOUT_REQUIRED_FIELDS
    assert db.query(Order).count() == 0


def test_empty_cart_is_rejected(db, wilaya):
    store = CartStore(db, session_id=str(uuid.uuid4())).load_cart()
    with pytest.raises(ValidationError) as exc:
        order_service.place_order(db, store, checkout_form(wilaya.id))
    assert exc.value.message == TKey.CART_EMPTY


def test_stock_sold_out_since_add(db, wilaya, product):
    store = filled_cart(db, (product, 4))
    product.stock_quantity = 2
    db.commit()

    with pytest.raises(InsufficientStockError):
        order_service.place_order(db, store, checkout_form(wilaya.id))
    assert db.query(Order).count() == 0
    assert db.query(CartItem).count() == 1


def test_failure_mid_checkout_rolls_everything_back(db, wilaya, product, monkeypatch):
    store = filled_cart(db, (product, 2))

    def broken(purchasable, delta):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr("modules.order.service._adjust_stock", broken)

    with pytest.raises(CheckoutError):
        order_service.place_order(db, store, checkout_form(wilaya.id))

    assert db.query(Order).count() == 0
    assert db.query(OrderItem).count() == 0
    assert db.query(CartItem).filter(CartItem.cart_id == store.cart_id).count() == 1
    db.refresh(product)
    assert product.stock_quantity == 5


def test_replayed_token_returns_same_order(db, wilaya, product):
    store = filled_cart(db, (product, 1))
    token = uuid.uuid4().hex

    first = order_service.place_order(db, store, checkout_form(wilaya.id), checkout_token=token)
    second = order_service.place_order(db, store, checkout_form(wilaya.id), checkout_token=token)

    assert first.id == second.id
    assert db.query(Order).count() == 1


# ==========================================
# Through the routes
# ==========================================

def test_checkout_page_with_empty_cart_redirects(client):
    response = client.get("/checkout", headers=HTML, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/cart"


def test_guest_checkout_and_confirmation_access(client, db, wilaya, product):
    client.post("/cart/add", data={"product_id": product.id, "quantity": 2}, follow_redirects=False)
    page = client.get("/checkout", headers=HTML)
    assert page.status_code == 200

    response = client.post("/checkout", data=checkout_form(wilaya.id, token="tok-1"), follow_redirects=False)
    assert response.status_code == 303
    location = response.headers["location"]
    assert location.endswith("/confirmation")

    confirmation = client.get(location, headers=HTML)
    assert confirmation.status_code == 200
    db.rollback()
    order = db.query(Order).one()
    assert order.order_number in confirmation.text

    replay = client.post("/checkout", data=checkout_form(wilaya.id, token="tok-1"), follow_redirects=False)
    assert replay.headers["location"] == location
    db.rollback()
    assert db.query(Order).count() == 1

    client.cookies.clear()
    assert client.get(location, headers=HTML).status_code == 404


def test_invalid_form_returns_to_checkout(client, wilaya, product):
    client.post("/cart/add", data={"product_id": product.id, "quantity": 1}, follow_redirects=False)
    response = client.post("/checkout", data=checkout_form(wilaya.id, customer_name=""), follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/checkout"
