"""CartStore behaviour: line merging, snapshot prices, stock checks, guest merge."""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from common.exceptions import InsufficientStockError, ValidationError, NotFoundError
from common.helpers import now_utc
from modules.analytics.models import AnalyticsEvent, EventType
from modules.cart.models import Cart, CartItem
from modules.cart.service import (
    CartStore, NativeGuestCartMerger, count_cart_items,
    emit_abandonment_events, purge_stale_guest_carts,
)
from modules.catalog.models import VariantItem


def guest_store(db):
    return CartStore(db, session_id=str(uuid.uuid4()), merger=NativeGuestCartMerger()).load_cart()


def test_load_creates_cart_lazily(db):
    store = guest_store(db)
    assert store.cart_id is not None
    assert store.is_empty
    assert db.query(Cart).count() == 1


def test_no_identity_is_empty_and_writes_nothing(db):
    store = CartStore(db).load_cart()
    assert store.cart_id is None
    assert store.items == []
    assert db.query(Cart).count() == 0


def test_same_product_twice_is_one_line(db, product):
    store = guest_store(db)
    store.add_product(product.id, 1)
    store.add_product(product.id, 2)
    assert len(store.items) == 1
    assert store.items[0].quantity == 3
    assert db.query(CartItem).count() == 1


def test_variant_items_are_separate_lines(db, variant_product, make_product):
    other = make_product(price="50.00", stock=10)
    item = variant_product.variants[0].items[0]
    store = guest_store(db)
    store.add_product(variant_product.id, 1, item.id)
    store.add_product(other.id, 1)
    assert len(store.items) == 2
    assert store.find_line(variant_product.id, item.id).price == Decimal("350.00")


def test_variant_product_requires_variant(db, variant_product):
    store = guest_store(db)
    with pytest.raises(ValidationError):
        store.add_product(variant_product.id, 1)


def test_subtotal(db, product, make_product):
    other = make_product(price="49.50", stock=10)
    store = guest_store(db)
    store.add_product(product.id, 2)
    store.add_product(other.id, 3)
    assert store.get_subtotal() == Decimal("348.50")
    assert store.item_count == 5


def test_zero_quantity_removes_line(db, product):
    store = guest_store(db)
    line = store.add_product(product.id, 2)
    store.update_quantity(line.id, 0)
    assert store.is_empty
    assert db.query(CartItem).count() == 0


def test_update_unknown_line(db, product):
    store = guest_store(db)
    store.add_product(product.id, 1)
    with pytest.raises(NotFoundError):
        store.update_quantity(999999, 2)


def test_snapshot_price_survives_price_change(db, product):
    store = guest_store(db)
    store.add_product(product.id, 1)
    db.commit()

    product.price = Decimal("150.00")
    db.commit()

    store.load_cart()
    line = store.items[0]
    assert line.price == Decimal("100.00")
    assert line.live_price == Decimal("150.00")
    assert store.get_subtotal() == Decimal("100.00")


def test_quantity_above_stock_is_rejected_without_write(db, make_product):
    scarce = make_product(stock=2)
    store = guest_store(db)
    with pytest.raises(InsufficientStockError):
        store.add_product(scarce.id, 3)
    assert db.query(CartItem).count() == 0


def test_stock_counts_quantity_already_in_cart(db, make_product):
    scarce = make_product(stock=2)
    store = guest_store(db)
    store.add_product(scarce.id, 2)
    with pytest.raises(InsufficientStockError):
        store.add_product(scarce.id, 1)
    assert store.items[0].quantity == 2


def test_check_stock_for_existing_line(db, make_product):
    scarce = make_product(stock=3)
    store = guest_store(db)
    line = store.add_product(scarce.id, 1)
    store.check_stock(line.id, 3)
    with pytest.raises(InsufficientStockError):
        store.check_stock(line.id, 4)


def test_variant_item_stock_is_enforced(db, variant_product):
    black = db.query(VariantItem).filter(VariantItem.sku == "CS-BLK").one()
    white = db.query(VariantItem).filter(VariantItem.sku == "CS-WHT").one()
    store = guest_store(db)

    with pytest.raises(InsufficientStockError):
        store.add_product(variant_product.id, 5, variant_item_id=black.id)
    with pytest.raises(InsufficientStockError):
        store.add_product(variant_product.id, 1, variant_item_id=white.id)
    assert store.items == []
    assert db.query(CartItem).count() == 0

    store.add_product(variant_product.id, 4, variant_item_id=black.id)
    assert store.items[0].quantity == 4


def test_subscribers_are_notified(db, product):
    store = guest_store(db)
    seen = []
    unsubscribe = store.subscribe(lambda s: seen.append(s.item_count))
    store.add_product(product.id, 2)
    assert seen[-1] == 2
    unsubscribe()
    store.clear_cart()
    assert seen[-1] == 2
    assert store.is_empty


def test_add_to_cart_event(db, product):
    store = guest_store(db)
    store.add_product(product.id, 1)
    event = db.query(AnalyticsEvent).filter(AnalyticsEvent.event_type == EventType.ADD_TO_CART.value).one()
    assert event.product_id == product.id
    assert event.session_id == store.session_id


# ==========================================
# Guest cart merge
# ==========================================

def test_merge_sums_caps_and_keeps_user_price(db, make_user, make_product):
    user = make_user()
    capped = make_product(stock=5)
    moved = make_product(price="20.00", stock=10, name_ar="كابل")

    user_store = CartStore(db, user_id=user.id).load_cart()
    user_store.add_item(capped.id, 4, Decimal("90.00"))

    guest = guest_store(db)
    guest.add_product(capped.id, 3)
    guest.add_product(moved.id, 2)
    guest_cart_id = guest.cart_id
    db.commit()

    merged = guest.merge_guest_cart(user.id)
    db.commit()

    assert merged.user_id == user.id
    assert merged.cart_id == user_store.cart_id
    by_product = {line.product_id: line for line in merged.items}
    assert by_product[capped.id].quantity == 5
    assert by_product[capped.id].price == Decimal("90.00")
    assert by_product[moved.id].quantity == 2
    assert db.get(Cart, guest_cart_id) is None


def test_merge_creates_user_cart_when_missing(db, make_user, product):
    user = make_user()
    guest = guest_store(db)
    guest.add_product(product.id, 2)
    db.commit()

    merged = guest.merge_guest_cart(user.id)
    db.commit()

    assert merged.item_count == 2
    assert db.query(Cart).filter(Cart.user_id == user.id).count() == 1
    assert db.query(Cart).filter(Cart.session_id.isnot(None)).count() == 0


def test_merge_never_shrinks_user_line_when_sold_out(db, make_user, make_product):
    user = make_user()
    charger = make_product(stock=5)

    user_store = CartStore(db, user_id=user.id).load_cart()
    user_store.add_item(charger.id, 5, Decimal("100.00"))
    guest = guest_store(db)
    guest.add_product(charger.id, 1)
    charger.stock_quantity = 0
    db.commit()

    merged = guest.merge_guest_cart(user.id)
    db.commit()

    assert len(merged.items) == 1
    assert merged.items[0].quantity == 5


def test_count_cart_items(db, product):
    store = guest_store(db)
    store.add_product(product.id, 3)
    db.commit()
    assert count_cart_items(db, session_id=store.session_id) == 3
    assert count_cart_items(db) == 0


# ==========================================
# Housekeeping
# ==========================================

def _age(db, cart_id, hours):
    db.query(Cart).filter(Cart.id == cart_id).update(
        {Cart.updated_at: now_utc() - timedelta(hours=hours)}, synchronize_session=False,
    )
    db.commit()


def test_abandonment_event_inside_window(db, product):
    idle = guest_store(db)
    idle.add_product(product.id, 1)
    fresh = guest_store(db)
    fresh.add_product(product.id, 1)
    db.commit()
    _age(db, idle.cart_id, 24.5)

    assert emit_abandonment_events(db, abandon_hours=24) == 1
    db.commit()
    events = db.query(AnalyticsEvent).filter(
        AnalyticsEvent.event_type == EventType.CART_ABANDONMENT.value,
    ).all()
    assert [e.session_id for e in events] == [idle.session_id]


def test_purge_only_empty_stale_guest_carts(db, product):
    empty_stale = guest_store(db)
    full_stale = guest_store(db)
    full_stale.add_product(product.id, 1)
    db.commit()
    _age(db, empty_stale.cart_id, 24 * 40)
    _age(db, full_stale.cart_id, 24 * 40)

    assert purge_stale_guest_carts(db, ttl_days=30) == 1
    db.commit()
    assert db.get(Cart, empty_stale.cart_id) is None
    assert db.get(Cart, full_stale.cart_id) is not None
