"""
Shared fixtures: a throwaway SQLite database, a TestClient bound to the
app, and small builders for catalog rows and accounts.

Settings are read at import time, so the environment is prepared before
anything from the application is imported.
"""

import os
import tempfile
import uuid
from decimal import Decimal

_TMP_DIR = tempfile.mkdtemp(prefix="jomla-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'jomla.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["CSRF_ENABLED"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["REQUEST_LOG_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")

import pytest
from fastapi.testclient import TestClient

from config.database import Base, SessionLocal, engine
from main import app
from modules.auth.service import auth_service
from modules.catalog.models import Category, Product, ProductVariant, VariantItem
from modules.order.models import Wilaya

HTML = {"accept": "text/html"}


def _enable_wal():
    # Readers in the test session must not block the app's writers
    raw = engine.raw_connection()
    try:
        cursor = raw.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()
    finally:
        raw.close()


_enable_wal()


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db):
    with TestClient(app) as test_client:
        yield test_client


# ==========================================
# Builders
# ==========================================

@pytest.fixture
def wilaya(db):
    row = Wilaya(code="16", name_ar="الجزائر", name_fr="Alger", delivery_price=Decimal("400"))
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def category(db):
    row = Category(name_ar="شواحن", name_fr="Chargeurs", slug="chargers")
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def make_product(db, category):
    def _make(price="100.00", stock=5, name_ar="شاحن", **kwargs):
        product = Product(
            category_id=category.id, name_ar=name_ar, name_fr=kwargs.pop("name_fr", "Chargeur"),
            price=Decimal(price), stock_quantity=stock, **kwargs,
        )
        db.add(product)
        db.commit()
        return product
    return _make


@pytest.fixture
def product(make_product):
    return make_product()


@pytest.fixture
def variant_product(db, category):
    """Product with one variant group (color) and two items."""
    product = Product(category_id=category.id, name_ar="غطاء", name_fr="Coque", has_variants=True)
    db.add(product)
    db.flush()
    variant = ProductVariant(product_id=product.id, name_ar="اللون", name_fr="Couleur")
    db.add(variant)
    db.flush()
    black = VariantItem(variant_id=variant.id, name_ar="أسود", name_fr="Noir",
                        price=Decimal("350.00"), stock_quantity=4, sku="CS-BLK")
    white = VariantItem(variant_id=variant.id, name_ar="أبيض", name_fr="Blanc",
                        price=Decimal("375.00"), stock_quantity=0, sku="CS-WHT")
    db.add_all([black, white])
    db.commit()
    return product


@pytest.fixture
def make_user(db):
    def _make(email=None, password="secret123", admin=False):
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        if admin:
            user = auth_service.create_admin(db, email, password)
        else:
            user = auth_service.signup(db, email, password, full_name="Client Test", phone_number="0555000000")
        db.commit()
        return user
    return _make


def login(test_client, email, password="secret123"):
    return test_client.post(
        "/auth/login",
        data={"email": email, "password": password, "next": ""},
        follow_redirects=False,
    )


def checkout_form(wilaya_id, token="", **overrides):
    form = {
        "customer_name": "Karim B.",
        "customer_phone": "0555123456",
        "wilaya_id": str(wilaya_id),
        "commune": "Bab Ezzouar",
        "address": "Cité 1, Bt 3",
        "notes": "",
        "checkout_token": token,
    }
    form.update(overrides)
    return form
