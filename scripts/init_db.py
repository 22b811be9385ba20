"""
Jomla - Database Initialization
=================================
Creates all tables if they don't exist, and on PostgreSQL installs the
merge_guest_cart_to_user() function used by CART_MERGE_STRATEGY=procedure.
Safe to run multiple times.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --drop   # Drop and recreate all tables
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import inspect, text

from config.database import Base, engine

# Import ALL models so Base.metadata knows about them
from modules.user.models import User  # noqa
from modules.admin.models import StoreSettings, HomePageContent, RequestLog  # noqa
from modules.catalog.models import Category, Product, ProductVariant, VariantItem  # noqa
from modules.cart.models import Cart, CartItem  # noqa
from modules.order.models import Wilaya, Order, OrderItem  # noqa
from modules.analytics.models import AnalyticsEvent  # noqa


# Same policy as NativeGuestCartMerger: colliding lines keep the user's price,
# quantities are summed and capped at live stock, never below the user's quantity.
MERGE_FUNCTION_SQL = """
CREATE OR REPLACE FUNCTION merge_guest_cart_to_user(p_session_id TEXT, p_user_id INTEGER)
RETURNS VOID AS $$
DECLARE
    v_guest_id INTEGER;
    v_user_cart_id INTEGER;
BEGIN
    SELECT id INTO v_guest_id FROM carts WHERE session_id = p_session_id;
    IF v_guest_id IS NULL THEN
        RETURN;
    END IF;

    SELECT id INTO v_user_cart_id FROM carts WHERE user_id = p_user_id;
    IF v_user_cart_id IS NULL THEN
        INSERT INTO carts (user_id, created_at, updated_at) VALUES (p_user_id, now(), now())
        RETURNING id INTO v_user_cart_id;
    END IF;

    UPDATE cart_items AS u
       SET quantity = GREATEST(u.quantity, LEAST(
               u.quantity + g.quantity,
               COALESCE(vi.stock_quantity, p.stock_quantity, 0)))
      FROM cart_items AS g
      JOIN products AS p ON p.id = g.product_id
      LEFT JOIN variant_items AS vi ON vi.id = g.variant_item_id
     WHERE g.cart_id = v_guest_id
       AND u.cart_id = v_user_cart_id
       AND u.product_id = g.product_id
       AND u.variant_item_id IS NOT DISTINCT FROM g.variant_item_id;

    DELETE FROM cart_items AS g
     USING cart_items AS u
     WHERE g.cart_id = v_guest_id
       AND u.cart_id = v_user_cart_id
       AND u.product_id = g.product_id
       AND u.variant_item_id IS NOT DISTINCT FROM g.variant_item_id;

    UPDATE cart_items SET cart_id = v_user_cart_id WHERE cart_id = v_guest_id;
    DELETE FROM carts WHERE id = v_guest_id;
    UPDATE carts SET updated_at = now() WHERE id = v_user_cart_id;
END;
$$ LANGUAGE plpgsql;
"""


def install_procedures():
    if engine.dialect.name != "postgresql":
        print("Skipping merge_guest_cart_to_user() (PostgreSQL only).")
        return
    with engine.begin() as conn:
        conn.execute(text(MERGE_FUNCTION_SQL))
    print("Installed merge_guest_cart_to_user().")


def init_db(drop_first=False):
    if drop_first:
        print("Dropping all tables...")
        Base.metadata.drop_all(bind=engine)
        print("Done.")

    print("Creating all tables...")
    Base.metadata.create_all(bind=engine)
    install_procedures()

    inspector = inspect(engine)
    tables = inspector.get_table_names()
    print(f"\nTables in database ({len(tables)}):")
    for name in sorted(tables):
        print(f"  - {name}")
    print("\nDatabase initialized successfully!")


if __name__ == "__main__":
    drop = "--drop" in sys.argv
    if drop:
        confirm = input("This will DROP all tables. Type 'yes': ")
        if confirm.strip().lower() != "yes":
            print("Aborted.")
            sys.exit(0)
    init_db(drop_first=drop)
