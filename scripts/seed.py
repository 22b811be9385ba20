"""
Jomla - Database Seeder
=========================
Seeds the store with its initial data.

Usage:
    python scripts/seed.py          # Seed (idempotent)
    python scripts/seed.py --reset  # Drop all tables and reseed

Seeded:
  1. Admin account (ADMIN_EMAIL / ADMIN_PASSWORD env, with defaults)
  2. Store settings + home page content
  3. The 58 wilayas with delivery prices
  4. Demo catalog (categories, flat products, products with variants)
"""

import sys
import os
import io
from decimal import Decimal

# Console encoding for Arabic text
if sys.stdout.encoding != "utf-8":
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import SessionLocal, Base, engine
from modules.user.models import User  # noqa: F401
from modules.admin.models import StoreSettings, HomePageContent, RequestLog  # noqa: F401
from modules.catalog.models import Category, Product, ProductVariant, VariantItem
from modules.cart.models import Cart, CartItem  # noqa: F401
from modules.order.models import Wilaya, Order, OrderItem  # noqa: F401
from modules.analytics.models import AnalyticsEvent  # noqa: F401
from modules.admin.settings_store import get_or_create_settings, get_or_create_home_content
from modules.auth.service import auth_service


# (code, name_ar, name_fr, delivery_price)
WILAYAS = [
    ("01", "أدرار", "Adrar", 1200),
    ("02", "الشلف", "Chlef", 600),
    ("03", "الأغواط", "Laghouat", 800),
    ("04", "أم البواقي", "Oum El Bouaghi", 700),
    ("05", "باتنة", "Batna", 700),
    ("06", "بجاية", "Béjaïa", 600),
    ("07", "بسكرة", "Biskra", 800),
    ("08", "بشار", "Béchar", 1100),
    ("09", "البليدة", "Blida", 450),
    ("10", "البويرة", "Bouira", 550),
    ("11", "تمنراست", "Tamanrasset", 1500),
    ("12", "تبسة", "Tébessa", 800),
    ("13", "تلمسان", "Tlemcen", 700),
    ("14", "تيارت", "Tiaret", 700),
    ("15", "تيزي وزو", "Tizi Ouzou", 550),
    ("16", "الجزائر", "Alger", 400),
    ("17", "الجلفة", "Djelfa", 750),
    ("18", "جيجل", "Jijel", 650),
    ("19", "سطيف", "Sétif", 650),
    ("20", "سعيدة", "Saïda", 750),
    ("21", "سكيكدة", "Skikda", 700),
    ("22", "سيدي بلعباس", "Sidi Bel Abbès", 700),
    ("23", "عنابة", "Annaba", 700),
    ("24", "قالمة", "Guelma", 700),
    ("25", "قسنطينة", "Constantine", 650),
    ("26", "المدية", "Médéa", 550),
    ("27", "مستغانم", "Mostaganem", 650),
    ("28", "المسيلة", "M'Sila", 700),
    ("29", "معسكر", "Mascara", 700),
    ("30", "ورقلة", "Ouargla", 950),
    ("31", "وهران", "Oran", 600),
    ("32", "البيض", "El Bayadh", 900),
    ("33", "إليزي", "Illizi", 1500),
    ("34", "برج بوعريريج", "Bordj Bou Arréridj", 650),
    ("35", "بومرداس", "Boumerdès", 450),
    ("36", "الطارف", "El Tarf", 750),
    ("37", "تندوف", "Tindouf", 1500),
    ("38", "تيسمسيلت", "Tissemsilt", 700),
    ("39", "الوادي", "El Oued", 900),
    ("40", "خنشلة", "Khenchela", 750),
    ("41", "سوق أهراس", "Souk Ahras", 750),
    ("42", "تيبازة", "Tipaza", 450),
    ("43", "ميلة", "Mila", 700),
    ("44", "عين الدفلى", "Aïn Defla", 600),
    ("45", "النعامة", "Naâma", 950),
    ("46", "عين تموشنت", "Aïn Témouchent", 700),
    ("47", "غرداية", "Ghardaïa", 900),
    ("48", "غليزان", "Relizane", 650),
    ("49", "تيميمون", "Timimoun", 1300),
    ("50", "برج باجي مختار", "Bordj Badji Mokhtar", 1600),
    ("51", "أولاد جلال", "Ouled Djellal", 850),
    ("52", "بني عباس", "Béni Abbès", 1200),
    ("53", "عين صالح", "In Salah", 1400),
    ("54", "عين قزام", "In Guezzam", 1600),
    ("55", "تقرت", "Touggourt", 950),
    ("56", "جانت", "Djanet", 1600),
    ("57", "المغير", "El M'Ghair", 900),
    ("58", "المنيعة", "El Meniaa", 1100),
]


# slug -> (name_ar, name_fr, [flat products], [variant products])
CATALOG = {
    "chargers": ("شواحن", "Chargeurs", [
        ("شاحن سريع 20 واط", "Chargeur rapide 20W", "850.00", 120),
        ("شاحن سيارة مزدوج", "Chargeur voiture double", "650.00", 80),
    ], [
        ("شاحن لاسلكي", "Chargeur sans fil", "اللون", "Couleur", [
            ("أسود", "Noir", "1400.00", 40, "WL-BLK"),
            ("أبيض", "Blanc", "1400.00", 25, "WL-WHT"),
        ]),
    ]),
    "cables": ("كوابل", "Câbles", [
        ("كابل Type-C متر واحد", "Câble Type-C 1m", "250.00", 300),
        ("كابل Lightning", "Câble Lightning", "300.00", 200),
    ], []),
    "cases": ("أغطية", "Coques", [], [
        ("غطاء سيليكون", "Coque silicone", "الموديل", "Modèle", [
            ("iPhone 13", "iPhone 13", "350.00", 60, "CS-IP13"),
            ("iPhone 14", "iPhone 14", "350.00", 45, "CS-IP14"),
            ("Galaxy A54", "Galaxy A54", "300.00", 0, "CS-A54"),
        ]),
    ]),
    "audio": ("سماعات", "Audio", [
        ("سماعات سلكية", "Écouteurs filaires", "400.00", 150),
    ], [
        ("سماعات بلوتوث", "Écouteurs Bluetooth", "اللون", "Couleur", [
            ("أسود", "Noir", "2200.00", 30, "BT-BLK"),
            ("أزرق", "Bleu", "2300.00", 15, "BT-BLU"),
        ]),
    ]),
}


def ensure_tables():
    print("[0/4] Ensuring all tables exist...")
    Base.metadata.create_all(bind=engine)
    print("  + All tables OK\n")


def seed_admin(db):
    print("[1/4] Admin account")
    email = os.getenv("ADMIN_EMAIL", "admin@jomla.dz")
    password = os.getenv("ADMIN_PASSWORD", "admin123")
    user = auth_service.create_admin(db, email, password, full_name="مدير المتجر")
    print(f"  + {user.email}")


def seed_settings(db):
    print("[2/4] Store settings + home content")
    settings_row = get_or_create_settings(db)
    if not settings_row.store_name_fr:
        settings_row.store_name_fr = "Jomla"
    home = get_or_create_home_content(db)
    if not home.hero_title_ar:
        home.hero_title_ar = "إكسسوارات الهواتف بأسعار الجملة"
        home.hero_title_fr = "Accessoires téléphone au prix de gros"
        home.hero_subtitle_ar = "توصيل إلى جميع الولايات"
        home.hero_subtitle_fr = "Livraison dans toutes les wilayas"
        home.cta_text_ar = "تسوق الآن"
        home.cta_text_fr = "Acheter maintenant"
    db.flush()
    print("  + OK")


def seed_wilayas(db):
    print("[3/4] Wilayas")
    created = 0
    for code, name_ar, name_fr, price in WILAYAS:
        row = db.query(Wilaya).filter(Wilaya.code == code).first()
        if row is None:
            db.add(Wilaya(code=code, name_ar=name_ar, name_fr=name_fr, delivery_price=Decimal(price)))
            created += 1
    db.flush()
    print(f"  + {created} created, {len(WILAYAS) - created} existing")


def seed_catalog(db):
    print("[4/4] Demo catalog")
    for order, (slug, (cat_ar, cat_fr, flat, variants)) in enumerate(CATALOG.items()):
        if db.query(Category).filter(Category.slug == slug).first():
            print(f"  = {slug} exists")
            continue
        category = Category(name_ar=cat_ar, name_fr=cat_fr, slug=slug, display_order=order)
        db.add(category)
        db.flush()

        for name_ar, name_fr, price, stock in flat:
            db.add(Product(
                category_id=category.id, name_ar=name_ar, name_fr=name_fr,
                price=Decimal(price), stock_quantity=stock,
            ))

        for name_ar, name_fr, var_ar, var_fr, items in variants:
            product = Product(category_id=category.id, name_ar=name_ar, name_fr=name_fr, has_variants=True)
            db.add(product)
            db.flush()
            variant = ProductVariant(product_id=product.id, name_ar=var_ar, name_fr=var_fr)
            db.add(variant)
            db.flush()
            for position, (item_ar, item_fr, price, stock, sku) in enumerate(items):
                db.add(VariantItem(
                    variant_id=variant.id, name_ar=item_ar, name_fr=item_fr,
                    price=Decimal(price), stock_quantity=stock, sku=sku, display_order=position,
                ))
        db.flush()
        print(f"  + {slug}")


def seed():
    db = SessionLocal()
    try:
        print("=" * 50)
        print("  Jomla - Seeder")
        print("=" * 50)
        ensure_tables()
        seed_admin(db)
        seed_settings(db)
        seed_wilayas(db)
        seed_catalog(db)
        db.commit()
        print("\nSeed complete.")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def reset_and_seed():
    confirm = input("This will DROP all tables. Type 'yes': ")
    if confirm.strip().lower() != "yes":
        print("Aborted.")
        return
    Base.metadata.drop_all(bind=engine)
    seed()


if __name__ == "__main__":
    if "--reset" in sys.argv:
        reset_and_seed()
    else:
        seed()
