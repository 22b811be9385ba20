"""
Catalog Module - Service Layer
================================
Storefront reads (active rows only) and admin CRUD for categories,
products, variant groups and variant items.

Price and stock are always read from the authoritative side of a
product: the product itself when has_variants is False, otherwise the
selected VariantItem.
"""

import logging
from decimal import Decimal
from typing import List, NamedTuple, Optional

from fastapi import UploadFile
from sqlalchemy.orm import Session, joinedload, selectinload

from common.exceptions import ValidationError, NotFoundError, DuplicateError
from common.helpers import safe_int, safe_decimal, slugify
from common.upload import save_upload_file, delete_file
from modules.catalog.models import Category, Product, ProductVariant, VariantItem
from modules.order.models import Wilaya

logger = logging.getLogger("jomla.catalog")


class Purchasable(NamedTuple):
    """What a cart line or order line is actually buying."""
    product: Product
    variant_item: Optional[VariantItem]
    price: Decimal
    stock: int

    @property
    def name(self) -> str:
        return self.product.name_ar

    @property
    def variant_name(self) -> Optional[str]:
        return self.variant_item.name_ar if self.variant_item else None


def available_stock(product: Product, variant_item: Optional[VariantItem] = None) -> int:
    if product.has_variants:
        return (variant_item.stock_quantity or 0) if variant_item else 0
    return product.stock_quantity or 0


def unit_price(product: Product, variant_item: Optional[VariantItem] = None) -> Decimal:
    if product.has_variants:
        return variant_item.price if variant_item else Decimal("0")
    return product.price if product.price is not None else Decimal("0")


# ==========================================
# 🛍️ Storefront (read-only)
# ==========================================

class CatalogBrowser:

    def list_categories(self, db: Session) -> List[Category]:
        return (
            db.query(Category)
            .filter(Category.is_active == True)
            .order_by(Category.display_order.asc(), Category.id.asc())
            .all()
        )

    def get_category_by_slug(self, db: Session, slug: str) -> Optional[Category]:
        """Active category or None (rendered as "not found", not an error)."""
        return db.query(Category).filter(
            Category.slug == slug, Category.is_active == True,
        ).first()

    def list_products(self, db: Session, category_id: Optional[int] = None) -> List[Product]:
        q = (
            db.query(Product)
            .join(Category, Product.category_id == Category.id)
            .options(selectinload(Product.variants).selectinload(ProductVariant.items))
            .filter(Product.is_active == True, Category.is_active == True)
        )
        if category_id:
            q = q.filter(Product.category_id == category_id)
        return q.order_by(Product.created_at.desc(), Product.id.desc()).all()

    def get_product_detail(self, db: Session, product_id: int) -> Optional[Product]:
        """Active product in an active category. Inactive variant items are filtered by the caller via active_items()."""
        return (
            db.query(Product)
            .join(Category, Product.category_id == Category.id)
            .options(
                joinedload(Product.category),
                selectinload(Product.variants).selectinload(ProductVariant.items),
            )
            .filter(Product.id == product_id, Product.is_active == True, Category.is_active == True)
            .first()
        )

    def variants_for_display(self, product: Product) -> List[dict]:
        """Variant groups with only their active items, in display order."""
        groups = []
        for variant in product.variants:
            items = [item for item in variant.items if item.is_active]
            if items:
                groups.append({"variant": variant, "items": items})
        return groups

    def list_wilayas(self, db: Session) -> List[Wilaya]:
        return db.query(Wilaya).order_by(Wilaya.name_ar.asc()).all()

    def get_wilaya(self, db: Session, wilaya_id: Optional[int]) -> Optional[Wilaya]:
        if not wilaya_id:
            return None
        return db.query(Wilaya).filter(Wilaya.id == wilaya_id).first()

    def resolve_purchasable(
        self, db: Session, product_id: int, variant_item_id: Optional[int] = None,
        lock: bool = False,
    ) -> Purchasable:
        """
        Resolve a (product, variant item) pair to its live price and stock.
        With lock=True the rows are selected FOR UPDATE (ignored on SQLite).
        """
        q = db.query(Product).filter(Product.id == product_id, Product.is_active == True)
        if lock:
            q = q.with_for_update()
        product = q.first()
        if not product:
            raise NotFoundError("المنتج غير موجود")

        variant_item = None
        if product.has_variants:
            if not variant_item_id:
                raise ValidationError("الرجاء اختيار نوع المنتج")
            iq = (
                db.query(VariantItem)
                .join(ProductVariant, VariantItem.variant_id == ProductVariant.id)
                .filter(
                    VariantItem.id == variant_item_id,
                    VariantItem.is_active == True,
                    ProductVariant.product_id == product.id,
                )
            )
            if lock:
                iq = iq.with_for_update()
            variant_item = iq.first()
            if not variant_item:
                raise NotFoundError("نوع المنتج غير موجود")
        elif variant_item_id:
            raise ValidationError("هذا المنتج لا يحتوي على أنواع")

        return Purchasable(
            product=product,
            variant_item=variant_item,
            price=unit_price(product, variant_item),
            stock=available_stock(product, variant_item),
        )


# ==========================================
# 🗂️ Category Admin
# ==========================================

def _require_name_ar(data: dict) -> str:
    name_ar = (data.get("name_ar") or "").strip()
    if not name_ar:
        raise ValidationError("الاسم بالعربية مطلوب")
    return name_ar


def _clean(value) -> Optional[str]:
    value = (value or "").strip() if isinstance(value, str) else value
    return value or None


class CategoryService:

    def list_all(self, db: Session) -> List[Category]:
        """Admin listing: inactive categories included."""
        return db.query(Category).order_by(Category.display_order.asc(), Category.id.asc()).all()

    def get_by_id(self, db: Session, category_id: int) -> Optional[Category]:
        return db.query(Category).filter(Category.id == category_id).first()

    def _unique_slug(self, db: Session, data: dict, exclude_id: Optional[int] = None) -> str:
        slug = slugify(data.get("slug") or "") or slugify(data.get("name_fr") or "")
        if not slug:
            slug = f"category-{(db.query(Category).count() + 1)}"
        q = db.query(Category.id).filter(Category.slug == slug)
        if exclude_id:
            q = q.filter(Category.id != exclude_id)
        if q.first():
            raise DuplicateError(f"المعرف (slug) مستخدم مسبقاً: {slug}")
        return slug

    def create(self, db: Session, data: dict, image: Optional[UploadFile] = None) -> Category:
        name_ar = _require_name_ar(data)
        category = Category(
            name_ar=name_ar,
            name_fr=_clean(data.get("name_fr")),
            slug=self._unique_slug(db, data),
            description=_clean(data.get("description")),
            is_active=data.get("is_active", True),
            display_order=safe_int(data.get("display_order")) or 0,
        )
        category.image_url = save_upload_file(image, folder="categories")
        db.add(category)
        db.flush()
        logger.info(f"Category created: {category.slug}")
        return category

    def update(self, db: Session, category_id: int, data: dict, image: Optional[UploadFile] = None) -> Category:
        category = self.get_by_id(db, category_id)
        if not category:
            raise NotFoundError("الفئة غير موجودة")
        category.name_ar = _require_name_ar(data)
        category.name_fr = _clean(data.get("name_fr"))
        category.slug = self._unique_slug(db, data, exclude_id=category.id)
        category.description = _clean(data.get("description"))
        category.is_active = data.get("is_active", category.is_active)
        category.display_order = safe_int(data.get("display_order")) or 0

        new_image = save_upload_file(image, folder="categories")
        if new_image:
            delete_file(category.image_url)
            category.image_url = new_image
        db.flush()
        return category

    def toggle_active(self, db: Session, category_id: int) -> Category:
        category = self.get_by_id(db, category_id)
        if not category:
            raise NotFoundError("الفئة غير موجودة")
        category.is_active = not category.is_active
        db.flush()
        return category

    def delete(self, db: Session, category_id: int):
        """Delete a category and, through the cascade, all of its products."""
        category = self.get_by_id(db, category_id)
        if not category:
            raise NotFoundError("الفئة غير موجودة")
        images = [category.image_url] + [p.image_url for p in category.products]
        db.delete(category)
        db.flush()
        for url in images:
            delete_file(url)
        logger.info(f"Category deleted: {category.slug} (with {len(images) - 1} products)")


# ==========================================
# 📦 Product Admin
# ==========================================

class ProductService:

    def list_all(self, db: Session, category_id: Optional[int] = None) -> List[Product]:
        q = db.query(Product).options(joinedload(Product.category))
        if category_id:
            q = q.filter(Product.category_id == category_id)
        return q.order_by(Product.created_at.desc(), Product.id.desc()).all()

    def get_by_id(self, db: Session, product_id: int) -> Optional[Product]:
        return (
            db.query(Product)
            .options(selectinload(Product.variants).selectinload(ProductVariant.items))
            .filter(Product.id == product_id)
            .first()
        )

    def _apply(self, db: Session, product: Product, data: dict):
        product.name_ar = _require_name_ar(data)
        product.name_fr = _clean(data.get("name_fr"))
        product.description = _clean(data.get("description"))

        category_id = safe_int(data.get("category_id"))
        if not category_id or not db.query(Category.id).filter(Category.id == category_id).first():
            raise ValidationError("الرجاء اختيار الفئة")
        product.category_id = category_id

        product.has_variants = bool(data.get("has_variants"))
        if product.has_variants:
            # Variant items are authoritative; the flat pair must stay empty
            product.price = None
            product.stock_quantity = None
        else:
            price = safe_decimal(data.get("price"))
            if price is None or price < 0:
                raise ValidationError("السعر غير صالح")
            stock = safe_int(data.get("stock_quantity"))
            if stock is None or stock < 0:
                raise ValidationError("الكمية غير صالحة")
            product.price = price
            product.stock_quantity = stock

    def create(self, db: Session, data: dict, image: Optional[UploadFile] = None) -> Product:
        product = Product(is_active=data.get("is_active", True))
        self._apply(db, product, data)
        product.image_url = save_upload_file(image, folder="products")
        db.add(product)
        db.flush()
        logger.info(f"Product created: #{product.id} {product.name_ar}")
        return product

    def update(self, db: Session, product_id: int, data: dict, image: Optional[UploadFile] = None) -> Product:
        product = self.get_by_id(db, product_id)
        if not product:
            raise NotFoundError("المنتج غير موجود")
        self._apply(db, product, data)
        product.is_active = data.get("is_active", product.is_active)

        new_image = save_upload_file(image, folder="products")
        if new_image:
            delete_file(product.image_url)
            product.image_url = new_image
        db.flush()
        return product

    def toggle_active(self, db: Session, product_id: int) -> Product:
        product = self.get_by_id(db, product_id)
        if not product:
            raise NotFoundError("المنتج غير موجود")
        product.is_active = not product.is_active
        db.flush()
        return product

    def delete(self, db: Session, product_id: int):
        product = self.get_by_id(db, product_id)
        if not product:
            raise NotFoundError("المنتج غير موجود")
        images = [product.image_url] + [item.image_url for v in product.variants for item in v.items]
        db.delete(product)
        db.flush()
        for url in images:
            delete_file(url)
        logger.info(f"Product deleted: #{product_id}")


# ==========================================
# 🎨 Variant Admin
# ==========================================

class VariantService:

    def _product_with_variants(self, db: Session, product_id: int) -> Product:
        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("المنتج غير موجود")
        if not product.has_variants:
            raise ValidationError("هذا المنتج لا يحتوي على أنواع")
        return product

    def add_variant(self, db: Session, product_id: int, data: dict) -> ProductVariant:
        product = self._product_with_variants(db, product_id)
        variant = ProductVariant(
            product_id=product.id,
            name_ar=_require_name_ar(data),
            name_fr=_clean(data.get("name_fr")),
            display_order=safe_int(data.get("display_order")) or 0,
        )
        db.add(variant)
        db.flush()
        return variant

    def get_variant(self, db: Session, variant_id: int) -> ProductVariant:
        variant = db.query(ProductVariant).filter(ProductVariant.id == variant_id).first()
        if not variant:
            raise NotFoundError("المجموعة غير موجودة")
        return variant

    def update_variant(self, db: Session, variant_id: int, data: dict) -> ProductVariant:
        variant = self.get_variant(db, variant_id)
        variant.name_ar = _require_name_ar(data)
        variant.name_fr = _clean(data.get("name_fr"))
        variant.display_order = safe_int(data.get("display_order")) or 0
        db.flush()
        return variant

    def delete_variant(self, db: Session, variant_id: int) -> int:
        """Returns the owning product id."""
        variant = self.get_variant(db, variant_id)
        product_id = variant.product_id
        images = [item.image_url for item in variant.items]
        db.delete(variant)
        db.flush()
        for url in images:
            delete_file(url)
        return product_id

    # --- Items ---

    def get_item(self, db: Session, item_id: int) -> VariantItem:
        item = db.query(VariantItem).filter(VariantItem.id == item_id).first()
        if not item:
            raise NotFoundError("نوع المنتج غير موجود")
        return item

    def _apply_item(self, db: Session, item: VariantItem, data: dict):
        item.name_ar = _require_name_ar(data)
        item.name_fr = _clean(data.get("name_fr"))
        item.description = _clean(data.get("description"))
        price = safe_decimal(data.get("price"))
        if price is None or price < 0:
            raise ValidationError("السعر غير صالح")
        stock = safe_int(data.get("stock_quantity"))
        if stock is None or stock < 0:
            raise ValidationError("الكمية غير صالحة")
        item.price = price
        item.stock_quantity = stock
        item.display_order = safe_int(data.get("display_order")) or 0

        sku = _clean(data.get("sku"))
        if sku:
            q = db.query(VariantItem.id).filter(VariantItem.sku == sku)
            if item.id:
                q = q.filter(VariantItem.id != item.id)
            if q.first():
                raise DuplicateError(f"رمز SKU مستخدم مسبقاً: {sku}")
        item.sku = sku

    def add_item(self, db: Session, variant_id: int, data: dict, image: Optional[UploadFile] = None) -> VariantItem:
        variant = self.get_variant(db, variant_id)
        item = VariantItem(variant_id=variant.id, is_active=data.get("is_active", True))
        self._apply_item(db, item, data)
        item.image_url = save_upload_file(image, folder="variants")
        db.add(item)
        db.flush()
        return item

    def update_item(self, db: Session, item_id: int, data: dict, image: Optional[UploadFile] = None) -> VariantItem:
        item = self.get_item(db, item_id)
        self._apply_item(db, item, data)
        new_image = save_upload_file(image, folder="variants")
        if new_image:
            delete_file(item.image_url)
            item.image_url = new_image
        db.flush()
        return item

    def toggle_item(self, db: Session, item_id: int) -> VariantItem:
        item = self.get_item(db, item_id)
        item.is_active = not item.is_active
        db.flush()
        return item

    def delete_item(self, db: Session, item_id: int) -> int:
        """Returns the owning product id."""
        item = self.get_item(db, item_id)
        product_id = item.variant.product_id
        image = item.image_url
        db.delete(item)
        db.flush()
        delete_file(image)
        return product_id


# Singletons
catalog = CatalogBrowser()
category_service = CategoryService()
product_service = ProductService()
variant_service = VariantService()
