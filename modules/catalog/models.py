"""
Catalog Module - Models
========================
Category, Product, ProductVariant and VariantItem.

A product is sold either as a single SKU (has_variants=False: its own
price and stock_quantity) or through variant items (has_variants=True:
price/stock live on each VariantItem and the product columns stay NULL).
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Boolean,
    ForeignKey, DateTime,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


# ==========================================
# 🗂️ Category
# ==========================================

class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name_ar = Column(String, nullable=False)
    name_fr = Column(String, nullable=True)
    slug = Column(String, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    products = relationship(
        "Product", back_populates="category",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def __repr__(self):
        return f"<Category {self.slug}>"


# ==========================================
# 📦 Product
# ==========================================

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    name_ar = Column(String, nullable=False)
    name_fr = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    has_variants = Column(Boolean, default=False, nullable=False)

    # Authoritative only when has_variants is False
    price = Column(Numeric(12, 2), nullable=True)
    stock_quantity = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("Category", back_populates="products")
    variants = relationship(
        "ProductVariant", back_populates="product",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="ProductVariant.display_order",
    )

    @property
    def active_items(self) -> list:
        return [item for v in self.variants for item in v.items if item.is_active]

    @property
    def display_price(self) -> Optional[Decimal]:
        """Flat price, or the cheapest active variant item ("from ...")."""
        if not self.has_variants:
            return self.price
        prices = [item.price for item in self.active_items]
        return min(prices) if prices else None

    @property
    def in_stock(self) -> bool:
        if not self.has_variants:
            return (self.stock_quantity or 0) > 0
        return any((item.stock_quantity or 0) > 0 for item in self.active_items)

    def __repr__(self):
        return f"<Product {self.name_ar}>"


# ==========================================
# 🎨 Variants (e.g. color) and their purchasable items
# ==========================================

class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    name_ar = Column(String, nullable=False)
    name_fr = Column(String, nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    product = relationship("Product", back_populates="variants")
    items = relationship(
        "VariantItem", back_populates="variant",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="VariantItem.display_order",
    )


class VariantItem(Base):
    __tablename__ = "variant_items"

    id = Column(Integer, primary_key=True)
    variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False, index=True)
    name_ar = Column(String, nullable=False)
    name_fr = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    stock_quantity = Column(Integer, default=0, nullable=False)
    image_url = Column(String, nullable=True)
    sku = Column(String, nullable=True, unique=True)
    is_active = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    variant = relationship("ProductVariant", back_populates="items")

    @property
    def product_id(self) -> int:
        return self.variant.product_id

    def __repr__(self):
        return f"<VariantItem {self.sku or self.id}>"
