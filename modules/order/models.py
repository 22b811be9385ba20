"""
Order Module - Models
======================
Order with a full snapshot per item (names and unit price) so historical
orders stay decoupled from later catalog edits.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, Numeric, Text,
    ForeignKey, DateTime, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DELIVERED = "delivered"
    CANCELED = "canceled"


MAX_PHONE_LENGTH = 20

# Timestamp column stamped when an order enters the status
STATUS_TIMESTAMPS = {
    OrderStatus.CONFIRMED.value: "confirmed_at",
    OrderStatus.DELIVERED.value: "delivered_at",
    OrderStatus.CANCELED.value: "canceled_at",
}


class Wilaya(Base):
    __tablename__ = "wilayas"

    id = Column(Integer, primary_key=True)
    code = Column(String(3), unique=True, nullable=False)
    name_ar = Column(String, nullable=False)
    name_fr = Column(String, nullable=True)
    delivery_price = Column(Numeric(12, 2), default=0, nullable=False)

    def __repr__(self):
        return f"<Wilaya {self.code} {self.name_fr or self.name_ar}>"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(32), unique=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    session_id = Column(String(64), nullable=True, index=True)      # guest owner
    checkout_token = Column(String(64), unique=True, nullable=True)  # one per checkout form

    # Customer / delivery
    customer_name = Column(String, nullable=False)
    customer_phone = Column(String(MAX_PHONE_LENGTH), nullable=False)
    wilaya_id = Column(Integer, ForeignKey("wilayas.id", ondelete="RESTRICT"), nullable=False)
    commune = Column(String, nullable=False)
    address = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)

    # Amounts
    subtotal = Column(Numeric(12, 2), nullable=False)
    delivery_price = Column(Numeric(12, 2), default=0, nullable=False)
    total = Column(Numeric(12, 2), nullable=False)

    status = Column(String(20), default=OrderStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    canceled_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", foreign_keys=[user_id])
    wilaya = relationship("Wilaya")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_orders_status_created", "status", "created_at"),
    )

    @property
    def status_color(self) -> str:
        colors = {
            OrderStatus.PENDING.value: "warning",
            OrderStatus.CONFIRMED.value: "info",
            OrderStatus.DELIVERED.value: "success",
            OrderStatus.CANCELED.value: "danger",
        }
        return colors.get(self.status, "secondary")

    @property
    def items_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def __repr__(self):
        return f"<Order {self.order_number} ({self.status})>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    variant_item_id = Column(Integer, ForeignKey("variant_items.id", ondelete="SET NULL"), nullable=True)

    # Snapshot at time of purchase
    product_name = Column(String, nullable=False)
    variant_name = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")
