"""
Analytics Module - Models
==========================
Append-only storefront event log.
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Index
from sqlalchemy.sql import func
from config.database import Base


class EventType(str, enum.Enum):
    PAGE_VIEW = "page_view"
    PRODUCT_VIEW = "product_view"
    ADD_TO_CART = "add_to_cart"
    CART_ABANDONMENT = "cart_abandonment"
    CHECKOUT_STARTED = "checkout_started"
    ORDER_PLACED = "order_placed"
    ORDER_DELIVERED = "order_delivered"


class AnalyticsEvent(Base):
    __tablename__ = "analytics_events"

    id = Column(Integer, primary_key=True)
    event_type = Column(String(32), nullable=False)
    user_id = Column(Integer, nullable=True)
    session_id = Column(String(64), nullable=True)
    product_id = Column(Integer, nullable=True)
    variant_item_id = Column(Integer, nullable=True)
    order_id = Column(Integer, nullable=True)
    event_metadata = Column("metadata", Text, nullable=True)  # JSON
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_analytics_type_created", "event_type", "created_at"),
    )
