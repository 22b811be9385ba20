"""
Admin Dashboard Service
=========================
Aggregated statistics for the admin dashboard.
"""

from decimal import Decimal
from typing import Dict, Any, List

from sqlalchemy.orm import Session
from sqlalchemy import func as sa_func

from modules.order.models import Order, OrderItem, OrderStatus, Wilaya
from modules.user.models import User, UserRole
from modules.catalog.models import Product, Category
from common.helpers import now_utc


class DashboardService:

    def get_overview_stats(self, db: Session) -> Dict[str, Any]:
        """Key business metrics. Revenue and items sold exclude canceled orders."""
        today_start = now_utc().replace(hour=0, minute=0, second=0, microsecond=0)
        not_canceled = Order.status != OrderStatus.CANCELED.value

        status_counts = dict(
            db.query(Order.status, sa_func.count(Order.id)).group_by(Order.status).all()
        )

        total_revenue = (
            db.query(sa_func.coalesce(sa_func.sum(Order.total), 0))
            .filter(not_canceled)
            .scalar()
        )
        items_sold = (
            db.query(sa_func.coalesce(sa_func.sum(OrderItem.quantity), 0))
            .join(Order, OrderItem.order_id == Order.id)
            .filter(not_canceled)
            .scalar()
        )

        return {
            "total_orders": sum(status_counts.values()),
            "today_orders": db.query(Order).filter(Order.created_at >= today_start).count(),
            "pending_orders": status_counts.get(OrderStatus.PENDING.value, 0),
            "confirmed_orders": status_counts.get(OrderStatus.CONFIRMED.value, 0),
            "delivered_orders": status_counts.get(OrderStatus.DELIVERED.value, 0),
            "canceled_orders": status_counts.get(OrderStatus.CANCELED.value, 0),
            "total_revenue": Decimal(total_revenue or 0),
            "items_sold": int(items_sold or 0),
            "total_products": db.query(Product).filter(Product.is_active == True).count(),
            "total_categories": db.query(Category).count(),
            "total_customers": db.query(User).filter(User.role == UserRole.CUSTOMER.value).count(),
        }

    def get_best_sellers(self, db: Session, limit: int = 5) -> List[Dict[str, Any]]:
        """Products by quantity sold (snapshot names, canceled orders excluded)."""
        rows = (
            db.query(
                OrderItem.product_name,
                sa_func.sum(OrderItem.quantity).label("quantity"),
                sa_func.sum(OrderItem.total_price).label("revenue"),
            )
            .join(Order, OrderItem.order_id == Order.id)
            .filter(Order.status != OrderStatus.CANCELED.value)
            .group_by(OrderItem.product_name)
            .order_by(sa_func.sum(OrderItem.quantity).desc())
            .limit(limit)
            .all()
        )
        return [
            {"name": name, "quantity": int(qty or 0), "revenue": Decimal(revenue or 0)}
            for name, qty, revenue in rows
        ]

    def get_revenue_by_wilaya(self, db: Session, limit: int = 10) -> List[Dict[str, Any]]:
        rows = (
            db.query(
                Wilaya,
                sa_func.count(Order.id).label("orders"),
                sa_func.sum(Order.total).label("revenue"),
            )
            .join(Order, Order.wilaya_id == Wilaya.id)
            .filter(Order.status != OrderStatus.CANCELED.value)
            .group_by(Wilaya.id)
            .order_by(sa_func.sum(Order.total).desc())
            .limit(limit)
            .all()
        )
        return [
            {"wilaya": wilaya, "orders": int(orders or 0), "revenue": Decimal(revenue or 0)}
            for wilaya, orders, revenue in rows
        ]

    def get_recent_orders(self, db: Session, limit: int = 10) -> List[Order]:
        return db.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()


# Singleton
dashboard_service = DashboardService()
