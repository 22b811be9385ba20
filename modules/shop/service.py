"""
Shop Module - Service Layer
=============================
Shared storefront page context and page-view tracking.
"""

from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from modules.analytics.models import EventType
from modules.analytics.service import track_event
from modules.cart.service import count_cart_items
from modules.cart.session import get_cart_session
from modules.catalog.service import catalog


class ShopService:

    def page_context(self, request: Request, db: Session, user=None, **extra) -> dict:
        """User, header cart badge and category menu for any storefront page."""
        session_id = "" if user else get_cart_session(request).get_session_id()
        context = {
            "user": user,
            "cart_count": count_cart_items(db, user.id if user else None, session_id),
            "nav_categories": catalog.list_categories(db),
        }
        context.update(extra)
        return context

    def track_view(
        self, request: Request, db: Session, user=None,
        event_type: EventType = EventType.PAGE_VIEW, product_id: Optional[int] = None,
    ):
        session_id = "" if user else get_cart_session(request).get_session_id()
        track_event(
            db, event_type,
            user_id=user.id if user else None,
            session_id=session_id,
            product_id=product_id,
            metadata={"path": request.url.path},
        )
        db.commit()


# Singleton
shop_service = ShopService()
