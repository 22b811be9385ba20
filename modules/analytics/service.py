"""
Analytics Module - Service
===========================
Fire-and-forget event tracking. A failed insert is logged and never breaks
the calling flow (the SAVEPOINT keeps the caller's transaction usable).
"""

import json
import logging
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from modules.analytics.models import AnalyticsEvent, EventType

logger = logging.getLogger("jomla.analytics")


def track_event(
    db: Session,
    event_type: Union[EventType, str],
    user_id: Optional[int] = None,
    session_id: Optional[str] = None,
    product_id: Optional[int] = None,
    variant_item_id: Optional[int] = None,
    order_id: Optional[int] = None,
    metadata: Optional[dict] = None,
) -> Optional[AnalyticsEvent]:
    """Record one event inside the caller's transaction. Returns the row or None on failure."""
    event = AnalyticsEvent(
        event_type=EventType(event_type).value,
        user_id=user_id,
        session_id=session_id or None,
        product_id=product_id,
        variant_item_id=variant_item_id,
        order_id=order_id,
        event_metadata=json.dumps(metadata, ensure_ascii=False, default=str) if metadata else None,
    )
    try:
        with db.begin_nested():
            db.add(event)
    except SQLAlchemyError as e:
        logger.error(f"Analytics event {event.event_type} not recorded: {e}")
        return None
    return event
