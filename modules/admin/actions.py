"""
Admin Module - Mutation helper
================================
Every admin form post runs its service call through admin_action():
commit on success, rollback on failure, and a toast either way. The
route then redirects to the list page, which re-runs its full query.
"""

import logging
from typing import Callable, Optional, TypeVar

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from common.exceptions import StoreError
from common.flash import flash
from common.i18n import TKey

logger = logging.getLogger("jomla.admin")

T = TypeVar("T")


def admin_action(
    request: Request,
    db: Session,
    action: Callable[[], T],
    success: TKey = TKey.ADMIN_SAVED,
) -> Optional[T]:
    try:
        result = action()
        db.commit()
    except StoreError as e:
        db.rollback()
        flash(request, e.message, "error")
        return None
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Admin action failed on {request.url.path}: {e}")
        flash(request, TKey.ADMIN_SAVE_FAILED, "error")
        return None
    flash(request, success, "success")
    return result


def checkbox(value: Optional[str]) -> bool:
    """HTML checkbox: present ("on", "1", "true") means checked."""
    return (value or "").lower() in ("on", "1", "true", "yes")
