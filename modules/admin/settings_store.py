"""
Admin Module - Store Settings Cache
=====================================
One SettingsStore per application (``app.state.store_settings``) holding
the branding row and the home page content. Loaded lazily on the first
rendered page and reloaded after an admin save.

A failed load is logged and keeps whatever was loaded before.
"""

import logging
import re
import threading
from typing import Callable, List, Optional

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from common.exceptions import ValidationError
from common.upload import save_upload_file, delete_file
from config.database import SessionLocal
from modules.admin.models import StoreSettings, HomePageContent

logger = logging.getLogger("jomla.settings")


def get_or_create_settings(db: Session) -> StoreSettings:
    row = db.query(StoreSettings).order_by(StoreSettings.id.asc()).first()
    if row is None:
        row = StoreSettings()
        db.add(row)
        db.flush()
    return row


def get_or_create_home_content(db: Session) -> HomePageContent:
    row = db.query(HomePageContent).order_by(HomePageContent.id.asc()).first()
    if row is None:
        row = HomePageContent()
        db.add(row)
        db.flush()
    return row


_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


def _clean(value) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def update_store_settings(db: Session, data: dict, logo: Optional[UploadFile] = None) -> StoreSettings:
    row = get_or_create_settings(db)
    name_ar = _clean(data.get("store_name_ar"))
    if not name_ar:
        raise ValidationError("اسم المتجر بالعربية مطلوب")
    for field in ("primary_color", "secondary_color"):
        color = _clean(data.get(field))
        if color and not _COLOR.match(color):
            raise ValidationError(f"لون غير صالح: {color}")
        if color:
            setattr(row, field, color)
    row.store_name_ar = name_ar
    row.store_name_fr = _clean(data.get("store_name_fr"))
    row.contact_phone = _clean(data.get("contact_phone"))
    row.contact_email = _clean(data.get("contact_email"))

    new_logo = save_upload_file(logo, folder="branding", max_size=(400, 400))
    if new_logo:
        delete_file(row.logo_url)
        row.logo_url = new_logo
    db.flush()
    return row


def update_home_content(db: Session, data: dict, hero_image: Optional[UploadFile] = None) -> HomePageContent:
    row = get_or_create_home_content(db)
    row.hero_title_ar = _clean(data.get("hero_title_ar")) or ""
    row.hero_title_fr = _clean(data.get("hero_title_fr"))
    row.hero_subtitle_ar = _clean(data.get("hero_subtitle_ar"))
    row.hero_subtitle_fr = _clean(data.get("hero_subtitle_fr"))
    row.cta_text_ar = _clean(data.get("cta_text_ar"))
    row.cta_text_fr = _clean(data.get("cta_text_fr"))

    new_image = save_upload_file(hero_image, folder="branding")
    if new_image:
        delete_file(row.hero_image_url)
        row.hero_image_url = new_image
    db.flush()
    return row


class SettingsStore:

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory
        self._lock = threading.Lock()
        self._subscribers: List[Callable[["SettingsStore"], None]] = []
        self.settings: Optional[StoreSettings] = None
        self.home_content: Optional[HomePageContent] = None
        self.loading = False
        self._loaded = False

    def subscribe(self, callback: Callable[["SettingsStore"], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _notify(self):
        for callback in list(self._subscribers):
            callback(self)

    def load_settings(self, db: Session) -> Optional[StoreSettings]:
        try:
            row = db.query(StoreSettings).order_by(StoreSettings.id.asc()).first()
        except SQLAlchemyError as e:
            logger.error(f"Store settings load failed: {e}")
            return self.settings
        if row is not None:
            db.expunge(row)
            self.settings = row
        return self.settings

    def load_home_content(self, db: Session) -> Optional[HomePageContent]:
        try:
            row = db.query(HomePageContent).order_by(HomePageContent.id.asc()).first()
        except SQLAlchemyError as e:
            logger.error(f"Home content load failed: {e}")
            return self.home_content
        if row is not None:
            db.expunge(row)
            self.home_content = row
        return self.home_content

    def reload(self):
        """Reload both rows with a private session."""
        with self._lock:
            self.loading = True
            db = self._session_factory()
            try:
                self.load_settings(db)
                self.load_home_content(db)
                self._loaded = True
            finally:
                db.close()
                self.loading = False
        self._notify()

    def ensure_loaded(self):
        if not self._loaded:
            self.reload()

    def invalidate(self):
        """Drop the cache; the next rendered page reloads it."""
        with self._lock:
            self._loaded = False
