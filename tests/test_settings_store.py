"""Store settings validation and the per-application settings cache."""

import pytest

from common.exceptions import ValidationError
from config.database import SessionLocal
from modules.admin.models import StoreSettings
from modules.admin.settings_store import (
    SettingsStore, get_or_create_settings, update_home_content, update_store_settings,
)


def test_singleton_row_is_created_once(db):
    first = get_or_create_settings(db)
    second = get_or_create_settings(db)
    db.commit()
    assert first.id == second.id
    assert db.query(StoreSettings).count() == 1
    assert first.store_name_ar == "جملة"


def test_store_name_is_required(db):
    with pytest.raises(ValidationError):
        update_store_settings(db, {"store_name_ar": "  "})


def test_invalid_color_is_rejected(db):
    with pytest.raises(ValidationError):
        update_store_settings(db, {"store_name_ar": "متجر", "primary_color": "#12345"})


def test_empty_color_keeps_current_value(db):
    row = update_store_settings(db, {"store_name_ar": "متجر", "primary_color": "", "contact_phone": " 0555 "})
    assert row.primary_color == "#0f766e"
    assert row.contact_phone == "0555"
    assert row.store_name_fr is None


def test_home_content_update(db):
    row = update_home_content(db, {"hero_title_ar": "أهلا", "cta_text_fr": "Voir"})
    assert row.hero_title_ar == "أهلا"
    assert row.cta_text_fr == "Voir"
    assert row.hero_subtitle_ar is None


def test_store_loads_lazily_and_reloads_after_invalidate(db):
    update_store_settings(db, {"store_name_ar": "الأول"})
    db.commit()

    store = SettingsStore(session_factory=SessionLocal)
    assert store.settings is None
    store.ensure_loaded()
    assert store.settings.store_name_ar == "الأول"
    assert store.home_content is None
    assert not store.loading

    update_store_settings(db, {"store_name_ar": "الثاني"})
    db.commit()
    store.ensure_loaded()
    assert store.settings.store_name_ar == "الأول"

    store.invalidate()
    store.ensure_loaded()
    assert store.settings.store_name_ar == "الثاني"


def test_subscribers_hear_reloads(db):
    store = SettingsStore(session_factory=SessionLocal)
    seen = []
    unsubscribe = store.subscribe(lambda s: seen.append(s.settings))
    store.reload()
    assert seen == [None]

    unsubscribe()
    store.reload()
    assert len(seen) == 1


def test_failed_load_keeps_previous_values(db, monkeypatch):
    update_store_settings(db, {"store_name_ar": "ثابت"})
    db.commit()
    store = SettingsStore(session_factory=SessionLocal)
    store.reload()

    from sqlalchemy.exc import OperationalError

    class BrokenSession:
        def query(self, *args):
            raise OperationalError("SELECT", {}, Exception("database is gone"))

        def close(self):
            pass

    store._session_factory = BrokenSession
    store.reload()
    assert store.settings.store_name_ar == "ثابت"
