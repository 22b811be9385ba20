"""Translation tables and localized content fields."""

from types import SimpleNamespace

import pytest

from common.i18n import Language, TKey, TRANSLATIONS, direction, localized, parse_language, t

from conftest import HTML


@pytest.mark.parametrize("lang", list(Language))
def test_every_key_is_translated(lang):
    missing = [key for key in TKey if key not in TRANSLATIONS[lang]]
    assert missing == []
    assert all(TRANSLATIONS[lang][key] for key in TKey)


def test_parse_language_defaults_to_arabic():
    assert parse_language("fr") == Language.FR
    assert parse_language(None) == Language.AR
    assert parse_language("en") == Language.AR


def test_direction():
    assert direction(Language.AR) == "rtl"
    assert direction(Language.FR) == "ltr"


def test_translation_lookup():
    assert t(TKey.AUTH_LOGIN, Language.FR) == "Connexion"
    assert t(TKey.AUTH_LOGIN) == TRANSLATIONS[Language.AR][TKey.AUTH_LOGIN]


def test_localized_falls_back_to_arabic():
    row = SimpleNamespace(name_ar="شاحن", name_fr=None)
    assert localized(row, "name", Language.FR) == "شاحن"
    row.name_fr = "Chargeur"
    assert localized(row, "name", Language.FR) == "Chargeur"
    assert localized(row, "name", Language.AR) == "شاحن"
    assert localized(None, "name", Language.FR) == ""


def test_language_switch_changes_page_direction(client, db):
    assert 'dir="rtl"' in client.get("/", headers=HTML).text
    client.get("/lang/fr", follow_redirects=False)
    page = client.get("/", headers=HTML).text
    assert 'dir="ltr"' in page
    assert 'lang="fr"' in page


def test_status_label_filter():
    from common.templating import templates
    status_label = templates.env.filters["status_label"]
    assert status_label("delivered", Language.FR) == "Livrée"
    assert status_label("shipped", Language.FR) == "shipped"
