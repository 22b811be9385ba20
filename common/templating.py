"""
Jomla - Template Configuration
===============================
Jinja2 templates setup with custom filters, global functions and the
render() helper used by every HTML route.
"""

from typing import Optional, Union

from fastapi import Request
from fastapi.templating import Jinja2Templates

from config.settings import CURRENCY_LABELS
from common.helpers import format_money, format_datetime
from common.i18n import TKey, Language, TRANSLATIONS, get_language, direction, localized
from common.security import new_csrf_token
from common.flash import get_flashed_messages

TEMPLATE_DIR = "templates"
templates = Jinja2Templates(directory=TEMPLATE_DIR)


def _translate(key: Union[TKey, str], lang: Language = Language.AR) -> str:
    """Template-side lookup: accepts a TKey or its dotted value ("cart.title")."""
    return TRANSLATIONS[lang][TKey(key)]


def _money(value, lang: Language = Language.AR) -> str:
    return f"{format_money(value)} {CURRENCY_LABELS.get(getattr(lang, 'value', lang), 'DA')}"


def _status_label(status, lang: Language = Language.AR) -> str:
    """Localized order status; unknown values are shown as-is."""
    value = getattr(status, "value", status)
    try:
        return TRANSLATIONS[lang][TKey(f"order.status.{value}")]
    except ValueError:
        return str(value)


# ==========================================
# Register Filters & Globals
# ==========================================

# Filters (usage in template: {{ order.total | money(lang) }})
templates.env.filters["money"] = _money
templates.env.filters["datetime"] = format_datetime
templates.env.filters["status_label"] = _status_label

# Globals
templates.env.globals["t"] = _translate
templates.env.globals["TKey"] = TKey
templates.env.globals["localized"] = localized
templates.env.globals["get_flashed_messages"] = get_flashed_messages

# Static asset version for cache busting (bump when CSS/JS changes)
STATIC_VERSION = "1.0"
templates.env.globals["STATIC_VER"] = STATIC_VERSION


def render(request: Request, name: str, context: Optional[dict] = None, status_code: int = 200):
    """
    Render a page with the shared context (language, direction, CSRF token,
    store branding) and refresh the CSRF cookie.
    """
    lang = get_language(request)
    csrf = new_csrf_token()

    data = {
        "lang": lang,
        "dir": direction(lang),
        "csrf_token": csrf,
        "user": None,
        "cart_count": 0,
        "store": None,
    }
    store = getattr(request.app.state, "store_settings", None)
    if store is not None:
        store.ensure_loaded()
        data["store"] = store.settings
        data["home"] = store.home_content
    data.update(context or {})

    response = templates.TemplateResponse(request, name, data, status_code=status_code)
    response.set_cookie("csrf_token", csrf, httponly=True, samesite="lax")
    return response
