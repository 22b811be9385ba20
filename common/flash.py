"""
Flash Messages
================
Cookie-based "toast" notifications for FastAPI + Jinja2.
A message survives one redirect, then is cleared.

Messages are queued either as a translation key (resolved in the reader's
language when displayed) or as ready text, e.g. a StoreError message.

Usage in routes:
    flash(request, TKey.CART_ADDED, "success")
    flash(request, e.message, "error")
    return RedirectResponse("/cart", status_code=303)

Usage in templates (auto-available via Jinja2 globals):
    {% for msg in get_flashed_messages(request) %}
        <div class="toast toast-{{ msg.category }}">{{ msg.text }}</div>
    {% endfor %}
"""

import json
import urllib.parse
from typing import List, Union
from fastapi import Request, Response

from common.i18n import TKey, get_language, t


FLASH_COOKIE = "_flash"


def flash(request: Request, message: Union[TKey, str], category: str = "info"):
    """Queue a toast to be shown after the next redirect."""
    pending = getattr(request.state, "_flash_messages", None) or []
    if isinstance(message, TKey):
        pending.append({"key": message.value, "category": category})
    else:
        pending.append({"text": str(message), "category": category})
    request.state._flash_messages = pending


def _resolve(entry: dict, request: Request) -> dict:
    if "key" in entry:
        try:
            text = t(TKey(entry["key"]), get_language(request))
        except ValueError:
            text = entry["key"]
        return {"text": text, "category": entry.get("category", "info")}
    return {"text": entry.get("text", ""), "category": entry.get("category", "info")}


def get_flashed_messages(request: Request) -> List[dict]:
    """Read queued toasts from the incoming cookie, as {text, category} dicts."""
    cookie_val = request.cookies.get(FLASH_COOKIE, "")
    if not cookie_val:
        return []
    try:
        raw = json.loads(urllib.parse.unquote(cookie_val))
    except (json.JSONDecodeError, ValueError):
        return []
    if not isinstance(raw, list):
        return []
    return [_resolve(entry, request) for entry in raw if isinstance(entry, dict)]


def pending_messages(request: Request) -> list:
    return getattr(request.state, "_flash_messages", None) or []


def set_flash_cookie(response: Response, messages: list):
    encoded = urllib.parse.quote(json.dumps(messages, ensure_ascii=False))
    response.set_cookie(FLASH_COOKIE, encoded, httponly=True, samesite="lax", max_age=60)


def clear_flash_cookie(response: Response):
    response.delete_cookie(FLASH_COOKIE)
