"""Anonymous cart session id: creation, reuse, clearing, unavailable storage."""

import uuid

from modules.cart.session import CartSessionProvider, CookieStorage, StorageUnavailable


class DictStorage:
    def __init__(self, data=None):
        self.data = dict(data or {})

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def remove(self, key):
        self.data.pop(key, None)


class BrokenStorage:
    def get(self, key):
        raise StorageUnavailable("disabled")

    def set(self, key, value):
        raise StorageUnavailable("disabled")

    def remove(self, key):
        raise StorageUnavailable("disabled")


def test_get_or_create_is_stable():
    provider = CartSessionProvider(DictStorage())
    first = provider.get_or_create_session_id()
    second = provider.get_or_create_session_id()
    assert first == second
    assert uuid.UUID(first).version == 4


def test_get_does_not_create():
    storage = DictStorage()
    provider = CartSessionProvider(storage)
    assert provider.get_session_id() == ""
    assert storage.data == {}


def test_clear_then_new_id():
    provider = CartSessionProvider(DictStorage())
    first = provider.get_or_create_session_id()
    provider.clear()
    assert provider.get_session_id() == ""
    assert provider.get_or_create_session_id() != first


def test_invalid_stored_value_is_replaced():
    storage = DictStorage({"cart_session_id": "not-a-uuid"})
    provider = CartSessionProvider(storage)
    assert provider.get_session_id() == ""
    new_id = provider.get_or_create_session_id()
    assert storage.data["cart_session_id"] == new_id


def test_unavailable_storage_yields_empty_id():
    provider = CartSessionProvider(BrokenStorage())
    assert provider.get_session_id() == ""
    assert provider.get_or_create_session_id() == ""
    provider.clear()


def test_cookie_storage_without_request():
    provider = CartSessionProvider(CookieStorage(None))
    assert provider.get_or_create_session_id() == ""


def test_guest_gets_cookie_once(client, product):
    client.post("/cart/add", data={"product_id": product.id, "quantity": 1}, follow_redirects=False)
    session_id = client.cookies.get("cart_session_id")
    assert session_id
    client.post("/cart/add", data={"product_id": product.id, "quantity": 1}, follow_redirects=False)
    assert client.cookies.get("cart_session_id") == session_id


def test_logout_clears_session_cookie(client, product):
    client.post("/cart/add", data={"product_id": product.id, "quantity": 1}, follow_redirects=False)
    assert client.cookies.get("cart_session_id")
    response = client.post("/auth/logout", follow_redirects=False)
    assert response.status_code == 303
    assert client.cookies.get("cart_session_id") is None
