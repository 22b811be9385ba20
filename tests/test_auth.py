"""Sign-in, sign-up, sign-out and the guest cart hand-over."""

from modules.auth import routes as auth_routes
from modules.cart.models import Cart
from modules.cart.service import NativeGuestCartMerger, count_cart_items

from conftest import HTML, login


class CountingMerger(NativeGuestCartMerger):
    calls = 0

    def merge(self, db, session_id, user_id):
        CountingMerger.calls += 1
        super().merge(db, session_id, user_id)


def test_login_sets_auth_cookie_and_redirects(client, make_user):
    user = make_user()
    response = client.post("/auth/login", data={"email": user.email, "password": "secret123", "next": "/orders"},
                           follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/orders"
    assert "auth_token" in response.cookies


def test_admin_login_lands_on_dashboard(client, make_user):
    admin = make_user(admin=True)
    response = login(client, admin.email)
    assert response.headers["location"] == "/admin"


def test_open_redirect_is_ignored(client, make_user):
    user = make_user()
    response = client.post("/auth/login", data={"email": user.email, "password": "secret123",
                                                "next": "//evil.example"}, follow_redirects=False)
    assert response.headers["location"] == "/"


def test_bad_credentials_go_back_to_login(client, make_user):
    user = make_user()
    response = login(client, user.email, password="wrong-password")
    assert response.status_code == 303
    assert response.headers["location"].startswith("/auth/login")
    assert "auth_token" not in response.cookies


def test_signup_merges_guest_cart_once(client, db, product, monkeypatch):
    CountingMerger.calls = 0
    monkeypatch.setattr(auth_routes, "get_merger", lambda: CountingMerger())

    client.post("/cart/add", data={"product_id": str(product.id), "quantity": "2"}, follow_redirects=False)
    session_id = client.cookies.get("cart_session_id")
    assert session_id

    response = client.post("/auth/signup", data={
        "email": "new@example.com", "password": "secret123",
        "full_name": "Nouveau Client", "phone_number": "0555999999",
    }, follow_redirects=False)
    assert response.status_code == 303
    assert CountingMerger.calls == 1

    db.rollback()
    user_cart = db.query(Cart).filter(Cart.user_id.isnot(None)).one()
    assert count_cart_items(db, user_id=user_cart.user_id) == 2
    assert db.query(Cart).filter(Cart.session_id == session_id).count() == 0


def test_signup_rejects_duplicate_email(client, make_user):
    user = make_user()
    response = client.post("/auth/signup", data={
        "email": user.email, "password": "secret123", "full_name": "Autre", "phone_number": "",
    }, follow_redirects=False)
    assert response.headers["location"] == "/auth/signup"
    assert "auth_token" not in response.cookies


def test_login_page_redirects_signed_in_user(client, make_user):
    user = make_user()
    login(client, user.email)
    response = client.get("/auth/login", headers=HTML, follow_redirects=False)
    assert response.status_code == 302


def test_logout_clears_identity(client, make_user):
    user = make_user()
    login(client, user.email)
    assert client.get("/orders", headers=HTML, follow_redirects=False).status_code == 200

    client.post("/auth/logout", follow_redirects=False)
    response = client.get("/orders", headers=HTML, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"].startswith("/auth/login")


def test_form_post_without_csrf_token_is_refused(client, product, monkeypatch):
    monkeypatch.setattr("common.security.CSRF_ENABLED", True)
    response = client.post("/cart/add", data={"product_id": str(product.id)}, follow_redirects=False)
    assert response.status_code == 403
    assert response.json()["detail"] == "CSRF token missing or invalid"
