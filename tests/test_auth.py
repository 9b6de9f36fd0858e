from conftest import PASSWORD, login
from models.audit_log import AuditLog


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_register_and_login(client):
    resp = client.post("/auth/register", json={"email": "New@Example.com ", "password": PASSWORD, "full_name": "New"})
    assert resp.status_code == 201

    login(client, "new@example.com")
    me = client.get("/auth/me").get_json()
    assert me["email"] == "new@example.com"
    assert me["roles"] == ["CUSTOMER"]


def test_register_validation(client):
    assert client.post("/auth/register", json={"email": "nope", "password": PASSWORD}).status_code == 400
    assert client.post("/auth/register", json={"email": "a@b.com", "password": "short"}).status_code == 400


def test_register_duplicate(client, customer):
    resp = client.post("/auth/register", json={"email": customer.email, "password": PASSWORD})
    assert resp.status_code == 409


def test_login_bad_password(client, customer):
    resp = client.post("/auth/login", json={"email": customer.email, "password": "wrong-password"})
    assert resp.status_code == 401
    assert AuditLog.query.filter_by(action="LOGIN_FAIL").count() == 1


def test_me_requires_login(client):
    assert client.get("/auth/me").status_code == 401


def test_logout_requires_csrf(client, customer_headers):
    assert client.post("/auth/logout").status_code == 403

    assert client.post("/auth/logout", headers=customer_headers).status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_login_rotates_sessions(client, customer):
    login(client, customer.email)
    first = client.get_cookie("venue_session").value

    login(client, customer.email)
    client.set_cookie("venue_session", first)
    assert client.get("/auth/me").status_code == 401


def test_update_profile(client, customer_headers):
    resp = client.patch("/auth/me", json={"full_name": "  Casey Customer ", "phone_number": ""}, headers=customer_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["full_name"] == "Casey Customer"
    assert body["phone_number"] is None

    bad = client.patch("/auth/me", json={"phone_number": 7700900123}, headers=customer_headers)
    assert bad.status_code == 400


def test_register_keeps_profile(client):
    client.post("/auth/register", json={"email": "p@example.com", "password": PASSWORD, "phone_number": "07700 900123"})
    resp = client.post("/auth/login", json={"email": "p@example.com", "password": PASSWORD})
    assert resp.get_json()["user"]["phone_number"] == "07700 900123"
