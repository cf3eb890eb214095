from fastapi import FastAPI, Depends
from fastapi.testclient import TestClient

from photocommerce.auth import service as auth_service
from photocommerce.utils.security import COOKIE_NAME, get_current_actor, require_staff, require_studio_admin


def _make_app():
    app = FastAPI()

    @app.get("/me")
    def me(actor=Depends(get_current_actor)):
        return {"id": actor.user_id, "role": actor.role, "tenant": actor.tenant_id}

    @app.get("/staff")
    def staff(actor=Depends(require_staff)):
        return {"ok": True}

    @app.get("/studio-admin")
    def studio_admin(actor=Depends(require_studio_admin)):
        return {"ok": True}

    return app


def _fake_user(role="studio-admin", studio_id="s1", **extra):
    user = {"id": "u1", "email": "a@b.test", "app_metadata": {"role": role, "studio_id": studio_id}}
    user.update(extra)
    return user


def test_actor_from_bearer_token(monkeypatch):
    seen = {}

    def fake_get_user(token):
        seen["token"] = token
        return _fake_user()

    monkeypatch.setattr(auth_service, "_repo_get_user_from_token", fake_get_user)
    r = TestClient(_make_app()).get("/me", headers={"Authorization": "Bearer tok-123"})
    assert r.status_code == 200
    assert r.json() == {"id": "u1", "role": "studio-admin", "tenant": "s1"}
    assert seen["token"] == "tok-123"


def test_actor_from_cookie(monkeypatch):
    monkeypatch.setattr(auth_service, "_repo_get_user_from_token", lambda token: _fake_user(role="photographer"))
    client = TestClient(_make_app())
    client.cookies.set(COOKIE_NAME, "cookie-token")
    assert client.get("/me").json()["role"] == "photographer"


def test_role_comes_from_app_metadata_only(monkeypatch):
    # user_metadata est modifiable par l'utilisateur: ignoré
    monkeypatch.setattr(
        auth_service, "_repo_get_user_from_token",
        lambda token: {"id": "u1", "user_metadata": {"role": "admin", "studio_id": "s9"}, "app_metadata": {}},
    )
    r = TestClient(_make_app()).get("/me", headers={"Authorization": "Bearer tok"})
    assert r.json() == {"id": "u1", "role": "guest", "tenant": None}


def test_studio_header_is_ignored(monkeypatch):
    monkeypatch.setattr(auth_service, "_repo_get_user_from_token", lambda token: _fake_user(studio_id="s1"))
    r = TestClient(_make_app()).get("/me", headers={"Authorization": "Bearer tok", "x-studio-id": "s2"})
    assert r.json()["tenant"] == "s1"


def test_missing_token_401():
    r = TestClient(_make_app()).get("/me")
    assert r.status_code == 401
    assert "Non authentifié" in r.text


def test_invalid_token_401(monkeypatch):
    def boom(token):
        raise RuntimeError("invalid JWT")

    monkeypatch.setattr(auth_service, "_repo_get_user_from_token", boom)
    r = TestClient(_make_app()).get("/me", headers={"Authorization": "Bearer tok"})
    assert r.status_code == 401
    assert "Session expirée" in r.text


def test_missing_id_401(monkeypatch):
    monkeypatch.setattr(auth_service, "_repo_get_user_from_token", lambda token: {"email": "x@y"})
    r = TestClient(_make_app()).get("/me", headers={"Authorization": "Bearer tok"})
    assert r.status_code == 401


def test_require_staff_and_studio_admin(monkeypatch):
    client = TestClient(_make_app())
    headers = {"Authorization": "Bearer tok"}

    monkeypatch.setattr(auth_service, "_repo_get_user_from_token", lambda token: _fake_user(role="guest"))
    assert client.get("/staff", headers=headers).status_code == 403

    monkeypatch.setattr(auth_service, "_repo_get_user_from_token", lambda token: _fake_user(studio_id=None))
    assert client.get("/staff", headers=headers).status_code == 403

    monkeypatch.setattr(auth_service, "_repo_get_user_from_token", lambda token: _fake_user(role="photographer"))
    assert client.get("/staff", headers=headers).status_code == 200
    assert client.get("/studio-admin", headers=headers).status_code == 403

    monkeypatch.setattr(auth_service, "_repo_get_user_from_token", lambda token: _fake_user(role="Studio-Admin"))
    assert client.get("/studio-admin", headers=headers).json() == {"ok": True}
