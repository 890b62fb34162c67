import asyncio

import httpx
import pytest

from aurora_backend.core import auth
from aurora_backend.core.auth import FirebaseIdentityProvider, identity_error
from aurora_backend.core.errors import IdentityError

from tests.conftest import ADMIN_EMAIL, ADMIN_UID

LOGIN = "/api/v1/auth/login"


def test_login_returns_session_tokens(client, admin_headers):
    response = client.post(LOGIN, json={"email": ADMIN_EMAIL, "password": "rahasia123"})

    assert response.status_code == 200
    body = response.json()
    assert body["uid"] == ADMIN_UID
    assert body["id_token"]
    assert body["expires_in"] == 3600


def test_wrong_password_gets_a_localized_message(client, admin_headers):
    response = client.post(LOGIN, json={"email": ADMIN_EMAIL, "password": "salah123"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Email atau password yang Anda masukkan salah."
    assert response.json()["code"] == "INVALID_LOGIN_CREDENTIALS"


def test_me_returns_the_signed_in_admin(client, admin_headers):
    response = client.get("/api/v1/auth/me", headers=admin_headers)

    assert response.json()["uid"] == ADMIN_UID
    assert response.json()["email"] == ADMIN_EMAIL


def test_logout_revokes_sessions(client, admin_headers, identity):
    response = client.post("/api/v1/auth/logout", headers=admin_headers)

    assert response.status_code == 204
    assert identity.revoked == [ADMIN_UID]


def test_logout_requires_a_session(client):
    assert client.post("/api/v1/auth/logout").status_code == 401


@pytest.mark.parametrize(
    "code,status_code",
    [
        ("INVALID_LOGIN_CREDENTIALS", 401),
        ("EMAIL_NOT_FOUND", 401),
        ("EMAIL_EXISTS", 409),
        ("TOO_MANY_ATTEMPTS_TRY_LATER : Access to this account has been temporarily disabled", 429),
        ("NETWORK_ERROR", 503),
        ("SOMETHING_NEW", 400),
    ],
)
def test_identity_error_mapping(code, status_code):
    error = identity_error(code)
    assert error.status_code == status_code
    assert " " not in error.code


# --- Identity Toolkit REST sign-in ---
@pytest.fixture
def toolkit(monkeypatch):
    """Routes the provider's httpx client to an in-process handler."""
    monkeypatch.setattr(auth, "init_firebase", lambda: None)
    calls = []
    real_client = httpx.AsyncClient

    def install(handler):
        def recording_handler(request):
            calls.append(request)
            return handler(request)

        monkeypatch.setattr(
            auth.httpx, "AsyncClient",
            lambda **kwargs: real_client(transport=httpx.MockTransport(recording_handler), **kwargs),
        )
        return calls

    return install


def test_sign_in_with_password_parses_tokens(toolkit):
    calls = toolkit(lambda request: httpx.Response(200, json={
        "localId": "abc", "email": "a@x.com", "idToken": "id-1", "refreshToken": "rt-1", "expiresIn": "3600",
    }))
    provider = FirebaseIdentityProvider(api_key="web-key")

    session = asyncio.run(provider.sign_in_with_password("a@x.com", "rahasia123"))

    assert session.uid == "abc"
    assert session.id_token == "id-1"
    assert session.expires_in == 3600
    assert calls[0].url.params["key"] == "web-key"
    assert calls[0].url.path.endswith("accounts:signInWithPassword")


def test_sign_in_with_password_maps_provider_errors(toolkit):
    toolkit(lambda request: httpx.Response(400, json={"error": {"message": "INVALID_LOGIN_CREDENTIALS"}}))
    provider = FirebaseIdentityProvider(api_key="web-key")

    with pytest.raises(IdentityError) as excinfo:
        asyncio.run(provider.sign_in_with_password("a@x.com", "salah123"))

    assert excinfo.value.status_code == 401


def test_sign_in_network_failure_is_unavailable(toolkit):
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    toolkit(handler)
    provider = FirebaseIdentityProvider(api_key="web-key")

    with pytest.raises(IdentityError) as excinfo:
        asyncio.run(provider.sign_in_with_password("a@x.com", "rahasia123"))

    assert excinfo.value.code == "NETWORK_ERROR"


def test_sign_in_non_json_reply_is_unavailable(toolkit):
    toolkit(lambda request: httpx.Response(502, text="<html>Bad Gateway</html>"))
    provider = FirebaseIdentityProvider(api_key="web-key")

    with pytest.raises(IdentityError) as excinfo:
        asyncio.run(provider.sign_in_with_password("a@x.com", "rahasia123"))

    assert excinfo.value.code == "NETWORK_ERROR"
    assert excinfo.value.status_code == 503


def test_sign_in_without_api_key_is_a_configuration_error(monkeypatch):
    monkeypatch.setattr(auth, "init_firebase", lambda: None)
    provider = FirebaseIdentityProvider(api_key=None)

    with pytest.raises(IdentityError) as excinfo:
        asyncio.run(provider.sign_in_with_password("a@x.com", "rahasia123"))

    assert excinfo.value.code == "CONFIGURATION_NOT_FOUND"
