# aurora_backend/core/auth.py
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from firebase_admin import auth as admin_auth
from firebase_admin import exceptions as firebase_exceptions

from aurora_backend.core import config
from aurora_backend.core.db import get_admin_store, init_firebase
from aurora_backend.core.errors import IdentityError
from aurora_backend.core.models import LoginResponse
from aurora_backend.core.repositories import AdminStore

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

# Identity provider codes -> messages shown on the login / register forms
IDENTITY_ERROR_MESSAGES = {
    "EMAIL_EXISTS": "Email sudah terdaftar. Silakan login.",
    "INVALID_LOGIN_CREDENTIALS": "Email atau password yang Anda masukkan salah.",
    "EMAIL_NOT_FOUND": "Email atau password yang Anda masukkan salah.",
    "INVALID_PASSWORD": "Email atau password yang Anda masukkan salah.",
    "INVALID_EMAIL": "Format email tidak valid.",
    "WEAK_PASSWORD": "Password minimal 6 karakter.",
    "USER_DISABLED": "Akun ini telah dinonaktifkan.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Terlalu banyak percobaan. Silakan coba lagi nanti.",
    "NETWORK_ERROR": "Koneksi ke server autentikasi gagal. Silakan coba lagi.",
    "CONFIGURATION_NOT_FOUND": "Layanan login belum dikonfigurasi.",
}
DEFAULT_IDENTITY_MESSAGE = "Gagal melakukan login. Silakan periksa kembali email dan password Anda."

_CREDENTIAL_CODES = {"INVALID_LOGIN_CREDENTIALS", "EMAIL_NOT_FOUND", "INVALID_PASSWORD", "USER_DISABLED"}


def identity_error(code: str) -> IdentityError:
    """Builds the user-facing error for a provider code (e.g. 'TOO_MANY_ATTEMPTS_TRY_LATER : ...')."""
    code = (code or "UNKNOWN").split(" ")[0].split(":")[0].strip()
    message = IDENTITY_ERROR_MESSAGES.get(code, DEFAULT_IDENTITY_MESSAGE)
    if code in _CREDENTIAL_CODES:
        status_code = status.HTTP_401_UNAUTHORIZED
    elif code == "EMAIL_EXISTS":
        status_code = status.HTTP_409_CONFLICT
    elif code == "TOO_MANY_ATTEMPTS_TRY_LATER":
        status_code = status.HTTP_429_TOO_MANY_REQUESTS
    elif code in ("NETWORK_ERROR", "CONFIGURATION_NOT_FOUND"):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return IdentityError(code, message, status_code)


# --- Identity provider interface ---
class IdentityProvider(ABC):

    @abstractmethod
    def create_user(self, email: str, password: str) -> Dict[str, str]:
        """Returns {'uid': ..., 'email': ...}."""

    @abstractmethod
    def delete_user(self, uid: str) -> None:
        ...

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> LoginResponse:
        ...

    @abstractmethod
    def verify_id_token(self, token: str) -> Dict[str, Any]:
        """Returns the decoded claims; raises InvalidTokenError."""

    @abstractmethod
    def revoke_sessions(self, uid: str) -> None:
        ...


class InvalidTokenError(Exception):
    def __init__(self, reason: str = "invalid"):
        super().__init__(reason)
        self.reason = reason


class FirebaseIdentityProvider(IdentityProvider):
    """Firebase Auth: admin SDK for accounts and tokens, Identity Toolkit REST for password sign-in."""

    def __init__(self, api_key: Optional[str] = None, base_url: str = config.IDENTITY_TOOLKIT_URL):
        init_firebase()
        self.api_key = api_key
        self.base_url = base_url

    def create_user(self, email: str, password: str) -> Dict[str, str]:
        try:
            user = admin_auth.create_user(email=email, password=password)
        except admin_auth.EmailAlreadyExistsError:
            raise identity_error("EMAIL_EXISTS")
        except ValueError as e:
            logging.warning(f"Identity provider rejected new user data: {e}")
            raise identity_error("INVALID_EMAIL")
        except firebase_exceptions.FirebaseError as e:
            logging.error(f"Error creating identity account for {email}: {e}")
            raise identity_error(getattr(e, "code", "UNKNOWN"))
        return {"uid": user.uid, "email": user.email}

    def delete_user(self, uid: str) -> None:
        try:
            admin_auth.delete_user(uid)
        except admin_auth.UserNotFoundError:
            logging.warning(f"Identity account {uid} already gone")

    async def sign_in_with_password(self, email: str, password: str) -> LoginResponse:
        if not self.api_key:
            logging.error("FIREBASE_WEB_API_KEY is not configured; password sign-in unavailable.")
            raise identity_error("CONFIGURATION_NOT_FOUND")

        url = f"{self.base_url}/accounts:signInWithPassword"
        payload = {"email": email, "password": password, "returnSecureToken": True}
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(url, params={"key": self.api_key}, json=payload)
        except httpx.HTTPError as e:
            logging.error(f"Identity Toolkit unreachable: {e}")
            raise identity_error("NETWORK_ERROR")

        try:
            data = response.json()
        except ValueError:
            logging.error(f"Identity Toolkit returned a non-JSON reply (HTTP {response.status_code})")
            raise identity_error("NETWORK_ERROR")
        if response.status_code != 200:
            code = data.get("error", {}).get("message", "UNKNOWN")
            logging.warning(f"Sign-in failed for {email}: {code}")
            raise identity_error(code)

        return LoginResponse(
            uid=data["localId"],
            email=data.get("email", email),
            id_token=data["idToken"],
            refresh_token=data["refreshToken"],
            expires_in=int(data.get("expiresIn", 3600)),
        )

    def verify_id_token(self, token: str) -> Dict[str, Any]:
        try:
            return admin_auth.verify_id_token(token)
        except admin_auth.ExpiredIdTokenError:
            raise InvalidTokenError("expired")
        except (admin_auth.InvalidIdTokenError, ValueError):
            raise InvalidTokenError("invalid")

    def revoke_sessions(self, uid: str) -> None:
        admin_auth.revoke_refresh_tokens(uid)


def get_identity_provider() -> IdentityProvider:
    return FirebaseIdentityProvider(api_key=config.FIREBASE_WEB_API_KEY)


# --- Dependencies ---
async def get_current_admin(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    identity: IdentityProvider = Depends(get_identity_provider),
    admins: AdminStore = Depends(get_admin_store),
):
    """Verifies the Firebase ID token and that the caller owns an `admins/{uid}` record."""

    if request.method == "OPTIONS":
        return None

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Sesi tidak valid. Silakan login kembali.",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if token is None:
        logging.warning("Authentication token not provided for non-OPTIONS request.")
        raise credentials_exception

    try:
        decoded_token = identity.verify_id_token(token)
    except InvalidTokenError as e:
        if e.reason == "expired":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Sesi telah berakhir. Silakan login kembali.",
                headers={"WWW-Authenticate": "Bearer"},
            )
        raise credentials_exception

    uid = decoded_token.get("uid")
    request.state.uid = uid
    if not uid or not admins.is_admin(uid):
        logging.warning(f"Authenticated user {decoded_token.get('email')} (UID: {uid}) is not an admin.")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Akses ditolak. Akun ini bukan admin.")

    return decoded_token
