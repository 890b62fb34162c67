# aurora_backend/routers/auth_routes.py
import logging

from fastapi import APIRouter, Depends, status

from aurora_backend.core.auth import IdentityProvider, get_current_admin, get_identity_provider
from aurora_backend.core.db import get_admin_store
from aurora_backend.core.models import AdminAccount, AdminCredentials, LoginResponse, RegistrationStatus
from aurora_backend.core.repositories import AdminStore
from aurora_backend.services import admin_registration

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
)


@router.get("/registration-status", response_model=RegistrationStatus)
def get_registration_status(admins: AdminStore = Depends(get_admin_store)):
    """Tells the login page whether to offer first-admin registration."""
    return RegistrationStatus(open=admin_registration.registration_open(admins))


@router.post("/register", response_model=AdminAccount, status_code=status.HTTP_201_CREATED)
def register_admin(
    credentials: AdminCredentials,
    admins: AdminStore = Depends(get_admin_store),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    return admin_registration.register_first_admin(admins, identity, credentials)


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: AdminCredentials,
    identity: IdentityProvider = Depends(get_identity_provider),
):
    session = await identity.sign_in_with_password(credentials.email, credentials.password)
    logging.info(f"Admin signed in: {session.email}")
    return session


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    current_admin: dict = Depends(get_current_admin),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    identity.revoke_sessions(current_admin["uid"])
    logging.info(f"Admin signed out: {current_admin.get('email')}")


@router.get("/me", response_model=AdminAccount)
def get_me(current_admin: dict = Depends(get_current_admin)):
    return AdminAccount(uid=current_admin["uid"], email=current_admin.get("email", ""))
