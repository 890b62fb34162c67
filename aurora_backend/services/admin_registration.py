# aurora_backend/services/admin_registration.py
"""
First-admin registration gate.

The path is open only while no admin exists. The decisive check happens in
the store's atomic check-and-create, so two concurrent first-run attempts can
never both succeed; the early `admin_exists()` check only avoids creating an
identity account that would be rolled back anyway.
"""
import logging

from aurora_backend.core.auth import IdentityProvider
from aurora_backend.core.errors import AdminAlreadyExistsError
from aurora_backend.core.models import AdminAccount, AdminCredentials
from aurora_backend.core.repositories import AdminStore


def registration_open(admins: AdminStore) -> bool:
    return not admins.admin_exists()


def register_first_admin(admins: AdminStore, identity: IdentityProvider, credentials: AdminCredentials) -> AdminAccount:
    if admins.admin_exists():
        logging.warning(f"Admin registration refused for {credentials.email}: an admin already exists.")
        raise AdminAlreadyExistsError()

    user = identity.create_user(credentials.email, credentials.password)
    uid = user["uid"]

    try:
        account = admins.create_first_admin(uid, user["email"])
    except Exception as e:
        logging.error(f"Admin record for {credentials.email} not created ({type(e).__name__}). Rolling back identity account {uid}.")
        identity.delete_user(uid)
        raise

    logging.info(f"Admin account created for {account.email}")
    return account
