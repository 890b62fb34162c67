# aurora_backend/core/repositories.py
"""
Storage interfaces used by the routers and services, plus their Firestore
implementations.

Every Firestore call goes through `firestore_errors`, so callers only ever see
the store errors defined in `core.errors`.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from firebase_admin import firestore
from google.api_core import exceptions as gexc
from google.auth import exceptions as auth_exceptions
from google.cloud.firestore import FieldFilter
from pydantic import ValidationError

from aurora_backend.core.errors import (
    AdminAlreadyExistsError, AppointmentNotFoundError, InvalidCursorError, InvalidStatusTransitionError,
    MalformedDocumentError, StorePermissionError, StoreUnavailableError,
)
from aurora_backend.core.models import (
    AdminAccount, Appointment, AppointmentPage, AppointmentStatus, BookingRequest,
    Doctor, GalleryImage, Service,
)

APPOINTMENTS_COLLECTION = "appointments"
SERVICES_COLLECTION = "services"
DOCTORS_COLLECTION = "doctors"
GALLERY_COLLECTION = "gallery"
PAGES_COLLECTION = "pages"
ADMINS_COLLECTION = "admins"
SYSTEM_COLLECTION = "system"
ADMIN_LOCK_DOCUMENT = "adminRegistration"

# Upper bound for a Firestore string prefix range query
PREFIX_SENTINEL = "\uf8ff"

Unsubscribe = Callable[[], None]


@contextmanager
def firestore_errors(path: str, operation: str, request_data: Optional[Dict[str, Any]] = None):
    try:
        yield
    except gexc.Forbidden as e:
        raise StorePermissionError(path, operation, request_data) from e
    except (gexc.GoogleAPICallError, gexc.RetryError, auth_exceptions.TransportError) as e:
        raise StoreUnavailableError(str(e)) from e


def run_transaction(transactional_func, transaction, *args):
    """Runs a `@firestore.transactional` function; exhausted commit retries count as unavailable."""
    try:
        return transactional_func(transaction, *args)
    except ValueError as e:
        if "transaction" not in str(e).lower():
            raise
        raise StoreUnavailableError(str(e)) from e


# --- Interfaces ---
class AppointmentStore(ABC):

    @abstractmethod
    def create(self, booking: BookingRequest) -> Appointment:
        """Persists a booking as a pending appointment stamped with the server time."""

    @abstractmethod
    def get(self, appointment_id: str) -> Optional[Appointment]:
        ...

    @abstractmethod
    def list(
        self,
        status: AppointmentStatus,
        name_prefix: Optional[str] = None,
        page_size: int = 10,
        cursor: Optional[str] = None,
    ) -> AppointmentPage:
        ...

    @abstractmethod
    def mark_processed(self, appointment_id: str) -> Appointment:
        """pending -> processed. Raises InvalidStatusTransitionError for anything else."""

    @abstractmethod
    def delete(self, appointment_id: str) -> None:
        ...

    @abstractmethod
    def count_by_status(self, status: AppointmentStatus) -> int:
        ...

    @abstractmethod
    def watch(self, status: AppointmentStatus, callback: Callable[[List[Appointment]], None]) -> Unsubscribe:
        """Calls `callback` with the full list on every change; returns the unsubscribe handle."""


class ContentStore(ABC):

    @abstractmethod
    def list_services(self, limit: Optional[int] = None) -> List[Service]:
        ...

    @abstractmethod
    def list_doctors(self) -> List[Doctor]:
        ...

    @abstractmethod
    def list_gallery(self) -> List[GalleryImage]:
        ...

    @abstractmethod
    def get_page(self, name: str) -> Optional[Dict[str, Any]]:
        ...


class AdminStore(ABC):

    @abstractmethod
    def admin_exists(self) -> bool:
        ...

    @abstractmethod
    def is_admin(self, uid: str) -> bool:
        ...

    @abstractmethod
    def create_first_admin(self, uid: str, email: str) -> AdminAccount:
        """Atomically creates the only admin; raises AdminAlreadyExistsError when one exists."""


# --- Firestore implementations ---
def _to_appointment(doc) -> Optional[Appointment]:
    try:
        return Appointment(id=doc.id, **doc.to_dict())
    except ValidationError as e:
        logging.warning(f"Skipping malformed appointment {doc.id}: {e.error_count()} error(s)")
        return None


def _read_appointment(snapshot, path: str) -> Appointment:
    try:
        return Appointment(id=snapshot.id, **(snapshot.to_dict() or {}))
    except ValidationError as e:
        raise MalformedDocumentError(path, e.error_count()) from e


class FirestoreAppointmentStore(AppointmentStore):

    def __init__(self, db):
        self._db = db
        self._collection = db.collection(APPOINTMENTS_COLLECTION)

    def _status_query(self, status: AppointmentStatus):
        return self._collection.where(filter=FieldFilter("status", "==", status.value))

    def create(self, booking: BookingRequest) -> Appointment:
        data = booking.model_dump(mode="json")
        data["status"] = AppointmentStatus.PENDING.value
        data["createdAt"] = firestore.SERVER_TIMESTAMP

        ref = self._collection.document()
        with firestore_errors(ref.path, "create", booking.model_dump(mode="json")):
            ref.set(data)
            snapshot = ref.get()
        logging.info(f"Appointment saved to Firestore with ID: {ref.id}")
        return _read_appointment(snapshot, ref.path)

    def get(self, appointment_id: str) -> Optional[Appointment]:
        ref = self._collection.document(appointment_id)
        with firestore_errors(ref.path, "get"):
            snapshot = ref.get()
        if not snapshot.exists:
            return None
        return _read_appointment(snapshot, ref.path)

    def list(self, status, name_prefix=None, page_size=10, cursor=None) -> AppointmentPage:
        query = self._status_query(status)
        if name_prefix:
            # Range filter on `name` forces ordering by `name` first
            query = (
                query.where(filter=FieldFilter("name", ">=", name_prefix))
                .where(filter=FieldFilter("name", "<", name_prefix + PREFIX_SENTINEL))
                .order_by("name")
            )
        else:
            query = query.order_by("createdAt", direction=firestore.Query.DESCENDING)

        with firestore_errors(self._collection.id, "list"):
            if cursor:
                cursor_snapshot = self._collection.document(cursor).get()
                if not cursor_snapshot.exists:
                    raise InvalidCursorError(cursor)
                query = query.start_after(cursor_snapshot)
            docs = list(query.limit(page_size + 1).stream())

        has_more = len(docs) > page_size
        docs = docs[:page_size]
        items = [a for a in (_to_appointment(doc) for doc in docs) if a is not None]
        return AppointmentPage(
            status=status,
            items=items,
            page_size=page_size,
            next_cursor=docs[-1].id if has_more and docs else None,
        )

    def mark_processed(self, appointment_id: str) -> Appointment:
        ref = self._collection.document(appointment_id)
        new_status = AppointmentStatus.PROCESSED.value

        @firestore.transactional
        def process_in_transaction(transaction, ref):
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                raise AppointmentNotFoundError(appointment_id)
            current = snapshot.to_dict().get("status")
            if current != AppointmentStatus.PENDING.value:
                raise InvalidStatusTransitionError(appointment_id, current, new_status)
            transaction.update(ref, {"status": new_status, "processedAt": firestore.SERVER_TIMESTAMP})

        with firestore_errors(ref.path, "update", {"status": new_status}):
            run_transaction(process_in_transaction, self._db.transaction(), ref)
            snapshot = ref.get()
        return _read_appointment(snapshot, ref.path)

    def delete(self, appointment_id: str) -> None:
        ref = self._collection.document(appointment_id)
        with firestore_errors(ref.path, "delete"):
            if not ref.get().exists:
                raise AppointmentNotFoundError(appointment_id)
            ref.delete()

    def count_by_status(self, status: AppointmentStatus) -> int:
        with firestore_errors(self._collection.id, "count"):
            results = self._status_query(status).count(alias="total").get()
        return int(results[0][0].value) if results else 0

    def watch(self, status, callback) -> Unsubscribe:
        query = self._status_query(status).order_by("createdAt", direction=firestore.Query.DESCENDING)

        def on_snapshot(docs, changes, read_time):
            callback([a for a in (_to_appointment(doc) for doc in docs) if a is not None])

        with firestore_errors(self._collection.id, "listen"):
            watch = query.on_snapshot(on_snapshot)
        return watch.unsubscribe


class FirestoreContentStore(ContentStore):

    def __init__(self, db):
        self._db = db

    def _stream_models(self, query, model, path: str) -> list:
        items = []
        with firestore_errors(path, "list"):
            docs = list(query.stream())
        for doc in docs:
            try:
                items.append(model(id=doc.id, **doc.to_dict()))
            except ValidationError:
                logging.warning(f"Skipping malformed document {path}/{doc.id}")
        return items

    def list_services(self, limit: Optional[int] = None) -> List[Service]:
        query = self._db.collection(SERVICES_COLLECTION).order_by("title")
        if limit:
            query = query.limit(limit)
        return self._stream_models(query, Service, SERVICES_COLLECTION)

    def list_doctors(self) -> List[Doctor]:
        query = self._db.collection(DOCTORS_COLLECTION).order_by("name")
        return self._stream_models(query, Doctor, DOCTORS_COLLECTION)

    def list_gallery(self) -> List[GalleryImage]:
        query = self._db.collection(GALLERY_COLLECTION).order_by("createdAt", direction=firestore.Query.DESCENDING)
        return self._stream_models(query, GalleryImage, GALLERY_COLLECTION)

    def get_page(self, name: str) -> Optional[Dict[str, Any]]:
        ref = self._db.collection(PAGES_COLLECTION).document(name)
        with firestore_errors(ref.path, "get"):
            snapshot = ref.get()
        return snapshot.to_dict() if snapshot.exists else None


class FirestoreAdminStore(AdminStore):

    def __init__(self, db):
        self._db = db
        self._admins = db.collection(ADMINS_COLLECTION)
        self._lock_ref = db.collection(SYSTEM_COLLECTION).document(ADMIN_LOCK_DOCUMENT)

    def admin_exists(self) -> bool:
        with firestore_errors(ADMINS_COLLECTION, "list"):
            if self._lock_ref.get().exists:
                return True
            return len(list(self._admins.limit(1).stream())) > 0

    def is_admin(self, uid: str) -> bool:
        ref = self._admins.document(uid)
        with firestore_errors(ref.path, "get"):
            return ref.get().exists

    def create_first_admin(self, uid: str, email: str) -> AdminAccount:
        admin_ref = self._admins.document(uid)
        lock_ref = self._lock_ref
        admins = self._admins

        @firestore.transactional
        def create_in_transaction(transaction):
            # All reads before any write
            if lock_ref.get(transaction=transaction).exists:
                raise AdminAlreadyExistsError()
            if list(admins.limit(1).stream(transaction=transaction)):
                raise AdminAlreadyExistsError()
            transaction.set(lock_ref, {"uid": uid, "email": email, "closedAt": firestore.SERVER_TIMESTAMP})
            transaction.set(admin_ref, {"uid": uid, "email": email, "createdAt": firestore.SERVER_TIMESTAMP})

        with firestore_errors(admin_ref.path, "create", {"uid": uid, "email": email}):
            run_transaction(create_in_transaction, self._db.transaction())
            snapshot = admin_ref.get()
        logging.info(f"First admin registered: {email} ({uid})")
        return AdminAccount(**snapshot.to_dict())
