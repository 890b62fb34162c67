import datetime as dt
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as gexc
from google.auth import exceptions as auth_exceptions

from aurora_backend.core import repositories
from aurora_backend.core.errors import (
    AdminAlreadyExistsError, AppointmentNotFoundError, InvalidCursorError, InvalidStatusTransitionError,
    MalformedDocumentError, StorePermissionError, StoreUnavailableError,
)
from aurora_backend.core.models import AppointmentStatus, BookingRequest
from aurora_backend.core.repositories import (
    PREFIX_SENTINEL, FirestoreAdminStore, FirestoreAppointmentStore, FirestoreContentStore,
)

from tests.conftest import VALID_BOOKING

CREATED_AT = dt.datetime(2025, 1, 1, 8, 0, tzinfo=dt.timezone.utc)


def make_doc(doc_id, data=None, exists=True):
    doc = MagicMock(id=doc_id, exists=exists)
    doc.to_dict.return_value = data
    return doc


def stored(status="pending", **overrides):
    return {**VALID_BOOKING, "status": status, "createdAt": CREATED_AT, **overrides}


@pytest.fixture
def immediate_transactions(monkeypatch):
    """Runs transactional functions directly against the mock transaction."""
    monkeypatch.setattr(repositories.firestore, "transactional", lambda func: func)


@pytest.fixture
def db():
    return MagicMock()


@pytest.fixture
def query(db):
    query = MagicMock()
    collection = db.collection.return_value
    collection.id = "appointments"
    collection.where.return_value = query
    for method in ("where", "order_by", "start_after", "limit"):
        getattr(query, method).return_value = query
    return query


# --- Appointments ---
def test_create_stamps_pending_and_server_time(db):
    ref = db.collection.return_value.document.return_value
    ref.id = "apt-1"
    ref.get.return_value = make_doc("apt-1", stored())

    appointment = FirestoreAppointmentStore(db).create(BookingRequest(**VALID_BOOKING))

    written = ref.set.call_args[0][0]
    assert written["status"] == "pending"
    assert written["createdAt"] is repositories.firestore.SERVER_TIMESTAMP
    assert written["date"] == "2025-01-10"
    assert appointment.id == "apt-1"
    assert appointment.status == AppointmentStatus.PENDING


def test_create_permission_denied_becomes_store_permission_error(db):
    ref = db.collection.return_value.document.return_value
    ref.path = "appointments/apt-1"
    ref.set.side_effect = gexc.PermissionDenied("Missing or insufficient permissions.")

    with pytest.raises(StorePermissionError) as excinfo:
        FirestoreAppointmentStore(db).create(BookingRequest(**VALID_BOOKING))

    assert excinfo.value.path == "appointments/apt-1"
    assert excinfo.value.operation == "create"
    assert excinfo.value.request_data["name"] == "Rina"


def test_create_unavailable_becomes_store_unavailable_error(db):
    db.collection.return_value.document.return_value.set.side_effect = gexc.ServiceUnavailable("down")

    with pytest.raises(StoreUnavailableError):
        FirestoreAppointmentStore(db).create(BookingRequest(**VALID_BOOKING))


@pytest.mark.parametrize(
    "failure",
    [
        gexc.InternalServerError("backend hiccup"),
        gexc.Aborted("contention"),
        gexc.ResourceExhausted("quota"),
        gexc.Unknown("unknown"),
        auth_exceptions.TransportError("token refresh failed"),
    ],
)
def test_create_transient_failures_become_store_unavailable_error(db, failure):
    db.collection.return_value.document.return_value.set.side_effect = failure

    with pytest.raises(StoreUnavailableError):
        FirestoreAppointmentStore(db).create(BookingRequest(**VALID_BOOKING))


def test_get_malformed_document(db):
    ref = db.collection.return_value.document.return_value
    ref.path = "appointments/legacy"
    ref.get.return_value = make_doc("legacy", {"name": "Tanpa telepon", "status": "archived"})

    with pytest.raises(MalformedDocumentError) as excinfo:
        FirestoreAppointmentStore(db).get("legacy")

    assert excinfo.value.path == "appointments/legacy"


def test_list_orders_newest_first_and_reads_one_extra(db, query):
    query.stream.return_value = iter([make_doc(f"apt-{i}", stored()) for i in range(3)])

    page = FirestoreAppointmentStore(db).list(AppointmentStatus.PENDING, page_size=2)

    query.order_by.assert_called_once_with("createdAt", direction=repositories.firestore.Query.DESCENDING)
    query.limit.assert_called_once_with(3)
    assert [a.id for a in page.items] == ["apt-0", "apt-1"]
    assert page.next_cursor == "apt-1"


def test_list_last_page_has_no_cursor(db, query):
    query.stream.return_value = iter([make_doc("apt-0", stored())])

    page = FirestoreAppointmentStore(db).list(AppointmentStatus.PENDING, page_size=10)

    assert page.next_cursor is None


def test_list_name_prefix_uses_a_range_on_name(db, query):
    query.stream.return_value = iter([])

    FirestoreAppointmentStore(db).list(AppointmentStatus.PENDING, name_prefix="Ri")

    filters = [c.kwargs["filter"] for c in query.where.call_args_list]
    assert [(f.field_path, f.op_string, f.value) for f in filters] == [
        ("name", ">=", "Ri"),
        ("name", "<", "Ri" + PREFIX_SENTINEL),
    ]
    query.order_by.assert_called_once_with("name")


def test_list_skips_malformed_documents(db, query):
    query.stream.return_value = iter([make_doc("bad", {"name": "Tanpa data"}), make_doc("good", stored())])

    page = FirestoreAppointmentStore(db).list(AppointmentStatus.PENDING)

    assert [a.id for a in page.items] == ["good"]


def test_list_unknown_cursor(db, query):
    db.collection.return_value.document.return_value.get.return_value = make_doc("gone", exists=False)

    with pytest.raises(InvalidCursorError):
        FirestoreAppointmentStore(db).list(AppointmentStatus.PENDING, cursor="gone")


def test_list_starts_after_the_cursor_document(db, query):
    cursor_doc = make_doc("apt-9", stored())
    db.collection.return_value.document.return_value.get.return_value = cursor_doc
    query.stream.return_value = iter([])

    FirestoreAppointmentStore(db).list(AppointmentStatus.PENDING, cursor="apt-9")

    query.start_after.assert_called_once_with(cursor_doc)


def test_mark_processed_updates_pending(db, immediate_transactions):
    ref = db.collection.return_value.document.return_value
    ref.get.side_effect = [
        make_doc("apt-1", stored()),
        make_doc("apt-1", stored(status="processed", processedAt=CREATED_AT)),
    ]
    transaction = db.transaction.return_value

    appointment = FirestoreAppointmentStore(db).mark_processed("apt-1")

    update = transaction.update.call_args[0][1]
    assert update["status"] == "processed"
    assert update["processedAt"] is repositories.firestore.SERVER_TIMESTAMP
    assert appointment.status == AppointmentStatus.PROCESSED


def test_mark_processed_refuses_processed(db, immediate_transactions):
    ref = db.collection.return_value.document.return_value
    ref.get.return_value = make_doc("apt-1", stored(status="processed"))

    with pytest.raises(InvalidStatusTransitionError):
        FirestoreAppointmentStore(db).mark_processed("apt-1")

    db.transaction.return_value.update.assert_not_called()


def test_mark_processed_exhausted_retries_are_unavailable(db, immediate_transactions):
    ref = db.collection.return_value.document.return_value
    ref.get.side_effect = ValueError("Failed to commit transaction in 5 attempts.")

    with pytest.raises(StoreUnavailableError):
        FirestoreAppointmentStore(db).mark_processed("apt-1")


def test_mark_processed_missing(db, immediate_transactions):
    db.collection.return_value.document.return_value.get.return_value = make_doc("apt-1", exists=False)

    with pytest.raises(AppointmentNotFoundError):
        FirestoreAppointmentStore(db).mark_processed("apt-1")


def test_delete_missing_document(db):
    ref = db.collection.return_value.document.return_value
    ref.get.return_value = make_doc("apt-1", exists=False)

    with pytest.raises(AppointmentNotFoundError):
        FirestoreAppointmentStore(db).delete("apt-1")

    ref.delete.assert_not_called()


def test_delete_permission_denied(db):
    ref = db.collection.return_value.document.return_value
    ref.path = "appointments/apt-1"
    ref.get.return_value = make_doc("apt-1", stored())
    ref.delete.side_effect = gexc.PermissionDenied("denied")

    with pytest.raises(StorePermissionError) as excinfo:
        FirestoreAppointmentStore(db).delete("apt-1")

    assert excinfo.value.operation == "delete"


def test_watch_returns_the_unsubscribe_handle(db, query):
    watch = query.on_snapshot.return_value
    received = []

    unsubscribe = FirestoreAppointmentStore(db).watch(AppointmentStatus.PENDING, received.append)
    on_snapshot = query.on_snapshot.call_args[0][0]
    on_snapshot([make_doc("apt-1", stored())], [], CREATED_AT)

    assert unsubscribe is watch.unsubscribe
    assert [a.id for a in received[0]] == ["apt-1"]


# --- Content ---
def test_content_services_skip_invalid_prices(db):
    query = db.collection.return_value.order_by.return_value
    query.limit.return_value = query
    query.stream.return_value = iter([
        make_doc("a", {"title": "Facial", "price": 350000}),
        make_doc("b", {"title": "Gratis", "price": 0}),
    ])

    services = FirestoreContentStore(db).list_services(limit=3)

    query.limit.assert_called_once_with(3)
    assert [s.title for s in services] == ["Facial"]


def test_content_missing_page(db):
    db.collection.return_value.document.return_value.get.return_value = make_doc("about", exists=False)
    assert FirestoreContentStore(db).get_page("about") is None


# --- Admins ---
@pytest.fixture
def admin_collections(db):
    admins, system = MagicMock(), MagicMock()
    collections = {"admins": admins, "system": system}
    db.collection.side_effect = lambda name: collections[name]
    return admins, system.document.return_value


def test_create_first_admin_writes_lock_and_record(db, admin_collections, immediate_transactions):
    admins, lock_ref = admin_collections
    lock_ref.get.return_value = make_doc("adminRegistration", exists=False)
    admins.limit.return_value.stream.return_value = iter([])
    admin_ref = admins.document.return_value
    admin_ref.get.return_value = make_doc("uid-1", {"uid": "uid-1", "email": "a@x.com", "createdAt": CREATED_AT})
    transaction = db.transaction.return_value

    account = FirestoreAdminStore(db).create_first_admin("uid-1", "a@x.com")

    written = [c.args[0] for c in transaction.set.call_args_list]
    assert written == [lock_ref, admin_ref]
    assert account.uid == "uid-1"


def test_create_first_admin_refuses_when_locked(db, admin_collections, immediate_transactions):
    admins, lock_ref = admin_collections
    lock_ref.get.return_value = make_doc("adminRegistration", {"uid": "first"})

    with pytest.raises(AdminAlreadyExistsError):
        FirestoreAdminStore(db).create_first_admin("uid-2", "b@x.com")

    db.transaction.return_value.set.assert_not_called()


def test_create_first_admin_refuses_when_an_admin_exists(db, admin_collections, immediate_transactions):
    admins, lock_ref = admin_collections
    lock_ref.get.return_value = make_doc("adminRegistration", exists=False)
    admins.limit.return_value.stream.return_value = iter([make_doc("legacy", {"uid": "legacy"})])

    with pytest.raises(AdminAlreadyExistsError):
        FirestoreAdminStore(db).create_first_admin("uid-2", "b@x.com")


def test_admin_exists_checks_lock_then_collection(db, admin_collections):
    admins, lock_ref = admin_collections
    lock_ref.get.return_value = make_doc("adminRegistration", exists=False)
    admins.limit.return_value.stream.return_value = iter([])

    assert FirestoreAdminStore(db).admin_exists() is False
