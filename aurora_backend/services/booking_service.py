# aurora_backend/services/booking_service.py
import logging
from typing import Optional

from aurora_backend.core.errors import AppointmentNotFoundError
from aurora_backend.core.models import (
    DEFAULT_PAGE_SIZE, PAGE_SIZES, Appointment, AppointmentPage, AppointmentStatus,
    BookingRequest, DashboardCounts,
)
from aurora_backend.core.repositories import AppointmentStore


# --- Booking submission ---
def submit_booking(store: AppointmentStore, booking: BookingRequest) -> Appointment:
    """
    Persists a validated booking. Status is always 'pending' and the creation
    time comes from the server; nothing in the request can override either.
    """
    logging.info(f"New booking from '{booking.name}' for '{booking.service}' on {booking.date.isoformat()}")
    appointment = store.create(booking)
    logging.info(f"Booking stored with ID: {appointment.id}")
    return appointment


# --- Moderation ---
def normalize_page_size(page_size: Optional[int]) -> int:
    if page_size in PAGE_SIZES:
        return page_size
    return DEFAULT_PAGE_SIZE


def list_appointments(
    store: AppointmentStore,
    status: AppointmentStatus,
    name_prefix: Optional[str] = None,
    page_size: Optional[int] = None,
    cursor: Optional[str] = None,
) -> AppointmentPage:
    name_prefix = (name_prefix or "").strip() or None
    return store.list(status, name_prefix=name_prefix, page_size=normalize_page_size(page_size), cursor=cursor)


def get_appointment(store: AppointmentStore, appointment_id: str) -> Appointment:
    appointment = store.get(appointment_id)
    if appointment is None:
        raise AppointmentNotFoundError(appointment_id)
    return appointment


def process_appointment(store: AppointmentStore, appointment_id: str, admin_email: Optional[str] = None) -> Appointment:
    """One-way pending -> processed transition."""
    logging.info(f"Admin {admin_email} processing appointment: {appointment_id}")
    return store.mark_processed(appointment_id)


def delete_appointment(store: AppointmentStore, appointment_id: str, admin_email: Optional[str] = None) -> None:
    logging.info(f"Admin {admin_email} deleting appointment: {appointment_id}")
    store.delete(appointment_id)


def dashboard_counts(store: AppointmentStore) -> DashboardCounts:
    return DashboardCounts(
        pending=store.count_by_status(AppointmentStatus.PENDING),
        processed=store.count_by_status(AppointmentStatus.PROCESSED),
    )
