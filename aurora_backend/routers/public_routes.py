# aurora_backend/routers/public_routes.py
import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, status

from aurora_backend.core.db import get_appointment_store, get_content_store
from aurora_backend.core.models import AboutPage, Appointment, BookingRequest, ContactDetails, HomeContent, Service
from aurora_backend.core.repositories import AppointmentStore, ContentStore
from aurora_backend.services import booking_service, content_service, email_service

router = APIRouter(
    tags=["Public site"]
)


# --- Pages ---
@router.get("/home", response_model=HomeContent)
def get_home(store: ContentStore = Depends(get_content_store)):
    return content_service.get_home(store)


@router.get("/services", response_model=List[Service])
def list_services(store: ContentStore = Depends(get_content_store)):
    """All services ordered by title; also feeds the booking form's service selector."""
    return store.list_services()


@router.get("/about", response_model=AboutPage)
def get_about(store: ContentStore = Depends(get_content_store)):
    return content_service.get_about(store)


@router.get("/contact", response_model=ContactDetails)
def get_contact(store: ContentStore = Depends(get_content_store)):
    return content_service.get_contact(store)


# --- Booking ---
@router.post("/appointments", response_model=Appointment, status_code=status.HTTP_201_CREATED)
def create_appointment(
    booking: BookingRequest,
    background_tasks: BackgroundTasks,
    store: AppointmentStore = Depends(get_appointment_store),
):
    appointment = booking_service.submit_booking(store, booking)
    # Notification failures never affect the booking result
    background_tasks.add_task(email_service.send_new_booking_email, appointment)
    logging.info(f"Booking {appointment.id} accepted; clinic notification queued.")
    return appointment
