# aurora_backend/routers/admin_routes.py
import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import StreamingResponse

from aurora_backend.core import config
from aurora_backend.core.auth import get_current_admin
from aurora_backend.core.db import get_appointment_store
from aurora_backend.core.models import (
    DEFAULT_PAGE_SIZE, Appointment, AppointmentPage, AppointmentStatus, DashboardCounts,
)
from aurora_backend.core.repositories import AppointmentStore
from aurora_backend.services import booking_service
from aurora_backend.services.live_feed import AppointmentFeed

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(get_current_admin)]
)

PROCESS_CONFIRMATION = (
    "Anda yakin ingin memproses janji temu ini? Tindakan ini akan memindahkan janji temu ke tab \"Sudah Dibaca\". "
    "Kirim ulang dengan confirm=true."
)
DELETE_CONFIRMATION = (
    "Apakah Anda yakin ingin menghapus janji temu ini secara permanen? Tindakan ini tidak dapat dibatalkan. "
    "Kirim ulang dengan confirm=true."
)


def require_confirmation(confirm: bool, prompt: str) -> None:
    if not confirm:
        raise HTTPException(status_code=status.HTTP_428_PRECONDITION_REQUIRED, detail=prompt)


# --- Dashboard ---
@router.get("/dashboard", response_model=DashboardCounts)
def get_dashboard(store: AppointmentStore = Depends(get_appointment_store)):
    return booking_service.dashboard_counts(store)


# --- Appointments ---
@router.get("/appointments", response_model=AppointmentPage)
def list_appointments(
    status_filter: AppointmentStatus = Query(AppointmentStatus.PENDING, alias="status"),
    name: Optional[str] = Query(None, description="Case-sensitive customer name prefix."),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    cursor: Optional[str] = Query(None, description="ID of the last appointment on the previous page."),
    store: AppointmentStore = Depends(get_appointment_store),
):
    return booking_service.list_appointments(store, status_filter, name_prefix=name, page_size=page_size, cursor=cursor)


@router.get("/appointments/stream")
async def stream_appointments(
    request: Request,
    status_filter: AppointmentStatus = Query(AppointmentStatus.PENDING, alias="status"),
    store: AppointmentStore = Depends(get_appointment_store),
):
    """Server-sent events: the full list for `status` on every change, keep-alive comments in between."""

    async def event_stream():
        async with AppointmentFeed(store, status_filter) as feed:
            while not await request.is_disconnected():
                try:
                    items = await feed.next(timeout=config.FEED_KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                payload = json.dumps([item.model_dump(mode="json") for item in items])
                yield f"event: appointments\ndata: {payload}\n\n"

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers={"Cache-Control": "no-cache"})


@router.get("/appointments/{appointment_id}", response_model=Appointment)
def get_appointment(appointment_id: str, store: AppointmentStore = Depends(get_appointment_store)):
    return booking_service.get_appointment(store, appointment_id)


@router.patch("/appointments/{appointment_id}/process", response_model=Appointment)
def process_appointment(
    appointment_id: str,
    confirm: bool = Query(False),
    current_admin: dict = Depends(get_current_admin),
    store: AppointmentStore = Depends(get_appointment_store),
):
    require_confirmation(confirm, PROCESS_CONFIRMATION)
    return booking_service.process_appointment(store, appointment_id, admin_email=current_admin.get("email"))


@router.delete("/appointments/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: str,
    confirm: bool = Query(False),
    current_admin: dict = Depends(get_current_admin),
    store: AppointmentStore = Depends(get_appointment_store),
):
    require_confirmation(confirm, DELETE_CONFIRMATION)
    booking_service.delete_appointment(store, appointment_id, admin_email=current_admin.get("email"))
    logging.info(f"Appointment {appointment_id} deleted.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
