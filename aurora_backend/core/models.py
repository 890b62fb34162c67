# aurora_backend/core/models.py
import datetime as dt
from enum import Enum
from typing import Any, List, Optional

import pytz
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from aurora_backend.core.config import CLINIC_TIMEZONE

# One message per field, shown inline next to the form input.
FIELD_ERROR_MESSAGES = {
    "name": "Nama harus diisi, minimal 2 karakter.",
    "phone": "Nomor WhatsApp harus valid.",
    "email": "Format email tidak valid.",
    "service": "Silakan pilih layanan.",
    "date": "Tanggal konsultasi harus diisi.",
    "password": "Password minimal 6 karakter.",
}

PAGE_SIZES = (10, 20, 30, 40, 50)
DEFAULT_PAGE_SIZE = 10


def to_calendar_date(value: Any) -> Any:
    """
    Normalises what the browser or Firestore hands us into a calendar date.
    Accepts date objects, datetimes (Firestore timestamps) and ISO strings,
    including the full `toISOString()` form. Aware datetimes are read in the
    clinic's timezone so midnight local time does not slip to the previous day.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str) and "T" in value:
        try:
            value = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value  # let pydantic report it
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(pytz.timezone(CLINIC_TIMEZONE))
        return value.date()
    return value


# --- Appointments ---
class AppointmentStatus(str, Enum):
    PENDING = "pending"
    PROCESSED = "processed"


class BookingRequest(BaseModel):
    """Public booking form."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=2)
    phone: str = Field(..., min_length=10)
    email: EmailStr
    service: str = Field(..., min_length=1, description="Service title as shown in the selector.")
    date: dt.date = Field(..., description="Consultation date.")
    note: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value):
        return to_calendar_date(value)

    @field_validator("note", mode="after")
    @classmethod
    def empty_note_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class Appointment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    phone: str
    email: str
    service: str
    date: Optional[dt.date] = None
    note: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.PENDING
    createdAt: Optional[dt.datetime] = None
    processedAt: Optional[dt.datetime] = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value):
        return to_calendar_date(value)


class AppointmentPage(BaseModel):
    status: AppointmentStatus
    items: List[Appointment]
    page_size: int
    next_cursor: Optional[str] = None


class DashboardCounts(BaseModel):
    pending: int
    processed: int


# --- Public content ---
class Service(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    title: str
    description: Optional[str] = None
    price: float = Field(..., gt=0)
    image: Optional[str] = None
    imageHint: Optional[str] = None


class Doctor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str
    specialty: str
    bio: Optional[str] = None
    image: Optional[str] = None
    imageHint: Optional[str] = None


class GalleryImage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    imageUrl: str
    description: Optional[str] = None
    imageHint: Optional[str] = None
    createdAt: Optional[dt.datetime] = None


class AboutContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = "Tentang Kami"
    subtitle: str = "Ketahui lebih lanjut tentang cerita, misi, dan tim kami."
    paragraph1: str = (
        "Didirikan atas dasar hasrat untuk kecantikan dan kepercayaan diri, Aurora Beauty Clinic hadir "
        "sebagai destinasi premium untuk perawatan kulit Anda. Kami percaya bahwa setiap individu berhak "
        "merasa nyaman dan percaya diri dengan kulit yang sehat dan terawat."
    )
    paragraph2: str = (
        "Dengan menggabungkan teknologi estetika terdepan dan keahlian dari tim profesional kami, kami "
        "berkomitmen untuk memberikan hasil yang tidak hanya terlihat, tetapi juga terasa."
    )


class ContactInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    address: str = "Jl. Cantik Raya No. 123, Jakarta Selatan, 12345, Indonesia"
    phone: str = "(021) 1234 5678"
    email: str = "info@aurorabeauty.com"
    hours: str = "Senin - Sabtu: 09:00 - 20:00"


class ContactDetails(ContactInfo):
    whatsapp_url: str


class Testimonial(BaseModel):
    name: str
    rating: int = Field(..., ge=1, le=5)
    comment: str


class AboutPage(BaseModel):
    content: AboutContent
    team: List[Doctor]


class HomeContent(BaseModel):
    services: List[Service]
    gallery: List[GalleryImage]
    testimonials: List[Testimonial]
    contact: ContactDetails


# --- Admin ---
class AdminCredentials(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class AdminAccount(BaseModel):
    uid: str
    email: str
    createdAt: Optional[dt.datetime] = None


class LoginResponse(BaseModel):
    uid: str
    email: str
    id_token: str
    refresh_token: str
    expires_in: int


class RegistrationStatus(BaseModel):
    open: bool
