# aurora_backend/services/content_service.py
import re
from urllib.parse import quote

from aurora_backend.core import config
from aurora_backend.core.models import (
    AboutContent, AboutPage, ContactDetails, ContactInfo, HomeContent, Testimonial,
)
from aurora_backend.core.repositories import ContentStore

HOME_SERVICES_LIMIT = 3
WHATSAPP_GREETING = f"Halo {config.CLINIC_NAME}, saya ingin bertanya tentang layanan Anda."

# Static testimonials shown on the home page
TESTIMONIALS = [
    Testimonial(
        name="Rina S.",
        rating=5,
        comment="Pelayanannya luar biasa! Kulit saya jadi jauh lebih cerah dan sehat setelah perawatan di Aurora. Pasti akan kembali lagi!",
    ),
    Testimonial(
        name="Dewi K.",
        rating=5,
        comment="Dokter dan stafnya sangat profesional dan ramah. Hasil treatment laser-nya sangat memuaskan. Terima kasih Aurora Beauty Clinic!",
    ),
    Testimonial(
        name="Lina M.",
        rating=5,
        comment="Tempatnya nyaman dan mewah. Saya merasa sangat rileks selama perawatan. Recommended banget untuk yang mau me-time!",
    ),
]


def whatsapp_number(phone: str) -> str:
    """Indonesian number in international form: '0812-345' -> '62812345'."""
    cleaned = re.sub(r"\D", "", phone or "")
    if cleaned.startswith("0"):
        return "62" + cleaned[1:]
    if not cleaned.startswith("62"):
        return "62" + cleaned
    return cleaned


def whatsapp_url(phone: str, message: str = WHATSAPP_GREETING) -> str:
    return f"https://wa.me/{whatsapp_number(phone)}?text={quote(message)}"


def get_contact(store: ContentStore) -> ContactDetails:
    contact = ContactInfo(**(store.get_page("contact") or {}))
    return ContactDetails(**contact.model_dump(), whatsapp_url=whatsapp_url(contact.phone))


def get_about(store: ContentStore) -> AboutPage:
    content = AboutContent(**(store.get_page("about") or {}))
    return AboutPage(content=content, team=store.list_doctors())


def get_home(store: ContentStore) -> HomeContent:
    return HomeContent(
        services=store.list_services(limit=HOME_SERVICES_LIMIT),
        gallery=store.list_gallery(),
        testimonials=TESTIMONIALS,
        contact=get_contact(store),
    )
