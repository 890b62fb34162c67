# aurora_backend/seed_content.py
"""
Seeds default page content and a starter set of services into Firestore.
Safe to run more than once: existing documents are never overwritten.

    python -m aurora_backend.seed_content
"""
import logging

from aurora_backend.core.db import get_firestore_client
from aurora_backend.core.models import AboutContent, ContactInfo
from aurora_backend.core.repositories import PAGES_COLLECTION, SERVICES_COLLECTION

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(message)s')

DEFAULT_SERVICES = [
    {
        "title": "Facial Glow",
        "description": "Perawatan wajah untuk kulit lebih cerah, lembap dan bercahaya.",
        "price": 350000,
        "image": "https://picsum.photos/seed/facial/600/400",
        "imageHint": "facial treatment",
    },
    {
        "title": "Chemical Peeling",
        "description": "Eksfoliasi kulit untuk mengatasi jerawat, flek hitam dan pori besar.",
        "price": 450000,
        "image": "https://picsum.photos/seed/peeling/600/400",
        "imageHint": "skin peeling",
    },
    {
        "title": "Laser Rejuvenation",
        "description": "Peremajaan kulit dengan teknologi laser untuk tekstur kulit yang halus.",
        "price": 1250000,
        "image": "https://picsum.photos/seed/laser/600/400",
        "imageHint": "laser treatment",
    },
]


def seed_pages(db) -> int:
    created = 0
    for name, content in (("about", AboutContent()), ("contact", ContactInfo())):
        ref = db.collection(PAGES_COLLECTION).document(name)
        if ref.get().exists:
            logging.info(f"Page '{name}' already exists. Skipping.")
            continue
        ref.set(content.model_dump())
        logging.info(f"Page '{name}' created with default content.")
        created += 1
    return created


def seed_services(db) -> int:
    services_ref = db.collection(SERVICES_COLLECTION)
    if list(services_ref.limit(1).stream()):
        logging.info("Services collection is not empty. Skipping.")
        return 0
    for service in DEFAULT_SERVICES:
        services_ref.document().set(service)
        logging.info(f"Service '{service['title']}' created.")
    return len(DEFAULT_SERVICES)


def main():
    db = get_firestore_client()
    pages = seed_pages(db)
    services = seed_services(db)
    logging.info(f"Seed finished: {pages} page(s), {services} service(s) created.")


if __name__ == "__main__":
    main()
