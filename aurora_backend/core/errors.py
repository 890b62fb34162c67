# aurora_backend/core/errors.py
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from aurora_backend.core.models import FIELD_ERROR_MESSAGES

# Diagnostic channel for access-control rejections coming from Firestore.
permission_logger = logging.getLogger("aurora.permission")

# --- User-facing messages ---
GENERIC_FAILURE_MESSAGE = "Oh tidak! Terjadi kesalahan. Silakan coba lagi."
UNAVAILABLE_MESSAGE = "Koneksi ke database gagal. Silakan coba lagi."
VALIDATION_MESSAGE = "Validasi gagal. Periksa kembali data Anda."
NOT_FOUND_MESSAGE = "Janji temu tidak ditemukan."
INVALID_CURSOR_MESSAGE = "Halaman tidak valid. Muat ulang daftar janji temu."
REGISTRATION_CLOSED_MESSAGE = "Seorang admin sudah terdaftar. Pendaftaran lebih lanjut tidak diizinkan."


# --- Store errors ---
class StoreError(Exception):
    """Base class for failures talking to the document store."""


class StorePermissionError(StoreError):
    def __init__(self, path: str, operation: str, request_data: Optional[Dict[str, Any]] = None):
        super().__init__(f"Missing or insufficient permissions: {operation} on {path}")
        self.path = path
        self.operation = operation
        self.request_data = request_data


class StoreUnavailableError(StoreError):
    pass


class AppointmentNotFoundError(StoreError):
    def __init__(self, appointment_id: str):
        super().__init__(f"Appointment {appointment_id} not found")
        self.appointment_id = appointment_id


class InvalidCursorError(StoreError):
    def __init__(self, cursor: str):
        super().__init__(f"Unknown page cursor: {cursor}")
        self.cursor = cursor


class MalformedDocumentError(StoreError):
    """A stored document no longer fits its model."""

    def __init__(self, path: str, error_count: int = 0):
        super().__init__(f"Malformed document {path} ({error_count} validation error(s))")
        self.path = path
        self.error_count = error_count


# --- Workflow errors ---
class InvalidStatusTransitionError(Exception):
    def __init__(self, appointment_id: str, current: str, target: str):
        super().__init__(f"Appointment {appointment_id} cannot go from '{current}' to '{target}'")
        self.appointment_id = appointment_id
        self.current = current
        self.target = target


class AdminAlreadyExistsError(Exception):
    pass


class IdentityError(Exception):
    """Identity provider failure carrying the provider's error code."""

    def __init__(self, code: str, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


# --- Permission diagnostic channel ---
@dataclass
class PermissionErrorEvent:
    path: str
    operation: str
    request_data: Optional[Dict[str, Any]] = None
    uid: Optional[str] = None

    @classmethod
    def from_error(cls, error: StorePermissionError, uid: Optional[str] = None) -> "PermissionErrorEvent":
        return cls(path=error.path, operation=error.operation, request_data=error.request_data, uid=uid)


_permission_listeners: List[Callable[[PermissionErrorEvent], None]] = []


def add_permission_listener(listener: Callable[[PermissionErrorEvent], None]) -> Callable[[], None]:
    """Registers a listener for permission events and returns a function that removes it."""
    _permission_listeners.append(listener)

    def remove():
        if listener in _permission_listeners:
            _permission_listeners.remove(listener)

    return remove


def report_permission_error(event: PermissionErrorEvent) -> None:
    permission_logger.warning(
        f"permission-error: operation={event.operation} path={event.path} "
        f"uid={event.uid} data={event.request_data}"
    )
    for listener in list(_permission_listeners):
        try:
            listener(event)
        except Exception:
            permission_logger.exception("Permission listener failed")


# --- Validation formatting ---
def field_errors(errors) -> Dict[str, str]:
    """Collapses pydantic errors into one message per field (first error wins)."""
    result: Dict[str, str] = {}
    for error in errors:
        loc = [part for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field_name = str(loc[0]) if loc else "__root__"
        if field_name in result:
            continue
        result[field_name] = FIELD_ERROR_MESSAGES.get(field_name, error.get("msg", VALIDATION_MESSAGE))
    return result


# --- Exception handlers ---
def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = field_errors(exc.errors())
        logging.info(f"Validation failed on {request.url.path}: {list(errors)}")
        return JSONResponse(
            status_code=422,
            content={"detail": VALIDATION_MESSAGE, "errors": errors},
        )

    @app.exception_handler(StorePermissionError)
    async def permission_exception_handler(request: Request, exc: StorePermissionError):
        uid = getattr(request.state, "uid", None)
        report_permission_error(PermissionErrorEvent.from_error(exc, uid=uid))
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": GENERIC_FAILURE_MESSAGE})

    @app.exception_handler(StoreUnavailableError)
    async def unavailable_exception_handler(request: Request, exc: StoreUnavailableError):
        logging.error(f"Firestore unavailable on {request.url.path}: {exc}")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": UNAVAILABLE_MESSAGE})

    @app.exception_handler(MalformedDocumentError)
    async def malformed_document_handler(request: Request, exc: MalformedDocumentError):
        logging.error(f"Unreadable document on {request.url.path}: {exc}")
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": GENERIC_FAILURE_MESSAGE})

    @app.exception_handler(AppointmentNotFoundError)
    async def not_found_exception_handler(request: Request, exc: AppointmentNotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": NOT_FOUND_MESSAGE})

    @app.exception_handler(InvalidCursorError)
    async def cursor_exception_handler(request: Request, exc: InvalidCursorError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": INVALID_CURSOR_MESSAGE})

    @app.exception_handler(InvalidStatusTransitionError)
    async def transition_exception_handler(request: Request, exc: InvalidStatusTransitionError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": f"Janji temu sudah berstatus '{exc.current}'."},
        )

    @app.exception_handler(AdminAlreadyExistsError)
    async def admin_exists_exception_handler(request: Request, exc: AdminAlreadyExistsError):
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": REGISTRATION_CLOSED_MESSAGE})

    @app.exception_handler(IdentityError)
    async def identity_exception_handler(request: Request, exc: IdentityError):
        logging.warning(f"Identity provider error on {request.url.path}: {exc.code}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})
